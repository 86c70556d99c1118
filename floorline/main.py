import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from floorline.core.config import CORS_ORIGINS, DATABASE_URL, TAX_RATE
from floorline.core.database import Base, engine
from floorline.core.logging_setup import configure_logging
from floorline.core.startup_checks import ensure_migrations_applied, validate_database_environment
from floorline.middleware.observability import ObservabilityMiddleware
import floorline.models  # models must be registered before create_all
import floorline.services.event_handlers  # subscribes the relay and push handlers

from floorline.routers.orders import router as orders_router
from floorline.routers.order_items import router as order_items_router
from floorline.routers.payments import router as payments_router
from floorline.routers.discounts import router as discounts_router
from floorline.routers.daily_close import router as daily_close_router
from floorline.routers.audit import router as audit_router
from floorline.routers.notifications import router as notifications_router
from floorline.routers.kds import router as kds_router
from floorline.routers.internal_metrics import router as internal_metrics_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Floorline Order & Billing API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
        logger.info("%s ready tax_rate=%s", STARTUP_PREFIX, TAX_RATE)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


# Routers
app.include_router(orders_router)
app.include_router(order_items_router)
app.include_router(payments_router)
app.include_router(discounts_router)
app.include_router(daily_close_router)
app.include_router(audit_router)
app.include_router(notifications_router)
app.include_router(kds_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
