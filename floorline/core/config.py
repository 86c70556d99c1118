import os
from decimal import Decimal

from dotenv import load_dotenv

# Load .env from the project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./floorline.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

# Billing
TAX_RATE = Decimal(os.getenv("TAX_RATE", "0.16"))
TIP_PRESET_PERCENTAGES = [
    Decimal(value.strip())
    for value in os.getenv("TIP_PRESET_PERCENTAGES", "10,15,20").split(",")
    if value.strip()
]

# Daily close windows are computed in this calendar
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "UTC").strip() or "UTC"

# Displays re-read the authoritative queue on this interval
DISPLAY_POLL_INTERVAL_SECONDS = int(os.getenv("DISPLAY_POLL_INTERVAL_SECONDS", "5"))

# Auth (JWT issued by the session service, only verified here)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_SUPER_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Realtime relay (pub/sub) and push gateway
REALTIME_RELAY_URL = os.getenv("REALTIME_RELAY_URL", "").strip()
REALTIME_RELAY_KEY = os.getenv("REALTIME_RELAY_KEY", "").strip()
REALTIME_TIMEOUT_SECONDS = float(os.getenv("REALTIME_TIMEOUT_SECONDS", "5"))
PUSH_GATEWAY_URL = os.getenv("PUSH_GATEWAY_URL", "").strip()
PUSH_GATEWAY_TOKEN = os.getenv("PUSH_GATEWAY_TOKEN", "").strip()

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
