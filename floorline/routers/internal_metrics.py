from __future__ import annotations

from fastapi import APIRouter, Depends

from floorline.core.constants import ROLE_ADMIN
from floorline.core.metrics import request_metrics
from floorline.deps import Actor, require_role

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def metrics_snapshot(_actor: Actor = Depends(require_role([ROLE_ADMIN]))):
    return {
        "endpoints": request_metrics.snapshot(),
        "deliveries": request_metrics.deliveries(),
        "delivery_failures": request_metrics.delivery_failures(),
    }
