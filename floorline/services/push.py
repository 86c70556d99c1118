from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from floorline.core.metrics import request_metrics
from floorline.models.push_subscription import PushSubscription
from floorline.realtime.push_gateway import PushDelivery, PushGateway, push_gateway
from floorline.services.errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)


def _extract_keys(body: Mapping[str, Any]) -> tuple[str, str, str]:
    """Accept ``{endpoint, auth, p256dh}`` or ``{endpoint, keys: {auth, p256dh}}``."""
    keys = body.get("keys") or {}
    endpoint = (body.get("endpoint") or "").strip()
    auth = body.get("auth") or keys.get("auth") or ""
    p256dh = body.get("p256dh") or keys.get("p256dh") or ""
    if not endpoint or not auth or not p256dh:
        raise ValidationFailed("Invalid subscription")
    return endpoint, auth, p256dh


def subscribe(db: Session, *, user_id: int, body: Mapping[str, Any]) -> PushSubscription:
    endpoint, auth, p256dh = _extract_keys(body)

    subscription = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
        .first()
    )
    if subscription:
        subscription.auth = auth
        subscription.p256dh = p256dh
    else:
        subscription = PushSubscription(user_id=user_id, endpoint=endpoint, auth=auth, p256dh=p256dh)
        db.add(subscription)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(subscription)
    return subscription


def unsubscribe(db: Session, *, user_id: int, endpoint: Optional[str]) -> None:
    endpoint = (endpoint or "").strip()
    if not endpoint:
        raise ValidationFailed("endpoint is required")

    subscription = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
        .first()
    )
    if not subscription:
        raise NotFound("Subscription not found")
    db.delete(subscription)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def send_to_user(
    db: Session,
    *,
    user_id: int,
    payload: dict[str, Any],
    gateway: Optional[PushGateway] = None,
) -> list[PushDelivery]:
    """Deliver to every device of the user; subscriptions reported gone are dropped."""
    gateway = gateway or push_gateway
    subscriptions = db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()

    deliveries: list[PushDelivery] = []
    stale: list[PushSubscription] = []
    for subscription in subscriptions:
        try:
            delivery = gateway.send(
                endpoint=subscription.endpoint,
                auth=subscription.auth,
                p256dh=subscription.p256dh,
                payload=payload,
            )
        except Exception as exc:
            logger.exception("push delivery crashed user_id=%s", user_id)
            delivery = PushDelivery(endpoint=subscription.endpoint, status="failed", error=str(exc))

        request_metrics.record_delivery("push", delivery.status)
        if delivery.status == "gone":
            stale.append(subscription)
        elif delivery.status == "failed":
            logger.warning(
                "push delivery failed user_id=%s: %s",
                user_id,
                delivery.error,
                extra={"status_code": delivery.status_code, "event": "push"},
            )
        deliveries.append(delivery)

    if stale:
        for subscription in stale:
            db.delete(subscription)
        try:
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("failed to drop stale push subscriptions user_id=%s", user_id)
        else:
            logger.info("dropped %s stale push subscription(s) user_id=%s", len(stale), user_id)

    return deliveries
