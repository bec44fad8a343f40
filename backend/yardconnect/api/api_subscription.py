import hashlib
import hmac
import logging
from typing import Any

import orjson
from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import get_db
from ..models import Account
from ..schemas import PlanResponse, SubscriptionResponse, WebhookAck
from ..services import subscription_events
from ..utils import error_response
from .dependencies import get_current_yard_worker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])


def signature_for(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


@router.get("/plans", response_model=PlanResponse)
def read_plan() -> Any:
    return subscription_events.get_plan()


@router.get("/subscription")
def read_my_subscription(
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_yard_worker),
) -> Any:
    sub = subscription_events.get_subscription(db, current_account.id)
    if sub is None:
        return {"status": "none"}
    return SubscriptionResponse.model_validate(sub).model_dump(mode="json")


@router.delete("/subscription", response_model=SubscriptionResponse)
def cancel_my_subscription(
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_yard_worker),
) -> Any:
    """Cancel at once; the caller's profile drops out of search immediately."""
    return subscription_events.cancel_subscription(db, current_account.id)


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    x_webhook_signature: str | None = Header(default=None),
) -> Any:
    """Apply a payment-provider event.

    When PAYMENT_WEBHOOK_SECRET is set the raw body must carry a matching
    HMAC-SHA256 hex digest in ``X-Webhook-Signature``.
    """
    raw = await request.body()
    if settings.PAYMENT_WEBHOOK_SECRET:
        expected = signature_for(raw, settings.PAYMENT_WEBHOOK_SECRET)
        if not x_webhook_signature or not hmac.compare_digest(x_webhook_signature, expected):
            logger.warning("Payment webhook signature mismatch")
            raise error_response(
                "Invalid webhook signature.",
                {"signature": "mismatch"},
                status.HTTP_400_BAD_REQUEST,
            )
    try:
        event = orjson.loads(raw)
    except orjson.JSONDecodeError:
        raise error_response(
            "Webhook body is not valid JSON.",
            {"body": "invalid_json"},
            status.HTTP_400_BAD_REQUEST,
        )
    handled = await run_in_threadpool(subscription_events.handle_event, db, event)
    return WebhookAck(handled=handled)
