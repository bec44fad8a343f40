"""Subscription status transitions driven by payment-provider events.

Events arrive as ``{"type": ..., "data": {"object": {...}}}``. Only the
subscription ``status`` matters for marketplace visibility; the dates,
amount and payment rows are kept for the dashboard.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models import Account, Payment, Subscription, SubscriptionStatus
from ..utils.errors import ConflictError, DependencyError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

PLAN_FEATURES = [
    "Appear in search results",
    "Complete profile with photo",
    "Contact information displayed",
    "Review system access",
    "Direct client contact",
]


def get_plan() -> Dict[str, Any]:
    return {
        "id": "subscription",
        "name": settings.SUBSCRIPTION_PLAN_NAME,
        "price": settings.SUBSCRIPTION_PRICE_CENTS,
        "interval_days": settings.SUBSCRIPTION_PERIOD_DAYS,
        "features": list(PLAN_FEATURES),
        "price_id": settings.SUBSCRIPTION_PRICE_ID or None,
    }


def _period() -> timedelta:
    return timedelta(days=settings.SUBSCRIPTION_PERIOD_DAYS)


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not record %s", what)
        raise DependencyError("Could not update the subscription. Please try again later.") from exc


def activate_from_checkout(db: Session, session_obj: Dict[str, Any], now: Optional[datetime] = None) -> Optional[Subscription]:
    """Checkout finished: create or reactivate the account's subscription."""
    now = now or datetime.utcnow()
    metadata = session_obj.get("metadata") or {}
    account_id = metadata.get("account_id")
    if not account_id:
        logger.error("Checkout session %s has no account_id in metadata", session_obj.get("id"))
        return None
    if db.get(Account, account_id) is None:
        logger.error("Checkout session %s references unknown account %s", session_obj.get("id"), account_id)
        return None

    amount = session_obj.get("amount_total") or settings.SUBSCRIPTION_PRICE_CENTS
    sub = db.query(Subscription).filter(Subscription.account_id == account_id).first()
    if sub is None:
        sub = Subscription(account_id=account_id)
        db.add(sub)
    if sub.status != SubscriptionStatus.ACTIVE:
        sub.start_date = now
    sub.plan = metadata.get("plan") or "subscription"
    sub.status = SubscriptionStatus.ACTIVE
    sub.amount = amount
    sub.end_date = now + _period()
    if session_obj.get("subscription"):
        sub.provider_reference = session_obj["subscription"]
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.error(
            "Checkout session %s reuses subscription reference %s already held by another account",
            session_obj.get("id"),
            session_obj.get("subscription"),
        )
        return None
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not record checkout for account %s", account_id)
        raise DependencyError("Could not update the subscription. Please try again later.") from exc

    db.add(
        Payment(
            account_id=account_id,
            subscription_id=sub.id,
            amount=amount,
            status="completed",
            provider_reference=session_obj.get("payment_intent"),
        )
    )
    _commit(db, f"checkout for account {account_id}")
    logger.info("Subscription %s active for account %s until %s", sub.id, account_id, sub.end_date)
    return sub


def _find_by_reference(db: Session, invoice: Dict[str, Any]) -> Optional[Subscription]:
    reference = invoice.get("subscription")
    if not reference:
        logger.error("Invoice %s has no subscription reference", invoice.get("id"))
        return None
    sub = db.query(Subscription).filter(Subscription.provider_reference == reference).first()
    if sub is None:
        logger.warning("Invoice %s references unknown subscription %s", invoice.get("id"), reference)
    return sub


def record_renewal(db: Session, invoice: Dict[str, Any], now: Optional[datetime] = None) -> Optional[Subscription]:
    now = now or datetime.utcnow()
    sub = _find_by_reference(db, invoice)
    if sub is None:
        return None
    base = sub.end_date if sub.end_date and sub.end_date > now else now
    sub.status = SubscriptionStatus.ACTIVE
    sub.end_date = base + _period()
    if sub.start_date is None:
        sub.start_date = now
    db.add(
        Payment(
            account_id=sub.account_id,
            subscription_id=sub.id,
            amount=invoice.get("amount_paid") or sub.amount or 0,
            status="completed",
            provider_reference=invoice.get("payment_intent"),
        )
    )
    _commit(db, f"renewal for subscription {sub.id}")
    logger.info("Subscription %s renewed until %s", sub.id, sub.end_date)
    return sub


def record_payment_failure(db: Session, invoice: Dict[str, Any], now: Optional[datetime] = None) -> Optional[Subscription]:
    sub = _find_by_reference(db, invoice)
    if sub is None:
        return None
    sub.status = SubscriptionStatus.EXPIRED
    _commit(db, f"payment failure for subscription {sub.id}")
    logger.info("Subscription %s expired after failed payment", sub.id)
    return sub


EVENT_HANDLERS: Dict[str, Callable[..., Optional[Subscription]]] = {
    "checkout.session.completed": activate_from_checkout,
    "invoice.payment_succeeded": record_renewal,
    "invoice.payment_failed": record_payment_failure,
}


def handle_event(db: Session, event: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    """Apply one provider event. Returns False for event types we ignore."""
    if not isinstance(event, dict) or not isinstance(event.get("type"), str):
        raise ValidationError("Malformed webhook event.", {"type": "missing"})
    handler = EVENT_HANDLERS.get(event["type"])
    if handler is None:
        logger.info("Ignoring webhook event type %s", event["type"])
        return False
    data = event.get("data") or {}
    obj = (data.get("object") or {}) if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        raise ValidationError("Malformed webhook event.", {"data": "invalid"})
    handler(db, obj, now=now)
    return True


def get_subscription(db: Session, account_id: str) -> Optional[Subscription]:
    return db.query(Subscription).filter(Subscription.account_id == account_id).first()


def cancel_subscription(db: Session, account_id: str) -> Subscription:
    """Cancel the caller's active subscription; the profile leaves search at once."""
    sub = get_subscription(db, account_id)
    if sub is None:
        raise NotFoundError("No subscription found.", {"subscription": "not_found"})
    if sub.status != SubscriptionStatus.ACTIVE:
        raise ConflictError("Subscription is not active.", {"subscription": sub.status.value})
    sub.status = SubscriptionStatus.CANCELLED
    _commit(db, f"cancellation for account {account_id}")
    logger.info("Subscription %s cancelled by account %s", sub.id, account_id)
    return sub
