import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import get_db_session
from ..models import PendingReview

logger = logging.getLogger(__name__)


def pending_review_ttl() -> Optional[timedelta]:
    hours = settings.PENDING_REVIEW_TTL_HOURS
    return timedelta(hours=hours) if hours > 0 else None


def purge_expired_pending_reviews(db: Session, now: Optional[datetime] = None, ttl: Optional[timedelta] = None) -> int:
    """Delete unverified pending reviews older than the TTL. Returns the count.

    Verified rows are kept; they record which token published which review.
    """
    ttl = ttl if ttl is not None else pending_review_ttl()
    if not ttl:
        return 0
    cutoff = (now or datetime.utcnow()) - ttl
    deleted = (
        db.query(PendingReview)
        .filter(PendingReview.verified_at.is_(None), PendingReview.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("Purged %d expired pending reviews", deleted)
    return deleted


def _purge_once() -> int:
    with get_db_session() as db:
        return purge_expired_pending_reviews(db)


async def pending_review_purge_loop() -> None:
    interval = max(60, settings.PENDING_REVIEW_PURGE_INTERVAL_SECONDS)
    while True:
        try:
            await asyncio.to_thread(_purge_once)
        except Exception:
            logger.exception("Pending review purge failed")
        await asyncio.sleep(interval)
