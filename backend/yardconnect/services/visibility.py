"""Marketplace visibility.

A profile is listed only while its owner's subscription is ``active``. The
rule is evaluated in SQL on every query; nothing is cached, so a status
change shows up in the very next search.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from ..models import Account, Profile, Review, ServiceCategory, Subscription, SubscriptionStatus
from ..utils.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass
class ProfileFilters:
    location: Optional[str] = None
    service: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


@dataclass
class VisibleProfile:
    profile: Profile
    average_rating: float
    review_count: int


def round_rating(value) -> float:
    """Round a mean rating half-up to one decimal; ``None`` means no reviews."""
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _rating_stats():
    return (
        select(
            Review.profile_id.label("profile_id"),
            func.avg(Review.rating).label("avg_rating"),
            func.count(Review.id).label("review_count"),
        )
        .group_by(Review.profile_id)
        .subquery()
    )


def _visible_query(db: Session, stats):
    return (
        db.query(Profile, stats.c.avg_rating, stats.c.review_count)
        .join(Account, Profile.account_id == Account.id)
        .join(Subscription, Subscription.account_id == Account.id)
        .outerjoin(stats, stats.c.profile_id == Profile.id)
        .filter(Subscription.status == SubscriptionStatus.ACTIVE)
    )


def _contains(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def list_visible_profiles(
    db: Session,
    filters: Optional[ProfileFilters] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> List[VisibleProfile]:
    """Return searchable profiles, newest first, with their average rating."""
    filters = filters or ProfileFilters()
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}.", {"limit": "out_of_range"})
    if offset < 0:
        raise ValidationError("offset must not be negative.", {"offset": "out_of_range"})
    if (
        filters.min_price is not None
        and filters.max_price is not None
        and filters.min_price > filters.max_price
    ):
        raise ValidationError("minPrice must not exceed maxPrice.", {"minPrice": "invalid_range"})

    stats = _rating_stats()
    query = _visible_query(db, stats)

    location = (filters.location or "").strip()
    if location:
        pattern = _contains(location)
        query = query.filter(
            or_(
                Profile.location.ilike(pattern, escape="\\"),
                Profile.zip.ilike(pattern, escape="\\"),
            )
        )
    service = (filters.service or "").strip()
    if service:
        query = query.filter(
            Profile.services.any(ServiceCategory.name.ilike(_contains(service), escape="\\"))
        )
    if filters.min_price is not None:
        query = query.filter(Profile.price >= Decimal(str(filters.min_price)))
    if filters.max_price is not None:
        query = query.filter(Profile.price <= Decimal(str(filters.max_price)))

    rows = (
        query.options(selectinload(Profile.services))
        .order_by(Profile.created_at.desc(), Profile.id)
        .offset(offset)
        .limit(limit)
        .all()
    )
    logger.debug("Visible profile search %s returned %d rows", filters, len(rows))
    return [
        VisibleProfile(profile=profile, average_rating=round_rating(avg), review_count=count or 0)
        for profile, avg, count in rows
    ]


def is_profile_visible(db: Session, profile: Profile) -> bool:
    return (
        db.query(Subscription.id)
        .filter(
            Subscription.account_id == profile.account_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
        )
        .first()
        is not None
    )


def get_profile_rating(db: Session, profile_id: str) -> Tuple[float, int]:
    """Average rating and review count for one profile."""
    avg, count = (
        db.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.profile_id == profile_id)
        .one()
    )
    return round_rating(avg), count or 0

