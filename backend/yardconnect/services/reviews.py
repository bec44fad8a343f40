"""Published reviews: direct (signed-in) submission and listing."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Account, Profile, Review
from ..utils.errors import ConflictError, DependencyError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 500
DEFAULT_REVIEW_LIST_LIMIT = 20


def validate_rating(rating: Any) -> int:
    # bool is an int subclass; True must not pass as a 1-star rating.
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be a whole number between 1 and 5.", {"rating": "invalid"})
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError("Rating must be a whole number between 1 and 5.", {"rating": "out_of_range"})
    return rating


def validate_comment(comment: Optional[str]) -> Optional[str]:
    if comment is None:
        return None
    if not isinstance(comment, str):
        raise ValidationError("Comment must be text.", {"comment": "invalid"})
    if len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            f"Comment must be at most {MAX_COMMENT_LENGTH} characters.",
            {"comment": "too_long"},
        )
    return comment


def get_profile_or_404(db: Session, profile_id: str) -> Profile:
    profile = db.get(Profile, profile_id)
    if profile is None:
        raise NotFoundError("Yard worker profile not found.", {"profile_id": "not_found"})
    return profile


def create_authenticated_review(
    db: Session,
    profile_id: str,
    account_id: str,
    rating: Any,
    comment: Optional[str] = None,
) -> Review:
    """Publish a review written by a signed-in account.

    One review per (profile, account); the unique constraint on the table
    backs the pre-check when two requests race.
    """
    rating = validate_rating(rating)
    comment = validate_comment(comment)

    profile = get_profile_or_404(db, profile_id)
    if db.get(Account, account_id) is None:
        raise NotFoundError("Account not found.", {"account_id": "not_found"})
    if profile.account_id == account_id:
        raise ValidationError("You cannot review your own profile.", {"profile_id": "own_profile"})

    existing = (
        db.query(Review)
        .filter(Review.profile_id == profile_id, Review.author_account_id == account_id)
        .first()
    )
    if existing:
        raise ConflictError("You have already reviewed this yard worker.", {"profile_id": "review_exists"})

    review = Review(
        profile_id=profile_id,
        author_account_id=account_id,
        rating=rating,
        comment=comment,
    )
    db.add(review)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "You have already reviewed this yard worker.",
            {"profile_id": "review_exists"},
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not store review for profile %s", profile_id)
        raise DependencyError("Could not save your review. Please try again later.") from exc
    db.refresh(review)
    logger.info("Review %s published for profile %s by account %s", review.id, profile_id, account_id)
    return review


def get_profile_reviews(
    db: Session, profile_id: str, limit: int = DEFAULT_REVIEW_LIST_LIMIT
) -> List[Review]:
    """Return the newest ``limit`` reviews for a profile."""
    get_profile_or_404(db, profile_id)
    return (
        db.query(Review)
        .filter(Review.profile_id == profile_id)
        .order_by(Review.created_at.desc())
        .limit(limit)
        .all()
    )
