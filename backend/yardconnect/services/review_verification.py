"""Email-verified (anonymous) review submission.

A visitor submits a rating for a profile together with their email address.
The submission is parked as a :class:`PendingReview` and a link carrying a
random token is emailed to them. Opening the link publishes the review.

State per (profile, email)::

    no submission --submit--> unverified --verify--> verified

While a submission is unverified, a second one for the same pair is rejected.
The store backs this with a partial unique index, so two racing submits
cannot both succeed. Verification claims the pending row with a conditional
``UPDATE ... WHERE verified_at IS NULL`` and writes the Review in the same
transaction: a token publishes at most one review, however many times the
link is opened concurrently.
"""

from __future__ import annotations

import asyncio
import html
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import PendingReview, Review
from ..utils.auth import is_valid_email, normalize_email
from ..utils.email import EmailDeliveryError, EmailSender
from ..utils.errors import (
    AlreadyVerifiedError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from ..utils.tokens import generate_verification_token
from .reviews import get_profile_or_404, validate_comment, validate_rating

logger = logging.getLogger(__name__)


@dataclass
class PendingSubmission:
    profile_name: str
    pending_review_id: str


@dataclass
class VerifiedReview:
    review: Review
    profile_name: str


def render_verification_email(profile_name: str, verify_url: str) -> str:
    name = html.escape(profile_name)
    url = html.escape(verify_url, quote=True)
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #059669;">YardConnect Review Verification</h2>
        <p>Thank you for leaving a review for <strong>{name}</strong>!</p>
        <p>To verify and publish your review, please click the button below:</p>
        <div style="text-align: center; margin: 30px 0;">
          <a href="{url}"
             style="background-color: #059669; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">
            Verify &amp; Publish Review
          </a>
        </div>
        <p style="color: #666; font-size: 14px;">
          If the button doesn't work, copy and paste this link into your browser:<br>
          <a href="{url}" style="color: #059669;">{url}</a>
        </p>
        <p style="color: #666; font-size: 14px;">
          This link can be used once. If you didn't submit a review, you can safely ignore this email.
        </p>
      </div>
    """


class ReviewVerificationWorkflow:
    """Submit and verify anonymous reviews against one database session."""

    def __init__(
        self,
        db: Session,
        email_sender: EmailSender,
        *,
        verify_url_base: str,
        email_timeout: float = 10.0,
        pending_ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        token_factory: Callable[[], str] = generate_verification_token,
    ):
        self.db = db
        self.email_sender = email_sender
        self.verify_url_base = verify_url_base.rstrip("/")
        self.email_timeout = email_timeout
        self.pending_ttl = pending_ttl
        self._clock = clock
        self._token_factory = token_factory

    def _expiry_cutoff(self, now: datetime) -> Optional[datetime]:
        if not self.pending_ttl:
            return None
        return now - self.pending_ttl

    def verify_url(self, token: str) -> str:
        return f"{self.verify_url_base}/{token}"

    async def submit_pending_review(
        self,
        profile_id: str,
        email: Any,
        rating: Any,
        comment: Optional[str] = None,
    ) -> PendingSubmission:
        """Park a review and email its verification link.

        Store work runs in the threadpool so a slow or locked database does
        not hold up the event loop. If the email cannot be sent (error or
        timeout) the pending row is withdrawn again and
        :class:`DependencyError` is raised, so the visitor can resubmit
        straight away.
        """
        email = normalize_email(email) if isinstance(email, str) else ""
        if not is_valid_email(email):
            raise ValidationError("Invalid email format.", {"email": "invalid"})
        rating = validate_rating(rating)
        comment = validate_comment(comment)

        profile_name, pending_id, token = await run_in_threadpool(
            self._store_pending, profile_id, email, rating, comment
        )
        logger.info("Pending review %s created for %s (%s) from %s", pending_id, profile_name, profile_id, email)

        subject = f"Verify your review for {profile_name} - YardConnect"
        body = render_verification_email(profile_name, self.verify_url(token))
        try:
            await asyncio.wait_for(self.email_sender.send(email, subject, body), timeout=self.email_timeout)
        except (EmailDeliveryError, asyncio.TimeoutError) as exc:
            logger.error("Verification email to %s failed: %r", email, exc)
            await run_in_threadpool(self._withdraw, pending_id)
            raise DependencyError(
                "Failed to send verification email. Please try again."
            ) from exc

        logger.info("Verification email sent to %s for review of %s", email, profile_name)
        return PendingSubmission(profile_name=profile_name, pending_review_id=pending_id)

    def _store_pending(
        self, profile_id: str, email: str, rating: int, comment: Optional[str]
    ) -> Tuple[str, str, str]:
        profile = get_profile_or_404(self.db, profile_id)
        profile_name = profile.name

        now = self._clock()
        cutoff = self._expiry_cutoff(now)
        try:
            if cutoff is not None:
                # A stale unverified row must not block a fresh submission.
                self.db.query(PendingReview).filter(
                    PendingReview.profile_id == profile_id,
                    PendingReview.email == email,
                    PendingReview.verified_at.is_(None),
                    PendingReview.created_at < cutoff,
                ).delete(synchronize_session=False)

            existing = (
                self.db.query(PendingReview.id)
                .filter(
                    PendingReview.profile_id == profile_id,
                    PendingReview.email == email,
                    PendingReview.verified_at.is_(None),
                )
                .first()
            )
            if existing:
                self.db.rollback()
                logger.info("Duplicate pending review for profile %s from %s", profile_id, email)
                raise ConflictError(
                    "A review from this email is already pending verification. Please check your inbox.",
                    {"email": "pending_exists"},
                )

            token = self._token_factory()
            pending = PendingReview(
                profile_id=profile_id,
                email=email,
                rating=rating,
                comment=comment,
                token=token,
                created_at=now,
            )
            self.db.add(pending)
            self.db.commit()
        except IntegrityError as exc:
            # Lost a race against an identical submission.
            self.db.rollback()
            logger.info("Concurrent pending review for profile %s from %s", profile_id, email)
            raise ConflictError(
                "A review from this email is already pending verification. Please check your inbox.",
                {"email": "pending_exists"},
            ) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Could not store pending review for profile %s", profile_id)
            raise DependencyError("Could not save your review. Please try again later.") from exc

        return profile_name, pending.id, token

    def _withdraw(self, pending_id: str) -> None:
        try:
            self.db.query(PendingReview).filter(
                PendingReview.id == pending_id,
                PendingReview.verified_at.is_(None),
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Could not withdraw pending review %s", pending_id)

    def verify_pending_review(self, token: str) -> VerifiedReview:
        """Publish the review behind ``token``.

        Raises :class:`NotFoundError` for unknown or expired tokens and
        :class:`AlreadyVerifiedError` when the token was already redeemed.
        """
        if not isinstance(token, str) or not token:
            raise NotFoundError("This verification link is invalid.", {"token": "not_found"})

        now = self._clock()
        cutoff = self._expiry_cutoff(now)
        claim = update(PendingReview).where(
            PendingReview.token == token,
            PendingReview.verified_at.is_(None),
        )
        if cutoff is not None:
            claim = claim.where(PendingReview.created_at >= cutoff)
        claim = claim.values(verified_at=now).execution_options(synchronize_session=False)

        try:
            claimed = self.db.execute(claim).rowcount
            if claimed != 1:
                row = (
                    self.db.query(PendingReview.verified_at)
                    .filter(PendingReview.token == token)
                    .first()
                )
                self.db.rollback()
                if row is None:
                    logger.info("Invalid review token %s", token)
                    raise NotFoundError("This verification link is invalid.", {"token": "not_found"})
                if row.verified_at is not None:
                    logger.info("Review token %s already verified", token)
                    raise AlreadyVerifiedError(
                        "This review has already been verified and published.",
                        {"token": "already_verified"},
                    )
                logger.info("Review token %s expired", token)
                raise NotFoundError("This verification link has expired.", {"token": "expired"})

            pending = (
                self.db.query(PendingReview)
                .populate_existing()
                .filter(PendingReview.token == token)
                .one()
            )
            review = Review(
                profile_id=pending.profile_id,
                author_account_id=None,
                rating=pending.rating,
                comment=pending.comment,
                created_at=now,
            )
            self.db.add(review)
            profile_name = pending.profile.name
            pending_email = pending.email
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Could not publish review for token %s", token)
            raise DependencyError("Could not publish your review. Please try again later.") from exc

        self.db.refresh(review)
        logger.info("Review %s published for %s (%s) from %s", review.id, profile_name, review.profile_id, pending_email)
        return VerifiedReview(review=review, profile_name=profile_name)
