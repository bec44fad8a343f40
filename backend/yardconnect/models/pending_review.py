from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime

from .base import BaseModel, new_id


class PendingReview(BaseModel):
    """Review submission awaiting confirmation through an emailed link.

    ``verified_at`` is NULL while unverified and stamped exactly once when the
    token is redeemed.
    """

    __tablename__ = "pending_reviews"
    __table_args__ = (
        # At most one unverified submission per (profile, email).
        Index(
            "uq_pending_reviews_unverified",
            "profile_id",
            "email",
            unique=True,
            sqlite_where=text("verified_at IS NULL"),
            postgresql_where=text("verified_at IS NULL"),
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String, nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    verified_at = Column(DateTime, nullable=True)

    profile = relationship("Profile", back_populates="pending_reviews")
