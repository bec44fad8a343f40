from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from .base import BaseModel, new_id


class Review(BaseModel):
    """A published rating. Never updated once written."""

    __tablename__ = "reviews"
    __table_args__ = (
        # NULL authors (email-verified reviews) never collide with each other.
        UniqueConstraint("profile_id", "author_account_id", name="uq_reviews_profile_author"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    author_account_id = Column(String(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)

    rating      = Column(Integer, nullable=False)
    comment     = Column(Text, nullable=True)
    created_at  = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    profile = relationship("Profile", back_populates="reviews")
    author = relationship("Account")
