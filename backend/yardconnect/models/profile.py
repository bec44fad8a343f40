# backend/yardconnect/models/profile.py

from sqlalchemy import (
    Column,
    String,
    Text,
    Numeric,
    Integer,
    ForeignKey,
    Table,
)
from sqlalchemy.orm import relationship

from ..database import Base
from .base import BaseModel, new_id


profile_services = Table(
    "profile_services",
    Base.metadata,
    Column("profile_id", String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True),
    Column("service_category_id", String(36), ForeignKey("service_categories.id", ondelete="CASCADE"), primary_key=True),
)


class ServiceCategory(BaseModel):
    __tablename__ = "service_categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, unique=True, nullable=False, index=True)


class Profile(BaseModel):
    """A yard worker's public marketplace listing."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    name = Column(String, nullable=False, index=True)
    location = Column(String, nullable=False)
    zip = Column(String, nullable=False)
    age = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # hourly
    email = Column(String, nullable=False)
    bio = Column(Text, nullable=False)
    photo = Column(String, nullable=True)

    # Relationships
    account = relationship("Account", back_populates="profile")
    services = relationship(
        "ServiceCategory",
        secondary=profile_services,
        order_by="ServiceCategory.name",
    )
    reviews = relationship(
        "Review",
        back_populates="profile",
        cascade="all, delete-orphan",
    )
    pending_reviews = relationship(
        "PendingReview",
        back_populates="profile",
        cascade="all, delete-orphan",
    )
