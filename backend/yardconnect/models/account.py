# backend/yardconnect/models/account.py

from sqlalchemy import Column, String, Enum
from sqlalchemy.orm import relationship
from .base import BaseModel, new_id
import enum


class AccountRole(str, enum.Enum):
    """Roles issued by the auth service."""

    YARD_WORKER = "yard_worker"
    HOMEOWNER = "homeowner"


class Account(BaseModel):
    __tablename__ = "accounts"

    id    = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    role  = Column(Enum(AccountRole), nullable=False, default=AccountRole.HOMEOWNER)

    # A yard worker owns at most one public profile
    profile = relationship(
        "Profile",
        back_populates="account",
        uselist=False,
        cascade="all, delete-orphan",
    )

    # Zero or one subscription; status gates marketplace visibility
    subscription = relationship(
        "Subscription",
        back_populates="account",
        uselist=False,
        cascade="all, delete-orphan",
    )
