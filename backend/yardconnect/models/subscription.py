from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel, new_id


class SubscriptionStatus(str, enum.Enum):
    NONE = "none"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Subscription(BaseModel):
    """Billing state for one account. Only ``ACTIVE`` makes a profile searchable."""

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    plan = Column(String, nullable=False, default="subscription")
    status = Column(Enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.NONE)
    amount = Column(Integer, nullable=True)  # cents
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    # Subscription id at the payment provider
    provider_reference = Column(String, unique=True, nullable=True, index=True)

    account = relationship("Account", back_populates="subscription")
    payments = relationship(
        "Payment",
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="Payment.created_at.desc()",
    )


class Payment(BaseModel):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    subscription_id = Column(
        String(36),
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount = Column(Integer, nullable=False)  # cents
    status = Column(String, nullable=False, default="completed")
    provider_reference = Column(String, nullable=True)

    subscription = relationship("Subscription", back_populates="payments")
