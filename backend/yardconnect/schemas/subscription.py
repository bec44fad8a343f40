from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ..models.subscription import SubscriptionStatus


class PlanResponse(BaseModel):
    id: str
    name: str
    price: int  # cents
    interval_days: int
    features: List[str]
    price_id: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    amount: int
    status: str
    provider_reference: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SubscriptionResponse(BaseModel):
    id: str
    plan: str
    status: SubscriptionStatus
    amount: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    payments: List[PaymentResponse] = []

    model_config = {"from_attributes": True}


class WebhookAck(BaseModel):
    received: bool = True
    handled: bool
