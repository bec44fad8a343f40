from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class ServiceCategoryResponse(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class ProfileBase(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=120)]
    location: Annotated[str, Field(min_length=1, max_length=200)]
    zip: Annotated[str, Field(min_length=5, max_length=12)]
    age: Annotated[int, Field(ge=16, le=100)]
    price: Annotated[float, Field(ge=0)]
    email: EmailStr
    bio: Annotated[str, Field(min_length=10, max_length=500)]
    photo: Optional[str] = None


class ProfileUpsert(ProfileBase):
    """Owner's create-or-replace payload."""

    services: Annotated[List[str], Field(min_length=1)]

    @field_validator("services")
    @classmethod
    def strip_services(cls, v: List[str]) -> List[str]:
        cleaned = [s.strip() for s in v if s and s.strip()]
        if not cleaned:
            raise ValueError("At least one service must be selected")
        return cleaned


class ProfileResponse(ProfileBase):
    id: str
    account_id: str
    services: List[ServiceCategoryResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileSearchResult(ProfileResponse):
    average_rating: float = 0
    review_count: int = 0


class PublicProfileResponse(ProfileSearchResult):
    pass


class MyProfileResponse(ProfileResponse):
    """The owner's view: whether the listing is live and why."""

    is_published: bool
    subscription_status: str
    subscription_plan: Optional[str] = None
    subscription_amount: Optional[int] = None
