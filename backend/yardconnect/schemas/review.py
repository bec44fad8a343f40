from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field

# Range and length checks live in the review services so every entry point
# reports them the same way; strict ints keep JSON true/false out.
StrictRating = Annotated[int, Field(strict=True)]


class ReviewCreate(BaseModel):
    """Signed-in account → yard worker review payload."""

    profile_id: str
    rating: StrictRating
    comment: Optional[str] = None


class PendingReviewCreate(BaseModel):
    """Anonymous review payload; published once the email link is opened."""

    profile_id: str
    email: Any
    rating: StrictRating
    comment: Optional[str] = None


class ReviewResponse(BaseModel):
    id: str
    profile_id: str
    author_account_id: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PendingReviewSubmitted(BaseModel):
    message: str
    profile_name: str
