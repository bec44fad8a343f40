import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.orm import Session

from .. import crud
from ..database import get_db
from ..models import Account, Profile, SubscriptionStatus
from ..schemas import (
    MyProfileResponse,
    ProfileResponse,
    ProfileSearchResult,
    ProfileUpsert,
    PublicProfileResponse,
    ReviewResponse,
)
from ..services import reviews as review_service
from ..services.visibility import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ProfileFilters,
    get_profile_rating,
    is_profile_visible,
    list_visible_profiles,
)
from ..utils import error_response
from .dependencies import get_current_yard_worker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Yard Workers"])


def _my_profile(db: Session, profile: Profile, account: Account) -> MyProfileResponse:
    sub = account.subscription
    return MyProfileResponse(
        **ProfileResponse.model_validate(profile).model_dump(),
        is_published=is_profile_visible(db, profile),
        subscription_status=(sub.status if sub else SubscriptionStatus.NONE).value,
        subscription_plan=sub.plan if sub else None,
        subscription_amount=sub.amount if sub else None,
    )


@router.get("/", response_model=List[ProfileSearchResult])
def search_yard_workers(
    db: Session = Depends(get_db),
    location: Optional[str] = Query(None),
    service: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> Any:
    """Search profiles whose owners hold an active subscription."""
    filters = ProfileFilters(location=location, service=service, min_price=min_price, max_price=max_price)
    results = list_visible_profiles(db, filters, limit=limit, offset=offset)
    return [
        ProfileSearchResult(
            **ProfileResponse.model_validate(r.profile).model_dump(),
            average_rating=r.average_rating,
            review_count=r.review_count,
        )
        for r in results
    ]


@router.get("/profile", response_model=MyProfileResponse)
def read_my_profile(
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_yard_worker),
) -> Any:
    profile = crud.profile.get_by_account_id(db, current_account.id)
    if profile is None:
        raise error_response(
            "Profile not found.",
            {"profile": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    return _my_profile(db, profile, current_account)


@router.post("/profile", response_model=MyProfileResponse)
@router.put("/profile", response_model=MyProfileResponse)
def upsert_my_profile(
    profile_in: ProfileUpsert,
    response: Response,
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_yard_worker),
) -> Any:
    """Create the caller's profile (201) or replace it (200)."""
    profile, created = crud.profile.upsert(db, profile_in, current_account.id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return _my_profile(db, profile, current_account)


@router.delete("/profile", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_profile(
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_yard_worker),
) -> Response:
    profile = crud.profile.get_by_account_id(db, current_account.id)
    if profile is None:
        raise error_response(
            "Profile not found.",
            {"profile": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    crud.profile.delete(db, profile)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{profile_id}", response_model=PublicProfileResponse)
def read_yard_worker(
    profile_id: str = Path(..., title="The ID of the yard worker profile"),
    db: Session = Depends(get_db),
) -> Any:
    """Public profile page. Only search is gated by subscription status."""
    profile = crud.profile.get(db, profile_id)
    if profile is None:
        raise error_response(
            "Yard worker profile not found.",
            {"profile_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    average_rating, review_count = get_profile_rating(db, profile.id)
    return PublicProfileResponse(
        **ProfileResponse.model_validate(profile).model_dump(),
        average_rating=average_rating,
        review_count=review_count,
    )


@router.get("/{profile_id}/reviews", response_model=List[ReviewResponse])
def read_yard_worker_reviews(
    profile_id: str = Path(..., title="The ID of the yard worker profile"),
    limit: int = Query(review_service.DEFAULT_REVIEW_LIST_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
) -> Any:
    return review_service.get_profile_reviews(db, profile_id, limit=limit)
