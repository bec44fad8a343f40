import html
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Account
from ..schemas import PendingReviewCreate, PendingReviewSubmitted, ReviewCreate, ReviewResponse
from ..services.review_verification import ReviewVerificationWorkflow
from ..services.reviews import create_authenticated_review
from ..utils.errors import AlreadyVerifiedError, DependencyError, NotFoundError
from .dependencies import get_current_account, get_review_workflow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reviews"])


def _page(title: str, body: str, color: str = "#dc2626") -> str:
    return f"""<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>{html.escape(title)} - YardConnect</title></head>
  <body>
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; text-align: center; padding: 40px;">
      <h2 style="color: {color};">{html.escape(title)}</h2>
      {body}
    </div>
  </body>
</html>
"""


def render_published_page(profile_name: str, rating: int, comment: Optional[str]) -> str:
    details = f"<strong>Rating:</strong> {'&#11088;' * rating}"
    if comment:
        details += f'<br><strong>Comment:</strong> "{html.escape(comment)}"'
    body = f"""
      <p style="font-size: 18px;">Thank you for your review of <strong>{html.escape(profile_name)}</strong>!</p>
      <p style="color: #666;">Your review has been verified and is now live on YardConnect.</p>
      <div style="background-color: #f0fdf4; padding: 20px; border-radius: 8px; border-left: 4px solid #059669;">
        <p style="margin: 0; color: #065f46;">{details}</p>
      </div>
      <p style="margin-top: 30px; color: #666; font-size: 14px;">You can close this window now.</p>
    """
    return _page("Review Published Successfully!", body, color="#059669")


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    review_in: ReviewCreate,
    db: Session = Depends(get_db),
    current_account: Account = Depends(get_current_account),
) -> Any:
    """Publish a review from a signed-in account."""
    return create_authenticated_review(
        db,
        review_in.profile_id,
        current_account.id,
        review_in.rating,
        review_in.comment,
    )


@router.post("/pending", response_model=PendingReviewSubmitted, status_code=status.HTTP_201_CREATED)
async def submit_pending_review(
    review_in: PendingReviewCreate,
    workflow: ReviewVerificationWorkflow = Depends(get_review_workflow),
) -> Any:
    """Park an anonymous review and email the verification link."""
    result = await workflow.submit_pending_review(
        review_in.profile_id,
        review_in.email,
        review_in.rating,
        review_in.comment,
    )
    return PendingReviewSubmitted(
        message="Please check your email to verify your review.",
        profile_name=result.profile_name,
    )


@router.get("/verify/{token}", response_class=HTMLResponse)
def verify_review(
    token: str = Path(..., title="Verification token from the emailed link"),
    workflow: ReviewVerificationWorkflow = Depends(get_review_workflow),
) -> HTMLResponse:
    """Landing page of the emailed link; publishes the review once."""
    try:
        result = workflow.verify_pending_review(token)
    except NotFoundError:
        return HTMLResponse(
            _page(
                "Invalid Review Link",
                "<p>This verification link is invalid or has expired.</p>"
                "<p>Please submit your review again from the yard worker's profile page.</p>",
            ),
            status_code=status.HTTP_404_NOT_FOUND,
        )
    except AlreadyVerifiedError:
        return HTMLResponse(
            _page(
                "Review Already Verified",
                "<p>This review has already been verified and published.</p>"
                "<p>Thank you for your contribution!</p>",
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except DependencyError:
        return HTMLResponse(
            _page(
                "Something Went Wrong",
                "<p>We could not publish your review right now.</p>"
                "<p>Please open the link again in a few minutes.</p>",
            ),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    review = result.review
    return HTMLResponse(render_published_page(result.profile_name, review.rating, review.comment))
