from .profile import (
    ServiceCategoryResponse,
    ProfileBase,
    ProfileUpsert,
    ProfileResponse,
    ProfileSearchResult,
    PublicProfileResponse,
    MyProfileResponse,
)
from .review import ReviewCreate, PendingReviewCreate, ReviewResponse, PendingReviewSubmitted
from .subscription import PlanResponse, PaymentResponse, SubscriptionResponse, WebhookAck
