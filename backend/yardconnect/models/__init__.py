from .account import Account, AccountRole
from .subscription import Subscription, SubscriptionStatus, Payment
from .profile import Profile, ServiceCategory, profile_services
from .review import Review
from .pending_review import PendingReview

__all__ = [
    "Account",
    "AccountRole",
    "Subscription",
    "SubscriptionStatus",
    "Payment",
    "Profile",
    "ServiceCategory",
    "profile_services",
    "Review",
    "PendingReview",
]
