from .errors import (
    error_response,
    MarketplaceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    AlreadyVerifiedError,
    DependencyError,
)
from .email import EmailSender, EmailDeliveryError
from .auth import normalize_email
from .tokens import generate_verification_token
