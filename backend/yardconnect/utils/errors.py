from typing import Dict, Optional
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    field_errors: Dict[str, str],
    code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    return HTTPException(status_code=code, detail=detail)


class MarketplaceError(Exception):
    """Base class for errors raised by the review and visibility services.

    ``retryable`` tells the presentation layer whether "try again later" is
    the right message.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"
    retryable = False

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors or {}

    def to_detail(self) -> dict:
        return {
            "message": self.message,
            "code": self.code,
            "field_errors": self.field_errors,
        }


class ValidationError(MarketplaceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class AlreadyVerifiedError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "already_verified"


class DependencyError(MarketplaceError):
    """Email or database failure. Safe to retry later."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "dependency_error"
    retryable = True
