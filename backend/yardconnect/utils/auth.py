import re
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt

from ..core.config import settings

# Same shape the signup forms accept: something@something.tld, no spaces.
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    """Return a normalized email address for comparison and storage."""
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(email) and _EMAIL_RE.match(email) is not None


def create_access_token(account_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a bearer token for ``account_id`` (the auth service's format)."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({"sub": account_id, "exp": expire}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
