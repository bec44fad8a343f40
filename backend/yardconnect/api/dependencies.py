from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jose import JWTError, jwt

from ..core.config import settings
from ..database import get_db
from ..models import Account, AccountRole
from ..services.maintenance import pending_review_ttl
from ..services.review_verification import ReviewVerificationWorkflow
from ..utils.email import EmailSender, build_email_sender

# Tokens are issued by the auth service; this API only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_current_account(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Account:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        account_id: str = payload.get("sub")
        if account_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    account = db.get(Account, account_id)
    if account is None:
        raise credentials_exception
    return account


def get_current_yard_worker(current_account: Account = Depends(get_current_account)) -> Account:
    if current_account.role != AccountRole.YARD_WORKER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is not a yard worker.",
        )
    return current_account


def get_email_sender() -> EmailSender:
    return build_email_sender(settings)


def get_review_workflow(
    db: Session = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
) -> ReviewVerificationWorkflow:
    return ReviewVerificationWorkflow(
        db,
        email_sender,
        verify_url_base=f"{settings.PUBLIC_BASE_URL}{settings.API_PREFIX}/reviews/verify",
        email_timeout=settings.EMAIL_SEND_TIMEOUT_SECONDS,
        pending_ttl=pending_review_ttl(),
    )
