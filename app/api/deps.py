import logging
from typing import Generator, Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlmodel import Session

from app.core.config import settings
from app.core.db import engine
from app.core.security import decode_access_token
from app.models.account import Account

logger = logging.getLogger(__name__)

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login/google"
)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
TokenDep = Annotated[str, Depends(reusable_oauth2)]


def get_current_account(session: SessionDep, token: TokenDep) -> Account:
    """Resolve the bearer token to an Account; ``sub`` holds the account id."""
    try:
        subject = decode_access_token(token)
        account_id = int(subject)
    except (JWTError, TypeError, ValueError):
        logger.warning("Rejected bearer token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )

    account = session.get(Account, account_id)
    if not account:
        raise HTTPException(status_code=404, detail="User not found")
    return account


CurrentAccount = Annotated[Account, Depends(get_current_account)]
