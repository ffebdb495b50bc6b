import logging

from sqlmodel import Session

from app.models.account import Account
from app.repositories.accounts import AccountDirectory
from app.services import partner

logger = logging.getLogger(__name__)


class EmailAlreadyInUse(Exception):
    pass


def update_profile(
    session: Session,
    account: Account,
    *,
    name: str | None = None,
    email: str | None = None,
) -> Account:
    directory = AccountDirectory(session)

    if name is not None and name.strip():
        account.full_name = name.strip()

    if email is not None and email.lower() != account.email.lower():
        if directory.email_taken(email, exclude_id=account.id):
            raise EmailAlreadyInUse("Email already in use")
        account.email = email

    account.touch()
    directory.save(account)
    session.commit()
    session.refresh(account)
    logger.info("Profile updated for account %s", account.id)
    return account


def delete_account(session: Session, account: Account) -> None:
    """Remove an account after tearing down its partner relations."""
    account_id = account.id
    try:
        partner.release(session, account)
        # Flush the cleared references before the row goes away
        session.flush()
        AccountDirectory(session).delete(account)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Deleted account %s", account_id)
