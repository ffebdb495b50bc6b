"""
Account directory.

Thin lookup/persistence layer over the ``account`` table. Callers own the
transaction: nothing here commits.
"""

from typing import Dict, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.account import Account


class AccountDirectory:
    def __init__(self, session: Session):
        self.session = session

    def get(self, account_id: int) -> Optional[Account]:
        return self.session.get(Account, account_id)

    def get_by_email(self, email: str) -> Optional[Account]:
        statement = select(Account).where(func.lower(Account.email) == email.strip().lower())
        return self.session.exec(statement).first()

    def email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        account = self.get_by_email(email)
        return account is not None and account.id != exclude_id

    def lock(self, *account_ids: Optional[int]) -> Dict[int, Account]:
        """
        Load the given accounts with row locks, ordered by id.

        Locks are always taken in ascending id order so two transitions on
        the same pair cannot deadlock. Missing ids are absent from the
        result. Rows already in the identity map are refreshed.
        """
        ids = sorted({i for i in account_ids if i is not None})
        if not ids:
            return {}
        statement = lock_statement(ids)
        return {account.id: account for account in self.session.exec(statement)}

    def save(self, *accounts: Account) -> None:
        for account in accounts:
            self.session.add(account)

    def delete(self, account: Account) -> None:
        self.session.delete(account)


def lock_statement(account_ids):
    return (
        select(Account)
        .where(Account.id.in_(account_ids))
        .order_by(Account.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
