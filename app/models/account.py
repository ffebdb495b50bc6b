from datetime import datetime, timezone
from typing import Optional
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    full_name: Optional[str] = None
    picture: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    # Partnership; written only by app.services.partner
    partner_id: Optional[int] = Field(default=None, foreign_key="account.id")
    partner_request_sent_to: Optional[int] = Field(default=None, foreign_key="account.id")
    partner_request_received_from: Optional[int] = Field(default=None, foreign_key="account.id")

    @property
    def has_partner(self) -> bool:
        return self.partner_id is not None

    @property
    def has_pending_request(self) -> bool:
        return (
            self.partner_request_sent_to is not None
            or self.partner_request_received_from is not None
        )

    def touch(self) -> None:
        self.updated_at = utcnow()
