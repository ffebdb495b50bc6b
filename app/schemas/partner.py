from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PartnerRequestByEmail(CamelModel):
    partner_email: EmailStr


class PartnerInfo(CamelModel):
    id: Optional[int]
    name: Optional[str] = None
    email: str
    created_at: Optional[datetime] = None


class PartnerStatus(CamelModel):
    state: str
    current_partner: Optional[PartnerInfo] = None
    outgoing_request: Optional[PartnerInfo] = None
    incoming_request: Optional[PartnerInfo] = None
    has_partner: bool = False
    has_pending_request: bool = False


class PartnerResponse(CamelModel):
    message: str
    status: PartnerStatus
