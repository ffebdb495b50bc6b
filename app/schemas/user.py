from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from app.schemas.partner import CamelModel


class UserResponse(CamelModel):
    id: int
    name: Optional[str] = Field(default=None, validation_alias="full_name")
    email: str
    picture: Optional[str] = None
    partner_id: Optional[int] = None
    partner_request_sent_to: Optional[int] = None
    partner_request_received_from: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = CamelModel.model_config | {"from_attributes": True}


class UpdateProfileRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
