import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status

from app.api import deps
from app.schemas.partner import PartnerRequestByEmail, PartnerResponse, PartnerStatus
from app.services import partner
from app.services.partner import PartnerError, PartnerFailure, PartnerResult

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_STATUS = {
    PartnerError.INVALID_TARGET: status.HTTP_400_BAD_REQUEST,
    PartnerError.TARGET_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    PartnerError.ALREADY_LINKED: status.HTTP_409_CONFLICT,
    PartnerError.REQUEST_ALREADY_PENDING: status.HTTP_409_CONFLICT,
    PartnerError.TARGET_ALREADY_LINKED: status.HTTP_409_CONFLICT,
    PartnerError.TARGET_REQUEST_PENDING: status.HTTP_409_CONFLICT,
    PartnerError.NO_PENDING_REQUEST: status.HTTP_400_BAD_REQUEST,
    PartnerError.NOT_LINKED: status.HTTP_400_BAD_REQUEST,
}


def to_response(result: PartnerResult) -> PartnerResponse:
    if isinstance(result, PartnerFailure):
        raise HTTPException(
            status_code=ERROR_STATUS[result.error],
            detail={"code": result.error.value, "message": result.message},
        )
    return PartnerResponse(message=result.message, status=result.status)


@router.post("/request", response_model=PartnerResponse)
def send_partner_request(
    session: deps.SessionDep,
    current_account: deps.CurrentAccount,
    request: PartnerRequestByEmail,
) -> Any:
    """
    Send a partner request by email.
    """
    return to_response(partner.send_request(session, current_account, request.partner_email))


@router.post("/accept", response_model=PartnerResponse)
def accept_partner_request(
    session: deps.SessionDep,
    current_account: deps.CurrentAccount,
) -> Any:
    """
    Accept the incoming partner request.
    """
    return to_response(partner.accept_request(session, current_account))


@router.post("/reject", response_model=PartnerResponse)
def reject_partner_request(
    session: deps.SessionDep,
    current_account: deps.CurrentAccount,
) -> Any:
    """
    Reject the incoming partner request.
    """
    return to_response(partner.reject_request(session, current_account))


@router.delete("/request", response_model=PartnerResponse)
def cancel_partner_request(
    session: deps.SessionDep,
    current_account: deps.CurrentAccount,
) -> Any:
    """
    Cancel the outgoing partner request.
    """
    return to_response(partner.cancel_request(session, current_account))


@router.delete("", response_model=PartnerResponse)
def unlink_partner(
    session: deps.SessionDep,
    current_account: deps.CurrentAccount,
) -> Any:
    """
    Unlink from current partner.
    """
    return to_response(partner.unlink(session, current_account))


@router.get("/status", response_model=PartnerStatus)
def get_partner_status(
    session: deps.SessionDep,
    current_account: deps.CurrentAccount,
) -> Any:
    return partner.get_status(session, current_account)
