from typing import Any

from fastapi import APIRouter, HTTPException, status

from app.api import deps
from app.repositories.accounts import AccountDirectory
from app.schemas.msg import Msg
from app.schemas.user import UpdateProfileRequest, UserResponse
from app.services import accounts

router = APIRouter()


@router.get("/me", response_model=UserResponse)
def read_current_user(current_account: deps.CurrentAccount) -> Any:
    return UserResponse.model_validate(current_account)


@router.api_route("/me", methods=["PUT", "PATCH"], response_model=UserResponse)
def update_current_user(
    session: deps.SessionDep,
    current_account: deps.CurrentAccount,
    request: UpdateProfileRequest,
) -> Any:
    try:
        account = accounts.update_profile(
            session, current_account, name=request.name, email=request.email
        )
    except accounts.EmailAlreadyInUse as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return UserResponse.model_validate(account)


@router.delete("/me", response_model=Msg)
def delete_current_user(
    session: deps.SessionDep,
    current_account: deps.CurrentAccount,
) -> Any:
    """
    Delete the current account, unlinking any partner first.
    """
    accounts.delete_account(session, current_account)
    return {"message": "Account deleted successfully"}


@router.get("/{user_id}", response_model=UserResponse)
def read_user(
    session: deps.SessionDep,
    current_account: deps.CurrentAccount,
    user_id: int,
) -> Any:
    """
    Public profile of another account, e.g. the current partner.
    """
    account = AccountDirectory(session).get(user_id)
    if not account:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.model_validate(account)
