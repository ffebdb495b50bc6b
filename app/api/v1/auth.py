import logging

from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import RedirectResponse
from fastapi_sso.sso.google import GoogleSSO

from app.api import deps
from app.core.config import settings
from app.core.security import create_access_token
from app.models.account import Account
from app.repositories.accounts import AccountDirectory
from app.schemas.token import Token
from app.schemas.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def get_google_sso() -> GoogleSSO:
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Google SSO not configured")
    return GoogleSSO(
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        redirect_uri=settings.GOOGLE_REDIRECT_URI,
        allow_insecure_http=settings.GOOGLE_REDIRECT_URI.startswith("http://"),
    )


@router.get("/login/google", response_class=RedirectResponse)
async def google_login():
    """Generate login URL and redirect"""
    google_sso = get_google_sso()
    async with google_sso:
        return await google_sso.get_login_redirect()


@router.get("/callback/google", response_model=Token)
async def google_callback(request: Request, session: deps.SessionDep):
    """Process login response from Google and return JWT"""
    google_sso = get_google_sso()
    try:
        async with google_sso:
            user_info = await google_sso.verify_and_process(request)
    except Exception as e:
        logger.warning("Google sign-in failed: %s", e)
        raise HTTPException(status_code=400, detail=f"SSO Error: {str(e)}")

    if not user_info or not user_info.email:
         raise HTTPException(status_code=400, detail="No email returned from Google")

    directory = AccountDirectory(session)
    account = directory.get_by_email(user_info.email)
    if not account:
        account = Account(
            email=user_info.email,
            full_name=user_info.display_name,
            picture=user_info.picture,
        )
        directory.save(account)
        session.commit()
        session.refresh(account)
        logger.info("Created account %s for %s", account.id, account.email)

    return Token(
        access_token=create_access_token(account.id),
        user=UserResponse.model_validate(account),
    )
