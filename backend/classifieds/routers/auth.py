import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from classifieds.config import get_settings
from classifieds.database import get_db
from classifieds.dependencies import get_current_identity, get_optional_identity
from classifieds.schemas import IdentityResponse, LoginRequest, MessageResponse, RegisterRequest
from classifieds.services import sessions
from classifieds.services.permissions import Identity

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


def _set_session_cookie(response: Response, token: str) -> None:
    # Secure only in production (HTTPS)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
        max_age=60 * 60 * 24 * settings.session_ttl_days,
    )


@router.post("/register", response_model=IdentityResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    """Create an account and log it in."""
    token, identity = sessions.register(db, user_data.model_dump())
    _set_session_cookie(response, token)
    return identity.to_snapshot()


@router.post("/login", response_model=IdentityResponse)
def login(login_data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """Login and receive the session cookie."""
    token, identity = sessions.login(db, login_data.username, login_data.password)
    _set_session_cookie(response, token)
    return identity.to_snapshot()


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    """Destroy the session, if any, and clear the cookie."""
    sessions.logout(db, request.cookies.get(settings.session_cookie_name))
    response.delete_cookie(key=settings.session_cookie_name)
    return MessageResponse(message="Successfully logged out")


@router.get("/check")
def check_session(identity: Identity | None = Depends(get_optional_identity)):
    """Report whether the caller is logged in, with a fresh snapshot."""
    if identity is None:
        return {"authenticated": False, "user": None}
    return {"authenticated": True, "user": identity.to_snapshot()}


@router.get("/me", response_model=IdentityResponse)
def me(identity: Identity = Depends(get_current_identity)):
    return identity.to_snapshot()
