from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from classifieds.config import get_settings
from classifieds.database import get_db
from classifieds.errors import AuthenticationRequired
from classifieds.services import sessions
from classifieds.services.permissions import Identity, is_admin, require

settings = get_settings()


def get_optional_identity(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> Identity | None:
    """Resolve the session cookie to a freshly refreshed identity, or None.

    A cookie whose session is gone or expired is cleared on the way out.
    """
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None

    identity = sessions.refresh(db, token)
    if identity is None:
        response.delete_cookie(key=settings.session_cookie_name)
    return identity


def get_current_identity(identity: Identity | None = Depends(get_optional_identity)) -> Identity:
    """Use this as a dependency for routes that need a logged-in caller."""
    if identity is None:
        raise AuthenticationRequired()
    return identity


def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    require(is_admin(identity), "Admin access required")
    return identity
