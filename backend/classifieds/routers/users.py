from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from classifieds.database import get_db
from classifieds.dependencies import get_current_identity
from classifieds.errors import NotFound
from classifieds.models import User
from classifieds.schemas import DashboardResponse
from classifieds.schemas.user import PublicProfileResponse
from classifieds.services import listings
from classifieds.services.permissions import Identity

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """All of the caller's listings across categories."""
    return listings.dashboard(db, identity)


@router.get("/{user_id}", response_model=PublicProfileResponse)
def public_profile(user_id: int, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound("User not found")
    return user
