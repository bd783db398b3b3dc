from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from classifieds.database import get_db
from classifieds.dependencies import require_admin
from classifieds.schemas import MessageResponse
from classifieds.schemas.company import RejectRequest, VerificationRequestResponse
from classifieds.schemas.user import AdminUserResponse, AdminUserUpdate, RoleUpdate, VerificationFlagUpdate
from classifieds.services import admin, verification
from classifieds.services.permissions import Identity

router = APIRouter()


@router.get("/stats")
def stats(identity: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return admin.stats(db, identity)


@router.get("/users", response_model=list[AdminUserResponse])
def list_users(
    search: str | None = None,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [AdminUserResponse.from_user(user) for user in admin.list_users(db, identity, search)]


@router.get("/online-users")
def online_users(identity: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return admin.online_users(db, identity)


@router.patch("/users/{user_id}", response_model=AdminUserResponse)
def update_user(
    user_id: int,
    data: AdminUserUpdate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = admin.update_user(db, identity, user_id, data.model_dump(exclude_unset=True))
    return AdminUserResponse.from_user(user)


@router.put("/users/{user_id}/role", response_model=AdminUserResponse)
def set_role(
    user_id: int,
    data: RoleUpdate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return AdminUserResponse.from_user(admin.set_role(db, identity, user_id, data.role))


@router.put("/users/{user_id}/verification", response_model=AdminUserResponse)
def set_verification(
    user_id: int,
    data: VerificationFlagUpdate,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = admin.set_company_verification(db, identity, user_id, data.is_verified_company)
    return AdminUserResponse.from_user(user)


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete a user together with everything they own."""
    admin.delete_user(db, identity, user_id)
    return MessageResponse(message="User deleted")


@router.get("/verification-requests", response_model=list[VerificationRequestResponse])
def list_verification_requests(
    status: str | None = None,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return verification.list_requests(db, identity, status)


@router.post("/verification-requests/{request_id}/approve", response_model=VerificationRequestResponse)
def approve_verification(
    request_id: int,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return verification.approve_request(db, identity, request_id)


@router.post("/verification-requests/{request_id}/reject", response_model=VerificationRequestResponse)
def reject_verification(
    request_id: int,
    data: RejectRequest | None = None,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    reason = data.reason if data else None
    return verification.reject_request(db, identity, request_id, reason)


@router.get("/listings")
def list_listings(
    listing_type: str | None = None,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return admin.list_all_listings(db, identity, listing_type)


@router.delete("/listings/{listing_type}/{listing_id}", response_model=MessageResponse)
def delete_listing(
    listing_type: str,
    listing_id: int,
    identity: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    admin.delete_any_listing(db, identity, listing_type, listing_id)
    return MessageResponse(message="Listing deleted")
