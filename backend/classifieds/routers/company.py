from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from classifieds.database import get_db
from classifieds.dependencies import get_current_identity
from classifieds.schemas.company import (
    CompanyProfileResponse,
    CompanyProfileUpdate,
    CompanyRegistration,
    VerificationRequestResponse,
)
from classifieds.services import verification
from classifieds.services.permissions import Identity

router = APIRouter()


@router.post("/register", response_model=VerificationRequestResponse, status_code=status.HTTP_201_CREATED)
def register_company(
    data: CompanyRegistration,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Register the caller as a company and queue it for verification."""
    return verification.register_company(db, identity, data.model_dump())


@router.get("/verification-status")
def verification_status(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    result = verification.verification_status(db, identity)
    request = result["request"]
    return {
        "is_company": result["is_company"],
        "is_verified_company": result["is_verified_company"],
        "request": VerificationRequestResponse.model_validate(request) if request else None,
    }


@router.get("/profile", response_model=CompanyProfileResponse)
def get_profile(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return verification.get_company_profile(db, identity)


@router.put("/profile", response_model=CompanyProfileResponse)
def update_profile(
    data: CompanyProfileUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return verification.update_company_profile(db, identity, data.model_dump(exclude_unset=True))
