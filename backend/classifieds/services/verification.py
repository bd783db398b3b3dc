"""Company registration and the admin review workflow.

A request moves pending -> approved or pending -> rejected. A rejected
company may register again, which opens a fresh pending request.
"""

import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import case
from sqlalchemy.orm import Session

from classifieds.database import transaction, with_db_retry
from classifieds.errors import Conflict, Forbidden, NotFound, ValidationError
from classifieds.models import CompanyVerificationRequest, User
from classifieds.models.company_verification import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
)
from classifieds.schemas.company import CompanyProfileUpdate, CompanyRegistration
from classifieds.services.permissions import Identity, is_admin, require

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason provided"


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound("User not found")
    return user


def _pending_request(db: Session, user_id: int) -> CompanyVerificationRequest | None:
    return (
        db.query(CompanyVerificationRequest)
        .filter(
            CompanyVerificationRequest.user_id == user_id,
            CompanyVerificationRequest.status == STATUS_PENDING,
        )
        .first()
    )


@with_db_retry
def register_company(db: Session, identity: Identity, attrs: dict) -> CompanyVerificationRequest:
    """Mark the caller as a company and open a pending verification request."""
    try:
        data = CompanyRegistration(**attrs)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)

    if _pending_request(db, identity.id):
        raise Conflict("A verification request is already pending for this account")

    user = _get_user(db, identity.id)
    request = CompanyVerificationRequest(
        user_id=user.id,
        company_name=data.company_name,
        company_description=data.company_description,
        business_license_number=data.business_license_number,
        contact_email=data.contact_email or user.email,
        contact_phone=data.contact_phone,
        status=STATUS_PENDING,
    )
    with transaction(db):
        user.is_company = True
        user.company_name = data.company_name
        if data.company_description is not None:
            user.company_description = data.company_description
        if data.contact_phone is not None:
            user.phone_number = data.contact_phone
        db.add(request)
    db.refresh(request)
    logger.info("User %d submitted company verification request %d", user.id, request.id)
    return request


@with_db_retry
def verification_status(db: Session, identity: Identity) -> dict:
    """The caller's company flags plus their most recent request, if any."""
    user = _get_user(db, identity.id)
    latest = (
        db.query(CompanyVerificationRequest)
        .filter(CompanyVerificationRequest.user_id == user.id)
        .order_by(CompanyVerificationRequest.created_at.desc(), CompanyVerificationRequest.id.desc())
        .first()
    )
    return {
        "is_company": user.is_company,
        "is_verified_company": user.is_verified_company,
        "request": latest,
    }


@with_db_retry
def list_requests(db: Session, identity: Identity, status: str | None = None) -> list[CompanyVerificationRequest]:
    """All requests for the admin queue, pending ones first."""
    require(is_admin(identity), "Admin access required")
    query = db.query(CompanyVerificationRequest)
    if status:
        query = query.filter(CompanyVerificationRequest.status == status)
    pending_first = case((CompanyVerificationRequest.status == STATUS_PENDING, 0), else_=1)
    return query.order_by(pending_first, CompanyVerificationRequest.created_at.desc(),
                          CompanyVerificationRequest.id.desc()).all()


def _get_pending(db: Session, request_id: int) -> CompanyVerificationRequest:
    request = (
        db.query(CompanyVerificationRequest)
        .filter(CompanyVerificationRequest.id == request_id)
        .with_for_update()
        .first()
    )
    if request is None:
        raise NotFound("Verification request not found")
    if request.status != STATUS_PENDING:
        raise Conflict(f"Verification request has already been {request.status}")
    return request


def _mark_user_verified(db: Session, user_id: int) -> None:
    user = _get_user(db, user_id)
    user.is_company = True
    user.is_verified_company = True
    db.flush()


@with_db_retry
def approve_request(db: Session, identity: Identity, request_id: int) -> CompanyVerificationRequest:
    """Approve a pending request and verify its user in the same transaction."""
    require(is_admin(identity), "Admin access required")
    request = _get_pending(db, request_id)
    with transaction(db):
        request.status = STATUS_APPROVED
        request.rejection_reason = None
        db.flush()
        _mark_user_verified(db, request.user_id)
    db.refresh(request)
    logger.info("Admin %d approved verification request %d", identity.id, request_id)
    return request


@with_db_retry
def reject_request(db: Session, identity: Identity, request_id: int,
                   reason: str | None = None) -> CompanyVerificationRequest:
    """Reject a pending request. The user's verification flag is left alone."""
    require(is_admin(identity), "Admin access required")
    request = _get_pending(db, request_id)
    with transaction(db):
        request.status = STATUS_REJECTED
        request.rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    db.refresh(request)
    logger.info("Admin %d rejected verification request %d", identity.id, request_id)
    return request


def _get_company(db: Session, identity: Identity) -> User:
    user = _get_user(db, identity.id)
    if not user.is_company:
        raise Forbidden("Only company accounts have a company profile", reason="not_company")
    return user


@with_db_retry
def get_company_profile(db: Session, identity: Identity) -> User:
    return _get_company(db, identity)


@with_db_retry
def update_company_profile(db: Session, identity: Identity, attrs: dict) -> User:
    try:
        data = CompanyProfileUpdate(**attrs).model_dump(exclude_unset=True)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)

    user = _get_company(db, identity)
    if "company_name" in data and data["company_name"] is None:
        raise ValidationError("company_name", "company_name cannot be null")
    with transaction(db):
        for field, value in data.items():
            setattr(user, field, value)
    db.refresh(user)
    return user
