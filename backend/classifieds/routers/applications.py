from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from classifieds.database import get_db
from classifieds.dependencies import get_current_identity, get_optional_identity
from classifieds.schemas import MessageResponse
from classifieds.schemas.application import (
    ApplicationCreate,
    ApplicationResponse,
    ApplicationStatusUpdate,
    QuestionCreate,
    QuestionResponse,
    QuestionUpdate,
)
from classifieds.services import applications
from classifieds.services.permissions import Identity

router = APIRouter()


@router.post("/jobs/{job_id}/apply", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def apply_for_job(
    job_id: int,
    data: ApplicationCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return applications.apply(db, identity, job_id, data.model_dump())


@router.get("/jobs/{job_id}/applications/check")
def check_application(
    job_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Whether the caller has already applied for this job."""
    application = applications.check_applied(db, identity, job_id)
    return {
        "has_applied": application is not None,
        "application": (
            {"id": application.id, "status": application.status} if application else None
        ),
    }


@router.get("/jobs/{job_id}/applications", response_model=list[ApplicationResponse])
def list_job_applications(
    job_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Applications received for a job (job poster or admin)."""
    return applications.list_applications(db, identity, job_id)


@router.get("/applications/mine", response_model=list[ApplicationResponse])
def list_my_applications(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return applications.list_my_applications(db, identity)


@router.patch("/applications/{application_id}/status", response_model=ApplicationResponse)
def update_application_status(
    application_id: int,
    data: ApplicationStatusUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return applications.update_status(db, identity, application_id, data.model_dump())


@router.get("/jobs/{job_id}/questions", response_model=list[QuestionResponse])
def list_questions(
    job_id: int,
    identity: Identity | None = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    return [QuestionResponse.from_question(q) for q in applications.list_questions(db, job_id, identity)]


@router.post("/jobs/{job_id}/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
def create_question(
    job_id: int,
    data: QuestionCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    question = applications.create_question(db, identity, job_id, data.model_dump())
    return QuestionResponse.from_question(question)


@router.patch("/questions/{question_id}", response_model=QuestionResponse)
def update_question(
    question_id: int,
    data: QuestionUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    question = applications.update_question(db, identity, question_id, data.model_dump(exclude_unset=True))
    return QuestionResponse.from_question(question)


@router.delete("/questions/{question_id}", response_model=MessageResponse)
def delete_question(
    question_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    applications.delete_question(db, identity, question_id)
    return MessageResponse(message="Question deleted")
