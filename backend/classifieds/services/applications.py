"""Job applications and the custom screening questions attached to jobs."""

import json
import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classifieds.database import transaction, utcnow, with_db_retry
from classifieds.errors import AlreadyApplied, NotFound, ValidationError
from classifieds.models import Job, JobApplication, JobApplicationCustomAnswer, JobCustomQuestion
from classifieds.models.job import APPLICATION_TYPE_EXTERNAL, CHOICE_QUESTION_TYPES
from classifieds.schemas.application import (
    ApplicationCreate,
    ApplicationStatusUpdate,
    QuestionCreate,
    QuestionUpdate,
)
from classifieds.services.permissions import Identity, can_mutate_listing, require

logger = logging.getLogger(__name__)


def _get_job(db: Session, job_id: int) -> Job:
    job = db.query(Job).filter(Job.id == job_id).first()
    if job is None:
        raise NotFound("Job not found")
    return job


def _answer_text(question: JobCustomQuestion, answer) -> str:
    """Normalize one answer and check it against the question's choices."""
    options = question.option_list or []
    if question.question_type == "checkbox":
        values = answer if isinstance(answer, list) else [answer]
        values = [value.strip() for value in values if value and value.strip()]
        invalid = [value for value in values if value not in options]
        if invalid:
            raise ValidationError(f"answers.{question.id}", f"Invalid choice: {', '.join(invalid)}")
        return json.dumps(values) if values else ""

    if isinstance(answer, list):
        raise ValidationError(f"answers.{question.id}", "Expected a single answer")
    value = answer.strip()
    if value and question.question_type in CHOICE_QUESTION_TYPES and value not in options:
        raise ValidationError(f"answers.{question.id}", f"Invalid choice: {value}")
    return value


@with_db_retry
def apply(db: Session, identity: Identity, job_id: int, attrs: dict) -> JobApplication:
    """Submit an application for a published job.

    A second application for the same job is rejected with AlreadyApplied,
    whether the pre-check or the unique constraint catches it.
    """
    try:
        data = ApplicationCreate(**attrs)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)

    job = _get_job(db, job_id)
    if not job.is_published:
        raise NotFound("Job not found")
    if job.application_type == APPLICATION_TYPE_EXTERNAL:
        raise ValidationError("application_type", "This job accepts applications on an external site")

    existing = (
        db.query(JobApplication.id)
        .filter(JobApplication.job_id == job.id, JobApplication.user_id == identity.id)
        .first()
    )
    if existing:
        raise AlreadyApplied()

    questions = {question.id: question for question in job.questions}
    answers = {}
    for item in data.answers:
        question = questions.get(item.question_id)
        if question is None:
            raise ValidationError(f"answers.{item.question_id}", "Question does not belong to this job")
        answers[question.id] = _answer_text(question, item.answer)

    missing = [q.id for q in questions.values() if q.is_required and not answers.get(q.id)]
    if missing:
        raise ValidationError(
            ",".join(f"answers.{question_id}" for question_id in missing),
            "Please answer all required questions",
        )

    application = JobApplication(
        job_id=job.id,
        user_id=identity.id,
        cover_letter=data.cover_letter,
        phone=data.phone,
        availability=data.availability,
    )
    for question_id, text in answers.items():
        if text:
            application.answers.append(JobApplicationCustomAnswer(question_id=question_id, answer_text=text))

    try:
        with transaction(db):
            db.add(application)
    except IntegrityError:
        raise AlreadyApplied()
    db.refresh(application)
    logger.info("User %d applied for job %d", identity.id, job.id)
    return application


@with_db_retry
def check_applied(db: Session, identity: Identity, job_id: int) -> JobApplication | None:
    return (
        db.query(JobApplication)
        .filter(JobApplication.job_id == job_id, JobApplication.user_id == identity.id)
        .first()
    )


@with_db_retry
def list_applications(db: Session, identity: Identity, job_id: int) -> list[JobApplication]:
    """Applications received for a job. Job owner or admin only."""
    job = _get_job(db, job_id)
    require(can_mutate_listing(identity, job), "You do not have permission to view these applications")
    return (
        db.query(JobApplication)
        .filter(JobApplication.job_id == job.id)
        .order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
        .all()
    )


@with_db_retry
def list_my_applications(db: Session, identity: Identity) -> list[JobApplication]:
    return (
        db.query(JobApplication)
        .filter(JobApplication.user_id == identity.id)
        .order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
        .all()
    )


@with_db_retry
def update_status(db: Session, identity: Identity, application_id: int, attrs: dict) -> JobApplication:
    try:
        data = ApplicationStatusUpdate(**attrs)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)

    application = db.query(JobApplication).filter(JobApplication.id == application_id).first()
    if application is None:
        raise NotFound("Application not found")
    require(can_mutate_listing(identity, application.job), "You do not have permission to update this application")

    with transaction(db):
        application.status = data.status
        application.updated_at = utcnow()
    db.refresh(application)
    return application


# Custom questions

def _check_options(question_type: str, options: list[str] | None) -> None:
    if question_type in CHOICE_QUESTION_TYPES and not options:
        raise ValidationError("options", f"{question_type} questions need at least one option")


@with_db_retry
def list_questions(db: Session, job_id: int, identity: Identity | None = None) -> list[JobCustomQuestion]:
    job = _get_job(db, job_id)
    if not job.is_published and not can_mutate_listing(identity, job):
        raise NotFound("Job not found")
    return list(job.questions)


@with_db_retry
def create_question(db: Session, identity: Identity, job_id: int, attrs: dict) -> JobCustomQuestion:
    try:
        data = QuestionCreate(**attrs)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)

    job = _get_job(db, job_id)
    require(can_mutate_listing(identity, job), "You do not have permission to modify this job")
    _check_options(data.question_type, data.options)

    question = JobCustomQuestion(
        job_id=job.id,
        question_text=data.question_text,
        question_type=data.question_type,
        options=json.dumps(data.options) if data.options else None,
        is_required=data.is_required,
        sort_order=data.sort_order,
    )
    with transaction(db):
        db.add(question)
    db.refresh(question)
    return question


def _get_question(db: Session, question_id: int) -> JobCustomQuestion:
    question = db.query(JobCustomQuestion).filter(JobCustomQuestion.id == question_id).first()
    if question is None:
        raise NotFound("Question not found")
    return question


@with_db_retry
def update_question(db: Session, identity: Identity, question_id: int, attrs: dict) -> JobCustomQuestion:
    try:
        data = QuestionUpdate(**attrs).model_dump(exclude_unset=True)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)

    question = _get_question(db, question_id)
    require(can_mutate_listing(identity, question.job), "You do not have permission to modify this job")

    for field in ("question_text", "question_type", "is_required", "sort_order"):
        if field in data and data[field] is None:
            raise ValidationError(field, f"{field} cannot be null")

    question_type = data.get("question_type", question.question_type)
    options = data["options"] if "options" in data else question.option_list
    _check_options(question_type, options)

    with transaction(db):
        for field, value in data.items():
            if field == "options":
                value = json.dumps(value) if value else None
            setattr(question, field, value)
        question.updated_at = utcnow()
    db.refresh(question)
    return question


@with_db_retry
def delete_question(db: Session, identity: Identity, question_id: int) -> None:
    question = _get_question(db, question_id)
    require(can_mutate_listing(identity, question.job), "You do not have permission to modify this job")
    with transaction(db):
        db.delete(question)
