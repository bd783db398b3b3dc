from datetime import datetime

from pydantic import BaseModel, field_validator

from classifieds.models.job import APPLICATION_STATUSES, QUESTION_TYPES


class AnswerIn(BaseModel):
    question_id: int
    answer: str | list[str]


class ApplicationCreate(BaseModel):
    cover_letter: str | None = None
    phone: str | None = None
    availability: str | None = None
    answers: list[AnswerIn] = []

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) > 20:
            raise ValueError("Phone must be at most 20 characters")
        return v or None


class AnswerResponse(BaseModel):
    question_id: int
    answer_text: str

    class Config:
        from_attributes = True


class ApplicationResponse(BaseModel):
    id: int
    job_id: int
    user_id: int
    cover_letter: str | None = None
    phone: str | None = None
    availability: str | None = None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    answers: list[AnswerResponse] = []

    class Config:
        from_attributes = True


class ApplicationStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in APPLICATION_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(APPLICATION_STATUSES)}")
        return v


def _validate_question_type(v: str | None) -> str | None:
    if v is None:
        return None
    if v not in QUESTION_TYPES:
        raise ValueError(f"Question type must be one of: {', '.join(QUESTION_TYPES)}")
    return v


def _validate_options(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    cleaned = [option.strip() for option in v if option and option.strip()]
    return cleaned


class QuestionCreate(BaseModel):
    question_text: str
    question_type: str = "text"
    options: list[str] | None = None
    is_required: bool = False
    sort_order: int = 0

    @field_validator("question_text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Question text is required")
        return v

    @field_validator("question_type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        return _validate_question_type(v)

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: list[str] | None) -> list[str] | None:
        return _validate_options(v)


class QuestionUpdate(BaseModel):
    question_text: str | None = None
    question_type: str | None = None
    options: list[str] | None = None
    is_required: bool | None = None
    sort_order: int | None = None

    @field_validator("question_text")
    @classmethod
    def validate_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Question text is required")
        return v

    @field_validator("question_type")
    @classmethod
    def validate_type(cls, v: str | None) -> str | None:
        return _validate_question_type(v)

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: list[str] | None) -> list[str] | None:
        return _validate_options(v)


class QuestionResponse(BaseModel):
    id: int
    job_id: int
    question_text: str
    question_type: str
    options: list[str] | None = None
    is_required: bool
    sort_order: int

    @classmethod
    def from_question(cls, question) -> "QuestionResponse":
        return cls(
            id=question.id,
            job_id=question.job_id,
            question_text=question.question_text,
            question_type=question.question_type,
            options=question.option_list,
            is_required=question.is_required,
            sort_order=question.sort_order,
        )
