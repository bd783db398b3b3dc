import json

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from classifieds.database import Base
from classifieds.models.listing import ListingMixin

APPLICATION_TYPE_NATIVE = "native"
APPLICATION_TYPE_EXTERNAL = "external"

QUESTION_TYPES = ("text", "textarea", "select", "radio", "checkbox")
CHOICE_QUESTION_TYPES = ("select", "radio", "checkbox")

APPLICATION_STATUSES = ("pending", "reviewed", "accepted", "rejected")


class Job(ListingMixin, Base):
    __tablename__ = "jobs"

    # Job postings go live immediately unless the poster says otherwise
    is_published = Column(Boolean, default=True, nullable=False)

    title = Column(String(255), nullable=False)
    company = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    job_type = Column(String(50), default="full-time", nullable=False)
    description = Column(Text, nullable=True)
    salary = Column(String(100), nullable=True)
    experience_required = Column(String(50), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    is_remote = Column(Boolean, default=False, nullable=False)
    views = Column(Integer, default=0, nullable=False)
    application_type = Column(String(10), default=APPLICATION_TYPE_NATIVE, nullable=False)
    external_application_url = Column(Text, nullable=True)

    applications = relationship(
        "JobApplication", back_populates="job", cascade="all, delete-orphan", passive_deletes=True
    )
    questions = relationship(
        "JobCustomQuestion",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JobCustomQuestion.sort_order",
    )

    @property
    def display_title(self) -> str:
        return self.title


class JobApplication(Base):
    __tablename__ = "job_applications"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    cover_letter = Column(Text, nullable=True)
    phone = Column(String(20), nullable=True)
    availability = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    job = relationship("Job", back_populates="applications")
    applicant = relationship("User", back_populates="applications")
    answers = relationship(
        "JobApplicationCustomAnswer", back_populates="application", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("job_id", "user_id", name="uq_job_application_user"),
    )


class JobCustomQuestion(Base):
    __tablename__ = "job_custom_questions"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(20), nullable=False)
    options = Column(Text, nullable=True)  # JSON array of choices
    is_required = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    job = relationship("Job", back_populates="questions")

    @property
    def option_list(self) -> list[str] | None:
        if self.options is None:
            return None
        return json.loads(self.options)


class JobApplicationCustomAnswer(Base):
    __tablename__ = "job_application_custom_answers"

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(
        Integer, ForeignKey("job_applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id = Column(Integer, ForeignKey("job_custom_questions.id", ondelete="CASCADE"), nullable=False)
    answer_text = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    application = relationship("JobApplication", back_populates="answers")
    question = relationship("JobCustomQuestion")

    __table_args__ = (
        UniqueConstraint("application_id", "question_id", name="uq_application_question"),
    )
