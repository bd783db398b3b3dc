"""Tests for job applications and custom screening questions."""

import json

import pytest

from classifieds.errors import AlreadyApplied, Forbidden, NotFound, ValidationError
from classifieds.models import Job, JobApplication, JobApplicationCustomAnswer, JobCustomQuestion
from classifieds.services import applications


@pytest.fixture
def questions(db, job):
    """A required free-text question and an optional checkbox question."""
    why = JobCustomQuestion(
        job_id=job.id,
        question_text="Why do you want this job?",
        question_type="text",
        is_required=True,
        sort_order=0,
    )
    shifts = JobCustomQuestion(
        job_id=job.id,
        question_text="Which shifts can you work?",
        question_type="checkbox",
        options=json.dumps(["morning", "evening", "night"]),
        sort_order=1,
    )
    db.add_all([why, shifts])
    db.commit()
    return why, shifts


class TestApply:
    def test_apply_success(self, client, db, user, job, login):
        login(user)
        response = client.post(f"/api/jobs/{job.id}/apply", json={"cover_letter": "I can cook."})
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["user_id"] == user.id

    def test_duplicate_application_rejected(self, client, db, user, job, login):
        login(user)
        assert client.post(f"/api/jobs/{job.id}/apply", json={}).status_code == 201
        response = client.post(f"/api/jobs/{job.id}/apply", json={})
        assert response.status_code == 409
        assert response.json()["code"] == "already_applied"
        assert db.query(JobApplication).count() == 1

    def test_duplicate_caught_by_constraint(self, db, user, job, identity, monkeypatch):
        """The unique constraint backs up the pre-check under a race."""
        applications.apply(db, identity(user), job.id, {})

        class NoMatch:
            def filter(self, *args):
                return self

            def first(self):
                return None

        real_query = db.query

        def racing_query(*entities):
            if len(entities) == 1 and entities[0] is JobApplication.id:
                return NoMatch()
            return real_query(*entities)

        monkeypatch.setattr(db, "query", racing_query)
        with pytest.raises(AlreadyApplied):
            applications.apply(db, identity(user), job.id, {})
        monkeypatch.undo()
        assert db.query(JobApplication).count() == 1

    def test_check_applied(self, client, user, job, login):
        login(user)
        before = client.get(f"/api/jobs/{job.id}/applications/check").json()
        assert before == {"has_applied": False, "application": None}

        client.post(f"/api/jobs/{job.id}/apply", json={})
        after = client.get(f"/api/jobs/{job.id}/applications/check").json()
        assert after["has_applied"] is True
        assert after["application"]["status"] == "pending"

    def test_unpublished_job_not_found(self, db, user, job, identity):
        job.is_published = False
        db.commit()
        with pytest.raises(NotFound):
            applications.apply(db, identity(user), job.id, {})

    def test_external_job_rejects_native_application(self, db, user, job, identity):
        job.application_type = "external"
        job.external_application_url = "https://careers.example.com/cook"
        db.commit()
        with pytest.raises(ValidationError):
            applications.apply(db, identity(user), job.id, {})

    def test_apply_requires_login(self, client, job):
        assert client.post(f"/api/jobs/{job.id}/apply", json={}).status_code == 401


class TestCustomQuestions:
    def test_required_question_must_be_answered(self, db, user, job, questions, identity):
        why, _ = questions
        with pytest.raises(ValidationError) as exc_info:
            applications.apply(db, identity(user), job.id, {})
        assert exc_info.value.field == f"answers.{why.id}"
        assert db.query(JobApplication).count() == 0

    def test_answers_stored(self, db, user, job, questions, identity):
        why, shifts = questions
        application = applications.apply(
            db,
            identity(user),
            job.id,
            {"answers": [
                {"question_id": why.id, "answer": "I love kitchens"},
                {"question_id": shifts.id, "answer": ["morning", "night"]},
            ]},
        )
        stored = {
            answer.question_id: answer.answer_text
            for answer in db.query(JobApplicationCustomAnswer).filter(
                JobApplicationCustomAnswer.application_id == application.id
            )
        }
        assert stored[why.id] == "I love kitchens"
        assert json.loads(stored[shifts.id]) == ["morning", "night"]

    def test_invalid_choice_rejected(self, db, user, job, questions, identity):
        why, shifts = questions
        with pytest.raises(ValidationError):
            applications.apply(
                db,
                identity(user),
                job.id,
                {"answers": [
                    {"question_id": why.id, "answer": "Sure"},
                    {"question_id": shifts.id, "answer": ["weekends"]},
                ]},
            )

    def test_question_from_other_job_rejected(self, db, user, company_user, job, questions, identity):
        other_job = Job(user_id=company_user.id, title="Dishwasher", company="Acme Corp", location="Nome")
        db.add(other_job)
        db.commit()
        why, _ = questions
        with pytest.raises(ValidationError):
            applications.apply(db, identity(user), other_job.id, {"answers": [{"question_id": why.id, "answer": "x"}]})

    def test_owner_manages_questions(self, client, company_user, job, login):
        login(company_user)
        response = client.post(
            f"/api/jobs/{job.id}/questions",
            json={"question_text": "Preferred start?", "question_type": "select", "options": ["Now", "Later"]},
        )
        assert response.status_code == 201
        question_id = response.json()["id"]
        assert response.json()["options"] == ["Now", "Later"]

        response = client.patch(f"/api/questions/{question_id}", json={"is_required": True})
        assert response.status_code == 200
        assert response.json()["is_required"] is True

        assert client.delete(f"/api/questions/{question_id}").status_code == 200
        assert client.get(f"/api/jobs/{job.id}/questions").json() == []

    def test_choice_question_needs_options(self, db, company_user, job, identity):
        with pytest.raises(ValidationError) as exc_info:
            applications.create_question(
                db, identity(company_user), job.id, {"question_text": "Pick one", "question_type": "radio"}
            )
        assert exc_info.value.field == "options"

    def test_stranger_cannot_add_questions(self, db, user, job, identity):
        with pytest.raises(Forbidden):
            applications.create_question(db, identity(user), job.id, {"question_text": "Hack?"})


class TestReview:
    """The job poster reviews applications."""

    def test_poster_lists_and_updates_applications(self, client, db, user, company_user, job, identity, login):
        application = applications.apply(db, identity(user), job.id, {"cover_letter": "Hire me"})

        login(company_user)
        listed = client.get(f"/api/jobs/{job.id}/applications").json()
        assert [item["id"] for item in listed] == [application.id]

        response = client.patch(f"/api/applications/{application.id}/status", json={"status": "accepted"})
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"

    def test_applicant_cannot_list_applications(self, client, db, user, job, identity, login):
        applications.apply(db, identity(user), job.id, {})
        login(user)
        assert client.get(f"/api/jobs/{job.id}/applications").status_code == 403

    def test_invalid_status_rejected(self, db, user, company_user, job, identity):
        application = applications.apply(db, identity(user), job.id, {})
        with pytest.raises(ValidationError):
            applications.update_status(db, identity(company_user), application.id, {"status": "hired"})

    def test_my_applications(self, client, db, user, job, identity, login):
        applications.apply(db, identity(user), job.id, {})
        login(user)
        mine = client.get("/api/applications/mine").json()
        assert [item["job_id"] for item in mine] == [job.id]
