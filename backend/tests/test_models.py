"""Tests for SQLAlchemy models and their constraints."""

import pytest
from sqlalchemy.exc import IntegrityError

from classifieds.models import (
    Conversation,
    File,
    House,
    HouseImage,
    Item,
    Job,
    JobApplication,
    User,
)


class TestUserModel:
    """Tests for the User model."""

    def test_user_defaults(self, db, roles):
        user = User(username="plain", email="plain@example.com", password_hash="hash", role=roles["user"])
        db.add(user)
        db.commit()
        db.refresh(user)

        assert user.is_company is False
        assert user.is_verified_company is False
        assert user.role_name == "user"
        assert user.created_at is not None

    def test_username_unique(self, db, user):
        db.add(User(username="alice", email="other@example.com", password_hash="hash"))
        with pytest.raises(IntegrityError):
            db.commit()

    def test_email_unique(self, db, user):
        db.add(User(username="alice2", email="alice@example.com", password_hash="hash"))
        with pytest.raises(IntegrityError):
            db.commit()

    def test_role_name_without_role(self, db):
        user = User(username="norole", email="norole@example.com", password_hash="hash")
        db.add(user)
        db.commit()
        assert user.role_name == "user"


class TestListingModels:
    def test_house_defaults_to_unpublished(self, db, user):
        house = House(user_id=user.id, title="Shack")
        db.add(house)
        db.commit()
        db.refresh(house)
        assert house.is_published is False
        assert house.primary_image_url is None
        assert house.display_title == "Shack"

    def test_job_defaults_to_published(self, db, company_user):
        job = Job(user_id=company_user.id, title="Welder", company="Acme Corp", location="Kenai")
        db.add(job)
        db.commit()
        db.refresh(job)
        assert job.is_published is True
        assert job.views == 0
        assert job.application_type == "native"
        assert job.job_type == "full-time"

    def test_listing_requires_owner(self, db, roles):
        db.add(House(title="Nobody's"))
        with pytest.raises(IntegrityError):
            db.commit()

    def test_item_name_unique_per_owner(self, db, user, other_user):
        db.add(Item(user_id=user.id, name="Kayak"))
        db.add(Item(user_id=other_user.id, name="Kayak"))
        db.commit()

        db.add(Item(user_id=user.id, name="Kayak"))
        with pytest.raises(IntegrityError):
            db.commit()

    def test_one_application_per_user_and_job(self, db, user, job):
        db.add(JobApplication(job_id=job.id, user_id=user.id))
        db.commit()
        db.add(JobApplication(job_id=job.id, user_id=user.id))
        with pytest.raises(IntegrityError):
            db.commit()


class TestFileModel:
    def test_url(self, db, user):
        record = File(original_name="a.png", storage_path="images/a.png", user_id=user.id)
        db.add(record)
        db.commit()
        assert record.url == f"/api/files/{record.id}"
        assert record.is_public is False

    def test_storage_path_unique(self, db, user):
        db.add(File(original_name="a.png", storage_path="images/a.png", user_id=user.id))
        db.commit()
        db.add(File(original_name="b.png", storage_path="images/a.png", user_id=user.id))
        with pytest.raises(IntegrityError):
            db.commit()

    def test_deleting_file_nulls_primary_image(self, db, user, published_house):
        record = File(original_name="a.png", storage_path="images/a.png", user_id=user.id)
        db.add(record)
        db.commit()
        published_house.primary_image_id = record.id
        db.add(HouseImage(house_id=published_house.id, file_id=record.id))
        db.commit()

        db.delete(record)
        db.commit()
        db.refresh(published_house)
        assert published_house.primary_image_id is None
        assert db.query(HouseImage).count() == 0


class TestConversationModel:
    def test_participants_must_differ(self, db, user):
        db.add(Conversation(participant1_id=user.id, participant2_id=user.id))
        with pytest.raises(IntegrityError):
            db.commit()

    def test_other_participant(self, db, user, other_user):
        conversation = Conversation(participant1_id=user.id, participant2_id=other_user.id)
        assert conversation.has_participant(user.id)
        assert not conversation.has_participant(999)
        assert conversation.other_participant_id(user.id) == other_user.id
        assert conversation.other_participant_id(other_user.id) == user.id
