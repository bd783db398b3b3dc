"""Tests for listing CRUD across houses, cars, items and jobs."""

from datetime import datetime

import pytest

from classifieds.errors import ValidationError
from classifieds.models import House, Job, JobApplication
from classifieds.services import listings


class TestVisibility:
    """Unpublished listings only exist for their owner and admins."""

    def test_anonymous_cannot_see_unpublished_house(self, client, draft_house):
        response = client.get(f"/api/houses/{draft_house.id}")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_other_user_cannot_see_unpublished_house(self, client, draft_house, other_user, login):
        login(other_user)
        assert client.get(f"/api/houses/{draft_house.id}").status_code == 404

    def test_owner_sees_unpublished_house(self, client, draft_house, user, login):
        login(user)
        response = client.get(f"/api/houses/{draft_house.id}")
        assert response.status_code == 200
        assert response.json()["is_published"] is False

    def test_admin_sees_unpublished_house(self, client, draft_house, admin_user, login):
        login(admin_user)
        assert client.get(f"/api/houses/{draft_house.id}").status_code == 200

    def test_public_list_excludes_drafts(self, client, published_house, draft_house):
        response = client.get("/api/houses")
        assert response.status_code == 200
        ids = [house["id"] for house in response.json()]
        assert ids == [published_house.id]

    def test_public_list_search(self, client, db, user, published_house):
        db.add(House(user_id=user.id, title="Downtown loft", is_published=True))
        db.commit()
        response = client.get("/api/houses", params={"q": "loft"})
        assert [house["title"] for house in response.json()] == ["Downtown loft"]

    def test_mine_includes_drafts(self, client, user, published_house, draft_house, login):
        login(user)
        response = client.get("/api/houses/mine")
        assert response.status_code == 200
        assert {house["id"] for house in response.json()} == {published_house.id, draft_house.id}

    def test_mine_requires_login(self, client):
        assert client.get("/api/cars/mine").status_code == 401


class TestCreate:
    def test_create_house(self, client, db, user, login):
        login(user)
        response = client.post(
            "/api/houses",
            json={"title": "Beach house", "price": 500000, "number_of_bedrooms": 4},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == user.id
        assert data["is_published"] is False
        assert data["number_of_bedrooms"] == 4

    def test_create_ignores_client_owner(self, client, user, other_user, login):
        """Ownership always comes from the session, never the payload."""
        login(user)
        response = client.post("/api/cars", json={"make": "Subaru", "model": "Outback", "user_id": other_user.id})
        assert response.status_code == 201
        assert response.json()["user_id"] == user.id

    def test_create_requires_login(self, client, roles):
        assert client.post("/api/items", json={"name": "Lamp"}).status_code == 401

    def test_duplicate_item_name_conflicts(self, client, user, login):
        login(user)
        assert client.post("/api/items", json={"name": "Lamp"}).status_code == 201
        response = client.post("/api/items", json={"name": "Lamp"})
        assert response.status_code == 409

    def test_negative_price_rejected(self, db, user, identity):
        with pytest.raises(ValidationError) as exc_info:
            listings.create_listing(db, identity(user), "house", {"title": "Shed", "price": -1})
        assert exc_info.value.field == "price"

    def test_unknown_category_rejected(self, db, user, identity):
        with pytest.raises(ValidationError) as exc_info:
            listings.create_listing(db, identity(user), "boats", {"name": "Dinghy"})
        assert exc_info.value.field == "listing_type"

    def test_category_is_case_insensitive(self, db, user, identity):
        car = listings.create_listing(db, identity(user), "Car", {"make": "Ford", "model": "F-150"})
        assert listings.get_listing(db, "CAR", car.id, identity(user)).id == car.id


class TestJobs:
    """Job postings are restricted to verified companies."""

    def test_regular_user_cannot_post_job(self, client, user, login):
        login(user)
        response = client.post("/api/jobs", json={"title": "Cook", "location": "Nome", "company": "Diner"})
        assert response.status_code == 403
        assert response.json()["reason"] == "not_company"

    def test_unverified_company_cannot_post_job(self, client, db, user, login):
        user.is_company = True
        db.commit()
        login(user)
        response = client.post("/api/jobs", json={"title": "Cook", "location": "Nome", "company": "Diner"})
        assert response.status_code == 403
        assert response.json()["reason"] == "company_not_verified"

    def test_verified_company_posts_job(self, client, company_user, login):
        login(company_user)
        response = client.post("/api/jobs", json={"title": "Cook", "location": "Nome"})
        assert response.status_code == 201
        data = response.json()
        assert data["company"] == "Acme Corp"
        assert data["is_published"] is True
        assert data["application_type"] == "native"

    def test_external_job_requires_url(self, client, company_user, login):
        login(company_user)
        response = client.post(
            "/api/jobs",
            json={"title": "Pilot", "location": "Bethel", "application_type": "external"},
        )
        assert response.status_code == 422
        data = response.json()
        assert data["detail"] == "external_application_url required"
        assert data["field"] == "external_application_url"

    def test_external_job_with_url(self, client, company_user, login):
        login(company_user)
        response = client.post(
            "/api/jobs",
            json={
                "title": "Pilot",
                "location": "Bethel",
                "application_type": "external",
                "external_application_url": "https://careers.example.com/pilot",
            },
        )
        assert response.status_code == 201

    def test_switching_to_external_on_update_requires_url(self, db, company_user, job, identity):
        with pytest.raises(ValidationError) as exc_info:
            listings.update_listing(db, identity(company_user), "job", job.id, {"application_type": "external"})
        assert str(exc_info.value) == "external_application_url required"

    def test_invalid_job_type_rejected(self, client, company_user, login):
        login(company_user)
        response = client.post("/api/jobs", json={"title": "Cook", "location": "Nome", "job_type": "gig"})
        assert response.status_code == 422

    def test_view_counted_for_visitors_only(self, client, db, job, company_user, login):
        assert client.get(f"/api/jobs/{job.id}").json()["views"] == 1
        assert client.get(f"/api/jobs/{job.id}").json()["views"] == 2

        login(company_user)
        assert client.get(f"/api/jobs/{job.id}").json()["views"] == 2


class TestUpdate:
    def test_partial_update_keeps_other_fields(self, client, db, draft_house, user, login):
        """Publishing a draft touches only is_published and the timestamp."""
        login(user)
        response = client.patch(f"/api/houses/{draft_house.id}", json={"is_published": True})
        assert response.status_code == 200
        data = response.json()
        assert data["is_published"] is True
        assert data["title"] == "Fixer upper"
        assert data["description"] == "Needs work"
        assert data["price"] == 90000

        db.refresh(draft_house)
        assert draft_house.updated_at > datetime(2020, 1, 1)

    def test_put_is_partial_too(self, client, draft_house, user, login):
        login(user)
        response = client.put(f"/api/houses/{draft_house.id}", json={"address": "10 Elm St"})
        assert response.status_code == 200
        assert response.json()["title"] == "Fixer upper"
        assert response.json()["address"] == "10 Elm St"

    def test_explicit_null_clears_nullable_field(self, client, draft_house, user, login):
        login(user)
        response = client.patch(f"/api/houses/{draft_house.id}", json={"description": None})
        assert response.status_code == 200
        assert response.json()["description"] is None

    def test_explicit_null_on_required_field_rejected(self, client, draft_house, user, login):
        login(user)
        response = client.patch(f"/api/houses/{draft_house.id}", json={"title": None})
        assert response.status_code == 422
        assert response.json()["field"] == "title"

    def test_non_owner_cannot_update(self, client, published_house, other_user, login):
        login(other_user)
        response = client.patch(f"/api/houses/{published_house.id}", json={"title": "Mine now"})
        assert response.status_code == 403
        assert response.json()["reason"] == "not_owner"

    def test_admin_can_update(self, client, published_house, admin_user, login):
        login(admin_user)
        response = client.patch(f"/api/houses/{published_house.id}", json={"title": "Moderated"})
        assert response.status_code == 200
        assert response.json()["title"] == "Moderated"

    def test_update_missing_listing(self, client, user, login):
        login(user)
        assert client.patch("/api/cars/999", json={"make": "Kia"}).status_code == 404


class TestDelete:
    def test_delete_then_delete_again(self, client, published_house, user, login):
        login(user)
        first = client.delete(f"/api/houses/{published_house.id}")
        assert first.status_code == 200
        second = client.delete(f"/api/houses/{published_house.id}")
        assert second.status_code == 404

    def test_non_owner_cannot_delete(self, client, db, published_house, other_user, login):
        login(other_user)
        assert client.delete(f"/api/houses/{published_house.id}").status_code == 403
        assert db.query(House).count() == 1

    def test_deleting_job_removes_applications(self, db, job, company_user, user, identity):
        db.add(JobApplication(job_id=job.id, user_id=user.id))
        db.commit()
        listings.delete_listing(db, identity(company_user), "job", job.id)
        assert db.query(Job).count() == 0
        assert db.query(JobApplication).count() == 0


class TestDashboard:
    def test_dashboard_groups_owned_listings(self, client, db, user, published_house, draft_house, login):
        login(user)
        client.post("/api/cars", json={"make": "Toyota", "model": "Tacoma"})
        response = client.get("/api/users/dashboard")
        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"jobs", "houses", "cars", "items"}
        assert len(data["houses"]) == 2
        assert len(data["cars"]) == 1
        assert data["jobs"] == []
        assert data["items"] == []

    def test_dashboard_requires_login(self, client):
        assert client.get("/api/users/dashboard").status_code == 401
