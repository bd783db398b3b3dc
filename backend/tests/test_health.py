"""Tests for the health endpoint and top-level error handling."""

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from classifieds.database import get_db
from classifieds.main import app
from classifieds.services import listings


class TestHealth:
    def test_health_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "healthy"}


class TestErrorHandlers:
    def test_unexpected_database_error_is_generic_500(self, db, monkeypatch):
        def broken(db, category, search=None, limit=50, offset=0):
            raise OperationalError("SELECT", {}, Exception("no such table"))

        monkeypatch.setattr(listings, "list_published", broken)
        app.dependency_overrides[get_db] = lambda: db
        try:
            with TestClient(app, raise_server_exceptions=False) as client:
                response = client.get("/api/cars")
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}

    def test_domain_errors_carry_code(self, client):
        response = client.get("/api/items/12345")
        assert response.status_code == 404
        assert response.json() == {"detail": "Item not found", "code": "not_found"}
