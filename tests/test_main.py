"""Tests for main application."""

from fastapi.testclient import TestClient
from portfolio_explainer.main import app

client = TestClient(app)


def test_root_endpoint():
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Portfolio Explainer API"
    assert data["version"] == "1.0.0"
    assert "status" in data


def test_health_check():
    """Test health check endpoint."""
    response = client.get("/health/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data


def test_routes_registered():
    """Test that all routers are mounted."""
    paths = set(app.openapi()["paths"])
    assert {
        "/portfolio/import",
        "/portfolio/current",
        "/portfolio/diff",
        "/analyze",
        "/research",
        "/research/reports",
    } <= paths


def test_orchestrator_missing_before_startup():
    """User routes answer 503 until the lifespan has wired the pipeline."""
    from portfolio_explainer.auth import get_current_user_id

    app.dependency_overrides[get_current_user_id] = lambda: "user-123"
    try:
        response = client.get("/research/reports")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 503
