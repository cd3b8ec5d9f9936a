"""
Tests for health and readiness endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from foldera.api.main import app
from foldera.detection.solver import ConflictSolver


@pytest.fixture
def client():
    """Create test client (lifespan not run; state is set per test)."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_solver():
    app.state.solver = None
    yield
    app.state.solver = None


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_200(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "foldera-conflicts"
        assert "version" in data


class TestReadinessEndpoint:
    """Tests for /ready endpoint."""

    def test_not_ready_without_solver(self, client):
        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"

    def test_ready_deterministic_only(self, client):
        app.state.solver = ConflictSolver(enable_llm=False)

        response = client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["llm"] == "disabled"
        assert data["llm_circuit"] is None

    def test_ready_reports_llm_circuit(self, client, fake_client):
        app.state.solver = ConflictSolver(client=fake_client(response="{}"))

        data = client.get("/ready").json()

        assert data["llm"] == "enabled"
        assert data["llm_circuit"]["name"] == "llm"


class TestRootEndpoint:

    def test_lists_endpoints(self, client):
        data = client.get("/").json()
        assert "/conflicts/detect (POST)" in data["endpoints"].values()
