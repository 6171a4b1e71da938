"""
Integration tests for the CellGuard API.

Tests cover:
- Health check
- Detection, including failed detections reported as success: false
- Feedback, results and actionable anomalies
- Engine state endpoints and profile export/import
- Input validation and error responses
"""

import numpy as np
import pytest
from fastapi.testclient import TestClient

from cellguard.anomaly.engine import AnomalyEngine
from cellguard.api.main import create_app
from cellguard.api.routers import ROUTER_CONFIG, get_router_info
from cellguard.api.routers.base import convert_numpy_types, set_engine
from cellguard.config.settings import EngineSettings
from cellguard.persistence.store import InMemoryStore

RANGE = "Sheet1!A1:A10"


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def api_engine():
    return AnomalyEngine(store=InMemoryStore())


@pytest.fixture
def client(api_engine):
    app = create_app(engine=api_engine, settings=EngineSettings())
    yield TestClient(app)
    set_engine(None)


@pytest.fixture
def detected(client, single_iqr_grid):
    response = client.post("/api/anomalies/detect", json={"rangeId": RANGE, "values": single_iqr_grid})
    assert response.status_code == 200
    return response.json()


# =============================================================================
# System
# =============================================================================


class TestSystemRouter:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"] == {"api": True, "engine": True}
        assert data["storage"] == "memory"
        assert "timestamp" in data

    def test_router_config(self):
        assert [info["module"] for info in get_router_info()] == [m for m, _, _ in ROUTER_CONFIG]


# =============================================================================
# Detection
# =============================================================================


class TestDetectEndpoint:
    """Test POST /api/anomalies/detect."""

    def test_detect(self, detected):
        assert detected["success"] is True
        assert detected["error"] is None
        data = detected["data"]
        assert data["rangeId"] == RANGE
        assert data["totalFound"] == 1
        assert data["anomalies"][0]["type"] == "iqr_outlier"
        assert data["anomalies"][0]["row"] == 0
        assert data["tiers"] == {"high": 1, "medium": 0, "low": 0}

    def test_degenerate_grid_is_not_an_http_error(self, client):
        response = client.post("/api/anomalies/detect", json={"rangeId": RANGE, "values": [[1, 2], [3]]})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["error"]
        assert body["data"]["errorKind"] == "degenerate_input"

    def test_blank_and_text_cells(self, client):
        values = [[None], [""], ["n/a"], [1], [2], [3], [4]]
        response = client.post("/api/anomalies/detect", json={"rangeId": RANGE, "values": values})

        assert response.json()["data"]["totalFound"] == 0

    def test_missing_range_id(self, client):
        response = client.post("/api/anomalies/detect", json={"values": [[1]]})
        assert response.status_code == 422


# =============================================================================
# Feedback and Results
# =============================================================================


class TestFeedbackEndpoint:
    def test_unknown_range(self, client):
        response = client.post(
            "/api/anomalies/feedback",
            json={"rangeId": "nowhere", "wasAccurate": False, "falsePositives": 2},
        )

        assert response.status_code == 200
        assert response.json()["data"]["applied"] is False
        assert response.json()["data"]["thresholds"]["outlier"] == 0.85

    def test_applies_feedback(self, client, detected):
        response = client.post(
            "/api/anomalies/feedback",
            json={"rangeId": RANGE, "wasAccurate": False, "missedAnomalies": 1},
        )

        data = response.json()["data"]
        assert data["applied"] is True
        assert data["thresholds"] == {"outlier": 0.83, "trend": 0.73, "pattern": 0.78}

    def test_negative_counts_rejected(self, client):
        response = client.post(
            "/api/anomalies/feedback",
            json={"rangeId": RANGE, "wasAccurate": False, "falsePositives": -1},
        )
        assert response.status_code == 422


class TestResultsEndpoints:
    def test_get_result(self, client, detected):
        response = client.get(f"/api/anomalies/results/{RANGE}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["rangeId"] == RANGE
        assert data["confidence"] == pytest.approx(0.95)
        assert len(data["anomalies"]) == 1

    def test_unknown_result_is_404(self, client):
        response = client.get("/api/anomalies/results/nowhere")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_actionable(self, client, detected):
        response = client.get(f"/api/anomalies/results/{RANGE}/actionable")

        data = response.json()["data"]
        assert [a["type"] for a in data["anomalies"]] == ["iqr_outlier"]
        assert data["anomalies"][0]["tier"] == "high"

    def test_actionable_unknown_range(self, client):
        response = client.get("/api/anomalies/results/nowhere/actionable")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["kind"] == "unknown_range"


# =============================================================================
# Engine State
# =============================================================================


class TestEngineStateEndpoints:
    """Test status, thresholds, history and data management endpoints."""

    def test_thresholds(self, client):
        response = client.get("/api/anomalies/thresholds")
        assert response.json()["data"] == {"outlier": 0.85, "trend": 0.75, "pattern": 0.8}

    def test_history_stats(self, client, detected):
        data = client.get("/api/anomalies/history/stats").json()["data"]

        assert data["totalDetections"] == 1
        assert data["topAnomalyTypes"] == [{"type": "iqr_outlier", "count": 1}]

    def test_enable_disable(self, client):
        assert client.post("/api/anomalies/enable").json()["data"]["enabled"] is True
        assert client.get("/api/anomalies/status").json()["data"]["enabled"] is True
        assert client.post("/api/anomalies/disable").json()["data"]["enabled"] is False

    def test_clear_data(self, client, detected):
        data = client.delete("/api/anomalies/data").json()["data"]

        assert data["historySize"] == 0
        assert data["liveResults"] == 0
        assert client.get(f"/api/anomalies/results/{RANGE}").status_code == 404

    def test_profile_round_trip(self, client, detected):
        profile = client.get("/api/anomalies/profile").json()["data"]
        client.delete("/api/anomalies/data")

        response = client.post("/api/anomalies/profile", json=profile)

        assert response.status_code == 200
        assert response.json()["data"]["historySize"] == 1

    def test_malformed_profile_history(self, client):
        response = client.post("/api/anomalies/profile", json={"history": [{"anomaliesFound": 1}]})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_engine_not_initialized(self, client):
        set_engine(None)

        assert client.get("/api/anomalies/status").status_code == 503
        assert client.get("/api/health").json()["status"] == "unhealthy"


class TestConvertNumpyTypes:
    def test_non_finite_floats_become_null(self):
        assert convert_numpy_types({"a": np.float64("nan"), "b": [np.int64(2), float("inf")]}) == {
            "a": None,
            "b": [2, None],
        }
