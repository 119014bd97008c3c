"""
API Tests

Endpoint tests with the record store and narrative adapter overridden.
"""
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from healthrisk.config import settings
from healthrisk.core.llm import NarrativeAdapter
from healthrisk.core.inference import AttributionEngine
from healthrisk.main import (
    app, get_record_store, get_narrative_adapter, get_risk_engine, get_attribution_engine,
)

XAI_URL = f"{settings.api_prefix}/xai/predictions"
TWIN_URL = f"{settings.api_prefix}/digital-twin/simulation"
PREDICTIONS_URL = f"{settings.api_prefix}/predictions"


def make_token(subject: str = "patient-1") -> str:
    claims = {"sub": subject}
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def auth_headers(subject: str = "patient-1") -> dict:
    return {"Authorization": f"Bearer {make_token(subject)}"}


@pytest.fixture
def client(record_store):
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_narrative_adapter] = lambda: NarrativeAdapter(enabled=False)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["narrative_llm"] == "template"


class TestAuthentication:
    """Tests for bearer verification."""

    @pytest.mark.parametrize("url", [XAI_URL, TWIN_URL, PREDICTIONS_URL])
    def test_missing_token(self, client, url):
        response = client.post(url)
        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}

    def test_invalid_signature(self, client):
        token = jwt.encode({"sub": "patient-1"}, "some-other-secret", algorithm="HS256")
        response = client.post(XAI_URL, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_missing_subject(self, client):
        claims = {"aud": settings.jwt_audience} if settings.jwt_audience else {}
        token = jwt.encode({**claims, "role": "patient"}, settings.secret_key, algorithm=settings.algorithm)
        response = client.post(XAI_URL, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestXAIPredictions:
    """Tests for the explainability endpoint."""

    def test_scenario_patient(self, client):
        response = client.post(XAI_URL, json={}, headers=auth_headers())
        assert response.status_code == 200
        data = response.json()

        assert data["current_features"] == data["analysis_features"]
        assert data["current_features"]["systolic_bp"] == 165
        assert data["risk_levels"]["cardiovascular"] in ("high", "very-high")
        assert data["risks"]["overall"] == pytest.approx(
            (data["risks"]["cardiovascular"] + data["risks"]["diabetes"]) / 2, abs=0.1
        )

        systolic = [c for c in data["counterfactuals"]["cardiovascular"] if c["feature"] == "systolic_bp"]
        assert systolic and systolic[0]["risk_reduction"] > 0
        assert len(data["global_importance"]) == 7
        assert data["explanation_source"] == "template"
        assert data["explanation"].startswith("Based on your health data")

    def test_no_body(self, client):
        response = client.post(XAI_URL, headers=auth_headers())
        assert response.status_code == 200

    def test_what_if_changes_analysis_only(self, client):
        baseline = client.post(XAI_URL, json={}, headers=auth_headers()).json()
        response = client.post(
            XAI_URL, json={"what_if_values": {"systolic_bp": 120, "bmi": 24}}, headers=auth_headers()
        )
        assert response.status_code == 200
        data = response.json()

        assert data["current_features"]["systolic_bp"] == 165
        assert data["analysis_features"]["systolic_bp"] == 120
        assert data["analysis_features"]["bmi"] == 24
        assert data["risks"]["cardiovascular"] < baseline["risks"]["cardiovascular"]

    def test_unknown_what_if_feature_rejected(self, client):
        response = client.post(XAI_URL, json={"what_if_values": {"cholesterol": 240}}, headers=auth_headers())
        assert response.status_code == 422

    def test_extreme_what_if_value_is_clamped(self, client):
        response = client.post(
            XAI_URL, json={"what_if_values": {"systolic_bp": 1_000_000}}, headers=auth_headers()
        )
        assert response.status_code == 200
        data = response.json()

        assert data["analysis_features"]["systolic_bp"] == 1_000_000
        assert data["risks"]["cardiovascular"] == 95.0
        assert data["risk_levels"]["cardiovascular"] == "very-high"

    def test_patient_without_records(self, client):
        """No profile and no vitals: population-mean patient at baseline risk."""
        data = client.post(XAI_URL, json={}, headers=auth_headers("newcomer")).json()
        assert data["current_features"]["bmi"] == 25.5
        assert data["risks"]["cardiovascular"] == 9.1
        assert data["risks"]["diabetes"] == 6.9
        assert data["counterfactuals"]["cardiovascular"] == []


class TestDigitalTwin:
    """Tests for the simulation endpoint."""

    def test_simulation(self, client):
        response = client.post(TWIN_URL, headers=auth_headers())
        assert response.status_code == 200
        data = response.json()

        assert set(data["vital_trajectories"]) == {"blood_pressure", "heart_rate", "blood_glucose"}
        assert len(data["vital_trajectories"]["blood_pressure"]) == settings.trajectory_steps + 1
        assert data["vital_trajectories"]["blood_pressure"][0]["predicted"] == 165
        assert len(data["disease_trajectories"]["cardiovascular"]) == settings.progression_horizon_months + 1

        treatments = data["treatment_optimization"]["treatments"]
        assert len(treatments) == 8
        assert sum(t["recommended"] for t in treatments) == 3

        assert data["temporal_analysis"]["systolic"]["samples"] == 6
        assert data["uncertainty_metrics"]["simulation_runs"] == settings.simulation_paths
        assert data["interpretation_source"] == "template"

    def test_defaults_without_vitals(self, client):
        data = client.post(TWIN_URL, headers=auth_headers("patient-2")).json()
        assert data["vital_trajectories"]["heart_rate"][0]["predicted"] == 72
        assert data["vital_trajectories"]["blood_glucose"][0]["predicted"] == 95
        assert data["temporal_analysis"]["heart_rate"]["samples"] == 0


class TestPredictions:
    """Tests for the dashboard predictions endpoint."""

    def test_predictions_with_vitals(self, client):
        response = client.post(PREDICTIONS_URL, headers=auth_headers())
        assert response.status_code == 200
        predictions = response.json()["predictions"]

        assert predictions["cardiovascular"]["risk_level"] in ("high", "very-high")
        assert predictions["cycle_health"] is None
        assert predictions["vital_trends"]["blood_pressure_systolic"]["direction"] == "increasing"

    def test_predictions_with_cycles(self, client):
        data = client.post(PREDICTIONS_URL, headers=auth_headers("patient-2")).json()
        predictions = data["predictions"]

        assert predictions["cycle_health"]["risk_level"] == "low"
        assert predictions["vital_trends"] is None
        assert "Priority actions" in data["recommendations"]


class TestEngineDependencies:
    """Tests for the shared scoring engines."""

    def test_engines_built_once(self):
        assert get_risk_engine() is get_risk_engine()
        assert get_attribution_engine() is get_attribution_engine()

    def test_xai_uses_injected_attribution_engine(self, client):
        app.dependency_overrides[get_attribution_engine] = lambda: AttributionEngine(reconcile_waterfall=False)
        data = client.post(XAI_URL, json={}, headers=auth_headers()).json()

        assert data["waterfall"]["cardiovascular"][0]["cumulative"] == 7.5
        assert data["waterfall"]["diabetes"][0]["cumulative"] == 8.0
