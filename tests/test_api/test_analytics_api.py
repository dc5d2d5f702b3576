"""
API Contract Tests — every analytics endpoint tested.

Tests:
- Simulation: POST /api/v1/analytics/simulations, GET /scenarios/templates
- Anomaly: POST /api/v1/analytics/anomalies/value, /anomalies/counts
- Correlation: POST /api/v1/analytics/correlations
- Scoring: POST /api/v1/analytics/scores, /scores/all, /predictions
- Health: GET /health

Each endpoint tested for:
- Happy path (200 with valid request)
- Proper response structure
- Caller errors mapped to 422 with an error code
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from riskanalytics.api.deps import get_engine
from riskanalytics.engine.analytics_engine import RiskAnalyticsEngine
from riskanalytics.engine.sampling import DistributionSampler
from riskanalytics.main import app

PREFIX = "/api/v1/analytics"

SCENARIO = {
    "scenario_id": "cyber-q3",
    "impact_factors": {
        "financial_impact_range": [1000, 2000],
        "operational_impact_hours": [1, 10],
        "recovery_time_hours": [2, 4],
    },
    "stress_testing": {"stress_multiplier": 2.0, "adverse_conditions": ["peak_season"]},
}


@pytest_asyncio.fixture
async def client():
    """Async test client with a seeded engine."""
    app.dependency_overrides[get_engine] = lambda: RiskAnalyticsEngine(sampler=DistributionSampler(seed=42))
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
    app.dependency_overrides.clear()


# ── Health ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert "X-Request-ID" in resp.headers
    assert resp.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_request_id_echoed(client):
    resp = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_malformed_request_id_replaced(client):
    resp = await client.get("/health", headers={"X-Request-ID": "bad id; drop table"})
    assert resp.headers["X-Request-ID"] != "bad id; drop table"
    assert len(resp.headers["X-Request-ID"]) == 36


class _BrokenEngine(RiskAnalyticsEngine):
    def scenario_templates(self):
        raise RuntimeError("template store unavailable")


@pytest.mark.asyncio
async def test_unhandled_error_is_generic_500():
    app.dependency_overrides[get_engine] = lambda: _BrokenEngine()
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            resp = await c.get(f"{PREFIX}/scenarios/templates")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 500
    body = resp.json()
    assert body["code"] == "E1000"
    assert "error_id" in body["details"]
    assert "template store" not in body["error"]


# ── Simulation ─────────────────────────────────────────────────────────


class TestSimulationEndpoints:
    @pytest.mark.asyncio
    async def test_run_simulation(self, client):
        resp = await client.post(f"{PREFIX}/simulations", json={"config": SCENARIO, "iterations": 200})
        assert resp.status_code == 200
        data = resp.json()
        result = data["result"]
        assert result["scenario_id"] == "cyber-q3"
        assert result["iterations"] == 200
        assert result["raw_results"] == []
        assert 2000 <= result["financial_impact"]["mean"] <= 4000
        assert set(result["risk_metrics"]) == {
            "value_at_risk_95",
            "expected_shortfall",
            "maximum_loss",
            "probability_of_severe_impact",
            "risk_appetite_breach_probability",
        }
        assert isinstance(data["recommendations"], list)

    @pytest.mark.asyncio
    async def test_include_iterations(self, client):
        resp = await client.post(
            f"{PREFIX}/simulations",
            json={"config": SCENARIO, "iterations": 25, "include_iterations": True},
        )
        rows = resp.json()["result"]["raw_results"]
        assert len(rows) == 25
        assert rows[0]["iteration"] == 1

    @pytest.mark.asyncio
    async def test_seeded_requests_reproduce(self, client):
        body = {"config": SCENARIO, "iterations": 50, "seed": 9, "include_iterations": True}
        first = (await client.post(f"{PREFIX}/simulations", json=body)).json()
        second = (await client.post(f"{PREFIX}/simulations", json=body)).json()
        assert first["result"]["raw_results"] == second["result"]["raw_results"]

    @pytest.mark.asyncio
    async def test_inverted_range_is_422(self, client):
        bad = {**SCENARIO, "impact_factors": {**SCENARIO["impact_factors"], "financial_impact_range": [5, 1]}}
        resp = await client.post(f"{PREFIX}/simulations", json={"config": bad, "iterations": 10})
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == "E6001"
        assert body["details"]["field"] == "impact_factors.financial_impact_range"
        assert body["request_id"] == resp.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_zero_iterations_is_422(self, client):
        resp = await client.post(f"{PREFIX}/simulations", json={"config": SCENARIO, "iterations": 0})
        assert resp.status_code == 422
        assert resp.json()["code"] == "E6000"

    @pytest.mark.asyncio
    async def test_missing_config_is_422(self, client):
        resp = await client.post(f"{PREFIX}/simulations", json={"iterations": 10})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_overflowing_stress_is_422(self, client):
        huge = {
            **SCENARIO,
            "impact_factors": {**SCENARIO["impact_factors"], "financial_impact_range": [1e308, 1.7e308]},
        }
        resp = await client.post(f"{PREFIX}/simulations", json={"config": huge, "iterations": 10})
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == "E6000"
        assert body["details"]["field"] == "impact_factors.financial_impact_range"

    @pytest.mark.asyncio
    async def test_templates(self, client):
        resp = await client.get(f"{PREFIX}/scenarios/templates")
        assert resp.status_code == 200
        templates = resp.json()["templates"]
        assert len(templates) == 3
        assert {t["regulatory_framework"] for t in templates} == {"OSFI E-21"}


# ── Anomaly ────────────────────────────────────────────────────────────


class TestAnomalyEndpoints:
    @pytest.mark.asyncio
    async def test_value_anomaly(self, client):
        history = [
            {"timestamp": f"2024-05-0{d}T00:00:00Z", "value": 10.0}
            for d in range(1, 8)
        ]
        resp = await client.post(
            f"{PREFIX}/anomalies/value",
            json={"metric": "Failed Logins", "current_value": 25.0, "history": history},
        )
        assert resp.status_code == 200
        anomaly = resp.json()["anomaly"]
        assert anomaly["severity"] == "critical"
        assert anomaly["metric"] == "Failed Logins"
        assert anomaly["expected_range"] == {"lower": 10.0, "upper": 10.0}

    @pytest.mark.asyncio
    async def test_short_history_is_null(self, client):
        resp = await client.post(
            f"{PREFIX}/anomalies/value",
            json={"metric": "Failed Logins", "current_value": 999.0, "history": []},
        )
        assert resp.status_code == 200
        assert resp.json()["anomaly"] is None

    @pytest.mark.asyncio
    async def test_unrepresentable_baseline_is_422(self, client):
        values = [1.7e308] * 4 + [-1.7e308]
        history = [
            {"timestamp": f"2024-05-0{d}T00:00:00Z", "value": v}
            for d, v in enumerate(values, start=1)
        ]
        resp = await client.post(
            f"{PREFIX}/anomalies/value",
            json={"metric": "Exposure", "current_value": 0.0, "history": history},
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "E6002"

    @pytest.mark.asyncio
    async def test_count_anomaly(self, client):
        resp = await client.post(f"{PREFIX}/anomalies/counts", json={"daily_counts": [1] * 10 + [20]})
        assert resp.json()["anomaly"]["severity"] == "critical"

    @pytest.mark.asyncio
    async def test_count_anomaly_from_incidents(self, client):
        incidents = [
            {"category": "cyber", "severity": "low", "reported_at": f"2024-05-{d:02d}T09:00:00Z"}
            for d in range(1, 15)
        ]
        incidents += [
            {"category": "cyber", "severity": "high", "reported_at": "2024-05-20T10:00:00Z"}
        ] * 20
        resp = await client.post(f"{PREFIX}/anomalies/counts", json={"incidents": incidents})
        assert resp.status_code == 200
        assert resp.json()["anomaly"]["value"] == 20.0

    @pytest.mark.asyncio
    async def test_count_anomaly_requires_data(self, client):
        resp = await client.post(f"{PREFIX}/anomalies/counts", json={})
        assert resp.status_code == 422
        assert resp.json()["code"] == "E6002"

    @pytest.mark.asyncio
    async def test_negative_counts_rejected(self, client):
        resp = await client.post(f"{PREFIX}/anomalies/counts", json={"daily_counts": [1, -2]})
        assert resp.status_code == 422
        assert resp.json()["code"] == "E6002"

    @pytest.mark.asyncio
    async def test_anomaly_scan(self, client):
        baseline = [
            {"kri_name": "Failed Logins", "actual_value": 10, "measured_at": f"2024-05-{d:02d}T00:00:00Z"}
            for d in range(1, 21)
        ]
        recent = {"kri_name": "Failed Logins", "actual_value": 100, "measured_at": "2024-05-31T00:00:00Z"}
        resp = await client.post(
            f"{PREFIX}/anomalies/scan",
            json={"kri_measurements": baseline + [recent], "as_of": "2024-06-01T00:00:00Z"},
        )
        assert resp.status_code == 200
        anomalies = resp.json()["anomalies"]
        assert len(anomalies) == 1
        assert anomalies[0]["metric"] == "Failed Logins"
        assert anomalies[0]["value"] == 100.0


# ── Correlation & Scoring ─────────────────────────────────────────────


INCIDENTS = [
    {"category": "cyber", "severity": "high", "reported_at": "2024-05-30T00:00:00Z"},
    {"category": "compliance", "severity": "medium", "reported_at": "2024-05-30T01:00:00Z"},
]


class TestCorrelationAndScoringEndpoints:
    @pytest.mark.asyncio
    async def test_correlations(self, client):
        resp = await client.post(f"{PREFIX}/correlations", json={"incidents": INCIDENTS})
        assert resp.status_code == 200
        records = resp.json()["correlations"]
        cyber = next(r for r in records if r["primary_category"] == "cyber")
        assert cyber["correlated_risks"] == [
            {"category": "compliance", "correlation_strength": 1.0, "causality": "cause"}
        ]
        assert cyber["cascade_risk"] is False

    @pytest.mark.asyncio
    async def test_score(self, client):
        resp = await client.post(
            f"{PREFIX}/scores",
            json={
                "category": "cyber",
                "incidents": INCIDENTS[:1],
                "kri_measurements": [
                    {
                        "kri_name": "Failed Logins",
                        "actual_value": 40,
                        "measured_at": "2024-05-30T00:00:00Z",
                        "breach_level": "critical",
                    }
                ],
                "control_tests": [{"effectiveness_rating": 8, "test_description": "cyber MFA review"}],
                "organization": {"sector": "banking", "size": "large"},
                "as_of": "2024-06-01T00:00:00Z",
            },
        )
        assert resp.status_code == 200
        score = resp.json()
        assert score["category"] == "cyber"
        assert 0 <= score["current_score"] <= 10
        assert score["factors"]["kri"]["current_value"] == 8.0
        assert score["benchmark"]["industry"] == 7.1

    @pytest.mark.asyncio
    async def test_invalid_severity_is_422(self, client):
        bad = [{**INCIDENTS[0], "severity": "apocalyptic"}]
        resp = await client.post(f"{PREFIX}/scores", json={"category": "cyber", "incidents": bad})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_score_all(self, client):
        resp = await client.post(f"{PREFIX}/scores/all", json={"incidents": INCIDENTS})
        assert [s["category"] for s in resp.json()["scores"]] == ["cyber", "compliance"]

    @pytest.mark.asyncio
    async def test_score_adjustments(self, client):
        resp = await client.post(
            f"{PREFIX}/scores/adjustments",
            json={
                "incidents": INCIDENTS,
                "market": {"volatility": "high", "interest_rates": "rising"},
                "regulatory_changes": ["Updated third-party risk management standards"],
                "as_of": "2024-06-01T00:00:00Z",
            },
        )
        assert resp.status_code == 200
        adjustments = resp.json()["adjustments"]
        assert [a["risk_id"] for a in adjustments] == ["risk-cyber", "risk-compliance"]
        first = adjustments[0]
        assert first["adjusted_score"] > first["original_score"]
        assert first["context"]["market_conditions"] == "Interest rates rising"
        assert len(first["adjustment_factors"]) == 2

    @pytest.mark.asyncio
    async def test_calm_market_adjusts_nothing(self, client):
        resp = await client.post(f"{PREFIX}/scores/adjustments", json={"incidents": INCIDENTS})
        assert resp.json()["adjustments"] == []

    @pytest.mark.asyncio
    async def test_unknown_volatility_is_422(self, client):
        resp = await client.post(
            f"{PREFIX}/scores/adjustments",
            json={"incidents": INCIDENTS, "market": {"volatility": "extreme"}},
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_predictions(self, client):
        resp = await client.post(
            f"{PREFIX}/predictions",
            json={"incidents": INCIDENTS, "time_horizon": "quarter", "as_of": "2024-06-01T00:00:00Z"},
        )
        assert resp.status_code == 200
        predictions = resp.json()["predictions"]
        assert {p["time_horizon"] for p in predictions} == {"quarter"}
