"""
Risk Analytics API Endpoints.

POST /api/v1/analytics/simulations          — Monte Carlo scenario stress test
GET  /api/v1/analytics/scenarios/templates  — OSFI E-21 scenario templates
POST /api/v1/analytics/anomalies/value      — z-score anomaly vs. history
POST /api/v1/analytics/anomalies/counts     — daily-count spike detection
POST /api/v1/analytics/anomalies/scan       — batch scan of recent KRIs and incidents
POST /api/v1/analytics/correlations         — category correlation network
POST /api/v1/analytics/scores               — composite score for one category
POST /api/v1/analytics/scores/all           — scores for every category found
POST /api/v1/analytics/scores/adjustments   — scores adjusted for market and regulation
POST /api/v1/analytics/predictions          — forward risk predictions

Handlers are plain ``def`` so the CPU-bound work runs in the threadpool
instead of blocking the event loop. Nothing is persisted here.
"""

import dataclasses

from fastapi import APIRouter, Depends

from riskanalytics.api.deps import get_engine
from riskanalytics.engine.analytics_engine import RiskAnalyticsEngine
from riskanalytics.exceptions import InvalidInputError
from riskanalytics.schemas.analytics import (
    AdjustmentRequest,
    AnomalyScanRequest,
    CorrelationRequest,
    CountAnomalyRequest,
    PredictionRequest,
    ScoreAllRequest,
    ScoreRequest,
    ValueAnomalyRequest,
)
from riskanalytics.schemas.simulation import SimulationRequest

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


@router.post("/simulations")
def run_simulation(
    body: SimulationRequest,
    engine: RiskAnalyticsEngine = Depends(get_engine),
):
    """Run a scenario and return statistics, tail-risk metrics and advice."""
    result = engine.run_simulation(
        body.config.to_config(),
        iterations=body.iterations,
        risk_appetite_threshold=body.risk_appetite_threshold,
        seed=body.seed,
    )
    recommendations = engine.recommend(result)
    if not body.include_iterations:
        result = dataclasses.replace(result, raw_results=[])
    return {"result": result, "recommendations": recommendations}


@router.get("/scenarios/templates")
def list_scenario_templates(engine: RiskAnalyticsEngine = Depends(get_engine)):
    return {"templates": engine.scenario_templates()}


@router.post("/anomalies/value")
def detect_value_anomaly(
    body: ValueAnomalyRequest,
    engine: RiskAnalyticsEngine = Depends(get_engine),
):
    """``anomaly`` is null when the value is normal or history is too short."""
    return {"anomaly": engine.detect_anomaly(body.current_value, body.to_series())}


@router.post("/anomalies/counts")
def detect_count_anomaly(
    body: CountAnomalyRequest,
    engine: RiskAnalyticsEngine = Depends(get_engine),
):
    if body.daily_counts is not None:
        return {"anomaly": engine.detect_count_anomaly(body.daily_counts, body.metric)}
    if body.incidents is not None:
        return {"anomaly": engine.detect_incident_spike([i.to_record() for i in body.incidents])}
    raise InvalidInputError("Provide either daily_counts or incidents")


@router.post("/anomalies/scan")
def scan_anomalies(
    body: AnomalyScanRequest,
    engine: RiskAnalyticsEngine = Depends(get_engine),
):
    anomalies = engine.detect_anomalies(
        [k.to_record() for k in body.kri_measurements],
        [i.to_record() for i in body.incidents],
        as_of=body.as_of,
    )
    return {"anomalies": anomalies}


@router.post("/correlations")
def analyze_correlations(
    body: CorrelationRequest,
    engine: RiskAnalyticsEngine = Depends(get_engine),
):
    records = engine.analyze_correlations(
        [i.to_record() for i in body.incidents],
        as_of=body.as_of,
        lookback_days=body.lookback_days,
    )
    return {"correlations": records}


@router.post("/scores")
def score_risk(
    body: ScoreRequest,
    engine: RiskAnalyticsEngine = Depends(get_engine),
):
    return engine.score_risk(
        body.category,
        [i.to_record() for i in body.incidents],
        [k.to_record() for k in body.kri_measurements],
        [c.to_record() for c in body.control_tests],
        organization=body.organization.to_record() if body.organization else None,
        as_of=body.as_of,
    )


@router.post("/scores/all")
def score_all(
    body: ScoreAllRequest,
    engine: RiskAnalyticsEngine = Depends(get_engine),
):
    scores = engine.score_all(
        [i.to_record() for i in body.incidents],
        [k.to_record() for k in body.kri_measurements],
        [c.to_record() for c in body.control_tests],
        organization=body.organization.to_record() if body.organization else None,
        as_of=body.as_of,
    )
    return {"scores": scores}


@router.post("/scores/adjustments")
def adjust_scores(
    body: AdjustmentRequest,
    engine: RiskAnalyticsEngine = Depends(get_engine),
):
    """Only scores that the market or regulatory conditions move are returned."""
    scores = engine.score_all(
        [i.to_record() for i in body.incidents],
        [k.to_record() for k in body.kri_measurements],
        [c.to_record() for c in body.control_tests],
        organization=body.organization.to_record() if body.organization else None,
        as_of=body.as_of,
    )
    adjustments = engine.dynamic_adjustments(
        scores,
        body.market.to_record(),
        body.regulatory_changes,
        as_of=body.as_of,
    )
    return {"adjustments": adjustments}


@router.post("/predictions")
def predict(
    body: PredictionRequest,
    engine: RiskAnalyticsEngine = Depends(get_engine),
):
    predictions = engine.predict(
        [i.to_record() for i in body.incidents],
        [k.to_record() for k in body.kri_measurements],
        time_horizon=body.time_horizon,
        as_of=body.as_of,
    )
    return {"predictions": predictions}
