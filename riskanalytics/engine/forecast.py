"""
Forward Risk Predictions.

Projects each incident category's score over a time horizon:

  current   = clamp(Σ severity weights of the last 30 days / 2, 1, 10)
  predicted = min(10, current × trend_multiplier × horizon_multiplier)
  interval  = predicted ± min(2, n_incidents / 10), clamped to [0, 10]

The trend compares the first and second half of the category's impact
ratings. All inputs are explicit; nothing here is sampled.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Sequence

import structlog

from riskanalytics.engine.records import IncidentRecord, KRIMeasurement, as_utc, utc_now
from riskanalytics.engine.scoring import SCORE_MAX, SCORE_MIN, severity_weight
from riskanalytics.engine.stats import mean
from riskanalytics.exceptions import InvalidConfigError

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

HORIZON_MULTIPLIERS: dict[str, float] = {
    "week": 1.1,
    "month": 1.2,
    "quarter": 1.4,
}
TREND_MULTIPLIERS: dict[str, float] = {
    "increasing": 1.2,
    "decreasing": 0.8,
    "stable": 1.0,
}
RECENT_WINDOW_DAYS: int = 30
DEFAULT_IMPACT_RATING: float = 3.0
TREND_THRESHOLD: float = 0.1
MAX_INTERVAL_HALF_WIDTH: float = 2.0

CRITICAL_INCIDENT_FACTOR = ("Critical Incidents", 0.8, 0.9)
KRI_TREND_IMPACT: float = 0.6
KRI_TREND_CONFIDENCE: float = 0.7


@dataclass(frozen=True)
class PredictionFactor:
    factor: str
    impact: float
    confidence: float


@dataclass(frozen=True)
class PredictionInterval:
    lower: float
    upper: float


@dataclass(frozen=True)
class RiskPrediction:
    risk_id: str
    risk_name: str
    current_score: float
    predicted_score: float
    confidence_interval: PredictionInterval
    time_horizon: str
    factors: list[PredictionFactor] = field(default_factory=list)
    recommended_actions: list[str] = field(default_factory=list)


def half_split_trend(values: Sequence[float], threshold: float = TREND_THRESHOLD) -> str:
    """Compare the mean of the second half of a series with the first half."""
    if len(values) < 2:
        return "stable"
    mid = len(values) // 2
    first_avg = mean(values[:mid])
    second_avg = mean(values[mid:])
    if first_avg == 0:
        return "stable"
    change = (second_avg - first_avg) / first_avg
    if change > threshold:
        return "increasing"
    if change < -threshold:
        return "decreasing"
    return "stable"


class RiskForecaster:
    """Deterministic forward projection of category risk scores."""

    def current_score(self, incidents: Sequence[IncidentRecord], now: datetime) -> float:
        """Severity load of the last 30 days on a 1-10 scale."""
        if not incidents:
            return 1.0
        since = now - timedelta(days=RECENT_WINDOW_DAYS)
        load = sum(severity_weight(i.severity) for i in incidents if as_utc(i.reported_at) >= since)
        return min(SCORE_MAX, max(1.0, load / 2))

    def factors(
        self,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
    ) -> list[PredictionFactor]:
        found: list[PredictionFactor] = []
        if any((i.severity or "").lower() == "critical" for i in incidents):
            name, impact, confidence = CRITICAL_INCIDENT_FACTOR
            found.append(PredictionFactor(factor=name, impact=impact, confidence=confidence))

        series: dict[str, list[KRIMeasurement]] = {}
        for kri in kri_measurements:
            series.setdefault(kri.kri_name or "Unknown", []).append(kri)
        for kri_name, readings in series.items():
            ordered = sorted(readings, key=lambda k: as_utc(k.measured_at))
            if half_split_trend([float(k.actual_value) for k in ordered]) == "increasing":
                found.append(PredictionFactor(
                    factor=f"{kri_name} Trend",
                    impact=KRI_TREND_IMPACT,
                    confidence=KRI_TREND_CONFIDENCE,
                ))
        return found

    @staticmethod
    def recommendations(category: str, predicted: float) -> list[str]:
        if predicted > 7:
            return [
                f"Implement immediate risk mitigation measures for {category} risks",
                f"Increase monitoring frequency for {category} indicators",
                f"Review and update {category} risk response procedures",
            ]
        if predicted > 5:
            return [
                f"Enhance preventive controls for {category} risks",
                f"Conduct additional {category} risk assessments",
            ]
        return [
            f"Maintain current {category} risk management practices",
            f"Continue monitoring {category} risk indicators",
        ]

    def predict(
        self,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement] = (),
        time_horizon: str = "month",
        as_of: Optional[datetime] = None,
    ) -> list[RiskPrediction]:
        """One prediction per incident category, categories in first-seen order."""
        if time_horizon not in HORIZON_MULTIPLIERS:
            raise InvalidConfigError(
                f"Unknown time horizon {time_horizon!r}; expected one of {sorted(HORIZON_MULTIPLIERS)}",
                field="time_horizon",
            )
        now = as_utc(as_of) if as_of is not None else utc_now()

        by_category: dict[str, list[IncidentRecord]] = {}
        for incident in sorted(incidents, key=lambda i: as_utc(i.reported_at)):
            by_category.setdefault(incident.category or "other", []).append(incident)

        predictions: list[RiskPrediction] = []
        for category, category_incidents in by_category.items():
            ratings = [
                float(i.impact_rating) if i.impact_rating else DEFAULT_IMPACT_RATING
                for i in category_incidents
            ]
            trend = half_split_trend(ratings)
            current = self.current_score(category_incidents, now)
            predicted = min(
                SCORE_MAX,
                current * TREND_MULTIPLIERS[trend] * HORIZON_MULTIPLIERS[time_horizon],
            )
            half_width = min(MAX_INTERVAL_HALF_WIDTH, len(category_incidents) / 10)

            predictions.append(RiskPrediction(
                risk_id=f"risk-{category}",
                risk_name=f"{category} Risk",
                current_score=current,
                predicted_score=round(predicted, 1),
                confidence_interval=PredictionInterval(
                    lower=max(SCORE_MIN, predicted - half_width),
                    upper=min(SCORE_MAX, predicted + half_width),
                ),
                time_horizon=time_horizon,
                factors=self.factors(category_incidents, kri_measurements),
                recommended_actions=self.recommendations(category, predicted),
            ))

        logger.info(
            "risk_predictions_generated",
            n_categories=len(predictions),
            time_horizon=time_horizon,
        )
        return predictions
