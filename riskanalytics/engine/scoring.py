"""
Predictive Risk Scorer.

Blends three signals into a trend-aware 0-10 score per risk category:
- Incident severity & frequency   (weight 0.4)
- KRI threshold breaches          (weight 0.4)
- Control effectiveness, inverted (weight 0.2)

Formula:
  current    = Σ(weight_i × subscore_i), clamped to [0, 10]
  historical = same composite over records older than 30 days
  trend      = increasing / decreasing when (current - historical) / historical
               moves past ±10%, otherwise stable
  confidence = min(1, n/20 × recency × consistency)

Sub-score defaults when a signal is missing: incidents 2, KRIs 5, controls 5.
These are deterministic statistical formulas, not trained models.

Dynamic adjustments re-weight an existing score for the external
environment: ×1.1 under high market volatility, ×1.05 when regulatory
changes are pending, capped at 10. Both inputs are supplied by the caller.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

import structlog

from riskanalytics.engine.records import (
    ControlTestRecord,
    IncidentRecord,
    KRIMeasurement,
    OrganizationProfile,
    as_utc,
    utc_now,
)
from riskanalytics.engine.stats import coefficient_of_variation, mean
from riskanalytics.exceptions import InvalidConfigError, InvalidInputError

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_WEIGHTS: dict[str, float] = {
    "incident": 0.4,
    "kri": 0.4,
    "control": 0.2,
}

FACTOR_NAMES: dict[str, str] = {
    "incident": "Incident Frequency & Severity",
    "kri": "Key Risk Indicator Performance",
    "control": "Control Effectiveness",
}

SEVERITY_WEIGHTS: dict[str, int] = {"low": 1, "medium": 2, "high": 3, "critical": 4}
DEFAULT_SEVERITY_WEIGHT: int = 2

KRI_BREACH_SCORES: dict[str, float] = {"critical": 8.0, "warning": 6.0}
KRI_WITHIN_THRESHOLD_SCORE: float = 3.0

DEFAULT_INCIDENT_SCORE: float = 2.0
DEFAULT_KRI_SCORE: float = 5.0
DEFAULT_CONTROL_SCORE: float = 5.0
DEFAULT_EFFECTIVENESS: float = 5.0

MAX_FREQUENCY_MULTIPLIER: float = 2.0
FREQUENCY_DIVISOR: float = 10.0          # incidents per 1.0× multiplier
CONFIDENCE_FULL_DATA_POINTS: float = 20.0
UNDETERMINED_CONSISTENCY: float = 0.5    # fewer than two samples
MIN_CONSISTENCY: float = 0.1

HISTORICAL_CUTOFF_DAYS: int = 30
RECENCY_WINDOW_DAYS: int = 90
TREND_THRESHOLD: float = 0.1

SCORE_MIN: float = 0.0
SCORE_MAX: float = 10.0

DEFAULT_CATEGORIES: tuple[str, ...] = ("operational", "cyber", "compliance")

# Reference scores (0-10) by sector and category
INDUSTRY_BENCHMARKS: dict[str, dict[str, float]] = {
    "banking": {"operational": 6.2, "cyber": 7.1, "compliance": 5.8, "credit": 6.5},
    "insurance": {"operational": 5.9, "cyber": 6.8, "compliance": 6.1, "underwriting": 6.3},
    "fintech": {"operational": 6.5, "cyber": 7.8, "compliance": 6.2, "technology": 7.2},
}
SIZE_MULTIPLIERS: dict[str, float] = {
    "small": 1.1,
    "medium": 1.0,
    "large": 0.9,
    "enterprise": 0.8,
}
BASE_BENCHMARK: float = 6.0
REGION_ADJUSTMENT: float = 0.95

HIGH_VOLATILITY_FACTOR: float = 1.1
REGULATORY_CHANGE_FACTOR: float = 1.05
ADJUSTMENT_VALIDITY_DAYS: int = 90


@dataclass(frozen=True)
class RiskScoreFactor:
    """One weighted contributor to the composite score."""
    key: str                   # incident | kri | control
    name: str
    weight: float
    current_value: float       # 0-10
    contribution: float        # weight × current_value


@dataclass(frozen=True)
class RiskScoreFactors:
    incident: RiskScoreFactor
    kri: RiskScoreFactor
    control: RiskScoreFactor

    def as_list(self) -> list[RiskScoreFactor]:
        return [self.incident, self.kri, self.control]

    @property
    def dominant(self) -> RiskScoreFactor:
        """The factor contributing most; ties go to the earlier factor."""
        best = self.incident
        for factor in (self.kri, self.control):
            if factor.contribution > best.contribution:
                best = factor
        return best


@dataclass(frozen=True)
class BenchmarkComparison:
    industry: float
    size: float
    region: float


@dataclass(frozen=True)
class IntelligentRiskScore:
    """
    Composite risk score for one category.

    Every field answers a question:
    - current_score: How risky now? (0-10)
    - historical_score: How risky a month ago? (0-10)
    - trend: Which way is it moving?
    - confidence: How much data backs this? (0-1)
    - factors: WHY is this the score?
    """
    risk_id: str
    risk_name: str
    category: str
    current_score: float
    historical_score: float
    trend: str                 # increasing | decreasing | stable
    confidence: float
    factors: RiskScoreFactors
    benchmark: BenchmarkComparison
    explanation: str
    n_data_points: int = 0
    generated_at: str = ""


@dataclass(frozen=True)
class MarketConditions:
    """External environment supplied by the caller."""
    volatility: str = "normal"          # low | normal | high
    interest_rates: str = "stable"      # falling | stable | rising


@dataclass(frozen=True)
class AdjustmentFactor:
    factor: str
    impact: float              # relative uplift, e.g. 0.1 for ×1.1
    timeframe: str


@dataclass(frozen=True)
class AdjustmentContext:
    business_environment: str
    market_conditions: str
    regulatory_changes: tuple[str, ...]


@dataclass(frozen=True)
class DynamicRiskAdjustment:
    """A score re-weighted for market and regulatory conditions."""
    risk_id: str
    original_score: float
    adjusted_score: float
    adjustment_factors: tuple[AdjustmentFactor, ...]
    context: AdjustmentContext
    valid_until: str


def clamp_score(value: float) -> float:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def severity_weight(severity: str) -> int:
    return SEVERITY_WEIGHTS.get((severity or "").lower(), DEFAULT_SEVERITY_WEIGHT)


def identify_categories(
    incidents: Sequence[IncidentRecord],
    kri_measurements: Sequence[KRIMeasurement] = (),
) -> list[str]:
    """Categories seen in incidents or KRIs, in first-seen order; defaults when none."""
    seen: dict[str, None] = {}
    for incident in incidents:
        if incident.category:
            seen.setdefault(incident.category, None)
    for kri in kri_measurements:
        if kri.category:
            seen.setdefault(kri.category, None)
    return list(seen) or list(DEFAULT_CATEGORIES)


class PredictiveRiskScorer:
    """
    Weighted composite scoring with trend and confidence.

    Weights are configurable and normalized to sum to 1.0.
    """

    def __init__(
        self,
        weights: Optional[dict[str, float]] = None,
        historical_cutoff_days: int = HISTORICAL_CUTOFF_DAYS,
        recency_window_days: int = RECENCY_WINDOW_DAYS,
        trend_threshold: float = TREND_THRESHOLD,
        adjustment_validity_days: int = ADJUSTMENT_VALIDITY_DAYS,
    ):
        self.weights = DEFAULT_WEIGHTS.copy()
        if weights:
            self.update_weights(weights)
        self.historical_cutoff_days = historical_cutoff_days
        self.recency_window_days = recency_window_days
        self.trend_threshold = trend_threshold
        self.adjustment_validity_days = adjustment_validity_days

    def update_weights(self, overrides: dict[str, float]) -> None:
        """Update weights (e.g. from an organization's risk methodology)."""
        unknown = set(overrides) - set(DEFAULT_WEIGHTS)
        if unknown:
            raise InvalidConfigError(f"Unknown score weights: {sorted(unknown)}", field="weights")
        if any(w < 0 for w in overrides.values()):
            raise InvalidConfigError("Score weights cannot be negative", field="weights")

        merged = {**self.weights, **overrides}
        total = sum(merged.values())
        if total <= 0:
            raise InvalidConfigError("Score weights must not all be zero", field="weights")
        self.weights = {k: v / total for k, v in merged.items()}

    # ── Sub-scores ─────────────────────────────────────────────────────

    def incident_score(self, incidents: Sequence[IncidentRecord]) -> float:
        """Average severity weight × frequency multiplier (min(2, n/10)), capped at 10."""
        if not incidents:
            return DEFAULT_INCIDENT_SCORE
        avg_severity = mean([severity_weight(i.severity) for i in incidents])
        frequency_multiplier = min(MAX_FREQUENCY_MULTIPLIER, len(incidents) / FREQUENCY_DIVISOR)
        return clamp_score(avg_severity * frequency_multiplier)

    def kri_score(self, kri_measurements: Sequence[KRIMeasurement]) -> float:
        """Average breach score: critical 8, warning 6, otherwise 3."""
        if not kri_measurements:
            return DEFAULT_KRI_SCORE
        return mean([
            KRI_BREACH_SCORES.get((k.breach_level or "").lower(), KRI_WITHIN_THRESHOLD_SCORE)
            for k in kri_measurements
        ])

    def relevant_controls(
        self,
        control_tests: Sequence[ControlTestRecord],
        category: str,
    ) -> list[ControlTestRecord]:
        """Control tests whose description or findings mention the category."""
        return [c for c in control_tests if c.mentions(category)]

    def control_score(self, control_tests: Sequence[ControlTestRecord], category: str) -> float:
        """10 − average effectiveness of the relevant controls."""
        relevant = self.relevant_controls(control_tests, category)
        if not relevant:
            return DEFAULT_CONTROL_SCORE
        avg_effectiveness = mean([
            c.effectiveness_rating if c.effectiveness_rating is not None else DEFAULT_EFFECTIVENESS
            for c in relevant
        ])
        return clamp_score(SCORE_MAX - avg_effectiveness)

    def factors(
        self,
        category: str,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
        control_tests: Sequence[ControlTestRecord],
    ) -> RiskScoreFactors:
        values = {
            "incident": self.incident_score(incidents),
            "kri": self.kri_score(kri_measurements),
            "control": self.control_score(control_tests, category),
        }
        built = {
            key: RiskScoreFactor(
                key=key,
                name=FACTOR_NAMES[key],
                weight=self.weights[key],
                current_value=value,
                contribution=self.weights[key] * value,
            )
            for key, value in values.items()
        }
        return RiskScoreFactors(**built)

    def composite(
        self,
        category: str,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
        control_tests: Sequence[ControlTestRecord],
    ) -> float:
        factors = self.factors(category, incidents, kri_measurements, control_tests)
        return clamp_score(sum(f.contribution for f in factors.as_list()))

    # ── Trend & confidence ─────────────────────────────────────────────

    def trend(self, current: float, historical: float) -> str:
        """Relative change against history; a zero baseline is always stable."""
        if historical == 0:
            return "stable"
        change = (current - historical) / historical
        if change > self.trend_threshold:
            return "increasing"
        if change < -self.trend_threshold:
            return "decreasing"
        return "stable"

    def _recency(
        self,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
        now: datetime,
    ) -> float:
        """1.0 for brand-new data, decaying linearly to 0 at the recency window."""
        timestamps = [as_utc(i.reported_at) for i in incidents]
        timestamps += [as_utc(k.measured_at) for k in kri_measurements]
        if not timestamps:
            return 0.0
        avg_age_days = mean([max(0.0, (now - ts).total_seconds()) / 86400.0 for ts in timestamps])
        return max(0.0, 1.0 - avg_age_days / self.recency_window_days)

    @staticmethod
    def _variance_consistency(values: Sequence[float]) -> float:
        if len(values) < 2:
            return UNDETERMINED_CONSISTENCY
        cov = coefficient_of_variation(values)
        return max(MIN_CONSISTENCY, 1.0 - min(1.0, cov))

    def _consistency(
        self,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
    ) -> float:
        if len(incidents) < 2 and len(kri_measurements) < 2:
            return UNDETERMINED_CONSISTENCY
        incident_consistency = self._variance_consistency(
            [severity_weight(i.severity) for i in incidents]
        )
        kri_consistency = self._variance_consistency(
            [float(k.actual_value) for k in kri_measurements]
        )
        return (incident_consistency + kri_consistency) / 2

    def confidence(
        self,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
        control_tests: Sequence[ControlTestRecord],
        now: datetime,
    ) -> float:
        """min(1, data_points/20 × recency × consistency)."""
        data_points = len(incidents) + len(kri_measurements) + len(control_tests)
        recency = self._recency(incidents, kri_measurements, now)
        consistency = self._consistency(incidents, kri_measurements)
        return min(1.0, (data_points / CONFIDENCE_FULL_DATA_POINTS) * recency * consistency)

    # ── Benchmarks & explanation ───────────────────────────────────────

    def benchmark(
        self,
        category: str,
        organization: Optional[OrganizationProfile] = None,
    ) -> BenchmarkComparison:
        """Industry, size and region reference scores for a category."""
        sector = (organization.sector or "").lower() if organization else ""
        size = (organization.size or "").lower() if organization else ""
        industry = INDUSTRY_BENCHMARKS.get(sector, {}).get(category.lower(), BASE_BENCHMARK)
        return BenchmarkComparison(
            industry=industry,
            size=round(BASE_BENCHMARK * SIZE_MULTIPLIERS.get(size, 1.0), 2),
            region=round(industry * REGION_ADJUSTMENT, 3),
        )

    @staticmethod
    def explain(category: str, score: float, factors: RiskScoreFactors, trend: str) -> str:
        trend_text = "improving" if trend == "decreasing" else trend
        primary = factors.dominant
        return (
            f"{category} risk score of {score:.1f} is primarily driven by {primary.name.lower()} "
            f"(contributing {primary.contribution:.1f} points). "
            f"The trend is {trend_text} compared to historical levels."
        )

    # ── Scoring ────────────────────────────────────────────────────────

    def score_risk(
        self,
        category: str,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
        control_tests: Sequence[ControlTestRecord],
        organization: Optional[OrganizationProfile] = None,
        as_of: Optional[datetime] = None,
    ) -> IntelligentRiskScore:
        """
        Score one category from records already scoped to it.

        Control tests are matched to the category by keyword.
        """
        now = as_utc(as_of) if as_of is not None else utc_now()
        cutoff = now - timedelta(days=self.historical_cutoff_days)

        factors = self.factors(category, incidents, kri_measurements, control_tests)
        current = clamp_score(sum(f.contribution for f in factors.as_list()))

        historical = self.composite(
            category,
            [i for i in incidents if as_utc(i.reported_at) < cutoff],
            [k for k in kri_measurements if as_utc(k.measured_at) < cutoff],
            [c for c in control_tests if c.tested_at is not None and as_utc(c.tested_at) < cutoff],
        )

        trend = self.trend(current, historical)
        confidence = self.confidence(incidents, kri_measurements, control_tests, now)

        score = IntelligentRiskScore(
            risk_id=f"risk-{category}",
            risk_name=f"{category} Risk",
            category=category,
            current_score=round(current, 1),
            historical_score=round(historical, 1),
            trend=trend,
            confidence=round(confidence, 4),
            factors=factors,
            benchmark=self.benchmark(category, organization),
            explanation=self.explain(category, current, factors, trend),
            n_data_points=len(incidents) + len(kri_measurements) + len(control_tests),
            generated_at=now.isoformat(),
        )

        logger.info(
            "risk_score_computed",
            category=category,
            current_score=score.current_score,
            historical_score=score.historical_score,
            trend=trend,
            confidence=score.confidence,
            primary_driver=factors.dominant.key,
        )
        return score

    def score_all(
        self,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
        control_tests: Sequence[ControlTestRecord],
        organization: Optional[OrganizationProfile] = None,
        as_of: Optional[datetime] = None,
    ) -> list[IntelligentRiskScore]:
        """Score every category found in the incidents and KRIs."""
        return [
            self.score_risk(
                category,
                [i for i in incidents if i.category == category],
                [k for k in kri_measurements if k.category == category],
                control_tests,
                organization=organization,
                as_of=as_of,
            )
            for category in identify_categories(incidents, kri_measurements)
        ]

    # ── Dynamic adjustments ────────────────────────────────────────────

    def dynamic_adjustment(
        self,
        risk_id: str,
        score: float,
        market: MarketConditions,
        regulatory_changes: Sequence[str] = (),
        as_of: Optional[datetime] = None,
    ) -> DynamicRiskAdjustment:
        """Apply the volatility and regulatory uplifts to one score."""
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score) or score < 0:
            raise InvalidInputError(
                f"Score to adjust must be a finite number ≥ 0, got {score!r}",
                details={"risk_id": risk_id},
            )
        now = as_utc(as_of) if as_of is not None else utc_now()

        multiplier = 1.0
        factors: list[AdjustmentFactor] = []
        if (market.volatility or "").lower() == "high":
            multiplier *= HIGH_VOLATILITY_FACTOR
            factors.append(AdjustmentFactor(
                factor="High Market Volatility",
                impact=round(HIGH_VOLATILITY_FACTOR - 1, 4),
                timeframe="3 months",
            ))
        if regulatory_changes:
            multiplier *= REGULATORY_CHANGE_FACTOR
            factors.append(AdjustmentFactor(
                factor="Recent Regulatory Changes",
                impact=round(REGULATORY_CHANGE_FACTOR - 1, 4),
                timeframe="6 months",
            ))

        return DynamicRiskAdjustment(
            risk_id=risk_id,
            original_score=float(score),
            adjusted_score=round(min(SCORE_MAX, score * multiplier), 1),
            adjustment_factors=tuple(factors),
            context=AdjustmentContext(
                business_environment=market.volatility,
                market_conditions=f"Interest rates {market.interest_rates}",
                regulatory_changes=tuple(regulatory_changes),
            ),
            valid_until=(now + timedelta(days=self.adjustment_validity_days)).isoformat(),
        )

    def dynamic_adjustments(
        self,
        scores: Sequence[IntelligentRiskScore],
        market: MarketConditions,
        regulatory_changes: Sequence[str] = (),
        as_of: Optional[datetime] = None,
    ) -> list[DynamicRiskAdjustment]:
        """Adjustments for every score the conditions actually move."""
        adjustments = [
            self.dynamic_adjustment(s.risk_id, s.current_score, market, regulatory_changes, as_of)
            for s in scores
        ]
        changed = [a for a in adjustments if a.adjusted_score != a.original_score]
        logger.info(
            "dynamic_adjustments_computed",
            n_scores=len(scores),
            n_adjusted=len(changed),
            volatility=market.volatility,
            n_regulatory_changes=len(regulatory_changes),
        )
        return changed
