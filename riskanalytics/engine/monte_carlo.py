"""
Monte Carlo Scenario Simulator.

Stress-tests the financial and operational impact of a risk scenario.

For each iteration:
1. Sample financial impact, operational hours and recovery hours
   independently and uniformly from their configured ranges
2. Scale all three by the scenario's stress multiplier
3. Derive total cost = financial impact + operational hours × hourly cost
   from the stress-scaled values, so the stress multiplier reaches total
   cost as well. Earlier versions of the platform summed the unscaled draws
   here; stored runs from those versions are not comparable on total cost.

After the loop, per-metric statistics and tail-risk metrics (VaR95,
expected shortfall, maximum loss, severe-impact and risk-appetite breach
probabilities) are computed from the iteration list alone, so
re-summarizing the same iterations always reproduces the same result.

The configuration is validated before the first draw: a malformed range
or a non-positive iteration count never leaves a half-finished run.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence

import structlog

from riskanalytics.engine.records import utc_now
from riskanalytics.engine.sampling import DistributionSampler, unsupported_shapes, validate_range
from riskanalytics.engine.stats import (
    MetricStatistics,
    describe,
    expected_shortfall,
    percentile,
)
from riskanalytics.exceptions import InvalidConfigError

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_ITERATIONS: int = 1000
MAX_ITERATIONS: int = 1_000_000
DEFAULT_CONFIDENCE_INTERVAL: float = 0.95
OPERATIONAL_COST_PER_HOUR: float = 1000.0      # currency units per disrupted hour
RISK_APPETITE_THRESHOLD: float = 5_000_000.0   # financial impact that breaches appetite
VAR_PERCENTILE: float = 0.95

# Advisory thresholds for recommend()
SEVERE_IMPACT_ADVISORY: float = 0.1
VAR95_ADVISORY: float = 10_000_000.0
APPETITE_BREACH_ADVISORY: float = 0.05


@dataclass(frozen=True)
class ImpactFactors:
    """Inclusive [low, high] ranges sampled on every iteration."""
    financial_impact_range: tuple[float, float]
    operational_impact_hours: tuple[float, float]
    recovery_time_hours: tuple[float, float]


@dataclass(frozen=True)
class ProbabilityDistributions:
    """Occurrence probability plus distribution metadata."""
    occurrence_probability: float = 1.0
    severity_distribution: str = "uniform"
    recovery_distribution: str = "uniform"
    correlation_factors: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class StressTesting:
    """Stress multiplier and the adverse conditions it represents."""
    stress_multiplier: float = 1.0
    adverse_conditions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScenarioConfig:
    """Immutable scenario definition handed to the simulator."""
    scenario_id: str
    impact_factors: ImpactFactors
    probability_distributions: ProbabilityDistributions = field(default_factory=ProbabilityDistributions)
    stress_testing: Optional[StressTesting] = None

    @property
    def stress_multiplier(self) -> float:
        """Effective multiplier. Absent or zero means unstressed (1.0)."""
        if self.stress_testing is None or not self.stress_testing.stress_multiplier:
            return 1.0
        return float(self.stress_testing.stress_multiplier)


@dataclass(frozen=True)
class SimulationIteration:
    """One sampled draw, already stress-scaled."""
    iteration: int
    financial_impact: float
    operational_impact_hours: float
    recovery_time_hours: float
    total_cost: float
    occurrence_probability: float


@dataclass(frozen=True)
class RiskMetrics:
    """Tail-risk view of the financial impact distribution."""
    value_at_risk_95: float
    expected_shortfall: float
    maximum_loss: float
    probability_of_severe_impact: float      # fraction of iterations > VaR95
    risk_appetite_breach_probability: float  # fraction of iterations > threshold


@dataclass(frozen=True)
class SimulationResult:
    """Complete, immutable output of a simulation run."""
    scenario_id: str
    iterations: int
    confidence_interval: float
    raw_results: list[SimulationIteration]
    financial_impact: MetricStatistics
    operational_impact: MetricStatistics
    recovery_time: MetricStatistics
    risk_metrics: RiskMetrics
    risk_appetite_threshold: float
    generated_at: str = ""


class ScenarioSimulator:
    """
    Monte Carlo simulator over a scenario's impact ranges.

    Stateless between runs apart from its sampler. Give each concurrent
    caller its own simulator (or its own seeded sampler) for reproducible
    parallel runs.
    """

    def __init__(
        self,
        sampler: Optional[DistributionSampler] = None,
        operational_cost_per_hour: float = OPERATIONAL_COST_PER_HOUR,
        confidence_interval: float = DEFAULT_CONFIDENCE_INTERVAL,
        risk_appetite_threshold: float = RISK_APPETITE_THRESHOLD,
        max_iterations: int = MAX_ITERATIONS,
    ):
        self.sampler = sampler or DistributionSampler()
        self.operational_cost_per_hour = operational_cost_per_hour
        self.confidence_interval = confidence_interval
        self.risk_appetite_threshold = risk_appetite_threshold
        self.max_iterations = max_iterations

    # ── Validation ─────────────────────────────────────────────────────

    def validate(self, config: ScenarioConfig, iterations: Any) -> None:
        """Reject bad input before any sampling begins."""
        if isinstance(iterations, bool) or not isinstance(iterations, int):
            raise InvalidConfigError(
                f"Iteration count must be an integer, got {iterations!r}",
                field="iterations",
            )
        if iterations <= 0:
            raise InvalidConfigError(
                f"Iteration count must be positive, got {iterations}",
                field="iterations",
            )
        if iterations > self.max_iterations:
            raise InvalidConfigError(
                f"Iteration count {iterations} exceeds limit {self.max_iterations}",
                field="iterations",
            )

        probability = config.probability_distributions.occurrence_probability
        if not (isinstance(probability, (int, float)) and 0.0 <= probability <= 1.0):
            raise InvalidConfigError(
                f"Occurrence probability must be in [0, 1], got {probability!r}",
                field="probability_distributions.occurrence_probability",
            )

        if config.stress_testing is not None:
            multiplier = config.stress_testing.stress_multiplier
            if not (isinstance(multiplier, (int, float)) and math.isfinite(multiplier) and multiplier >= 0):
                raise InvalidConfigError(
                    f"Stress multiplier must be a finite number ≥ 0, got {multiplier!r}",
                    field="stress_testing.stress_multiplier",
                )
        stress = config.stress_multiplier

        factors = config.impact_factors
        peaks: dict[str, float] = {}
        for name in ("financial_impact_range", "operational_impact_hours", "recovery_time_hours"):
            field_name = f"impact_factors.{name}"
            low, high = validate_range(getattr(factors, name), field=field_name)
            scaled = (low * stress, high * stress, (high - low) * stress)
            if not all(math.isfinite(v) for v in scaled):
                raise InvalidConfigError(
                    f"Range {[low, high]} scaled by stress multiplier {stress} is out of numeric range",
                    field=field_name,
                )
            peaks[name] = max(abs(low), abs(high)) * stress

        peak_cost = (
            peaks["financial_impact_range"]
            + peaks["operational_impact_hours"] * self.operational_cost_per_hour
        )
        if not math.isfinite(peak_cost):
            raise InvalidConfigError(
                "Total cost (financial + operational hours × hourly cost) is out of numeric range",
                field="impact_factors",
            )

    # ── Simulation ─────────────────────────────────────────────────────

    def run_simulation(
        self,
        config: ScenarioConfig,
        iterations: int = DEFAULT_ITERATIONS,
        risk_appetite_threshold: Optional[float] = None,
    ) -> SimulationResult:
        """
        Run the scenario for exactly ``iterations`` draws.

        Raises InvalidConfigError (or InvalidRangeError) before sampling
        when the configuration or iteration count is malformed.
        """
        try:
            self.validate(config, iterations)
        except InvalidConfigError as exc:
            logger.warning(
                "invalid_scenario_config",
                scenario_id=config.scenario_id,
                error=exc.message,
                details=exc.details,
            )
            raise

        factors = config.impact_factors
        fin_low, fin_high = validate_range(factors.financial_impact_range)
        ops_low, ops_high = validate_range(factors.operational_impact_hours)
        rec_low, rec_high = validate_range(factors.recovery_time_hours)
        dists = config.probability_distributions
        stress = config.stress_multiplier

        fallback_shapes = unsupported_shapes(dists.severity_distribution, dists.recovery_distribution)
        if fallback_shapes:
            logger.debug(
                "distribution_shape_not_sampled",
                scenario_id=config.scenario_id,
                shapes=fallback_shapes,
                fallback="uniform",
            )

        results: list[SimulationIteration] = []
        for i in range(1, iterations + 1):
            financial = self.sampler.sample(fin_low, fin_high, dists.severity_distribution) * stress
            operational = self.sampler.sample(ops_low, ops_high, dists.severity_distribution) * stress
            recovery = self.sampler.sample(rec_low, rec_high, dists.recovery_distribution) * stress

            results.append(SimulationIteration(
                iteration=i,
                financial_impact=financial,
                operational_impact_hours=operational,
                recovery_time_hours=recovery,
                total_cost=financial + operational * self.operational_cost_per_hour,
                occurrence_probability=float(dists.occurrence_probability),
            ))

        result = self.summarize(config.scenario_id, results, risk_appetite_threshold)

        logger.info(
            "simulation_completed",
            scenario_id=config.scenario_id,
            iterations=iterations,
            stress_multiplier=stress,
            var_95=round(result.risk_metrics.value_at_risk_95, 2),
            breach_probability=result.risk_metrics.risk_appetite_breach_probability,
        )
        return result

    def summarize(
        self,
        scenario_id: str,
        results: Sequence[SimulationIteration],
        risk_appetite_threshold: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> SimulationResult:
        """
        Aggregate an iteration list into a SimulationResult.

        Deterministic: the same iterations always give the same statistics.
        """
        if not results:
            raise InvalidConfigError("Cannot summarize an empty simulation", field="iterations")

        threshold = (
            self.risk_appetite_threshold
            if risk_appetite_threshold is None
            else float(risk_appetite_threshold)
        )
        n = len(results)

        financial = [r.financial_impact for r in results]
        operational = [r.operational_impact_hours for r in results]
        recovery = [r.recovery_time_hours for r in results]

        financial_stats = describe(financial)
        var_95 = percentile(financial, VAR_PERCENTILE)

        risk_metrics = RiskMetrics(
            value_at_risk_95=var_95,
            expected_shortfall=expected_shortfall(financial, VAR_PERCENTILE),
            maximum_loss=max(financial),
            probability_of_severe_impact=sum(1 for v in financial if v > var_95) / n,
            risk_appetite_breach_probability=sum(1 for v in financial if v > threshold) / n,
        )

        return SimulationResult(
            scenario_id=scenario_id,
            iterations=n,
            confidence_interval=self.confidence_interval,
            raw_results=list(results),
            financial_impact=financial_stats,
            operational_impact=describe(operational),
            recovery_time=describe(recovery),
            risk_metrics=risk_metrics,
            risk_appetite_threshold=threshold,
            generated_at=(now or utc_now()).isoformat(),
        )

    # ── Advisory ───────────────────────────────────────────────────────

    def recommend(self, result: SimulationResult) -> list[str]:
        """Advisory notes for a completed simulation."""
        metrics = result.risk_metrics
        recommendations: list[str] = []

        if metrics.probability_of_severe_impact > SEVERE_IMPACT_ADVISORY:
            recommendations.append(
                "Consider enhancing risk mitigation strategies due to high severe impact probability"
            )
        if metrics.value_at_risk_95 > VAR95_ADVISORY:
            recommendations.append(
                "Review risk appetite thresholds - VaR95 exceeds typical tolerance levels"
            )
        if metrics.risk_appetite_breach_probability > APPETITE_BREACH_ADVISORY:
            recommendations.append(
                "High probability of risk appetite breach - consider preventive controls"
            )
        return recommendations
