"""Pydantic schemas for Monte Carlo simulation requests."""

from typing import Optional

from pydantic import BaseModel, Field

from riskanalytics.engine.monte_carlo import (
    ImpactFactors,
    ProbabilityDistributions,
    ScenarioConfig,
    StressTesting,
)


class ImpactFactorsIn(BaseModel):
    financial_impact_range: list[float]
    operational_impact_hours: list[float]
    recovery_time_hours: list[float]


class ProbabilityDistributionsIn(BaseModel):
    occurrence_probability: float = 1.0
    severity_distribution: str = "uniform"
    recovery_distribution: str = "uniform"
    correlation_factors: dict[str, float] = Field(default_factory=dict)


class StressTestingIn(BaseModel):
    stress_multiplier: float = 1.0
    adverse_conditions: list[str] = Field(default_factory=list)


class ScenarioConfigIn(BaseModel):
    """
    Scenario definition as sent by clients.

    Range shape and ordering are checked by the simulator so that every
    malformed scenario fails with the same InvalidConfigError.
    """
    scenario_id: str = Field(min_length=1, max_length=200)
    impact_factors: ImpactFactorsIn
    probability_distributions: ProbabilityDistributionsIn = Field(
        default_factory=ProbabilityDistributionsIn
    )
    stress_testing: Optional[StressTestingIn] = None

    def to_config(self) -> ScenarioConfig:
        factors = self.impact_factors
        dists = self.probability_distributions
        return ScenarioConfig(
            scenario_id=self.scenario_id,
            impact_factors=ImpactFactors(
                financial_impact_range=tuple(factors.financial_impact_range),
                operational_impact_hours=tuple(factors.operational_impact_hours),
                recovery_time_hours=tuple(factors.recovery_time_hours),
            ),
            probability_distributions=ProbabilityDistributions(
                occurrence_probability=dists.occurrence_probability,
                severity_distribution=dists.severity_distribution,
                recovery_distribution=dists.recovery_distribution,
                correlation_factors=dict(dists.correlation_factors),
            ),
            stress_testing=(
                StressTesting(
                    stress_multiplier=self.stress_testing.stress_multiplier,
                    adverse_conditions=tuple(self.stress_testing.adverse_conditions),
                )
                if self.stress_testing is not None
                else None
            ),
        )


class SimulationRequest(BaseModel):
    config: ScenarioConfigIn
    iterations: Optional[int] = Field(
        default=None,
        description="Defaults to SIMULATION_DEFAULT_ITERATIONS; must be positive",
    )
    risk_appetite_threshold: Optional[float] = None
    seed: Optional[int] = None
    include_iterations: bool = Field(
        default=False,
        description="Return the raw iteration list (large for big runs)",
    )
