"""
Pytest Configuration and Fixtures.

Provides reusable fixtures and record factories for testing the
risk analytics engine and API.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Set testing mode before importing app
os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("SIMULATION_SEED", None)

from riskanalytics.engine.monte_carlo import (  # noqa: E402
    ImpactFactors,
    ProbabilityDistributions,
    ScenarioConfig,
    StressTesting,
)
from riskanalytics.engine.records import (  # noqa: E402
    ControlTestRecord,
    IncidentRecord,
    KRIMeasurement,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def incident(category: str, hours_ago: float = 0.0, severity: str = "medium", **kwargs) -> IncidentRecord:
    return IncidentRecord(
        category=category,
        severity=severity,
        reported_at=NOW - timedelta(hours=hours_ago),
        **kwargs,
    )


def kri(
    value: float,
    days_ago: float = 0.0,
    breach_level: str = "none",
    name: str = "Failed Logins",
    category: str = "cyber",
) -> KRIMeasurement:
    return KRIMeasurement(
        kri_name=name,
        actual_value=value,
        measured_at=NOW - timedelta(days=days_ago),
        breach_level=breach_level,
        category=category,
    )


def control(rating: float, description: str = "cyber access review", days_ago: float = 0.0) -> ControlTestRecord:
    return ControlTestRecord(
        effectiveness_rating=rating,
        test_description=description,
        tested_at=NOW - timedelta(days=days_ago),
    )


def scenario(
    financial=(1000.0, 2000.0),
    operational=(1.0, 10.0),
    recovery=(2.0, 4.0),
    multiplier=None,
    probability: float = 1.0,
    scenario_id: str = "scn-test",
) -> ScenarioConfig:
    return ScenarioConfig(
        scenario_id=scenario_id,
        impact_factors=ImpactFactors(
            financial_impact_range=financial,
            operational_impact_hours=operational,
            recovery_time_hours=recovery,
        ),
        probability_distributions=ProbabilityDistributions(occurrence_probability=probability),
        stress_testing=StressTesting(stress_multiplier=multiplier) if multiplier is not None else None,
    )


@pytest.fixture
def now() -> datetime:
    return NOW
