"""
Unified Risk Analytics Engine — single entry point for the four algorithms.

It wires each component from Settings and exposes:
1. run_simulation       — Monte Carlo stress test of a scenario
2. detect_anomaly       — z-score deviation of a metric vs. its history
   detect_count_anomaly — spike in events per day
3. analyze_correlations — temporal co-occurrence across risk categories
4. score_risk           — composite, trend-aware category score

Plus supplements: regulatory scenario templates, simulation
recommendations, incident-spike detection, the batch anomaly scan,
all-category scoring, dynamic score adjustments and forward predictions.

Holds configuration only. Nothing carries over between calls, and
results are fully built before they are returned so the caller can
persist them in one write.
"""

from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence, Union

import structlog

from riskanalytics.config import Settings, settings as default_settings
from riskanalytics.engine.anomaly import AnomalyDetector, AnomalyRecord, HistoricalSeries
from riskanalytics.engine.correlation import CorrelationAnalyzer, CorrelationRecord
from riskanalytics.engine.forecast import RiskForecaster, RiskPrediction
from riskanalytics.engine.monte_carlo import ScenarioConfig, ScenarioSimulator, SimulationResult
from riskanalytics.engine.records import (
    ControlTestRecord,
    IncidentRecord,
    KRIMeasurement,
    OrganizationProfile,
)
from riskanalytics.engine.sampling import DistributionSampler
from riskanalytics.engine.scenarios import ScenarioTemplate, list_templates
from riskanalytics.engine.scoring import (
    DynamicRiskAdjustment,
    IntelligentRiskScore,
    MarketConditions,
    PredictiveRiskScorer,
)

logger = structlog.get_logger(__name__)


class RiskAnalyticsEngine:
    """
    Production risk analytics engine.

    Orchestrates: Simulation · Anomaly · Correlation · Scoring · Forecast
    """

    def __init__(self, config: Optional[Settings] = None, sampler: Optional[DistributionSampler] = None):
        cfg = config or default_settings
        self.settings = cfg
        self.simulator = self._build_simulator(
            sampler or DistributionSampler(seed=cfg.simulation_seed)
        )
        self.anomaly = AnomalyDetector(
            min_history=cfg.anomaly_min_history,
            z_medium=cfg.anomaly_z_medium,
            z_high=cfg.anomaly_z_high,
            z_critical=cfg.anomaly_z_critical,
            spike_multiplier=cfg.count_spike_multiplier,
            critical_multiplier=cfg.count_critical_multiplier,
            recent_days=cfg.anomaly_recent_days,
            baseline_days=cfg.anomaly_baseline_days,
        )
        self.correlation = CorrelationAnalyzer(
            lookback_days=cfg.correlation_lookback_days,
            window_hours=cfg.correlation_window_hours,
            min_strength=cfg.correlation_min_strength,
            causality_dominance=cfg.causality_dominance,
            cascade_threshold=cfg.cascade_threshold,
        )
        self.scorer = PredictiveRiskScorer(
            weights={
                "incident": cfg.score_weight_incident,
                "kri": cfg.score_weight_kri,
                "control": cfg.score_weight_control,
            },
            historical_cutoff_days=cfg.historical_cutoff_days,
            recency_window_days=cfg.recency_window_days,
            trend_threshold=cfg.trend_threshold,
            adjustment_validity_days=cfg.adjustment_validity_days,
        )
        self.forecaster = RiskForecaster()

    def _build_simulator(self, sampler: DistributionSampler) -> ScenarioSimulator:
        return ScenarioSimulator(
            sampler=sampler,
            operational_cost_per_hour=self.settings.operational_cost_per_hour,
            confidence_interval=self.settings.simulation_confidence_interval,
            risk_appetite_threshold=self.settings.risk_appetite_threshold,
            max_iterations=self.settings.simulation_max_iterations,
        )

    # ── Monte Carlo ────────────────────────────────────────────────────

    def run_simulation(
        self,
        config: ScenarioConfig,
        iterations: Optional[int] = None,
        risk_appetite_threshold: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> SimulationResult:
        """
        Run a scenario. A seed gives this call its own generator, so
        seeded runs reproduce exactly even when requests overlap.
        """
        n = self.settings.simulation_default_iterations if iterations is None else iterations
        simulator = self.simulator if seed is None else self._build_simulator(DistributionSampler(seed=seed))
        return simulator.run_simulation(config, n, risk_appetite_threshold)

    def recommend(self, result: SimulationResult) -> list[str]:
        return self.simulator.recommend(result)

    def scenario_templates(self) -> list[ScenarioTemplate]:
        return list_templates()

    # ── Anomaly detection ──────────────────────────────────────────────

    def detect_anomaly(
        self,
        current_value: float,
        history: Union[HistoricalSeries, Sequence[float]],
        metric: Optional[str] = None,
    ) -> Optional[AnomalyRecord]:
        return self.anomaly.detect_anomaly(current_value, history, metric)

    def detect_count_anomaly(
        self,
        daily_counts: Union[Mapping, Sequence[int]],
        metric: str = "Daily Incident Count",
    ) -> Optional[AnomalyRecord]:
        return self.anomaly.detect_count_anomaly(daily_counts, metric)

    def detect_incident_spike(self, incidents: Iterable[IncidentRecord]) -> Optional[AnomalyRecord]:
        return self.anomaly.detect_incident_spike(incidents)

    def detect_anomalies(
        self,
        kri_measurements: Sequence[KRIMeasurement],
        incidents: Sequence[IncidentRecord],
        as_of: Optional[datetime] = None,
    ) -> list[AnomalyRecord]:
        return self.anomaly.detect_anomalies(kri_measurements, incidents, as_of)

    # ── Correlation ────────────────────────────────────────────────────

    def analyze_correlations(
        self,
        incidents: Sequence[IncidentRecord],
        as_of: Optional[datetime] = None,
        lookback_days: Optional[int] = None,
    ) -> list[CorrelationRecord]:
        return self.correlation.analyze_correlations(incidents, as_of, lookback_days)

    # ── Scoring & forecast ─────────────────────────────────────────────

    def score_risk(
        self,
        category: str,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
        control_tests: Sequence[ControlTestRecord],
        organization: Optional[OrganizationProfile] = None,
        as_of: Optional[datetime] = None,
    ) -> IntelligentRiskScore:
        return self.scorer.score_risk(
            category, incidents, kri_measurements, control_tests,
            organization=organization, as_of=as_of,
        )

    def score_all(
        self,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement],
        control_tests: Sequence[ControlTestRecord],
        organization: Optional[OrganizationProfile] = None,
        as_of: Optional[datetime] = None,
    ) -> list[IntelligentRiskScore]:
        return self.scorer.score_all(
            incidents, kri_measurements, control_tests,
            organization=organization, as_of=as_of,
        )

    def dynamic_adjustments(
        self,
        scores: Sequence[IntelligentRiskScore],
        market: MarketConditions,
        regulatory_changes: Sequence[str] = (),
        as_of: Optional[datetime] = None,
    ) -> list[DynamicRiskAdjustment]:
        return self.scorer.dynamic_adjustments(scores, market, regulatory_changes, as_of)

    def predict(
        self,
        incidents: Sequence[IncidentRecord],
        kri_measurements: Sequence[KRIMeasurement] = (),
        time_horizon: str = "month",
        as_of: Optional[datetime] = None,
    ) -> list[RiskPrediction]:
        return self.forecaster.predict(incidents, kri_measurements, time_horizon, as_of)
