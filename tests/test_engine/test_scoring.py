"""
Predictive Risk Scorer Tests.
"""

from datetime import timedelta

import pytest

from riskanalytics.engine.records import ControlTestRecord, OrganizationProfile
from riskanalytics.engine.scoring import (
    DEFAULT_CATEGORIES,
    MarketConditions,
    PredictiveRiskScorer,
    identify_categories,
    severity_weight,
)
from riskanalytics.exceptions import InvalidConfigError, InvalidInputError
from tests.conftest import NOW, control, incident, kri


class TestSubScores:
    def setup_method(self):
        self.scorer = PredictiveRiskScorer()

    def test_defaults_without_data(self):
        assert self.scorer.incident_score([]) == 2.0
        assert self.scorer.kri_score([]) == 5.0
        assert self.scorer.control_score([], "cyber") == 5.0

    def test_incident_score(self):
        """Ten high incidents: avg weight 3 × frequency 1.0."""
        incidents = [incident("cyber", severity="high") for _ in range(10)]
        assert self.scorer.incident_score(incidents) == pytest.approx(3.0)

    def test_frequency_multiplier_capped(self):
        incidents = [incident("cyber", severity="critical") for _ in range(50)]
        assert self.scorer.incident_score(incidents) == pytest.approx(8.0)

    def test_unknown_severity_weight(self):
        assert severity_weight("catastrophic") == 2
        assert severity_weight("CRITICAL") == 4

    def test_kri_score(self):
        readings = [kri(1, breach_level="critical"), kri(1, breach_level="warning"), kri(1)]
        assert self.scorer.kri_score(readings) == pytest.approx((8 + 6 + 3) / 3)

    def test_control_score_inverts_effectiveness(self):
        tests = [control(8.0, "Cyber access review"), control(6.0, "quarterly CYBER drill")]
        assert self.scorer.control_score(tests, "cyber") == pytest.approx(3.0)

    def test_irrelevant_controls_ignored(self):
        tests = [control(9.0, "vendor due diligence")]
        assert self.scorer.relevant_controls(tests, "cyber") == []
        assert self.scorer.control_score(tests, "cyber") == 5.0

    def test_findings_also_matched(self):
        tests = [ControlTestRecord(effectiveness_rating=9.0, test_description="annual review", findings="Cyber gaps found")]
        assert self.scorer.control_score(tests, "cyber") == pytest.approx(1.0)


class TestWeights:
    def test_defaults_sum_to_one(self):
        assert sum(PredictiveRiskScorer().weights.values()) == pytest.approx(1.0)

    def test_normalized(self):
        scorer = PredictiveRiskScorer(weights={"incident": 1, "kri": 1, "control": 2})
        assert scorer.weights == pytest.approx({"incident": 0.25, "kri": 0.25, "control": 0.5})

    def test_unknown_weight(self):
        with pytest.raises(InvalidConfigError):
            PredictiveRiskScorer(weights={"sentiment": 0.5})

    def test_negative_weight(self):
        with pytest.raises(InvalidConfigError):
            PredictiveRiskScorer(weights={"kri": -0.1})

    def test_all_zero(self):
        with pytest.raises(InvalidConfigError):
            PredictiveRiskScorer(weights={"incident": 0, "kri": 0, "control": 0})


class TestScoreRisk:
    def setup_method(self):
        self.scorer = PredictiveRiskScorer()

    def test_no_data_gives_default_composite(self):
        score = self.scorer.score_risk("cyber", [], [], [], as_of=NOW)
        assert score.current_score == pytest.approx(3.8)
        assert score.historical_score == pytest.approx(3.8)
        assert score.trend == "stable"
        assert score.confidence == 0.0
        assert score.risk_id == "risk-cyber"
        assert score.risk_name == "cyber Risk"

    def test_weighted_composite(self):
        incidents = [incident("cyber", hours_ago=1, severity="high") for _ in range(10)]
        kris = [kri(10, breach_level="critical"), kri(12, breach_level="critical")]
        controls = [control(8.0)]
        score = self.scorer.score_risk("cyber", incidents, kris, controls, as_of=NOW)
        # 0.4 × 3 + 0.4 × 8 + 0.2 × 2
        assert score.current_score == pytest.approx(4.8)
        assert score.factors.incident.contribution == pytest.approx(1.2)
        assert score.factors.kri.contribution == pytest.approx(3.2)
        assert score.factors.control.contribution == pytest.approx(0.4)
        assert score.trend == "increasing"
        assert score.n_data_points == 13

    def test_score_bounded(self):
        incidents = [incident("cyber", severity="critical") for _ in range(100)]
        kris = [kri(99, breach_level="critical") for _ in range(10)]
        controls = [control(0.0)]
        score = self.scorer.score_risk("cyber", incidents, kris, controls, as_of=NOW)
        assert 0.0 <= score.current_score <= 10.0

    def test_all_low_to_all_critical_never_lowers_score(self):
        kris = [kri(3.0, breach_level="warning")]
        controls = [control(7.0)]
        low = [incident("cyber", hours_ago=h, severity="low") for h in range(5)]
        critical = [incident("cyber", hours_ago=h, severity="critical") for h in range(5)]
        before = self.scorer.score_risk("cyber", low, kris, controls, as_of=NOW)
        after = self.scorer.score_risk("cyber", critical, kris, controls, as_of=NOW)
        assert after.current_score > before.current_score

    def test_decreasing_trend_is_explained_as_improving(self):
        old = [incident("cyber", hours_ago=24 * 40, severity="critical") for _ in range(20)]
        recent = [incident("cyber", hours_ago=1, severity="low") for _ in range(20)]
        score = self.scorer.score_risk("cyber", old + recent, [], [], as_of=NOW)
        # historical: 0.4 × 8 + 2 + 1 = 6.2, current: 0.4 × 5 + 2 + 1 = 5.0
        assert score.historical_score == pytest.approx(6.2)
        assert score.current_score == pytest.approx(5.0)
        assert score.trend == "decreasing"
        assert "improving" in score.explanation

    def test_explanation_names_dominant_factor(self):
        score = self.scorer.score_risk("cyber", [], [], [], as_of=NOW)
        assert score.factors.dominant.key == "kri"
        assert "key risk indicator performance" in score.explanation
        assert score.explanation.startswith("cyber risk score of 3.8")

    def test_confidence(self):
        """20 fresh, identical incidents: 1.0 × 1.0 × (1.0 + 0.5) / 2."""
        incidents = [incident("cyber", severity="medium") for _ in range(20)]
        score = self.scorer.score_risk("cyber", incidents, [], [], as_of=NOW)
        assert score.confidence == pytest.approx(0.75)

    def test_stale_data_has_no_confidence(self):
        incidents = [incident("cyber", hours_ago=24 * 120) for _ in range(20)]
        score = self.scorer.score_risk("cyber", incidents, [], [], as_of=NOW)
        assert score.confidence == 0.0

    def test_confidence_bounded(self):
        incidents = [incident("cyber") for _ in range(200)]
        kris = [kri(5.0) for _ in range(200)]
        score = self.scorer.score_risk("cyber", incidents, kris, [], as_of=NOW)
        assert 0.0 <= score.confidence <= 1.0


class TestTrend:
    def setup_method(self):
        self.scorer = PredictiveRiskScorer()

    @pytest.mark.parametrize(
        "current, historical, expected",
        [(5.5, 5.0, "stable"), (5.6, 5.0, "increasing"), (4.4, 5.0, "decreasing"), (3.0, 0.0, "stable")],
    )
    def test_thresholds(self, current, historical, expected):
        assert self.scorer.trend(current, historical) == expected


class TestBenchmark:
    def setup_method(self):
        self.scorer = PredictiveRiskScorer()

    def test_known_sector(self):
        bench = self.scorer.benchmark("cyber", OrganizationProfile(sector="Banking", size="large"))
        assert bench.industry == 7.1
        assert bench.size == pytest.approx(5.4)
        assert bench.region == pytest.approx(6.745, abs=1e-3)

    def test_defaults(self):
        bench = self.scorer.benchmark("cyber")
        assert bench.industry == 6.0
        assert bench.size == 6.0
        assert bench.region == pytest.approx(5.7)


class TestScoreAll:
    def setup_method(self):
        self.scorer = PredictiveRiskScorer()

    def test_identify_categories(self):
        incidents = [incident("cyber"), incident("compliance"), incident("cyber")]
        kris = [kri(1, category="liquidity")]
        assert identify_categories(incidents, kris) == ["cyber", "compliance", "liquidity"]

    def test_identify_defaults(self):
        assert identify_categories([], []) == list(DEFAULT_CATEGORIES)

    def test_scores_each_category_with_its_records(self):
        incidents = [incident("cyber", severity="critical") for _ in range(10)]
        incidents += [incident("compliance", severity="low") for _ in range(10)]
        scores = self.scorer.score_all(incidents, [], [], as_of=NOW)
        by_category = {s.category: s for s in scores}
        assert list(by_category) == ["cyber", "compliance"]
        assert by_category["cyber"].factors.incident.current_value == pytest.approx(4.0)
        assert by_category["compliance"].factors.incident.current_value == pytest.approx(1.0)


class TestDynamicAdjustments:
    """Score uplift for market volatility and pending regulatory change."""

    def setup_method(self):
        self.scorer = PredictiveRiskScorer()
        self.volatile = MarketConditions(volatility="high", interest_rates="rising")
        self.calm = MarketConditions()
        self.changes = ["New cybersecurity reporting requirements"]

    def test_both_uplifts_compound(self):
        """4.0 × 1.1 × 1.05 = 4.62."""
        adjustment = self.scorer.dynamic_adjustment("risk-cyber", 4.0, self.volatile, self.changes, as_of=NOW)
        assert adjustment.adjusted_score == 4.6
        assert adjustment.original_score == 4.0
        assert [f.factor for f in adjustment.adjustment_factors] == [
            "High Market Volatility",
            "Recent Regulatory Changes",
        ]
        assert [f.impact for f in adjustment.adjustment_factors] == [0.1, 0.05]
        assert [f.timeframe for f in adjustment.adjustment_factors] == ["3 months", "6 months"]

    def test_volatility_only(self):
        adjustment = self.scorer.dynamic_adjustment("risk-cyber", 4.0, self.volatile, as_of=NOW)
        assert adjustment.adjusted_score == 4.4
        assert len(adjustment.adjustment_factors) == 1

    def test_capped_at_ten(self):
        adjustment = self.scorer.dynamic_adjustment("risk-cyber", 9.5, self.volatile, self.changes, as_of=NOW)
        assert adjustment.adjusted_score == 10.0

    def test_calm_conditions_leave_score(self):
        adjustment = self.scorer.dynamic_adjustment("risk-cyber", 4.0, self.calm, as_of=NOW)
        assert adjustment.adjusted_score == 4.0
        assert adjustment.adjustment_factors == ()

    def test_context_and_validity(self):
        adjustment = self.scorer.dynamic_adjustment("risk-ops", 3.0, self.volatile, self.changes, as_of=NOW)
        assert adjustment.context.business_environment == "high"
        assert adjustment.context.market_conditions == "Interest rates rising"
        assert adjustment.context.regulatory_changes == tuple(self.changes)
        assert adjustment.valid_until == (NOW + timedelta(days=90)).isoformat()

    def test_invalid_score_rejected(self):
        with pytest.raises(InvalidInputError):
            self.scorer.dynamic_adjustment("risk-cyber", float("nan"), self.volatile)
        with pytest.raises(InvalidInputError):
            self.scorer.dynamic_adjustment("risk-cyber", -1.0, self.volatile)

    def test_batch_returns_only_moved_scores(self):
        scores = self.scorer.score_all([incident("cyber"), incident("compliance")], [kri(5.0)], [], as_of=NOW)
        assert self.scorer.dynamic_adjustments(scores, self.calm, as_of=NOW) == []

        adjusted = self.scorer.dynamic_adjustments(scores, self.volatile, self.changes, as_of=NOW)
        assert [a.risk_id for a in adjusted] == ["risk-cyber", "risk-compliance"]
        assert all(a.adjusted_score > a.original_score for a in adjusted)
