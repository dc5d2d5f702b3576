"""
Risk Correlation Engine.

Detects risk categories whose incidents cluster together in time and
infers which side tends to come first.

Algorithm, per ordered category pair (A, B):
1. Every incident in A is compared with every incident in B
2. Pairs less than 24h apart count as a co-occurrence
3. A signed causality counter goes +1 when A's incident is earlier, -1 when B's is
4. strength = co-occurrences / min(|A|, |B|), capped at 1; kept when > 0.3
5. causality = cause / effect when |counter| > 0.6 × co-occurrences, else bidirectional

Network effect for a primary category = n_correlated × avg_strength / 5,
capped at 1; cascade risk when it exceeds 0.7.

The comparison is a full O(|A|·|B|) scan, fine for the hundreds of
incidents a 180-day lookback holds.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

import structlog

from riskanalytics.engine.records import IncidentRecord, as_utc

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

LOOKBACK_DAYS: int = 180
CO_OCCURRENCE_WINDOW_HOURS: float = 24.0
MIN_CORRELATION_STRENGTH: float = 0.3   # Pairs kept only above this
CAUSALITY_DOMINANCE: float = 0.6        # |counter| share needed to claim direction
NETWORK_SCALE: float = 5.0
CASCADE_THRESHOLD: float = 0.7


@dataclass(frozen=True)
class PairCorrelation:
    """Raw temporal correlation between two categories."""
    primary: str
    other: str
    co_occurrences: int
    causality_score: int       # >0: primary tends to precede other
    strength: float            # 0-1
    causality: str             # cause | effect | bidirectional


@dataclass(frozen=True)
class CorrelatedRisk:
    category: str
    correlation_strength: float
    causality: str


@dataclass(frozen=True)
class CorrelationRecord:
    """How strongly one category's incidents co-occur with the others."""
    primary_category: str
    correlated_risks: list[CorrelatedRisk]
    network_effect: float      # 0-1
    cascade_risk: bool


class CorrelationAnalyzer:
    """
    Temporal co-occurrence analysis across incident categories.
    """

    def __init__(
        self,
        lookback_days: int = LOOKBACK_DAYS,
        window_hours: float = CO_OCCURRENCE_WINDOW_HOURS,
        min_strength: float = MIN_CORRELATION_STRENGTH,
        causality_dominance: float = CAUSALITY_DOMINANCE,
        cascade_threshold: float = CASCADE_THRESHOLD,
    ):
        self.lookback_days = lookback_days
        self.window = timedelta(hours=window_hours)
        self.min_strength = min_strength
        self.causality_dominance = causality_dominance
        self.cascade_threshold = cascade_threshold

    def within_lookback(
        self,
        incidents: Sequence[IncidentRecord],
        as_of: Optional[datetime] = None,
        lookback_days: Optional[int] = None,
    ) -> list[IncidentRecord]:
        """
        Drop uncategorized incidents and those older than the lookback window.

        The window ends at ``as_of``, or at the newest incident when no
        reference time is given.
        """
        categorized = [i for i in incidents if i.category]
        if not categorized:
            return []

        days = self.lookback_days if lookback_days is None else lookback_days
        end = as_utc(as_of) if as_of is not None else max(as_utc(i.reported_at) for i in categorized)
        start = end - timedelta(days=days)
        return [i for i in categorized if start <= as_utc(i.reported_at) <= end]

    def correlate_pair(
        self,
        primary: str,
        other: str,
        primary_incidents: Sequence[IncidentRecord],
        other_incidents: Sequence[IncidentRecord],
    ) -> PairCorrelation:
        """Temporal correlation and causal direction for one ordered pair."""
        co_occurrences = 0
        causality_score = 0

        other_times = [as_utc(i.reported_at) for i in other_incidents]
        for incident in primary_incidents:
            t1 = as_utc(incident.reported_at)
            for t2 in other_times:
                if abs(t2 - t1) < self.window:
                    co_occurrences += 1
                    if t1 < t2:
                        causality_score += 1
                    elif t2 < t1:
                        causality_score -= 1

        max_possible = min(len(primary_incidents), len(other_incidents))
        # One incident can match several in a burst
        strength = min(1.0, co_occurrences / max_possible) if max_possible > 0 else 0.0

        causality = "bidirectional"
        if abs(causality_score) > co_occurrences * self.causality_dominance:
            causality = "cause" if causality_score > 0 else "effect"

        return PairCorrelation(
            primary=primary,
            other=other,
            co_occurrences=co_occurrences,
            causality_score=causality_score,
            strength=strength,
            causality=causality,
        )

    def network_effect(self, correlated: Sequence[CorrelatedRisk]) -> float:
        """n × average strength / 5, capped at 1."""
        if not correlated:
            return 0.0
        avg_strength = sum(c.correlation_strength for c in correlated) / len(correlated)
        return min(1.0, len(correlated) * avg_strength / NETWORK_SCALE)

    def analyze_correlations(
        self,
        incidents: Sequence[IncidentRecord],
        as_of: Optional[datetime] = None,
        lookback_days: Optional[int] = None,
    ) -> list[CorrelationRecord]:
        """
        One CorrelationRecord per category that has another category to compare with.

        Categories keep the order in which they first appear in the input.
        """
        scoped = self.within_lookback(incidents, as_of, lookback_days)

        by_category: dict[str, list[IncidentRecord]] = {}
        for incident in scoped:
            by_category.setdefault(incident.category, []).append(incident)

        categories = list(by_category)
        if len(categories) < 2:
            return []

        records: list[CorrelationRecord] = []
        for primary in categories:
            correlated: list[CorrelatedRisk] = []
            for other in categories:
                if other == primary:
                    continue
                pair = self.correlate_pair(primary, other, by_category[primary], by_category[other])
                if pair.strength > self.min_strength:
                    correlated.append(CorrelatedRisk(
                        category=other,
                        correlation_strength=pair.strength,
                        causality=pair.causality,
                    ))

            effect = self.network_effect(correlated)
            records.append(CorrelationRecord(
                primary_category=primary,
                correlated_risks=correlated,
                network_effect=effect,
                cascade_risk=effect > self.cascade_threshold,
            ))

        logger.info(
            "correlation_analysis_completed",
            n_incidents=len(scoped),
            n_categories=len(categories),
            n_cascade=sum(1 for r in records if r.cascade_risk),
        )
        return records
