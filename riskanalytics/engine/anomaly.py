"""
Statistical Anomaly Detector.

Two detectors:
- Value anomalies: z-score of a current observation against the mean and
  population std-dev of its own history. Needs at least 5 history points;
  with fewer there is no baseline and the answer is "no anomaly" (None).
- Count anomalies: flags a day whose event count exceeds 3× the mean
  daily count (critical above 5×).

The batch pass (detect_anomalies) runs both over an organization's
records: every KRI reading from the last 7 days is compared against that
KRI's own readings from the last 90 days, and the last 7 days of
incidents are checked for a daily spike.

The std-dev used in the z-score is floored at 1, so a flat baseline
(σ = 0) still yields a finite score.
"""

import math
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping, Optional, Sequence, Union

import structlog

from riskanalytics.engine.records import IncidentRecord, KRIMeasurement, as_utc, utc_now
from riskanalytics.engine.stats import mean, standard_deviation
from riskanalytics.exceptions import InvalidInputError

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

MIN_HISTORY: int = 5
Z_MEDIUM: float = 2.0       # |z| above this → anomaly
Z_HIGH: float = 2.5
Z_CRITICAL: float = 3.0
Z_SCORE_SCALE: float = 4.0  # anomaly_score = min(1, z / 4)
SIGMA_FLOOR: float = 1.0

COUNT_SPIKE_MULTIPLIER: float = 3.0
COUNT_CRITICAL_MULTIPLIER: float = 5.0

RECENT_WINDOW_DAYS: int = 7       # readings and incidents checked by the batch pass
BASELINE_WINDOW_DAYS: int = 90    # history each KRI reading is compared against

VALUE_INVESTIGATIONS: tuple[str, ...] = (
    "Review data collection methodology",
    "Investigate underlying business processes",
    "Check for external factors affecting this metric",
)

COUNT_INVESTIGATIONS: tuple[str, ...] = (
    "Review incident categorization accuracy",
    "Investigate potential system issues",
    "Check for coordinated events or external factors",
)


@dataclass(frozen=True)
class HistoricalPoint:
    timestamp: datetime
    value: float


@dataclass(frozen=True)
class HistoricalSeries:
    """Ordered (timestamp, value) observations of one metric, oldest first."""
    metric: str
    points: tuple[HistoricalPoint, ...]

    @property
    def values(self) -> list[float]:
        return [p.value for p in self.points]

    def __len__(self) -> int:
        return len(self.points)

    @classmethod
    def from_pairs(cls, metric: str, pairs: Iterable[tuple[datetime, float]]) -> "HistoricalSeries":
        """Build a series from (timestamp, value) pairs in any order."""
        points = sorted(
            (HistoricalPoint(timestamp=as_utc(ts), value=float(v)) for ts, v in pairs),
            key=lambda p: p.timestamp,
        )
        return cls(metric=metric, points=tuple(points))


@dataclass(frozen=True)
class ExpectedRange:
    lower: float
    upper: float


@dataclass(frozen=True)
class AnomalyRecord:
    """A detected deviation. Only produced when something is abnormal."""
    metric: str
    value: float
    expected_range: ExpectedRange
    anomaly_score: float          # 0-1
    severity: str                 # medium | high | critical
    explanation: str
    suggested_investigation: tuple[str, ...]
    z_score: Optional[float] = None


def daily_counts(incidents: Iterable[IncidentRecord]) -> dict[date, int]:
    """Group incidents into UTC calendar-day counts."""
    counts: Counter[date] = Counter()
    for incident in incidents:
        counts[as_utc(incident.reported_at).date()] += 1
    return dict(sorted(counts.items()))


class AnomalyDetector:
    """
    Z-score and count-spike anomaly detection.

    Holds thresholds only; every call is independent.
    """

    def __init__(
        self,
        min_history: int = MIN_HISTORY,
        z_medium: float = Z_MEDIUM,
        z_high: float = Z_HIGH,
        z_critical: float = Z_CRITICAL,
        spike_multiplier: float = COUNT_SPIKE_MULTIPLIER,
        critical_multiplier: float = COUNT_CRITICAL_MULTIPLIER,
        recent_days: int = RECENT_WINDOW_DAYS,
        baseline_days: int = BASELINE_WINDOW_DAYS,
    ):
        self.min_history = min_history
        self.z_medium = z_medium
        self.z_high = z_high
        self.z_critical = z_critical
        self.spike_multiplier = spike_multiplier
        self.critical_multiplier = critical_multiplier
        self.recent_days = recent_days
        self.baseline_days = baseline_days

    def classify(self, z: float) -> Optional[str]:
        """Severity band for an absolute z-score, None at or below the medium threshold."""
        if z > self.z_critical:
            return "critical"
        if z > self.z_high:
            return "high"
        if z > self.z_medium:
            return "medium"
        return None

    def detect_anomaly(
        self,
        current: float,
        history: Union[HistoricalSeries, Sequence[float]],
        metric: Optional[str] = None,
    ) -> Optional[AnomalyRecord]:
        """
        Compare ``current`` against its history.

        Returns None when history is shorter than the minimum or the
        deviation is within 2σ. Raises InvalidInputError on non-finite input
        or when the baseline statistics overflow the float range.
        """
        if isinstance(history, HistoricalSeries):
            values = history.values
            metric = metric or history.metric
        else:
            values = [float(v) for v in history]
        metric = metric or "Unknown KRI"

        if not math.isfinite(current) or not all(math.isfinite(v) for v in values):
            raise InvalidInputError(
                "Anomaly detection requires finite values",
                details={"metric": metric},
            )

        if len(values) < self.min_history:
            logger.debug("anomaly_baseline_insufficient", metric=metric, n_history=len(values))
            return None

        mu = mean(values)
        sigma = standard_deviation(values)
        z = abs(current - mu) / max(sigma, SIGMA_FLOOR)
        if not all(math.isfinite(v) for v in (mu, sigma, z, mu - 2 * sigma, mu + 2 * sigma)):
            raise InvalidInputError(
                "Values are too large to evaluate: baseline statistics overflow",
                details={"metric": metric},
            )

        severity = self.classify(z)
        if severity is None:
            return None

        record = AnomalyRecord(
            metric=metric,
            value=current,
            expected_range=ExpectedRange(lower=mu - 2 * sigma, upper=mu + 2 * sigma),
            anomaly_score=min(1.0, z / Z_SCORE_SCALE),
            severity=severity,
            explanation=(
                f"Value {current:g} is {z:.1f} standard deviations from the expected range"
            ),
            suggested_investigation=VALUE_INVESTIGATIONS,
            z_score=round(z, 4),
        )
        logger.info(
            "anomaly_detected",
            metric=metric,
            value=current,
            z_score=record.z_score,
            severity=severity,
        )
        return record

    def detect_count_anomaly(
        self,
        counts: Union[Mapping[date, int], Sequence[int]],
        metric: str = "Daily Incident Count",
    ) -> Optional[AnomalyRecord]:
        """
        Flag a spike in per-day event counts.

        Anomalous when the busiest day exceeds 3× the mean daily count.
        Needs only one day of data (a single day can never exceed its own mean).
        """
        values = list(counts.values()) if isinstance(counts, Mapping) else list(counts)
        if not values:
            return None
        if any(c < 0 for c in values):
            raise InvalidInputError("Daily counts cannot be negative", details={"metric": metric})

        mu = mean(values)
        peak = max(values)
        if mu <= 0 or peak <= mu * self.spike_multiplier:
            return None

        severity = "critical" if peak > mu * self.critical_multiplier else "high"
        record = AnomalyRecord(
            metric=metric,
            value=float(peak),
            expected_range=ExpectedRange(lower=0.0, upper=mu * 2),
            anomaly_score=min(1.0, peak / (mu * Z_SCORE_SCALE)),
            severity=severity,
            explanation=f"Unusual spike in daily incidents: {peak} vs expected {mu:.1f}",
            suggested_investigation=COUNT_INVESTIGATIONS,
        )
        logger.info(
            "count_anomaly_detected",
            metric=metric,
            peak=peak,
            mean=round(mu, 2),
            severity=severity,
        )
        return record

    def detect_incident_spike(self, incidents: Iterable[IncidentRecord]) -> Optional[AnomalyRecord]:
        """Count-anomaly detection over incidents grouped by calendar day."""
        return self.detect_count_anomaly(daily_counts(incidents))

    def detect_anomalies(
        self,
        kri_measurements: Sequence[KRIMeasurement],
        incidents: Sequence[IncidentRecord],
        as_of: Optional[datetime] = None,
    ) -> list[AnomalyRecord]:
        """
        Batch pass over an organization's KRIs and incidents.

        KRI anomalies come first, newest reading first, followed by at most
        one incident-spike anomaly. Readings after ``as_of`` are ignored.
        Each KRI's baseline window includes the reading under test.
        """
        now = as_utc(as_of) if as_of is not None else utc_now()
        recent_start = now - timedelta(days=self.recent_days)
        baseline_start = now - timedelta(days=self.baseline_days)

        baselines: dict[str, list[KRIMeasurement]] = defaultdict(list)
        for kri in kri_measurements:
            if baseline_start <= as_utc(kri.measured_at) <= now:
                baselines[kri.kri_name].append(kri)

        recent = sorted(
            (k for k in kri_measurements if recent_start <= as_utc(k.measured_at) <= now),
            key=lambda k: as_utc(k.measured_at),
            reverse=True,
        )

        anomalies: list[AnomalyRecord] = []
        for kri in recent:
            history = HistoricalSeries.from_pairs(
                kri.kri_name,
                ((k.measured_at, k.actual_value) for k in baselines.get(kri.kri_name, ())),
            )
            record = self.detect_anomaly(float(kri.actual_value), history)
            if record is not None:
                anomalies.append(record)

        spike = self.detect_incident_spike(
            i for i in incidents if recent_start <= as_utc(i.reported_at) <= now
        )
        if spike is not None:
            anomalies.append(spike)

        logger.info(
            "anomaly_scan_completed",
            n_recent_readings=len(recent),
            n_kris=len(baselines),
            n_anomalies=len(anomalies),
        )
        return anomalies
