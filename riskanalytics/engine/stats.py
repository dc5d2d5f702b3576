"""
Statistics Toolkit.

Pure functions shared by the simulator, the anomaly detector and the
risk scorer. None of them mutate the caller's sequence.

Conventions:
- percentile: nearest-rank, index = ceil(n·p) - 1 into a sorted copy
- standard deviation: population (divide by n)
- expected shortfall: mean of values ≥ the p-percentile threshold
"""

import math
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class MetricStatistics:
    """Summary of one simulated metric."""
    mean: float
    median: float
    percentile_95: float
    percentile_99: float
    standard_deviation: float


def _require_values(values: Sequence[float], name: str) -> None:
    if len(values) == 0:
        raise ValueError(f"{name} requires at least one value")


def mean(values: Sequence[float]) -> float:
    _require_values(values, "mean")
    try:
        return math.fsum(values) / len(values)
    except OverflowError:
        # Finite values whose sum exceeds the float range
        n = len(values)
        return math.fsum(v / n for v in values)


def median(values: Sequence[float]) -> float:
    """Middle value; average of the two middle values on even length."""
    _require_values(values, "median")
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        low, high = ordered[mid - 1], ordered[mid]
        middle = (low + high) / 2
        if math.isinf(middle) and math.isfinite(low) and math.isfinite(high):
            return low / 2 + high / 2
        return middle
    return ordered[mid]


def percentile(values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile.

    p is a fraction in [0, 1]. On [1..100], percentile(values, 0.95) == 95.
    """
    _require_values(values, "percentile")
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"percentile p must be in [0, 1], got {p}")

    ordered = sorted(values)
    # round() absorbs float noise such as 0.07 * 100 = 7.000000000000001
    rank = math.ceil(round(len(ordered) * p, 9))
    index = min(max(rank - 1, 0), len(ordered) - 1)
    return ordered[index]


def standard_deviation(values: Sequence[float]) -> float:
    """
    Population standard deviation.

    Falls back to scaling by the largest deviation when the squared
    deviations overflow, so any representable result is returned finite.
    Deviations that are themselves out of range give inf.
    """
    mu = mean(values)
    deviations = [v - mu for v in values]
    try:
        variance = math.fsum(d * d for d in deviations) / len(values)
    except OverflowError:
        variance = math.inf
    if math.isnan(variance):
        return variance
    if math.isfinite(variance):
        return math.sqrt(variance)

    scale = max(abs(d) for d in deviations)
    if not math.isfinite(scale):
        return math.inf
    scaled = math.fsum((d / scale) * (d / scale) for d in deviations) / len(values)
    return scale * math.sqrt(scaled)


def expected_shortfall(values: Sequence[float], p: float) -> float:
    """Mean of all values at or above the p-percentile."""
    threshold = percentile(values, p)
    tail = [v for v in values if v >= threshold]
    if not tail:
        return threshold
    return mean(tail)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """
    σ / |μ|.

    A zero mean gives 0.0 for a constant series and inf otherwise; callers
    clamp the result before it reaches an output record.
    """
    mu = mean(values)
    sigma = standard_deviation(values)
    if mu == 0:
        return 0.0 if sigma == 0 else math.inf
    return sigma / abs(mu)


def describe(values: Sequence[float]) -> MetricStatistics:
    """Mean, median, 95th/99th percentile and std-dev of one metric."""
    return MetricStatistics(
        mean=mean(values),
        median=median(values),
        percentile_95=percentile(values, 0.95),
        percentile_99=percentile(values, 0.99),
        standard_deviation=standard_deviation(values),
    )
