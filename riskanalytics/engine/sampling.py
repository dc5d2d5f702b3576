"""
Distribution Sampler.

Draws pseudo-random impact values for the Monte Carlo simulator.

Only uniform sampling is implemented. Scenario configurations may name
other shapes (lognormal, gamma, weibull, ...) and those names are kept as
metadata, but every draw is uniform over [low, high] so results stay
comparable with previously stored simulation runs.

Range policy: low > high raises InvalidRangeError. Ranges are never
silently swapped.
"""

import math
import random
from typing import Optional, Sequence

from riskanalytics.exceptions import InvalidConfigError, InvalidRangeError

SUPPORTED_SHAPES: frozenset[str] = frozenset({"uniform"})


def unsupported_shapes(*shapes: str) -> list[str]:
    """Named shapes that will be drawn uniformly instead, de-duplicated in order."""
    return list(dict.fromkeys(s for s in shapes if s not in SUPPORTED_SHAPES))


def validate_range(bounds: Sequence[float], field: Optional[str] = None) -> tuple[float, float]:
    """
    Check a [low, high] pair and return it as floats.

    Raises InvalidConfigError for wrong arity / non-finite bounds and
    InvalidRangeError when low > high.
    """
    if bounds is None or len(bounds) != 2:
        raise InvalidConfigError(
            f"Range must have exactly two bounds, got {bounds!r}",
            field=field,
        )
    try:
        low, high = float(bounds[0]), float(bounds[1])
    except (TypeError, ValueError) as exc:
        raise InvalidConfigError(f"Range bounds must be numeric, got {bounds!r}", field=field) from exc

    if not (math.isfinite(low) and math.isfinite(high)):
        raise InvalidConfigError(f"Range bounds must be finite, got {bounds!r}", field=field)
    if low > high:
        raise InvalidRangeError(low, high, field=field)
    return low, high


class DistributionSampler:
    """
    Uniform sampler over closed ranges.

    Pass a seed (or a ready ``random.Random``) for reproducible draws.
    Each sampler owns its generator, so concurrent simulations never share
    random state.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self._rng = rng if rng is not None else random.Random(seed)

    def sample_uniform(self, low: float, high: float) -> float:
        """Draw one value uniformly from [low, high]."""
        if low > high:
            raise InvalidRangeError(low, high)
        if low == high:
            return float(low)
        return self._rng.uniform(low, high)

    def sample(self, low: float, high: float, shape: str = "uniform") -> float:
        """
        Draw from a named shape. Non-uniform names fall back to uniform.

        Called once per draw, so it does not log; see unsupported_shapes().
        """
        return self.sample_uniform(low, high)
