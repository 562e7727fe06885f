"""Small numeric helpers shared by the scorers."""

from __future__ import annotations

import math
from typing import Iterable, Mapping, Sequence, Tuple

Tier = Tuple[float, float]

_WEIGHT_TOLERANCE = 1e-9


def round_half_up(value: float) -> int:
    """Round halves away from zero for positives (2.5 -> 3), unlike ``round``."""

    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return float(sum(values)) / len(values)


def variance(values: Sequence[float]) -> float:
    """Population variance; empty input yields 0."""

    if not values:
        return 0.0
    avg = mean(values)
    return sum((v - avg) ** 2 for v in values) / len(values)


def score_at_least(value: float, tiers: Iterable[Tier], default: float) -> float:
    """Walk ``(lower_bound, score)`` tiers in order and return the first with ``value >= bound``."""

    for bound, score in tiers:
        if value >= bound:
            return score
    return default


def score_below(value: float, tiers: Iterable[Tier], default: float) -> float:
    """Walk ``(upper_bound, score)`` tiers in order and return the first with ``value < bound``."""

    for bound, score in tiers:
        if value < bound:
            return score
    return default


def check_weights(weights: Mapping[str, float]) -> None:
    total = sum(weights.values())
    if any(w < 0 for w in weights.values()) or abs(total - 1.0) > _WEIGHT_TOLERANCE:
        raise ValueError(f"Weights must be non-negative and sum to 1.0, got {total}")


def weighted_sum(scores: Mapping[str, float], weights: Mapping[str, float]) -> int:
    """Combine named scores with matching weights and round the result."""

    check_weights(weights)
    missing = set(weights) - set(scores)
    if missing:
        raise KeyError(f"Missing scores for {sorted(missing)}")
    return round_half_up(sum(scores[name] * weight for name, weight in weights.items()))
