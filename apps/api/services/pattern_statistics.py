"""
Pattern Statistics

Descriptive helpers behind the pattern insights:
- day gaps between timeline events
- dominant trigger / most common label
- pairwise pattern correlation (shared triggers + temporal proximity)
- recurrence probability (linear ramp over the interval distribution)

Everything here is pure: plain lists in, floats out. No database access.

The "correlation" is a heuristic 0-1 blend, NOT a statistical coefficient, and
the recurrence probability is an ad hoc ramp with no confidence-interval
meaning. Both are kept as-is for behavioral compatibility.
"""

import math
import statistics
from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

SECONDS_PER_DAY = 24 * 60 * 60

SHARED_TRIGGER_WEIGHT = 0.4
TEMPORAL_PROXIMITY_WEIGHT = 0.6


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp to [low, high]. NaN collapses to `low`."""
    if value is None or math.isnan(value):
        return low
    return max(low, min(high, value))


def ramp_confidence(count: int, full_at: int = 10) -> float:
    """Linear confidence ramp: min(count / full_at, 1)."""
    if count <= 0:
        return 0.0
    return min(count / full_at, 1.0)


def days_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


def day_gaps(timestamps: Iterable[datetime]) -> List[float]:
    """Gaps in days between consecutive timestamps, sorted ascending first."""
    ordered = sorted(timestamps)
    return [days_between(ordered[i - 1], ordered[i]) for i in range(1, len(ordered))]


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return statistics.fmean(values)


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation (0 for fewer than two values)."""
    if len(values) < 2:
        return 0.0
    return statistics.pstdev(values)


def most_common(items: Iterable[Optional[str]]) -> Optional[str]:
    """Most frequent non-empty label; first seen wins ties."""
    counts = Counter(item for item in items if item)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def trigger_totals(triggers: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    """Sum occurrence counts per trigger type, preserving first-seen order."""
    totals: Dict[str, int] = {}
    for trigger_type, occurrences in triggers:
        totals[trigger_type] = totals.get(trigger_type, 0) + (occurrences or 0)
    return totals


def dominant_trigger(totals: Dict[str, int]) -> Optional[Tuple[str, int]]:
    """Highest-sum trigger type. Ties go to the type seen first."""
    if not totals:
        return None
    trigger_type = max(totals, key=lambda k: totals[k])
    return trigger_type, totals[trigger_type]


def shared_trigger_ratio(types_a: Sequence[str], types_b: Sequence[str]) -> float:
    """
    2 x |distinct trigger types present in both| / (rows in A + rows in B).

    Bounded by 1: a type shared by both patterns needs at least one row on
    each side.
    """
    total = len(types_a) + len(types_b)
    if total == 0:
        return 0.0
    shared = set(types_a) & set(types_b)
    return clamp(2 * len(shared) / total)


def _events_with_neighbor(
    events: Sequence[datetime],
    others: Sequence[datetime],
    window_days: float,
) -> int:
    window_s = window_days * SECONDS_PER_DAY
    hits = 0
    for ts in events:
        if any(abs((ts - other).total_seconds()) <= window_s for other in others):
            hits += 1
    return hits


def temporal_proximity_ratio(
    events_a: Sequence[datetime],
    events_b: Sequence[datetime],
    window_days: float = 3.0,
) -> float:
    """
    Share of events (from either pattern) that have a counterpart event of the
    other pattern within `window_days`.

    Counting hits in both directions over the combined event count keeps the
    ratio symmetric in A and B.
    """
    total = len(events_a) + len(events_b)
    if total == 0 or not events_a or not events_b:
        return 0.0
    hits = (
        _events_with_neighbor(events_a, events_b, window_days)
        + _events_with_neighbor(events_b, events_a, window_days)
    )
    return clamp(hits / total)


def pattern_correlation(
    trigger_types_a: Sequence[str],
    trigger_types_b: Sequence[str],
    events_a: Sequence[datetime],
    events_b: Sequence[datetime],
    window_days: float = 3.0,
) -> Tuple[float, float, float]:
    """
    Blend shared-trigger overlap and temporal proximity.

    Returns (correlation, shared_trigger_ratio, temporal_proximity_ratio).
    """
    trigger_part = shared_trigger_ratio(trigger_types_a, trigger_types_b)
    temporal_part = temporal_proximity_ratio(events_a, events_b, window_days)
    score = SHARED_TRIGGER_WEIGHT * trigger_part + TEMPORAL_PROXIMITY_WEIGHT * temporal_part
    return clamp(score), trigger_part, temporal_part


def recurrence_probability(gaps: Sequence[float], days_since_last: float) -> float:
    """
    Linear ramp over [mean - sd, mean + sd] of the historical gaps.

    probability = clamp((since - mean + sd) / (2 sd)) once `since` reaches
    mean - sd, else 0. With sd == 0 (perfectly regular history) the ramp
    degenerates to a step at the mean.
    """
    if not gaps or days_since_last is None or not math.isfinite(days_since_last):
        return 0.0

    avg = mean(gaps)
    sd = std_dev(gaps)

    if not math.isfinite(avg) or not math.isfinite(sd):
        return 0.0

    if sd <= 1e-9:
        return 1.0 if days_since_last >= avg else 0.0

    if days_since_last < avg - sd:
        return 0.0

    return clamp((days_since_last - avg + sd) / (2 * sd))


def risk_level(severity: Optional[float], frequency: Optional[float]) -> str:
    """severity * 0.6 + frequency * 0.4: >= 7 high, >= 4 medium, else low."""
    score = (severity or 0.0) * 0.6 + (frequency or 0.0) * 0.4
    if score >= 7:
        return "high"
    if score >= 4:
        return "medium"
    return "low"


def top_labels(counts: Counter, limit: int) -> List[str]:
    """Labels ordered by count (desc), first seen wins ties."""
    return [label for label, _ in counts.most_common(limit)]
