# broodlytics/services/comparison.py
from __future__ import annotations

from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

from broodlytics.config import GrowthPolicy
from broodlytics.core.errors import ReferenceLookupMiss
from broodlytics.schemas.growth import (
    FlockContext,
    GrowthObservation,
    ReferenceComparison,
    ReferencePoint,
    ReferenceProjection,
    ReferenceStatus,
)
from broodlytics.services.reference_curves import ReferenceCurveTable
from broodlytics.utils.dates import DateLike
from broodlytics.utils.numeric import safe_divide

RECENT_GROWTH_WINDOW = 5


def _status(deviation_pct: float, band_pct: float) -> ReferenceStatus:
    if deviation_pct < -band_pct:
        return ReferenceStatus.BELOW
    if deviation_pct > band_pct:
        return ReferenceStatus.ABOVE
    return ReferenceStatus.ON_TARGET


def recent_daily_growth(history: Sequence[GrowthObservation], window: int = RECENT_GROWTH_WINDOW) -> float:
    """Average day-over-day change across the last `window` observations, skipping empty days."""
    recent = history[-window:]
    diffs = [
        cur.weight - prev.weight
        for prev, cur in zip(recent, recent[1:])
        if prev.weight > 0 and cur.weight > 0
    ]
    return sum(diffs) / len(diffs) if diffs else 0.0


def _projection(
    history: Sequence[GrowthObservation],
    table: ReferenceCurveTable,
    context: FlockContext,
    age: int,
    reference_weight: float,
    policy: GrowthPolicy,
) -> Optional[ReferenceProjection]:
    horizon = policy.comparison_horizon_days
    future = table.find(age + horizon)
    if future is None:
        return None

    last = history[-1]
    future_reference = future.weight_for(context.sex_profile)
    linear = last.weight + recent_daily_growth(history) * horizon
    by_reference = last.weight + (future_reference - reference_weight)
    projected = policy.accelerated_share * linear + policy.reference_share * by_reference
    deviation = projected - future_reference
    return ReferenceProjection(
        age_days=age + horizon,
        day=last.day + timedelta(days=horizon),
        weight=projected,
        reference_weight=future_reference,
        deviation=deviation,
        deviation_pct=(safe_divide(deviation, future_reference) or 0.0) * 100.0,
    )


def compare_to_reference(
    history: Sequence[GrowthObservation],
    table: ReferenceCurveTable,
    context: FlockContext,
    *,
    policy: Optional[GrowthPolicy] = None,
) -> Optional[ReferenceComparison]:
    """
    Position of the latest observed weight against the reference curve,
    with a short blended projection when the curve reaches that far.
    """
    policy = policy or GrowthPolicy()
    if not history or history[-1].weight <= 0:
        return None

    last = history[-1]
    age = context.age_days(last.day)
    try:
        reference_weight = table.weight(age, context.sex_profile)
    except ReferenceLookupMiss:
        return None

    deviation = last.weight - reference_weight
    deviation_pct = (safe_divide(deviation, reference_weight) or 0.0) * 100.0
    return ReferenceComparison(
        age_days=age,
        weight=last.weight,
        reference_weight=reference_weight,
        deviation=deviation,
        deviation_pct=deviation_pct,
        status=_status(deviation_pct, policy.reference_band_pct),
        projection=_projection(history, table, context, age, reference_weight, policy),
    )


def growth_efficiency(
    history: Sequence[GrowthObservation],
    table: ReferenceCurveTable,
    context: FlockContext,
) -> Optional[float]:
    """Mean of actual / reference weight (%) over observations the curve covers."""
    ratios: List[float] = []
    for obs in history:
        row = table.find(context.age_days(obs.day))
        if row is None:
            continue
        ratio = safe_divide(obs.weight, row.weight_for(context.sex_profile))
        if ratio is not None:
            ratios.append(ratio * 100.0)
    if not ratios:
        return None
    return sum(ratios) / len(ratios)


def expected_growth_rate(day: DateLike, table: ReferenceCurveTable, context: FlockContext) -> Optional[float]:
    age = context.age_days(day)
    return table.gain(age - 1, age, context.sex_profile)


def reference_series(
    table: ReferenceCurveTable,
    context: FlockContext,
    first_day: DateLike,
    last_day: DateLike,
    horizon_days: int = 0,
    past_days: int = 7,
) -> Tuple[ReferencePoint, ...]:
    """Reference weights dated from a little before the first observation to the forecast end."""
    start_age = max(0, context.age_days(first_day) - past_days)
    end_age = context.age_days(last_day) + horizon_days
    points = []
    for age in range(start_age, end_age + 1):
        row = table.find(age)
        if row is not None:
            points.append(
                ReferencePoint(age_days=age, day=context.date_for_age(age), weight=row.weight_for(context.sex_profile))
            )
    return tuple(points)


__all__ = [
    "compare_to_reference",
    "expected_growth_rate",
    "growth_efficiency",
    "recent_daily_growth",
    "reference_series",
]
