# broodlytics/services/forecast.py
"""
Hybrid growth forecast.

Each forecast day blends an "accelerated" gain, extrapolated from the recent
rate of change of daily gain, with the gain the strain's reference curve
expects at the flock's age. The accelerated term dominates; the reference
term only pulls the projection towards the curve. Days cascade: every
projected point is appended to the history used for the next day.
"""
from __future__ import annotations

import math
from datetime import timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog

from broodlytics.config import GrowthPolicy
from broodlytics.core.errors import InvalidInput
from broodlytics.observability.instrument import log_job
from broodlytics.schemas.growth import FlockContext, ForecastMethod, ForecastPoint, GrowthObservation
from broodlytics.services.reference_curves import ReferenceCurveTable
from broodlytics.utils.dates import as_datetime, days_between

logger = structlog.get_logger("forecast")

History = Tuple[GrowthObservation, ...]

MIN_HISTORY_POINTS = 2


def daily_gains(history: Sequence[GrowthObservation]) -> List[float]:
    gains: List[float] = []
    for prev, cur in zip(history, history[1:]):
        span = days_between(prev.day, cur.day)
        if span > 0:
            gains.append((cur.weight - prev.weight) / span)
    return gains


def accelerated_gain(history: Sequence[GrowthObservation]) -> float:
    """
    Next-day gain from the trend of recent gains.

    With three or more gains, the first differences of the gains
    (accelerations) are averaged with exponentially growing recency weights
    and added to the last gain, floored at zero. With fewer gains the most
    recent gain is used as-is.
    """
    gains = daily_gains(history)
    if len(gains) < 3:
        return gains[-1] if gains else 0.0

    accelerations = [b - a for a, b in zip(gains, gains[1:])]
    n = len(accelerations)
    weights = [math.exp((k + 1) / n * 2) for k in range(n)]
    weighted_accel = sum(a * w for a, w in zip(accelerations, weights)) / sum(weights)
    return max(0.0, gains[-1] + weighted_accel)


def reference_gain(
    table: Optional[ReferenceCurveTable],
    context: Optional[FlockContext],
    at,
) -> Optional[float]:
    """Reference-curve gain from the flock's age on `at` to the following day."""
    if table is None or context is None:
        return None
    age = context.age_days(at)
    return table.gain(age, age + 1, context.sex_profile)


def forecast_step(
    history: Sequence[GrowthObservation],
    *,
    table: Optional[ReferenceCurveTable] = None,
    context: Optional[FlockContext] = None,
    policy: Optional[GrowthPolicy] = None,
) -> ForecastPoint:
    """Project the day after the last observation of `history`."""
    policy = policy or GrowthPolicy()
    current = history[-1]

    accel = accelerated_gain(history)
    accelerated_next = current.weight + accel
    ref = reference_gain(table, context, current.day)

    if ref is not None:
        reference_next = current.weight + ref
        projected = policy.accelerated_share * accelerated_next + policy.reference_share * reference_next
        methods = (ForecastMethod.ACCELERATED, ForecastMethod.REFERENCE)
    else:
        projected = accelerated_next
        methods = (ForecastMethod.ACCELERATED,)

    return ForecastPoint(
        day=current.day + timedelta(days=1),
        projected_weight=projected,
        contributing_methods=methods,
        accelerated_gain=accel,
        reference_gain=ref,
    )


def as_history(observations: Iterable[GrowthObservation]) -> History:
    return tuple(sorted(observations, key=lambda o: as_datetime(o.day)))


@log_job("forecast.growth")
def forecast_growth(
    history: Iterable[GrowthObservation],
    forecast_days: int,
    *,
    table: Optional[ReferenceCurveTable] = None,
    context: Optional[FlockContext] = None,
    policy: Optional[GrowthPolicy] = None,
) -> List[ForecastPoint]:
    """
    Cascade `forecast_days` forecast steps over the observed history.
    Returns an empty list when fewer than two observations are available.
    """
    if isinstance(forecast_days, bool) or not isinstance(forecast_days, int) or forecast_days < 1:
        raise InvalidInput("forecast_days must be an integer >= 1", details={"forecast_days": forecast_days})

    running = as_history(history)
    if len(running) < MIN_HISTORY_POINTS:
        logger.info("forecast.insufficient_history", points=len(running))
        return []

    points: List[ForecastPoint] = []
    for step in range(1, forecast_days + 1):
        point = forecast_step(running, table=table, context=context, policy=policy)
        logger.debug(
            "forecast.step",
            step=step,
            current_weight=round(running[-1].weight, 1),
            accelerated_gain=round(point.accelerated_gain, 2),
            reference_gain=None if point.reference_gain is None else round(point.reference_gain, 2),
            projected_weight=round(point.projected_weight, 1),
        )
        points.append(point)
        running = running + (GrowthObservation(day=point.day, weight=point.projected_weight),)
    return points


__all__ = [
    "accelerated_gain",
    "as_history",
    "daily_gains",
    "forecast_growth",
    "forecast_step",
    "reference_gain",
]
