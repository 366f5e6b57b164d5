from __future__ import annotations

import math
from datetime import timedelta
from typing import Optional, Sequence

from broodlytics.config import GrowthPolicy
from broodlytics.core.errors import InsufficientData, InvalidInput, TargetTooFar, UnreachableTarget
from broodlytics.schemas.growth import ForecastPoint, GrowthObservation, TargetPrediction
from broodlytics.utils.numeric import is_positive_number


def predict_target_date(
    forecast: Sequence[ForecastPoint],
    target_weight: float,
    last_observed: GrowthObservation,
    *,
    policy: Optional[GrowthPolicy] = None,
) -> TargetPrediction:
    """
    Day on which the flock is expected to reach `target_weight`.

    Looks inside the forecast first; past the horizon it extrapolates the
    last projected daily growth. Raises UnreachableTarget when that growth is
    flat or negative and TargetTooFar when the answer lies beyond the
    configured limit. A target the last observation already meets answers
    0 days and is never flagged as an exact match.
    """
    policy = policy or GrowthPolicy()
    if not is_positive_number(target_weight):
        raise InvalidInput("target weight must be a positive number", details={"target_weight": target_weight})

    if last_observed.weight >= target_weight:
        return TargetPrediction(
            days=0,
            day=last_observed.day,
            projected_weight=last_observed.weight,
            exact_match=False,
        )

    if not forecast:
        raise InsufficientData("no forecast available to search for the target weight")

    for index, point in enumerate(forecast):
        if point.projected_weight >= target_weight:
            return TargetPrediction(
                days=index + 1,
                day=point.day,
                projected_weight=point.projected_weight,
                exact_match=point.projected_weight == target_weight,
            )

    tail = forecast[-3:]
    if len(tail) < 2:
        raise UnreachableTarget("not enough forecast points to extrapolate a growth rate")
    daily_growth = tail[-1].projected_weight - tail[-2].projected_weight
    if daily_growth <= 0 or daily_growth < policy.target_min_daily_growth:
        raise UnreachableTarget(
            "the current trend does not reach the target weight",
            details={"daily_growth": daily_growth},
        )

    last_projected = forecast[-1].projected_weight
    additional_days = math.ceil((target_weight - last_projected) / daily_growth)
    total_days = len(forecast) + additional_days
    if total_days > policy.target_max_days:
        raise TargetTooFar(
            "the target weight is too far ahead for a reliable estimate",
            details={"days": total_days, "max_days": policy.target_max_days},
        )

    return TargetPrediction(
        days=total_days,
        day=last_observed.day + timedelta(days=total_days),
        projected_weight=last_projected + additional_days * daily_growth,
        is_extrapolated=True,
    )


__all__ = ["predict_target_date"]
