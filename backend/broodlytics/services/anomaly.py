from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence

import structlog

from broodlytics.config import GrowthPolicy
from broodlytics.observability.instrument import log_job
from broodlytics.schemas.growth import CorrectionMethod, DailyAggregate, FlockContext
from broodlytics.services.reference_curves import ReferenceCurveTable
from broodlytics.utils.numeric import round_half_up

logger = structlog.get_logger("anomaly")


def is_problematic(day: DailyAggregate, min_plausible_weight: float) -> bool:
    return day.mean_accepted == 0 or day.mean_accepted < min_plausible_weight


def _correct_one(
    day: DailyAggregate,
    previous: DailyAggregate,
    table: Optional[ReferenceCurveTable],
    context: FlockContext,
    policy: GrowthPolicy,
) -> DailyAggregate:
    age = context.age_days(day.day)
    expected_gain = table.gain(age - 1, age, context.sex_profile) if table is not None else None

    if expected_gain is not None:
        corrected = round_half_up(previous.mean_accepted + expected_gain)
        method = CorrectionMethod.REFERENCE_TABLE
    else:
        corrected = round_half_up(previous.mean_accepted * policy.fallback_growth_factor)
        method = CorrectionMethod.FALLBACK_5PCT

    logger.debug(
        "anomaly.corrected",
        day=day.day.isoformat(),
        age_days=age,
        original=day.mean_accepted,
        corrected=corrected,
        method=method.value,
    )
    return replace(
        day,
        mean_accepted=float(corrected),
        is_corrected=True,
        correction_method=method,
        original_mean=day.mean_accepted,
        expected_gain=expected_gain,
        age_days=age,
    )


@log_job("anomaly.correct")
def correct_anomalies(
    days: Sequence[DailyAggregate],
    table: Optional[ReferenceCurveTable],
    context: FlockContext,
    *,
    policy: Optional[GrowthPolicy] = None,
) -> List[DailyAggregate]:
    """
    Replace implausible daily means (zero or below the plausibility floor).

    The expected gain comes from the reference curve for the day's flock age;
    without a matching row the previous day grows by the fallback factor.
    Works left to right so a corrected day feeds the next correction. The
    first day and days already corrected are left untouched.
    """
    policy = policy or GrowthPolicy()
    out: List[DailyAggregate] = list(days)
    for i in range(1, len(out)):
        day = out[i]
        if day.is_corrected or not is_problematic(day, policy.min_plausible_weight):
            continue
        out[i] = _correct_one(day, out[i - 1], table, context, policy)
    return out


__all__ = ["correct_anomalies", "is_problematic"]
