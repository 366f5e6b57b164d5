# broodlytics/services/analysis.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import structlog

from broodlytics.config import GrowthPolicy, get_settings, policy_from_settings
from broodlytics.core.errors import InsufficientData, TargetPredictionError
from broodlytics.observability.instrument import log_job
from broodlytics.schemas.growth import (
    DailyAggregate,
    DayReport,
    DeviceId,
    FlockContext,
    GrowthObservation,
    GrowthReport,
    SampleStatus,
    WeightSample,
)
from broodlytics.services.anomaly import correct_anomalies
from broodlytics.services.comparison import (
    compare_to_reference,
    expected_growth_rate,
    growth_efficiency,
    reference_series,
)
from broodlytics.services.daily_aggregator import (
    drop_implausible,
    group_by_day,
    rate_uniformity,
    rate_variation,
    summarize_days,
    uniformity_coefficient,
)
from broodlytics.services.distribution import analyze_distribution
from broodlytics.services.forecast import forecast_growth
from broodlytics.services.reference_curves import ReferenceCurveTable
from broodlytics.services.target import predict_target_date
from broodlytics.services.trend import fit_trend

logger = structlog.get_logger("analysis")


def history_from_aggregates(days: Iterable[DailyAggregate]) -> List[GrowthObservation]:
    return [GrowthObservation(day=d.day, weight=d.mean_accepted) for d in days]


def _day_reports(
    raw: List[DailyAggregate],
    corrected: List[DailyAggregate],
    accepted_by_day: Dict,
    policy: GrowthPolicy,
) -> List[DayReport]:
    reports = []
    for before, after in zip(raw, corrected):
        values = accepted_by_day.get(before.day, [])
        uniformity = uniformity_coefficient(values, before.mean_accepted)
        reports.append(
            DayReport(
                aggregate=after,
                uniformity=uniformity,
                uniformity_rating=rate_uniformity(uniformity),
                variation_rating=rate_variation(after.coefficient_of_variation),
                distribution=analyze_distribution(values, policy=policy),
            )
        )
    return reports


@log_job("growth.analyze")
def analyze_growth(
    samples: Iterable[WeightSample],
    context: FlockContext,
    table: Optional[ReferenceCurveTable] = None,
    *,
    homogeneity: Optional[float] = None,
    device_id: Optional[DeviceId] = None,
    forecast_days: Optional[int] = None,
    target_weight: Optional[float] = None,
    policy: Optional[GrowthPolicy] = None,
) -> GrowthReport:
    """
    Full growth picture for one flock or device: daily statistics, corrected
    series, distribution per day, trend, forecast, reference position and
    (optionally) when a target weight will be reached.

    Target failures are expected outcomes and are reported through
    `target_error`; malformed inputs still raise.
    """
    policy = policy or policy_from_settings()
    if forecast_days is None:
        forecast_days = get_settings().FORECAST_DEFAULT_DAYS

    pool = list(samples)
    raw = summarize_days(
        pool,
        homogeneity=homogeneity,
        device_id=device_id,
        min_valid_grams=policy.min_plausible_weight,
    )
    corrected = correct_anomalies(raw, table, context, policy=policy)

    scoped = [s for s in pool if device_id is None or s.device_id == device_id]
    accepted_by_day = {
        day: [s.value_grams for s in day_samples if s.status == SampleStatus.ACCEPTED]
        for day, day_samples in group_by_day(drop_implausible(scoped, policy.min_plausible_weight)).items()
    }
    days = _day_reports(raw, corrected, accepted_by_day, policy)

    history = history_from_aggregates(corrected)
    trend = fit_trend([h.day for h in history], [h.weight for h in history])
    forecast = forecast_growth(history, forecast_days, table=table, context=context, policy=policy)

    comparison = efficiency = expected_rate = None
    curve = ()
    if table is not None and history:
        comparison = compare_to_reference(history, table, context, policy=policy)
        efficiency = growth_efficiency(history, table, context)
        expected_rate = expected_growth_rate(history[-1].day, table, context)
        curve = reference_series(table, context, history[0].day, history[-1].day, forecast_days)

    target = None
    target_error = None
    if target_weight is not None:
        try:
            if not history:
                raise InsufficientData("no observed weights to start from")
            target = predict_target_date(forecast, target_weight, history[-1], policy=policy)
        except (InsufficientData, TargetPredictionError) as exc:
            logger.info("growth.target_unavailable", code=exc.code, target_weight=target_weight)
            target_error = exc.code

    return GrowthReport(
        days=tuple(days),
        trend=trend,
        forecast=tuple(forecast),
        comparison=comparison,
        growth_efficiency=efficiency,
        expected_growth_rate=expected_rate,
        reference_curve=curve,
        target=target,
        target_error=target_error,
    )


__all__ = ["analyze_growth", "history_from_aggregates"]
