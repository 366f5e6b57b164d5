# broodlytics/routers/growth.py
"""
Growth analytics API.

Every endpoint is a stateless POST: callers send the samples or observed
series together with the flock context, and optionally the reference curve
rows. Without inline rows the curve is looked up in the app's reference
registry; with neither, the engine runs without a reference (fallback
corrections, accelerated-only forecast).

Results use the shared envelope. An operation that has too little data to
answer returns ok=True with `data: null` and `meta.reason="insufficient_data"`.
Engine errors are mapped to error envelopes by the app-level handler.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends

from broodlytics.config import policy_from_settings
from broodlytics.observability.metrics import record_corrections
from broodlytics.schemas.common import meta_now, ok
from broodlytics.schemas.growth import FlockContext
from broodlytics.schemas.requests import (
    AnalysisRequest,
    ComparisonRequest,
    CorrectionRequest,
    DailySummaryRequest,
    DistributionRequest,
    FlockContextIn,
    ForecastRequest,
    TargetRequest,
    TrendRequest,
)
from broodlytics.services.analysis import analyze_growth, history_from_aggregates
from broodlytics.services.anomaly import correct_anomalies
from broodlytics.services.comparison import (
    compare_to_reference,
    expected_growth_rate,
    growth_efficiency,
    reference_series,
)
from broodlytics.services.daily_aggregator import summarize_days
from broodlytics.services.distribution import analyze_distribution
from broodlytics.services.forecast import as_history, forecast_growth
from broodlytics.services.reference_curves import ReferenceCurveRegistry, ReferenceCurveTable
from broodlytics.services.target import predict_target_date
from broodlytics.services.trend import fit_trend

router = APIRouter(prefix="/api/growth", tags=["growth"])

INSUFFICIENT = "insufficient_data"


@lru_cache
def get_registry() -> ReferenceCurveRegistry:
    """Process-wide registry; hosts register their curve loaders on it at startup."""
    return ReferenceCurveRegistry()


def _resolve_table(
    reference: Optional[List[Dict[str, Any]]],
    context: Optional[FlockContext],
    registry: ReferenceCurveRegistry,
) -> Optional[ReferenceCurveTable]:
    if reference:
        return ReferenceCurveTable.from_records(reference)
    if context is None or not registry.keys():
        return None
    return registry.table_for(context)


def _context(flock: Optional[FlockContextIn]) -> Optional[FlockContext]:
    return flock.to_domain() if flock is not None else None


@router.post("/daily")
def daily_summary(req: DailySummaryRequest):
    days = summarize_days(
        req.domain_samples(),
        homogeneity=req.homogeneity,
        device_id=req.device_id,
        min_valid_grams=policy_from_settings().min_plausible_weight,
    )
    return ok(
        data={"days": days},
        meta=meta_now(operation="daily", device_id=req.device_id, day_count=len(days)),
    )


@router.post("/corrections")
def corrections(req: CorrectionRequest, registry: ReferenceCurveRegistry = Depends(get_registry)):
    policy = policy_from_settings()
    context = req.flock.to_domain()
    table = _resolve_table(req.reference, context, registry)
    days = summarize_days(
        req.domain_samples(),
        homogeneity=req.homogeneity,
        device_id=req.device_id,
        min_valid_grams=policy.min_plausible_weight,
    )
    corrected = correct_anomalies(days, table, context, policy=policy)
    applied = record_corrections(d.correction_method.value for d in corrected if d.is_corrected)
    return ok(
        data={"days": corrected},
        meta=meta_now(operation="corrections", corrected=applied, with_reference=table is not None),
    )


@router.post("/distribution")
def distribution(req: DistributionRequest):
    fit = analyze_distribution(req.values, policy=policy_from_settings())
    reason = INSUFFICIENT if fit is None else None
    return ok(data=fit, meta=meta_now(operation="distribution", reason=reason, count=len(req.values)))


@router.post("/trend")
def trend(req: TrendRequest):
    fit = fit_trend(req.dates, req.weights)
    reason = INSUFFICIENT if fit is None else None
    return ok(data=fit, meta=meta_now(operation="trend", reason=reason, count=len(req.dates)))


@router.post("/forecast")
def forecast(req: ForecastRequest, registry: ReferenceCurveRegistry = Depends(get_registry)):
    context = _context(req.flock)
    table = _resolve_table(req.reference, context, registry)
    points = forecast_growth(
        req.domain_history(),
        req.forecast_days,
        table=table,
        context=context,
        policy=policy_from_settings(),
    )
    reason = INSUFFICIENT if not points else None
    return ok(
        data={"points": points},
        meta=meta_now(
            operation="forecast",
            reason=reason,
            forecast_days=req.forecast_days,
            with_reference=table is not None,
        ),
    )


@router.post("/target")
def target(req: TargetRequest, registry: ReferenceCurveRegistry = Depends(get_registry)):
    policy = policy_from_settings()
    context = _context(req.flock)
    table = _resolve_table(req.reference, context, registry)
    history = as_history(req.domain_history())
    if not history:
        return ok(data=None, meta=meta_now(operation="target", reason=INSUFFICIENT))
    points = forecast_growth(history, req.forecast_days, table=table, context=context, policy=policy)
    prediction = predict_target_date(points, req.target_weight, history[-1], policy=policy)
    return ok(
        data=prediction,
        meta=meta_now(operation="target", target_weight=req.target_weight, forecast_days=req.forecast_days),
    )


@router.post("/comparison")
def comparison(req: ComparisonRequest, registry: ReferenceCurveRegistry = Depends(get_registry)):
    context = req.flock.to_domain()
    table = _resolve_table(req.reference, context, registry)
    history = as_history(req.domain_history())
    if table is None or not history:
        return ok(data=None, meta=meta_now(operation="comparison", reason=INSUFFICIENT))

    result = compare_to_reference(history, table, context, policy=policy_from_settings())
    return ok(
        data={
            "comparison": result,
            "growth_efficiency": growth_efficiency(history, table, context),
            "expected_growth_rate": expected_growth_rate(history[-1].day, table, context),
            "reference_curve": reference_series(
                table, context, history[0].day, history[-1].day, req.horizon_days
            ),
        },
        meta=meta_now(operation="comparison", reason=INSUFFICIENT if result is None else None),
    )


@router.post("/report")
def report(req: AnalysisRequest, registry: ReferenceCurveRegistry = Depends(get_registry)):
    context = req.flock.to_domain()
    table = _resolve_table(req.reference, context, registry)
    result = analyze_growth(
        req.domain_samples(),
        context,
        table,
        homogeneity=req.homogeneity,
        device_id=req.device_id,
        forecast_days=req.forecast_days,
        target_weight=req.target_weight,
        policy=policy_from_settings(),
    )
    applied = record_corrections(
        d.aggregate.correction_method.value for d in result.days if d.aggregate.is_corrected
    )
    latest = history_from_aggregates(d.aggregate for d in result.days[-1:])
    return ok(
        data=result,
        meta=meta_now(
            operation="report",
            day_count=len(result.days),
            corrected=applied,
            latest_weight=latest[0].weight if latest else None,
            with_reference=table is not None,
        ),
    )
