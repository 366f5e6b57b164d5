# broodlytics/services/daily_aggregator.py
from __future__ import annotations

from collections import defaultdict
from datetime import date
from statistics import pstdev
from typing import Dict, Iterable, List, Optional, Sequence

from broodlytics.core.errors import InvalidInput
from broodlytics.schemas.growth import (
    AcceptanceBand,
    DailyAggregate,
    DeviceId,
    Rating,
    SampleStatus,
    WeightSample,
)
from broodlytics.utils.dates import calendar_day
from broodlytics.utils.numeric import mean_or_zero, safe_divide

UNIFORMITY_TOLERANCE = 0.10

# (lower bound, label, band) evaluated top-down
_UNIFORMITY_BANDS = (
    (90.0, "excellent", "90-100%"),
    (80.0, "good", "80-90%"),
    (70.0, "average", "70-80%"),
    (60.0, "poor", "60-70%"),
    (50.0, "very_poor", "50-60%"),
)


def _values(samples: Iterable[WeightSample], *statuses: SampleStatus) -> List[float]:
    return [float(s.value_grams) for s in samples if s.status in statuses]


def aggregate_day(
    samples: Sequence[WeightSample],
    *,
    homogeneity: Optional[float] = None,
    day: Optional[date] = None,
    device_id: Optional[DeviceId] = None,
) -> DailyAggregate:
    """
    Reduce one calendar day of samples to its statistical summary.

    Means and the acceptance band follow different status filters:
    `mean_all_relevant` (and so the band) covers accepted + rejected samples,
    while `mean_accepted` and the coefficient of variation use accepted only.
    """
    if homogeneity is not None and homogeneity < 0:
        raise InvalidInput("homogeneity coefficient must be >= 0", details={"homogeneity": homogeneity})
    if day is None:
        if not samples:
            raise InvalidInput("a day is required to aggregate an empty sample set")
        day = calendar_day(samples[0].timestamp)

    accepted = _values(samples, SampleStatus.ACCEPTED)
    relevant = _values(samples, SampleStatus.ACCEPTED, SampleStatus.REJECTED)

    mean_accepted = mean_or_zero(accepted)
    mean_all_relevant = mean_or_zero(relevant)

    cv = 0.0
    if len(accepted) > 1 and mean_accepted > 0:
        cv = (safe_divide(pstdev(accepted), mean_accepted) or 0.0) * 100.0

    band = None
    if homogeneity is not None:
        band = AcceptanceBand(
            min=mean_all_relevant * (1 - homogeneity),
            max=mean_all_relevant * (1 + homogeneity),
        )

    return DailyAggregate(
        day=day,
        mean_accepted=mean_accepted,
        mean_all_relevant=mean_all_relevant,
        coefficient_of_variation=cv,
        total_count=len(samples),
        accepted_count=len(accepted),
        rejected_count=sum(1 for s in samples if s.status == SampleStatus.REJECTED),
        acceptance_band=band,
        device_id=device_id,
    )


def drop_implausible(samples: Iterable[WeightSample], min_valid_grams: float) -> List[WeightSample]:
    return [s for s in samples if s.value_grams >= min_valid_grams]


def group_by_day(samples: Iterable[WeightSample]) -> Dict[date, List[WeightSample]]:
    buckets: Dict[date, List[WeightSample]] = defaultdict(list)
    for s in samples:
        buckets[calendar_day(s.timestamp)].append(s)
    return dict(sorted(buckets.items()))


def summarize_days(
    samples: Iterable[WeightSample],
    *,
    homogeneity: Optional[float] = None,
    device_id: Optional[DeviceId] = None,
    min_valid_grams: Optional[float] = 30.0,
) -> List[DailyAggregate]:
    """
    Daily aggregates for a flock (or one device), oldest day first.
    Readings below `min_valid_grams` never reach the statistics.
    """
    pool = list(samples)
    if device_id is not None:
        pool = [s for s in pool if s.device_id == device_id]
    if min_valid_grams is not None:
        pool = drop_implausible(pool, min_valid_grams)
    return [
        aggregate_day(day_samples, homogeneity=homogeneity, day=day, device_id=device_id)
        for day, day_samples in group_by_day(pool).items()
    ]


def uniformity_coefficient(values: Sequence[float], mean: float) -> float:
    """Percentage of birds within +/-10% of the mean weight."""
    if not values:
        return 0.0
    low = mean * (1 - UNIFORMITY_TOLERANCE)
    high = mean * (1 + UNIFORMITY_TOLERANCE)
    inside = sum(1 for v in values if low <= v <= high)
    return inside / len(values) * 100.0


def rate_uniformity(pct: float) -> Rating:
    for floor_pct, label, band in _UNIFORMITY_BANDS:
        if pct >= floor_pct:
            return Rating(label=label, band=band)
    return Rating(label="inequality", band="0-50%")


def rate_variation(cv: float) -> Rating:
    if cv < 6:
        return Rating(label="excellent", band="< 6%")
    if cv < 8:
        return Rating(label="good", band="6-8%")
    if cv < 10:
        return Rating(label="average", band="8-10%")
    if cv < 12:
        return Rating(label="poor", band="10-12%")
    if cv <= 15:
        return Rating(label="very_poor", band="12-15%")
    return Rating(label="inequality", band="> 15%")


__all__ = [
    "aggregate_day",
    "drop_implausible",
    "group_by_day",
    "rate_uniformity",
    "rate_variation",
    "summarize_days",
    "uniformity_coefficient",
]
