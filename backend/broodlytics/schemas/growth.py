# broodlytics/schemas/growth.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Tuple, Union

from broodlytics.utils.dates import DateLike, as_datetime, days_between

DeviceId = Union[int, str]


class SampleStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    DISCARDED = "discarded"


class SexProfile(str, Enum):
    MIXED = "mixed"
    MALE = "male"
    FEMALE = "female"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SexProfile":
        """
        Map the free-text sexing stored on a brood record to a profile.
        Anything unrecognized is treated as a mixed flock.
        """
        if isinstance(value, SexProfile):
            return value
        if not value:
            return cls.MIXED
        return _SEX_ALIASES.get(value.strip().lower(), cls.MIXED)


_SEX_ALIASES = {
    "male": SexProfile.MALE,
    "males": SexProfile.MALE,
    "macho": SexProfile.MALE,
    "machos": SexProfile.MALE,
    "female": SexProfile.FEMALE,
    "females": SexProfile.FEMALE,
    "hembra": SexProfile.FEMALE,
    "hembras": SexProfile.FEMALE,
    "mixed": SexProfile.MIXED,
    "mixto": SexProfile.MIXED,
}


class CorrectionMethod(str, Enum):
    NONE = "none"
    REFERENCE_TABLE = "reference_table"
    FALLBACK_5PCT = "fallback_5pct"


class ForecastMethod(str, Enum):
    ACCELERATED = "accelerated"
    REFERENCE = "reference"


class ReferenceStatus(str, Enum):
    BELOW = "below_target"
    ON_TARGET = "on_target"
    ABOVE = "above_target"


@dataclass(frozen=True)
class WeightSample:
    timestamp: datetime
    value_grams: float
    status: SampleStatus
    device_id: Optional[DeviceId] = None


@dataclass(frozen=True)
class AcceptanceBand:
    min: float
    max: float


@dataclass(frozen=True)
class DailyAggregate:
    day: date
    mean_accepted: float
    mean_all_relevant: float
    coefficient_of_variation: float
    total_count: int
    accepted_count: int
    rejected_count: int
    acceptance_band: Optional[AcceptanceBand] = None
    is_corrected: bool = False
    correction_method: CorrectionMethod = CorrectionMethod.NONE
    device_id: Optional[DeviceId] = None
    original_mean: Optional[float] = None
    expected_gain: Optional[float] = None
    age_days: Optional[int] = None


@dataclass(frozen=True)
class FlockContext:
    start_date: datetime
    end_date: Optional[datetime] = None
    sex_profile: SexProfile = SexProfile.MIXED
    bird_type: str = "broilers"
    strain: str = "ross"

    def age_days(self, at: DateLike) -> int:
        """Whole days between the placement date and `at`, ignoring direction."""
        return int(math.floor(abs(days_between(self.start_date, at))))

    def date_for_age(self, age_days: int) -> date:
        return as_datetime(self.start_date).date() + timedelta(days=age_days)


@dataclass(frozen=True)
class GrowthObservation:
    day: Union[date, datetime]
    weight: float


@dataclass(frozen=True)
class ForecastPoint:
    day: Union[date, datetime]
    projected_weight: float
    contributing_methods: Tuple[ForecastMethod, ...]
    accelerated_gain: float = 0.0
    reference_gain: Optional[float] = None


@dataclass(frozen=True)
class HistogramBucket:
    bucket_start: float
    frequency: int


@dataclass(frozen=True)
class GaussianCurve:
    x: Tuple[float, ...] = ()
    y: Tuple[float, ...] = ()


@dataclass(frozen=True)
class DistributionFit:
    count: int
    mean: float
    std_dev: float
    histogram: Tuple[HistogramBucket, ...]
    curve: GaussianCurve
    pct_within_1sigma: float
    pct_within_2sigma: float
    pct_within_3sigma: float


@dataclass(frozen=True)
class TrendFit:
    slope: float
    intercept: float
    r_squared: float
    start: datetime

    def predict(self, day_offset: float) -> float:
        return self.slope * day_offset + self.intercept


@dataclass(frozen=True)
class TargetPrediction:
    days: int
    day: Union[date, datetime]
    projected_weight: float
    is_extrapolated: bool = False
    exact_match: bool = False


@dataclass(frozen=True)
class Rating:
    label: str
    band: str


@dataclass(frozen=True)
class ReferenceProjection:
    age_days: int
    day: Union[date, datetime]
    weight: float
    reference_weight: float
    deviation: float
    deviation_pct: float


@dataclass(frozen=True)
class ReferenceComparison:
    age_days: int
    weight: float
    reference_weight: float
    deviation: float
    deviation_pct: float
    status: ReferenceStatus
    projection: Optional[ReferenceProjection] = None


@dataclass(frozen=True)
class ReferencePoint:
    age_days: int
    day: date
    weight: float


@dataclass(frozen=True)
class DayReport:
    aggregate: DailyAggregate
    uniformity: float
    uniformity_rating: Rating
    variation_rating: Rating
    distribution: Optional[DistributionFit] = None


@dataclass(frozen=True)
class GrowthReport:
    days: Tuple[DayReport, ...]
    trend: Optional[TrendFit]
    forecast: Tuple[ForecastPoint, ...]
    comparison: Optional[ReferenceComparison] = None
    growth_efficiency: Optional[float] = None
    expected_growth_rate: Optional[float] = None
    reference_curve: Tuple[ReferencePoint, ...] = field(default_factory=tuple)
    target: Optional[TargetPrediction] = None
    target_error: Optional[str] = None


__all__ = [
    "AcceptanceBand",
    "CorrectionMethod",
    "DailyAggregate",
    "DayReport",
    "DeviceId",
    "DistributionFit",
    "FlockContext",
    "ForecastMethod",
    "ForecastPoint",
    "GaussianCurve",
    "GrowthObservation",
    "GrowthReport",
    "HistogramBucket",
    "Rating",
    "ReferenceComparison",
    "ReferencePoint",
    "ReferenceProjection",
    "ReferenceStatus",
    "SampleStatus",
    "SexProfile",
    "TargetPrediction",
    "TrendFit",
    "WeightSample",
]
