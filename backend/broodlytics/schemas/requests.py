from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, FiniteFloat

from broodlytics.config import get_settings
from broodlytics.schemas.growth import (
    FlockContext,
    GrowthObservation,
    SampleStatus,
    SexProfile,
    WeightSample,
)


def _default_forecast_days() -> int:
    return get_settings().FORECAST_DEFAULT_DAYS


class WeightSampleIn(BaseModel):
    timestamp: datetime
    value_grams: FiniteFloat
    status: SampleStatus = SampleStatus.ACCEPTED
    device_id: Optional[Union[int, str]] = None

    def to_domain(self) -> WeightSample:
        return WeightSample(
            timestamp=self.timestamp,
            value_grams=self.value_grams,
            status=self.status,
            device_id=self.device_id,
        )


class FlockContextIn(BaseModel):
    start_date: datetime
    end_date: Optional[datetime] = None
    sex: Optional[str] = Field(None, description="Sexing as stored on the brood, e.g. 'Machos', 'Hembras'")
    bird_type: str = "broilers"
    strain: str = "ross"

    def to_domain(self) -> FlockContext:
        return FlockContext(
            start_date=self.start_date,
            end_date=self.end_date,
            sex_profile=SexProfile.parse(self.sex),
            bird_type=self.bird_type,
            strain=self.strain,
        )


class ObservationIn(BaseModel):
    day: date
    weight: FiniteFloat

    def to_domain(self) -> GrowthObservation:
        return GrowthObservation(day=self.day, weight=self.weight)


class _ReferenceInput(BaseModel):
    # rows keyed like the provider feed: age_days/edad plus mixto/machos/hembras or mixed/male/female
    reference: Optional[List[Dict[str, Any]]] = None


class DailySummaryRequest(BaseModel):
    samples: List[WeightSampleIn]
    homogeneity: Optional[FiniteFloat] = Field(None, description="Acceptance band half-width as a fraction, e.g. 0.15")
    device_id: Optional[Union[int, str]] = None

    def domain_samples(self) -> List[WeightSample]:
        return [s.to_domain() for s in self.samples]


class CorrectionRequest(DailySummaryRequest, _ReferenceInput):
    flock: FlockContextIn


class DistributionRequest(BaseModel):
    values: List[FiniteFloat]


class TrendRequest(BaseModel):
    dates: List[datetime]
    weights: List[FiniteFloat]


class ForecastRequest(_ReferenceInput):
    history: List[ObservationIn]
    forecast_days: int = Field(default_factory=_default_forecast_days, ge=1, le=90)
    flock: Optional[FlockContextIn] = None

    def domain_history(self) -> List[GrowthObservation]:
        return [o.to_domain() for o in self.history]


class TargetRequest(ForecastRequest):
    target_weight: FiniteFloat


class ComparisonRequest(_ReferenceInput):
    history: List[ObservationIn]
    flock: FlockContextIn
    horizon_days: int = Field(0, ge=0, le=90, description="Extend the returned reference curve past the last observation")

    def domain_history(self) -> List[GrowthObservation]:
        return [o.to_domain() for o in self.history]


class AnalysisRequest(DailySummaryRequest, _ReferenceInput):
    flock: FlockContextIn
    forecast_days: int = Field(default_factory=_default_forecast_days, ge=1, le=90)
    target_weight: Optional[FiniteFloat] = None


__all__ = [
    "AnalysisRequest",
    "ComparisonRequest",
    "CorrectionRequest",
    "DailySummaryRequest",
    "DistributionRequest",
    "FlockContextIn",
    "ForecastRequest",
    "ObservationIn",
    "TargetRequest",
    "TrendRequest",
    "WeightSampleIn",
]
