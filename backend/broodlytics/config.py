# backend/broodlytics/config.py
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # environment: "dev" for running the app locally, "test" for pytest
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # --- HTTP surface ---
    TRUSTED_HOSTS: List[str] = Field(
        default_factory=lambda: [
            "localhost",
            "127.0.0.1",
            "testserver",
            "test",
        ]
    )
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )

    # --- Daily aggregation / anomaly correction ---
    # Readings below this are never a real bird; excluded from display aggregates.
    MIN_PLAUSIBLE_WEIGHT_G: float = 30.0
    # Multiplier applied to the previous day when no reference row covers the age.
    FALLBACK_GROWTH_FACTOR: float = 1.05

    # --- Forecast blend ---
    FORECAST_ACCELERATED_SHARE: float = 0.7
    FORECAST_REFERENCE_SHARE: float = 0.3
    FORECAST_DEFAULT_DAYS: int = 8
    FORECAST_MAX_DAYS: int = 90

    # --- Distribution fitting ---
    DISTRIBUTION_MIN_SAMPLES: int = 10
    HISTOGRAM_BUCKET_G: float = 2.0
    # Upper bound on the bucket count; a wider weight span is rejected as invalid input.
    HISTOGRAM_MAX_BUCKETS: int = 5000
    GAUSSIAN_CURVE_POINTS: int = 200

    # --- Target weight prediction ---
    TARGET_MAX_DAYS: int = 100
    TARGET_MIN_DAILY_GROWTH_G: float = 1.0

    # --- Reference comparison ---
    REFERENCE_BAND_PCT: float = 5.0
    COMPARISON_HORIZON_DAYS: int = 7

    @model_validator(mode="after")
    def _check_engine_constants(self):
        shares = self.FORECAST_ACCELERATED_SHARE + self.FORECAST_REFERENCE_SHARE
        if abs(shares - 1.0) > 1e-9:
            raise ValueError("FORECAST_ACCELERATED_SHARE + FORECAST_REFERENCE_SHARE must equal 1.")
        if self.HISTOGRAM_BUCKET_G <= 0:
            raise ValueError("HISTOGRAM_BUCKET_G must be positive.")
        if self.HISTOGRAM_MAX_BUCKETS < 1:
            raise ValueError("HISTOGRAM_MAX_BUCKETS must be at least 1.")
        if self.FORECAST_DEFAULT_DAYS < 1 or self.FORECAST_DEFAULT_DAYS > self.FORECAST_MAX_DAYS:
            raise ValueError("FORECAST_DEFAULT_DAYS must be between 1 and FORECAST_MAX_DAYS.")
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@dataclass(frozen=True)
class GrowthPolicy:
    """Tunable constants of the analytics engine, detached from the environment."""

    min_plausible_weight: float = 30.0
    fallback_growth_factor: float = 1.05
    accelerated_share: float = 0.7
    reference_share: float = 0.3
    distribution_min_samples: int = 10
    bucket_width: float = 2.0
    histogram_max_buckets: int = 5000
    curve_points: int = 200
    target_max_days: int = 100
    target_min_daily_growth: float = 1.0
    reference_band_pct: float = 5.0
    comparison_horizon_days: int = 7


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def policy_from_settings(settings: Settings | None = None) -> GrowthPolicy:
    s = settings or get_settings()
    return GrowthPolicy(
        min_plausible_weight=s.MIN_PLAUSIBLE_WEIGHT_G,
        fallback_growth_factor=s.FALLBACK_GROWTH_FACTOR,
        accelerated_share=s.FORECAST_ACCELERATED_SHARE,
        reference_share=s.FORECAST_REFERENCE_SHARE,
        distribution_min_samples=s.DISTRIBUTION_MIN_SAMPLES,
        bucket_width=s.HISTOGRAM_BUCKET_G,
        histogram_max_buckets=s.HISTOGRAM_MAX_BUCKETS,
        curve_points=s.GAUSSIAN_CURVE_POINTS,
        target_max_days=s.TARGET_MAX_DAYS,
        target_min_daily_growth=s.TARGET_MIN_DAILY_GROWTH_G,
        reference_band_pct=s.REFERENCE_BAND_PCT,
        comparison_horizon_days=s.COMPARISON_HORIZON_DAYS,
    )
