# broodlytics/services/trend.py
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from broodlytics.core.errors import InvalidInput
from broodlytics.schemas.growth import TrendFit
from broodlytics.utils.dates import DateLike, as_datetime


def day_offsets(dates: Sequence[DateLike]) -> np.ndarray:
    """Fractional days elapsed since the first date."""
    idx = pd.DatetimeIndex([as_datetime(d) for d in dates])
    return ((idx - idx[0]) / pd.Timedelta(days=1)).to_numpy(dtype=float)


def fit_trend(dates: Sequence[DateLike], weights: Sequence[float]) -> Optional[TrendFit]:
    """
    Ordinary least squares of weight against elapsed days.
    Returns None for fewer than two points.
    """
    if len(dates) != len(weights):
        raise InvalidInput(
            "dates and weights must have the same length",
            details={"dates": len(dates), "weights": len(weights)},
        )
    n = len(dates)
    if n <= 1:
        return None

    x = day_offsets(dates)
    y = np.asarray(weights, dtype=float)
    mean_x = x.mean()
    mean_y = y.mean()

    numerator = float(np.sum((x - mean_x) * (y - mean_y)))
    denominator = float(np.sum((x - mean_x) ** 2))
    slope = numerator / denominator if denominator != 0 else 0.0
    intercept = float(mean_y - slope * mean_x)

    predicted = slope * x + intercept
    total_variation = float(np.sum((y - mean_y) ** 2))
    explained_variation = float(np.sum((predicted - mean_y) ** 2))
    r_squared = explained_variation / total_variation if total_variation != 0 else 0.0

    return TrendFit(
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        start=as_datetime(dates[0]),
    )


__all__ = ["day_offsets", "fit_trend"]
