# broodlytics/services/distribution.py
from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from broodlytics.config import GrowthPolicy
from broodlytics.core.errors import InvalidInput
from broodlytics.schemas.growth import DistributionFit, GaussianCurve, HistogramBucket


def normal_pdf(x, mean: float, std_dev: float):
    return (1.0 / (std_dev * math.sqrt(2 * math.pi))) * np.exp(-0.5 * ((x - mean) / std_dev) ** 2)


def weight_histogram(
    values: np.ndarray,
    bucket_width: float = 2.0,
    max_buckets: Optional[int] = None,
) -> Tuple[HistogramBucket, ...]:
    """
    Frequency per fixed-width bucket keyed by floor(value / width) * width.

    Buckets cover floor(min)..ceil(max) including empty ones. The top edge is
    closed, so a maximum sitting exactly on a bucket boundary is counted in
    the last bucket rather than opening a new one. Raises InvalidInput when
    the span needs more than `max_buckets` buckets.
    """
    lo = math.floor(math.floor(values.min()) / bucket_width) * bucket_width
    hi = math.ceil(math.ceil(values.max()) / bucket_width) * bucket_width
    if hi <= lo:
        hi = lo + bucket_width
    n_buckets = int(round((hi - lo) / bucket_width))
    if max_buckets is not None and n_buckets > max_buckets:
        raise InvalidInput(
            "weight span is too wide for the histogram",
            details={"span": [float(values.min()), float(values.max())], "buckets": n_buckets, "max_buckets": max_buckets},
        )
    edges = lo + bucket_width * np.arange(n_buckets + 1)
    counts, _ = np.histogram(values, bins=edges)
    return tuple(
        HistogramBucket(bucket_start=float(start), frequency=int(freq))
        for start, freq in zip(edges[:-1], counts)
    )


def gaussian_overlay(
    values: np.ndarray,
    mean: float,
    std_dev: float,
    peak: float,
    points: int = 200,
) -> GaussianCurve:
    if std_dev <= 0 or points < 2:
        return GaussianCurve()
    start = min(float(values.min()), mean - 4 * std_dev)
    end = max(float(values.max()), mean + 4 * std_dev)
    xs = np.linspace(start, end, points)
    scale = peak / normal_pdf(mean, mean, std_dev)
    ys = normal_pdf(xs, mean, std_dev) * scale
    return GaussianCurve(x=tuple(float(x) for x in xs), y=tuple(float(y) for y in ys))


def _pct_within(values: np.ndarray, mean: float, std_dev: float, k: int) -> float:
    inside = np.count_nonzero(np.abs(values - mean) <= k * std_dev)
    return float(round(100.0 * inside / len(values), 1))


def analyze_distribution(
    values: Sequence[float],
    *,
    policy: Optional[GrowthPolicy] = None,
) -> Optional[DistributionFit]:
    """
    Fit a normal model to one day's accepted weights.
    Returns None when there are too few weighings for a meaningful fit;
    NaN or infinite weights raise InvalidInput.
    """
    policy = policy or GrowthPolicy()
    arr = np.asarray(values, dtype=float)
    finite = np.isfinite(arr)
    if not finite.all():
        raise InvalidInput("weights must be finite numbers", details={"non_finite": int(arr.size - finite.sum())})
    if arr.size < policy.distribution_min_samples:
        return None

    mean = float(arr.mean())
    std_dev = float(arr.std())  # population

    histogram = weight_histogram(arr, policy.bucket_width, policy.histogram_max_buckets)
    peak = max(b.frequency for b in histogram)

    return DistributionFit(
        count=int(arr.size),
        mean=mean,
        std_dev=std_dev,
        histogram=histogram,
        curve=gaussian_overlay(arr, mean, std_dev, peak, policy.curve_points),
        pct_within_1sigma=_pct_within(arr, mean, std_dev, 1),
        pct_within_2sigma=_pct_within(arr, mean, std_dev, 2),
        pct_within_3sigma=_pct_within(arr, mean, std_dev, 3),
    )


__all__ = ["analyze_distribution", "gaussian_overlay", "normal_pdf", "weight_histogram"]
