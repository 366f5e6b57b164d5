from datetime import datetime, timedelta

import pytest

from _helpers import day_at
from broodlytics.core.errors import InvalidInput
from broodlytics.services.trend import day_offsets, fit_trend


def test_perfectly_linear_series():
    dates = [day_at(i) for i in range(5)]
    fit = fit_trend(dates, [100 + 50 * i for i in range(5)])

    assert fit.slope == pytest.approx(50.0)
    assert fit.intercept == pytest.approx(100.0)
    assert fit.r_squared == pytest.approx(1.0)
    assert fit.predict(10) == pytest.approx(600.0)
    assert fit.start == datetime(2024, 3, 1)


def test_fewer_than_two_points_has_no_fit():
    assert fit_trend([], []) is None
    assert fit_trend([day_at(0)], [42.0]) is None


def test_length_mismatch_is_invalid():
    with pytest.raises(InvalidInput):
        fit_trend([day_at(0), day_at(1)], [1.0])


def test_flat_series_has_zero_slope_and_r_squared():
    fit = fit_trend([day_at(i) for i in range(4)], [80.0] * 4)
    assert fit.slope == 0.0
    assert fit.intercept == pytest.approx(80.0)
    assert fit.r_squared == 0.0


def test_same_timestamp_does_not_divide_by_zero():
    fit = fit_trend([day_at(3), day_at(3)], [100.0, 120.0])
    assert fit.slope == 0.0
    assert fit.intercept == pytest.approx(110.0)


def test_offsets_are_fractional_days():
    start = datetime(2024, 3, 1, 6, 0)
    offsets = day_offsets([start, start + timedelta(hours=12), start + timedelta(days=2)])
    assert offsets.tolist() == pytest.approx([0.0, 0.5, 2.0])

    fit = fit_trend([start, start + timedelta(hours=12)], [100.0, 110.0])
    assert fit.slope == pytest.approx(20.0)


def test_noisy_series_r_squared_between_zero_and_one():
    fit = fit_trend([day_at(i) for i in range(6)], [100, 135, 150, 210, 220, 270])
    assert 0.0 < fit.r_squared < 1.0
    assert fit.slope > 0
