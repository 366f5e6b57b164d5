import math

import pytest

from _helpers import day_at
from broodlytics.core.errors import InsufficientData, InvalidInput, TargetTooFar, UnreachableTarget
from broodlytics.schemas.growth import ForecastMethod, ForecastPoint, GrowthObservation
from broodlytics.services.forecast import forecast_growth
from broodlytics.services.target import predict_target_date


def _forecast(*weights, first_age=3):
    return [
        ForecastPoint(day=day_at(first_age + i), projected_weight=float(w), contributing_methods=(ForecastMethod.ACCELERATED,))
        for i, w in enumerate(weights)
    ]


LAST = GrowthObservation(day=day_at(2), weight=140.0)


def test_target_reached_inside_default_horizon():
    history = [GrowthObservation(day_at(i), w) for i, w in enumerate([100.0, 120.0, 140.0])]
    forecast = forecast_growth(history, 8)

    result = predict_target_date(forecast, 200, history[-1])

    assert result.days == 3
    assert result.day == day_at(5)
    assert result.projected_weight == pytest.approx(200.0)
    assert result.is_extrapolated is False


def test_target_already_met():
    result = predict_target_date([], 200, GrowthObservation(day_at(9), 250.0))
    assert (result.days, result.day, result.projected_weight) == (0, day_at(9), 250.0)
    assert result.exact_match is False


def test_target_met_exactly_by_last_observation_is_not_an_exact_match():
    result = predict_target_date([], 250, GrowthObservation(day_at(9), 250.0))
    assert result.days == 0
    assert result.exact_match is False


def test_exact_hit_is_flagged():
    result = predict_target_date(_forecast(150, 160, 170), 160, LAST)
    assert result.days == 2
    assert result.exact_match is True


def test_extrapolates_past_the_horizon():
    result = predict_target_date(_forecast(150, 160, 170), 200, LAST)

    # 30 g left at 10 g/day -> 3 more days after the 3 forecast days
    assert result.days == 6
    assert result.day == day_at(8)
    assert result.projected_weight == pytest.approx(200.0)
    assert result.is_extrapolated is True


def test_extrapolation_rounds_days_up():
    result = predict_target_date(_forecast(150, 160, 170), 175, LAST)
    assert result.days == 4


def test_flat_or_slow_growth_is_unreachable():
    with pytest.raises(UnreachableTarget):
        predict_target_date(_forecast(150, 150, 150), 200, LAST)
    with pytest.raises(UnreachableTarget):
        predict_target_date(_forecast(150, 150.4, 150.8), 200, LAST)
    with pytest.raises(UnreachableTarget):
        predict_target_date(_forecast(150), 200, LAST)


def test_far_target_is_rejected():
    with pytest.raises(TargetTooFar) as exc:
        predict_target_date(_forecast(101, 102, 103), 500, LAST)
    assert exc.value.code == "TARGET_TOO_FAR"
    assert exc.value.details["days"] > 100


def test_empty_forecast_is_insufficient_data():
    with pytest.raises(InsufficientData):
        predict_target_date([], 200, LAST)


@pytest.mark.parametrize("bad", [0, -5, "200", True, None, math.nan, math.inf])
def test_target_must_be_positive_number(bad):
    with pytest.raises(InvalidInput):
        predict_target_date(_forecast(150, 160), bad, LAST)
