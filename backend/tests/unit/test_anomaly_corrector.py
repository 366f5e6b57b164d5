import pytest

from _helpers import day_at
from broodlytics.config import GrowthPolicy
from broodlytics.schemas.growth import CorrectionMethod, DailyAggregate, FlockContext, SexProfile
from broodlytics.services.anomaly import correct_anomalies, is_problematic


def _agg(age, mean):
    return DailyAggregate(
        day=day_at(age),
        mean_accepted=float(mean),
        mean_all_relevant=float(mean),
        coefficient_of_variation=0.0,
        total_count=1,
        accepted_count=1 if mean else 0,
        rejected_count=0,
    )


def test_zero_day_is_rebuilt_from_reference_gain(reference_table, flock_context):
    days = [_agg(10, 300), _agg(11, 0), _agg(12, 340)]
    out = correct_anomalies(days, reference_table, flock_context)

    fixed = out[1]
    assert fixed.mean_accepted == 331.0  # 300 + gain(10 -> 11) = 300 + 31
    assert fixed.is_corrected is True
    assert fixed.correction_method is CorrectionMethod.REFERENCE_TABLE
    assert fixed.original_mean == 0.0
    assert fixed.expected_gain == 31
    assert fixed.age_days == 11
    assert out[0] == days[0]
    assert out[2] == days[2]


def test_corrections_cascade_left_to_right(reference_table, flock_context):
    out = correct_anomalies([_agg(10, 300), _agg(11, 0), _agg(12, 20)], reference_table, flock_context)
    assert [d.mean_accepted for d in out] == [300.0, 331.0, 364.0]


def test_sex_profile_selects_reference_column(reference_table):
    males = FlockContext(start_date=day_at(0), sex_profile=SexProfile.MALE)
    out = correct_anomalies([_agg(10, 300), _agg(11, 0)], reference_table, males)
    assert out[1].mean_accepted == 333.0


def test_fallback_without_reference_rounds_half_up(flock_context):
    out = correct_anomalies([_agg(3, 250), _agg(4, 0)], None, flock_context)
    assert out[1].mean_accepted == 263.0  # 262.5 rounds up
    assert out[1].correction_method is CorrectionMethod.FALLBACK_5PCT
    assert out[1].expected_gain is None


def test_fallback_when_reference_does_not_cover_age(flock_context):
    from broodlytics.services.reference_curves import ReferenceCurveTable
    from _helpers import reference_records

    short = ReferenceCurveTable.from_records(reference_records(5))
    out = correct_anomalies([_agg(10, 300), _agg(11, 10)], short, flock_context)
    assert out[1].mean_accepted == 315.0
    assert out[1].correction_method is CorrectionMethod.FALLBACK_5PCT


def test_first_day_is_never_corrected(reference_table, flock_context):
    days = [_agg(10, 0), _agg(11, 280)]
    assert correct_anomalies(days, reference_table, flock_context) == days


def test_second_pass_changes_nothing(reference_table, flock_context):
    once = correct_anomalies([_agg(10, 300), _agg(11, 0), _agg(12, 0)], reference_table, flock_context)
    twice = correct_anomalies(once, reference_table, flock_context)
    assert twice == once


def test_input_sequence_is_not_mutated(reference_table, flock_context):
    days = [_agg(10, 300), _agg(11, 0)]
    correct_anomalies(days, reference_table, flock_context)
    assert days[1].mean_accepted == 0.0
    assert days[1].is_corrected is False


def test_plausibility_floor_comes_from_policy(flock_context):
    strict = GrowthPolicy(min_plausible_weight=100.0)
    assert is_problematic(_agg(2, 80), strict.min_plausible_weight)
    out = correct_anomalies([_agg(1, 100), _agg(2, 80)], None, flock_context, policy=strict)
    assert out[1].mean_accepted == 105.0


def test_empty_and_single_day_sequences(reference_table, flock_context):
    assert correct_anomalies([], reference_table, flock_context) == []
    single = [_agg(5, 0)]
    assert correct_anomalies(single, reference_table, flock_context) == single
