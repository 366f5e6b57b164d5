"""
Title: Flock growth report (UAT)
User Story: As a farm technician, I send a week of scale readings for my flock
and get back daily statistics with scale outages repaired, a growth forecast,
the flock's position against the strain curve and when it reaches sale weight.
"""
import pytest

from _helpers import mixed_weight, reference_records, sample_payload, unwrap

pytestmark = pytest.mark.uat

OFFSETS = (-24, -18, -12, -8, -4, -2, 2, 4, 8, 12, 18, 24)


def _week_of_readings():
    samples = []
    for age in range(21, 28):
        if age == 24:
            # scale outage: only feeder noise below any plausible bird weight
            samples.extend(sample_payload(age, 5, hour=h) for h in range(6, 9))
            samples.append(sample_payload(age, mixed_weight(age), status="rejected"))
            continue
        samples.extend(
            sample_payload(age, mixed_weight(age) + off, hour=6 + i % 12)
            for i, off in enumerate(OFFSETS)
        )
    return samples


def test_growth_report_end_to_end(client, registry):
    registry.register("broilers", "ross", lambda: reference_records())
    payload = {
        "samples": _week_of_readings(),
        "flock": {"start_date": "2024-03-01T00:00:00", "sex": "Mixto", "bird_type": "broilers", "strain": "cobb"},
        "homogeneity": 0.15,
        "forecast_days": 10,
        "target_weight": 1200,
    }
    r = client.post("/api/growth/report", json=payload)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["ok"] is True
    report = unwrap(body)

    days = report["days"]
    assert len(days) == 7
    outage = days[3]["aggregate"]
    assert outage["is_corrected"] is True
    assert outage["correction_method"] == "reference_table"
    assert outage["mean_accepted"] == mixed_weight(24)
    assert outage["original_mean"] == 0.0
    assert days[0]["uniformity_rating"]["label"] == "excellent"
    assert days[0]["distribution"]["count"] == 12

    assert len(report["forecast"]) == 10
    assert report["comparison"]["status"] == "on_target"
    assert report["growth_efficiency"] == pytest.approx(100.0)

    target = report["target"]
    assert target is not None and report["target_error"] is None
    assert target["projected_weight"] >= 1200

    assert body["meta"]["params"]["corrected"] == 1
    assert body["meta"]["params"]["with_reference"] is True


def test_growth_report_without_curve_still_answers(client):
    payload = {
        "samples": _week_of_readings(),
        "flock": {"start_date": "2024-03-01T00:00:00"},
        "target_weight": 100000,
    }
    body = client.post("/api/growth/report", json=payload).json()
    report = unwrap(body)
    assert report["days"][3]["aggregate"]["correction_method"] == "fallback_5pct"
    assert report["comparison"] is None
    assert report["target"] is None
    assert report["target_error"] in {"TARGET_TOO_FAR", "UNREACHABLE_TARGET"}
