from datetime import date, datetime, timedelta

FLOCK_START = datetime(2024, 3, 1)


def unwrap(j):
    """Return API data payload regardless of envelope/legacy shape."""
    if isinstance(j, dict) and "ok" in j and "data" in j:
        return j["data"]
    return j

def is_enveloped(j) -> bool:
    return isinstance(j, dict) and "ok" in j and "data" in j


# Synthetic strain curve with easy gains: mixed gain from age a to a+1 is 11 + 2a.
def mixed_weight(age: int) -> int:
    return 42 + 10 * age + age * age

def male_weight(age: int) -> int:
    return mixed_weight(age) + 2 * age

def female_weight(age: int) -> int:
    return mixed_weight(age) - age


def reference_records(max_age: int = 56):
    """Rows spelled the way the provider feed spells them."""
    return [
        {"edad": age, "mixto": mixed_weight(age), "Machos": male_weight(age), "Hembras": female_weight(age)}
        for age in range(0, max_age + 1)
    ]


def day_at(age: int) -> date:
    return (FLOCK_START + timedelta(days=age)).date()


def sample_payload(age: int, grams: float, status: str = "accepted", device_id=None, hour: int = 8):
    ts = FLOCK_START + timedelta(days=age, hours=hour)
    return {"timestamp": ts.isoformat(), "value_grams": grams, "status": status, "device_id": device_id}
