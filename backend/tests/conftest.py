import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure backend/ is importable as the top-level "broodlytics" package even when pytest runs from repo root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Settings are cached on first use; pin the test environment before importing the app
os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from _helpers import FLOCK_START, reference_records
from broodlytics.main import app
from broodlytics.routers.growth import get_registry
from broodlytics.schemas.growth import FlockContext, SampleStatus, SexProfile, WeightSample
from broodlytics.services.reference_curves import ReferenceCurveRegistry, ReferenceCurveTable


@pytest.fixture(scope="session")
def reference_table() -> ReferenceCurveTable:
    return ReferenceCurveTable.from_records(reference_records())


@pytest.fixture
def flock_context() -> FlockContext:
    return FlockContext(start_date=FLOCK_START, sex_profile=SexProfile.MIXED)


@pytest.fixture
def make_sample():
    """Factory: make_sample(age_days, grams, status="accepted", device_id=None, hour=8)."""

    def _make(age_days, grams, status=SampleStatus.ACCEPTED, device_id=None, hour=8):
        ts = FLOCK_START + timedelta(days=age_days, hours=hour)
        return WeightSample(timestamp=ts, value_grams=grams, status=SampleStatus(status), device_id=device_id)

    return _make


@pytest.fixture
def registry():
    """Isolated reference registry injected into the growth router."""
    reg = ReferenceCurveRegistry()
    app.dependency_overrides[get_registry] = lambda: reg
    try:
        yield reg
    finally:
        app.dependency_overrides.pop(get_registry, None)


@pytest.fixture(scope="function")
def client():
    with TestClient(app) as c:
        yield c
