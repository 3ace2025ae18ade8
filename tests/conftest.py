from __future__ import annotations

import pytest

from backend.soil import pipeline

from .helpers import StepClock


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture(autouse=True)
def _reset_pipeline():
    yield
    pipeline.shutdown()
