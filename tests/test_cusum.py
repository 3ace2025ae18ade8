from __future__ import annotations

import pytest

from backend.soil.cusum import CumSumDetector
from backend.soil.errors import ConfigError
from backend.soil.models import HIGH, LOW, NORMAL, CumSumState


def test_large_innovation_fires_high() -> None:
    result = CumSumDetector().evaluate(25.0, CumSumState())
    assert result.state.positive == pytest.approx(24.5)
    assert result.state.negative == 0.0
    assert result.is_anomaly
    assert result.direction == HIGH


def test_positive_drift_accumulates_until_threshold() -> None:
    det = CumSumDetector()
    fired_at = None
    for k in range(1, 9):
        result = det.step(1.5)
        assert result.state.positive == pytest.approx(1.0 * k)
        assert result.state.negative == 0.0
        if result.is_anomaly and fired_at is None:
            fired_at = k
            assert result.direction == HIGH
    # 5.0 is not above the threshold, 6.0 is
    assert fired_at == 6


def test_negative_drift_mirrors() -> None:
    det = CumSumDetector()
    fired_at = None
    for k in range(1, 9):
        result = det.step(-1.5)
        assert result.state.negative == pytest.approx(-1.0 * k)
        assert result.state.positive == 0.0
        if result.is_anomaly and fired_at is None:
            fired_at = k
            assert result.direction == LOW
    assert fired_at == 6


def test_small_innovations_are_clamped() -> None:
    det = CumSumDetector()
    for v in [0.3, -0.4, 0.5, -0.5, 0.1]:
        result = det.step(v)
        assert result.state.positive >= 0.0
        assert result.state.negative <= 0.0
        assert result.direction == NORMAL
    assert det.state == CumSumState(0.0, 0.0)


def test_evaluate_is_pure() -> None:
    det = CumSumDetector()
    det.evaluate(25.0)
    assert det.state == CumSumState()


def test_reset() -> None:
    det = CumSumDetector()
    det.step(25.0)
    det.reset()
    assert det.state == CumSumState()


def test_custom_threshold() -> None:
    det = CumSumDetector(slack=0.0, threshold=1.0)
    assert det.step(1.5).direction == HIGH


@pytest.mark.parametrize("kwargs", [{"threshold": 0.0}, {"slack": -0.1}])
def test_invalid_configuration_rejected(kwargs: dict) -> None:
    with pytest.raises(ConfigError):
        CumSumDetector(**kwargs)
