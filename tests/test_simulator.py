from __future__ import annotations

import numpy as np

from backend.soil.simulator import SensorSimulator, next_reading


def test_reading_is_within_noise_band() -> None:
    rng = np.random.default_rng(7)
    for _ in range(200):
        value = next_reading(45.0, 5.0, rng=rng)
        assert 42.5 <= value <= 47.5


def test_reading_never_negative() -> None:
    rng = np.random.default_rng(3)
    for _ in range(200):
        assert next_reading(0.0, 5.0, inject_anomaly=True, rng=rng) >= 0.0


def test_injected_anomaly_offset() -> None:
    rng = np.random.default_rng(11)
    values = {next_reading(45.0, 0.0, inject_anomaly=True, rng=rng) for _ in range(50)}
    assert values == {25.0, 65.0}


def test_seeded_simulator_is_reproducible() -> None:
    a = SensorSimulator(seed=42)
    b = SensorSimulator(seed=42)
    assert [a.read_moisture() for _ in range(10)] == [b.read_moisture() for _ in range(10)]
    assert a.read_auxiliary() == b.read_auxiliary()


def test_auxiliary_channels_are_rounded() -> None:
    sim = SensorSimulator(seed=1)
    values = sim.read_auxiliary()
    assert set(values) == {"ph", "ec", "nitrogen", "phosphorus", "potassium"}
    assert values["nitrogen"] == int(values["nitrogen"])
    assert round(values["ph"], 1) == values["ph"]
    assert 6.6 <= values["ph"] <= 7.0


def test_anomaly_probability_one_always_perturbs() -> None:
    sim = SensorSimulator(anomaly_probability=1.0, variance=0.0, seed=5)
    assert all(sim.read_moisture() in (25.0, 65.0) for _ in range(20))
