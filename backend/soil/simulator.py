"""
simulator.py — Simulated Soil Sensor
=====================================

Stands in for the field sensor. The engine only relies on the contract
"a finite, non-negative reading per call"; the noise model here is a
uniform perturbation around a fixed baseline with an occasional
injected +/- offset that the detector should catch.

Moisture is the only channel fed through the Kalman/CUSUM pipeline.
pH, EC and NPK are drawn independently each tick and only classified.
"""

import logging

import numpy as np

from . import config

logger = logging.getLogger("soil.simulator")


def next_reading(baseline: float, variance: float, inject_anomaly: bool = False,
                 rng: np.random.Generator = None) -> float:
    """
    Draw one simulated measurement.

    reading = max(0, baseline + U(-0.5, 0.5) * variance [+/- ANOMALY_OFFSET])

    Args:
        baseline: Centre of the noise band.
        variance: Width of the uniform noise band.
        inject_anomaly: Add a +/- offset (sign picked 50/50).
        rng: numpy Generator. A fresh default generator when omitted.

    Returns:
        Non-negative reading.
    """
    rng = rng if rng is not None else np.random.default_rng()
    noise = (rng.random() - 0.5) * variance
    offset = 0.0
    if inject_anomaly:
        offset = config.ANOMALY_OFFSET if rng.random() > 0.5 else -config.ANOMALY_OFFSET
    return max(0.0, float(baseline + noise + offset))


class SensorSimulator:
    """
    Measurement source for the engine and the scheduler.

    Attributes:
        anomaly_probability (float): Chance a moisture read is perturbed.
        rng (np.random.Generator): Random source (seedable for tests).
    """

    def __init__(self, anomaly_probability: float = None, seed: int = None,
                 baseline: float = None, variance: float = None):
        self.anomaly_probability = (anomaly_probability if anomaly_probability is not None
                                    else config.ANOMALY_PROBABILITY)
        self.baseline = baseline if baseline is not None else config.MOISTURE_BASELINE
        self.variance = variance if variance is not None else config.MOISTURE_VARIANCE
        self.rng = np.random.default_rng(seed)

    def read_moisture(self) -> float:
        """Raw soil moisture in %."""
        inject = bool(self.rng.random() < self.anomaly_probability)
        if inject:
            logger.info("Injecting simulated moisture anomaly")
        return next_reading(self.baseline, self.variance, inject, rng=self.rng)

    def read_auxiliary(self) -> dict:
        """pH, EC and NPK readings, rounded the way the dashboard shows them."""
        values = {}
        for name, (baseline, variance, decimals) in config.AUXILIARY_BASELINES.items():
            value = next_reading(baseline, variance, rng=self.rng)
            values[name] = round(value, decimals) if decimals else float(round(value))
        return values
