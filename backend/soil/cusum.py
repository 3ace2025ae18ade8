"""
cusum.py — Two-Sided CUSUM Change Detector
===========================================

Accumulates the Kalman innovation sequence and flags a sustained shift
in either direction:

    S+_t = max(0, S+_(t-1) + v_t - slack)
    S-_t = min(0, S-_(t-1) + v_t + slack)

An anomaly is raised while S+ > threshold (direction HIGH) or
S- < -threshold (direction LOW).

Why the innovation and not the raw value:
    Under normal operation the innovation is zero-mean, so slow drift
    that the filter has already absorbed into its estimate does not
    accumulate. Only unexpected deviations do.

The accumulators are not cleared after an alarm; they decay back
through the slack term as innovations return to normal.
"""

import logging

from . import config
from .errors import ConfigError
from .models import HIGH, LOW, NORMAL, CumSumResult, CumSumState

logger = logging.getLogger("soil.cusum")


class CumSumDetector:
    """
    Sequential change detector on the innovation stream.

    Attributes:
        slack (float): Drift tolerance subtracted from each increment.
        threshold (float): Decision boundary for either accumulator.
    """

    def __init__(self, slack: float = None, threshold: float = None):
        """
        Args:
            slack: Defaults to config.CUSUM_SLACK (0.5).
            threshold: Defaults to config.CUSUM_THRESHOLD (5.0).

        Raises:
            ConfigError: If slack is negative or threshold not positive.
        """
        self.slack = float(slack if slack is not None else config.CUSUM_SLACK)
        self.threshold = float(threshold if threshold is not None else config.CUSUM_THRESHOLD)
        if self.slack < 0:
            raise ConfigError(f"CUSUM slack must be >= 0, got {self.slack}")
        if self.threshold <= 0:
            raise ConfigError(f"CUSUM threshold must be > 0, got {self.threshold}")
        self._state = CumSumState()

    def evaluate(self, innovation: float, previous: CumSumState = None) -> CumSumResult:
        """
        Compute the detector verdict for one innovation without storing it.

        Args:
            innovation: Kalman innovation for this tick.
            previous: Accumulators to step from. Defaults to the current state.

        Returns:
            CumSumResult with the new accumulators, the anomaly flag and
            the direction (HIGH, LOW or NORMAL).
        """
        prev = previous if previous is not None else self._state

        s_plus = max(0.0, prev.positive + innovation - self.slack)
        s_minus = min(0.0, prev.negative + innovation + self.slack)

        if s_plus > self.threshold:
            direction = HIGH
        elif s_minus < -self.threshold:
            direction = LOW
        else:
            direction = NORMAL

        return CumSumResult(
            state=CumSumState(positive=s_plus, negative=s_minus),
            is_anomaly=direction != NORMAL,
            direction=direction,
        )

    def step(self, innovation: float) -> CumSumResult:
        """Evaluate one innovation and store the new accumulators."""
        result = self.evaluate(innovation)
        self.commit(result)
        return result

    def commit(self, result: CumSumResult) -> None:
        """Store the accumulators of a result produced by evaluate()."""
        self._state = result.state
        if result.is_anomaly:
            logger.warning(
                f"CUSUM alarm ({result.direction}): S+={result.state.positive:.3f} "
                f"S-={result.state.negative:.3f} threshold={self.threshold}"
            )
        else:
            logger.debug(
                f"CUSUM: S+={result.state.positive:.3f} S-={result.state.negative:.3f}"
            )

    @property
    def state(self) -> CumSumState:
        """Current accumulators."""
        return self._state

    def reset(self) -> None:
        """Reset both accumulators to zero."""
        self._state = CumSumState()
        logger.info("CUSUM detector reset")
