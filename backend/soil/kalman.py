"""
kalman.py — Adaptive Scalar Kalman Filter
==========================================

Denoises the raw soil-moisture stream and produces the innovation
(measurement minus prediction) that drives the CUSUM detector.

Model (identity transition, no control input):
    x_t = x_(t-1) + w_t    w ~ N(0, Q)
    z_t = x_t + v_t        v ~ N(0, R)

Adaptive process noise:
    The normalized innovation squared  lambda = innovation^2 / S  is
    compared with the chi-square (1 dof, 95%) critical value 3.84.
    A surprising innovation switches Q to its inflated level for the
    next tick, so the estimate follows a genuine jump faster; any normal
    innovation switches it straight back to the base level. Q therefore
    only ever takes two values.
"""

import logging

from . import config
from .errors import ConfigError
from .models import KalmanState

logger = logging.getLogger("soil.kalman")


class KalmanEstimator:
    """
    Two-regime adaptive Kalman filter for a single scalar channel.

    Attributes:
        process_noise_base (float): Nominal Q.
        process_noise_inflated (float): Q after a surprising innovation.
        measurement_noise (float): Fixed R.
        chi_square_threshold (float): Surprise cut-off for lambda.
        last_nis (float): Normalized innovation squared of the last step.
    """

    def __init__(self, process_noise_base: float = None,
                 process_noise_inflation: float = None,
                 measurement_noise: float = None,
                 chi_square_threshold: float = None,
                 initial_estimate: float = None,
                 initial_error_covariance: float = None):
        """
        Args:
            process_noise_base: Nominal Q. Defaults to config (0.01).
            process_noise_inflation: Q multiplier in the surprised regime.
                Defaults to config (2.5).
            measurement_noise: R. Defaults to config (0.5).
            chi_square_threshold: Defaults to config (3.84).
            initial_estimate: Starting estimate. Defaults to config (45.0).
            initial_error_covariance: Starting P. Defaults to config (1.0).

        Raises:
            ConfigError: If any noise term or threshold is not positive.
        """
        self.process_noise_base = _pick(process_noise_base, config.PROCESS_NOISE_BASE)
        inflation = _pick(process_noise_inflation, config.PROCESS_NOISE_INFLATION)
        self.measurement_noise = _pick(measurement_noise, config.MEASUREMENT_NOISE)
        self.chi_square_threshold = _pick(chi_square_threshold, config.CHI_SQUARE_THRESHOLD)
        self.initial_estimate = _pick(initial_estimate, config.INITIAL_ESTIMATE)
        self.initial_error_covariance = _pick(initial_error_covariance,
                                              config.INITIAL_ERROR_COVARIANCE)

        if self.measurement_noise <= 0:
            raise ConfigError(f"measurement_noise must be > 0, got {self.measurement_noise}")
        if self.process_noise_base <= 0:
            raise ConfigError(f"process_noise_base must be > 0, got {self.process_noise_base}")
        if inflation <= 0:
            raise ConfigError(f"process_noise_inflation must be > 0, got {inflation}")
        if self.chi_square_threshold <= 0:
            raise ConfigError(
                f"chi_square_threshold must be > 0, got {self.chi_square_threshold}"
            )
        if self.initial_error_covariance < 0:
            raise ConfigError(
                f"initial_error_covariance must be >= 0, got {self.initial_error_covariance}"
            )

        self.process_noise_inflated = self.process_noise_base * inflation
        self.last_nis = 0.0
        self._state = self.initial_state()

    def initial_state(self) -> KalmanState:
        """The state a fresh (or reset) filter starts from."""
        return KalmanState(
            estimate=self.initial_estimate,
            error_covariance=self.initial_error_covariance,
            process_noise=self.process_noise_base,
            measurement_noise=self.measurement_noise,
            innovation=0.0,
        )

    def transition(self, measurement: float,
                   previous: KalmanState = None) -> tuple[KalmanState, float]:
        """
        Compute the next state without storing it.

        Args:
            measurement: New raw measurement z_t.
            previous: State to step from. Defaults to the current state.

        Returns:
            (new_state, lambda) where lambda is the normalized
            innovation squared used for the regime decision.
        """
        prev = previous if previous is not None else self._state

        # Predict
        predicted_estimate = prev.estimate
        predicted_error_cov = prev.error_covariance + prev.process_noise

        # Innovation; S > 0 because R > 0
        innovation = measurement - predicted_estimate
        innovation_cov = predicted_error_cov + prev.measurement_noise

        nis = (innovation * innovation) / innovation_cov
        if nis > self.chi_square_threshold:
            process_noise = self.process_noise_inflated
        else:
            process_noise = self.process_noise_base

        # Update
        gain = predicted_error_cov / innovation_cov
        estimate = predicted_estimate + gain * innovation
        error_cov = (1 - gain) * predicted_error_cov

        new_state = KalmanState(
            estimate=estimate,
            error_covariance=error_cov,
            process_noise=process_noise,
            measurement_noise=prev.measurement_noise,
            innovation=innovation,
        )
        return new_state, nis

    def step(self, measurement: float) -> KalmanState:
        """
        Feed one measurement and store the resulting state.

        Args:
            measurement: New raw measurement.
        Returns:
            The updated KalmanState.
        """
        new_state, nis = self.transition(measurement)
        self.commit(new_state, nis)
        return new_state

    def commit(self, state: KalmanState, nis: float = 0.0) -> None:
        """Store a state produced by transition()."""
        if state.process_noise != self._state.process_noise:
            logger.info(
                f"Process noise regime switch: {self._state.process_noise:.4f} -> "
                f"{state.process_noise:.4f} (lambda={nis:.2f})"
            )
        self._state = state
        self.last_nis = nis
        logger.debug(
            f"Kalman: estimate={state.estimate:.3f} P={state.error_covariance:.4f} "
            f"Q={state.process_noise:.4f} innovation={state.innovation:.3f}"
        )

    @property
    def state(self) -> KalmanState:
        """Current filter state."""
        return self._state

    def reset(self) -> None:
        """Restore the initial state."""
        self._state = self.initial_state()
        self.last_nis = 0.0
        logger.info("Kalman filter reset")


def _pick(value, default):
    return float(default if value is None else value)
