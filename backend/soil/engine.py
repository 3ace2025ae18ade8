"""
engine.py — Soil Anomaly Detection Engine
==========================================

Owns the filter, the detector and the bounded buffers, and runs the
per-tick pipeline:

    measurement -> Kalman step -> CUSUM on innovation -> range
    classification -> reading history -> alert (on anomaly) -> stats

A tick is computed in full before anything is stored, so a failure
part-way leaves the engine exactly as it was (raised as TickError).
Ticks never interleave: one lock serialises every mutator.

States:
    IDLE     — not sampling (initial state)
    RUNNING  — the scheduler is ticking the engine

reset() clears history, alerts, filter/detector state and counters in
either state without changing it.

Usage:
    engine = AnomalyEngine()
    engine.start()
    result = engine.tick()
    snapshot = engine.snapshot()
"""

import logging
import threading
from datetime import datetime, timezone

import pandas as pd

from . import config
from .buffers import AlertLog, ReadingHistory
from .classification import RangeClassifier
from .cusum import CumSumDetector
from .errors import TickError
from .kalman import KalmanEstimator
from .models import (
    HIGH,
    SEVERITY_CRITICAL,
    SEVERITY_WARNING,
    Alert,
    CumSumState,
    KalmanState,
    SensorReading,
    SystemStats,
    TickResult,
)
from .simulator import SensorSimulator
from .utils import validate_measurement

logger = logging.getLogger("soil.engine")

IDLE = "idle"
RUNNING = "running"

MOISTURE_PARAMETER = "moisture"
MOISTURE_LABEL = "Soil Moisture"

HIGH_MOISTURE_MESSAGE = "High moisture detected - Check irrigation system"
LOW_MOISTURE_MESSAGE = "Low moisture detected - Consider irrigation"

HISTORY_COLUMNS = ["timestamp", "raw", "filtered", *config.AUXILIARY_PARAMETERS]


def default_values() -> dict:
    """Parameter values shown before the first tick."""
    values = {MOISTURE_PARAMETER: config.INITIAL_ESTIMATE}
    for name, (baseline, _variance, _decimals) in config.AUXILIARY_BASELINES.items():
        values[name] = baseline
    return values


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnomalyEngine:
    """
    Per-sensor Kalman–CUSUM anomaly engine.

    Attributes:
        source: Measurement source with read_moisture() / read_auxiliary().
        kalman (KalmanEstimator): Moisture filter.
        detector (CumSumDetector): Change detector on the innovation.
        classifier (RangeClassifier): Agronomic band lookup.
    """

    def __init__(self, source=None, kalman: KalmanEstimator = None,
                 detector: CumSumDetector = None,
                 classifier: RangeClassifier = None,
                 history_capacity: int = None, alert_capacity: int = None,
                 clock=None):
        """
        Args:
            source: Measurement source. Defaults to a SensorSimulator.
            kalman: Defaults to a KalmanEstimator built from config.
            detector: Defaults to a CumSumDetector built from config.
            classifier: Defaults to the reference ranges.
            history_capacity: Defaults to config.HISTORY_CAPACITY (25).
            alert_capacity: Defaults to config.ALERT_CAPACITY (8).
            clock: Zero-arg callable returning the tick timestamp.

        Raises:
            ConfigError: If any component is misconfigured.
        """
        self.source = source if source is not None else SensorSimulator()
        self.kalman = kalman if kalman is not None else KalmanEstimator()
        self.detector = detector if detector is not None else CumSumDetector()
        self.classifier = classifier if classifier is not None else RangeClassifier()
        self._history = ReadingHistory(history_capacity)
        self._alerts = AlertLog(alert_capacity)
        self._clock = clock or _utc_now

        self._lock = threading.Lock()
        self._state = IDLE
        self._next_alert_id = 1
        self._stats = SystemStats()
        self._current_values = default_values()
        self._last_result = None

    # ── Lifecycle ─────────────────────────────────────────────────

    def start(self) -> None:
        with self._lock:
            if self._state == RUNNING:
                logger.info("Engine already running")
                return
            self._state = RUNNING
        logger.info("Monitoring started")

    def stop(self) -> None:
        """Stop monitoring. The last computed state is kept."""
        with self._lock:
            if self._state == IDLE:
                logger.info("Engine already idle")
                return
            self._state = IDLE
        logger.info("Monitoring stopped")

    def reset(self) -> None:
        """
        Restore filter, detector, buffers and counters to their defaults.

        Idempotent; leaves the IDLE/RUNNING state unchanged.
        """
        with self._lock:
            self.kalman.reset()
            self.detector.reset()
            self._history.clear()
            self._alerts.clear()
            self._stats = SystemStats()
            self._current_values = default_values()
            self._last_result = None
        logger.info("Engine reset to defaults")

    def clear_alerts(self) -> None:
        with self._lock:
            self._alerts.clear()

    # ── Tick ──────────────────────────────────────────────────────

    def tick(self, measurement: float = None, auxiliary: dict = None) -> TickResult:
        """
        Run one full sampling cycle.

        Args:
            measurement: Raw moisture. Read from the source when omitted
                (together with the auxiliary channels).
            auxiliary: Optional {parameter: value} for pH, EC and NPK.

        Returns:
            TickResult with the reading, filter state, detector verdict,
            parameter statuses and the alert raised (if any).

        Raises:
            TickError: If anything fails; no state has been changed.
        """
        with self._lock:
            try:
                if measurement is None:
                    measurement = self.source.read_moisture()
                    if auxiliary is None:
                        auxiliary = self.source.read_auxiliary()
                measurement = validate_measurement(measurement)
                auxiliary = dict(auxiliary or {})

                kalman_state, nis = self.kalman.transition(measurement)
                cusum_result = self.detector.evaluate(kalman_state.innovation)

                timestamp = self._clock()
                moisture = round(kalman_state.estimate, 1)
                values = {MOISTURE_PARAMETER: moisture}
                for name in config.AUXILIARY_PARAMETERS:
                    if auxiliary.get(name) is not None:
                        values[name] = float(auxiliary[name])
                statuses = self.classifier.classify_all(values)

                reading = SensorReading(
                    timestamp=timestamp,
                    raw=measurement,
                    filtered=kalman_state.estimate,
                    **{name: values.get(name) for name in config.AUXILIARY_PARAMETERS},
                )
                alert = None
                if cusum_result.is_anomaly:
                    alert = self._build_alert(cusum_result.direction, moisture, timestamp)
                stats = self._next_stats(cusum_result.is_anomaly)
            except Exception as e:
                logger.error(f"Tick failed, state unchanged: {e}", exc_info=True)
                raise TickError(f"Tick failed: {e}") from e

            # Commit
            self.kalman.commit(kalman_state, nis)
            self.detector.commit(cusum_result)
            self._history.append(reading)
            if alert is not None:
                self._alerts.push(alert)
                self._next_alert_id += 1
            self._stats = stats
            self._current_values.update(values)

            result = TickResult(
                reading=reading,
                kalman=kalman_state,
                cusum=cusum_result,
                statuses=statuses,
                alert=alert,
            )
            self._last_result = result

        log_msg = (f"Tick #{stats.total_readings}: raw={measurement:.2f} "
                   f"filtered={kalman_state.estimate:.2f} "
                   f"innovation={kalman_state.innovation:.2f} "
                   f"direction={cusum_result.direction}")
        if alert is not None:
            logger.warning(f"{log_msg} ALERT [{alert.severity}] {alert.message}")
        else:
            logger.debug(log_msg)
        return result

    def _build_alert(self, direction: str, value: float, timestamp: datetime) -> Alert:
        if direction == HIGH:
            severity, message = SEVERITY_WARNING, HIGH_MOISTURE_MESSAGE
        else:
            severity, message = SEVERITY_CRITICAL, LOW_MOISTURE_MESSAGE
        return Alert(
            id=self._next_alert_id,
            severity=severity,
            message=message,
            parameter=MOISTURE_LABEL,
            value=value,
            timestamp=timestamp,
        )

    def _next_stats(self, is_anomaly: bool) -> SystemStats:
        prev = self._stats
        return SystemStats(
            total_readings=prev.total_readings + 1,
            anomalies_detected=prev.anomalies_detected + (1 if is_anomaly else 0),
            data_accuracy=min(config.ACCURACY_MAX, prev.data_accuracy + config.ACCURACY_STEP),
        )

    # ── Read-only views ───────────────────────────────────────────

    @property
    def state(self) -> str:
        """IDLE or RUNNING."""
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == RUNNING

    @property
    def kalman_state(self) -> KalmanState:
        return self.kalman.state

    @property
    def cusum_state(self) -> CumSumState:
        return self.detector.state

    @property
    def stats(self) -> SystemStats:
        return self._stats

    @property
    def history(self) -> list[SensorReading]:
        """Chronological copy of the reading history."""
        with self._lock:
            return self._history.snapshot()

    @property
    def alerts(self) -> list[Alert]:
        """Newest-first copy of the alert list."""
        with self._lock:
            return self._alerts.snapshot()

    @property
    def last_result(self):
        return self._last_result

    def snapshot(self) -> dict:
        """
        Consumer view after the latest tick.

        Returns:
            Dict with keys: state, current_values ({parameter: {value,
            status}}), history (chronological), alerts (newest first),
            metrics (filter and detector internals) and stats.
        """
        with self._lock:
            kalman_state = self.kalman.state
            cusum_state = self.detector.state
            return {
                "state": self._state,
                "current_values": {
                    name: {
                        "value": value,
                        "status": self.classifier.classify(value, name),
                    }
                    for name, value in self._current_values.items()
                },
                "history": [r.to_dict() for r in self._history.snapshot()],
                "alerts": [a.to_dict() for a in self._alerts.snapshot()],
                "metrics": {
                    "estimate": kalman_state.estimate,
                    "error_covariance": kalman_state.error_covariance,
                    "process_noise": kalman_state.process_noise,
                    "innovation": kalman_state.innovation,
                    "cusum_positive": cusum_state.positive,
                    "cusum_negative": cusum_state.negative,
                    "threshold": self.detector.threshold,
                },
                "stats": self._stats.to_dict(),
            }

    def history_frame(self) -> pd.DataFrame:
        """Reading history as a DataFrame (one row per reading, oldest first)."""
        rows = [r.to_dict() for r in self.history]
        df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
        return df
