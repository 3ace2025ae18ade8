"""
models.py — Engine State and Output Records
============================================

Immutable value types passed between the filter, the detector and the
engine, plus the records handed to consumers (readings, alerts, stats).
Each record has a ``to_dict()`` for JSON responses.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

from . import config

# CUSUM directions
HIGH = "high"
LOW = "low"
NORMAL = "normal"

# Alert severities
SEVERITY_WARNING = "warning"
SEVERITY_CRITICAL = "critical"


@dataclass(frozen=True)
class KalmanState:
    """Scalar Kalman filter state after a step."""

    estimate: float = config.INITIAL_ESTIMATE
    error_covariance: float = config.INITIAL_ERROR_COVARIANCE
    process_noise: float = config.PROCESS_NOISE_BASE
    measurement_noise: float = config.MEASUREMENT_NOISE
    innovation: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CumSumState:
    """Two-sided CUSUM accumulators (positive >= 0, negative <= 0)."""

    positive: float = 0.0
    negative: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CumSumResult:
    state: CumSumState
    is_anomaly: bool
    direction: str


@dataclass(frozen=True)
class SensorReading:
    """
    One tick's worth of sensor data.

    ``raw`` is the measurement fed to the filter, ``filtered`` the
    Kalman estimate after the step. Auxiliary channels are ``None``
    when the tick was run without them.
    """

    timestamp: datetime
    raw: float
    filtered: float
    ph: Optional[float] = None
    ec: Optional[float] = None
    nitrogen: Optional[float] = None
    phosphorus: Optional[float] = None
    potassium: Optional[float] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class Alert:
    id: int
    severity: str
    message: str
    parameter: str
    value: float
    timestamp: datetime

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class SystemStats:
    total_readings: int = 0
    anomalies_detected: int = 0
    data_accuracy: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TickResult:
    """Everything a single tick produced."""

    reading: SensorReading
    kalman: KalmanState
    cusum: CumSumResult
    statuses: dict = field(default_factory=dict)
    alert: Optional[Alert] = None

    @property
    def is_anomaly(self) -> bool:
        return self.cusum.is_anomaly

    def to_dict(self) -> dict:
        return {
            "reading": self.reading.to_dict(),
            "kalman": self.kalman.to_dict(),
            "cusum": self.cusum.state.to_dict(),
            "is_anomaly": self.cusum.is_anomaly,
            "direction": self.cusum.direction,
            "statuses": dict(self.statuses),
            "alert": self.alert.to_dict() if self.alert else None,
        }
