from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone


class FakeSource:
    """Deterministic measurement source."""

    def __init__(self, moisture: list[float] | None = None, auxiliary: dict | None = None) -> None:
        self.moisture = list(moisture or [45.0])
        self.auxiliary = auxiliary or {
            "ph": 6.8, "ec": 1.2, "nitrogen": 35.0, "phosphorus": 18.0, "potassium": 25.0,
        }
        self.calls = 0

    def read_moisture(self) -> float:
        value = self.moisture[min(self.calls, len(self.moisture) - 1)]
        self.calls += 1
        return value

    def read_auxiliary(self) -> dict:
        return dict(self.auxiliary)


class FailingSource:
    def read_moisture(self) -> float:
        raise RuntimeError("sensor offline")

    def read_auxiliary(self) -> dict:
        return {}


class SlowSource(FakeSource):
    """Source whose reads take `delay` seconds and record overlapping calls."""

    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def read_moisture(self) -> float:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delay)
            return super().read_moisture()
        finally:
            with self._lock:
                self.active -= 1


class StepClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=2)
        return self.now


class FakeMessageInfo:
    def __init__(self, rc: int) -> None:
        self.rc = rc


class FakeMqttClient:
    """Records publishes instead of talking to a broker."""

    def __init__(self, rc: int = 0, error: Exception | None = None) -> None:
        self.rc = rc
        self.error = error
        self.published = []

    def publish(self, topic: str, payload: str, qos: int = 0) -> FakeMessageInfo:
        if self.error is not None:
            raise self.error
        self.published.append((topic, payload, qos))
        return FakeMessageInfo(self.rc)

    def loop_stop(self) -> None:
        pass

    def disconnect(self) -> None:
        pass
