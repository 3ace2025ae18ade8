from __future__ import annotations

import time

import pytest

from backend.soil.engine import IDLE, RUNNING, AnomalyEngine
from backend.soil.errors import ConfigError
from backend.soil.scheduler import MonitorScheduler

from .helpers import FailingSource, FakeSource, SlowSource


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_scheduler_ticks_while_running(clock) -> None:
    engine = AnomalyEngine(source=FakeSource(), clock=clock)
    results = []
    scheduler = MonitorScheduler(engine, interval_seconds=0.01, on_result=results.append)

    scheduler.start()
    assert engine.state == RUNNING
    assert scheduler.is_running
    assert wait_for(lambda: engine.stats.total_readings >= 3)
    scheduler.stop()

    assert engine.state == IDLE
    assert not scheduler.is_running
    count = engine.stats.total_readings
    assert len(results) == count
    time.sleep(0.05)
    assert engine.stats.total_readings == count


def test_tick_failure_is_skipped(clock) -> None:
    engine = AnomalyEngine(source=FailingSource(), clock=clock)
    scheduler = MonitorScheduler(engine, interval_seconds=1.0)
    assert scheduler.tick_once() is None
    assert scheduler.failures == 1
    assert engine.stats.total_readings == 0


def test_stop_on_failure(clock) -> None:
    engine = AnomalyEngine(source=FailingSource(), clock=clock)
    scheduler = MonitorScheduler(engine, interval_seconds=0.01, stop_on_failure=True)
    scheduler.start()
    assert wait_for(lambda: engine.state == IDLE)
    assert scheduler.failures >= 1


def test_reset_does_not_stop(clock) -> None:
    engine = AnomalyEngine(source=FakeSource([70.0]), clock=clock)
    scheduler = MonitorScheduler(engine, interval_seconds=1.0)
    scheduler.tick_once()
    engine.start()
    scheduler.reset()
    assert engine.state == RUNNING
    assert engine.stats.total_readings == 0


def test_invalid_interval() -> None:
    with pytest.raises(ConfigError):
        MonitorScheduler(AnomalyEngine(source=FakeSource()), interval_seconds=0)


def test_failing_result_handler_does_not_stop_ticking(clock) -> None:
    engine = AnomalyEngine(source=FakeSource(), clock=clock)

    def handler(result) -> None:
        raise ValueError("consumer broke")

    scheduler = MonitorScheduler(engine, interval_seconds=0.01, on_result=handler)
    scheduler.start()
    assert wait_for(lambda: engine.stats.total_readings >= 3)
    assert scheduler.is_running
    assert engine.state == RUNNING
    scheduler.stop()
    assert scheduler.failures == 0


def test_overrunning_ticks_are_dropped_not_overlapped(clock) -> None:
    source = SlowSource(delay=0.05)
    engine = AnomalyEngine(source=source, clock=clock)
    scheduler = MonitorScheduler(engine, interval_seconds=0.01)

    scheduler.start()
    assert wait_for(lambda: engine.stats.total_readings >= 3)
    scheduler.stop()

    assert scheduler.dropped >= 1
    assert source.max_active == 1


def test_restart_after_timed_out_stop_keeps_single_worker(clock) -> None:
    source = SlowSource(delay=0.2)
    engine = AnomalyEngine(source=source, clock=clock)
    scheduler = MonitorScheduler(engine, interval_seconds=0.01)

    scheduler.start()
    assert wait_for(lambda: source.active == 1)
    scheduler.stop(timeout=0.01)
    # the worker is still inside its tick
    assert scheduler.is_running

    scheduler.start()
    assert wait_for(lambda: engine.stats.total_readings >= 3, timeout=3.0)
    scheduler.stop()

    assert not scheduler.is_running
    assert source.max_active == 1
