"""
scheduler.py — Periodic Tick Scheduler
=======================================

Drives an AnomalyEngine on a fixed cadence (default every 2 s) from a
single background thread while monitoring is running.

Ticks never overlap: the worker runs them one after another, and when a
tick overruns its slot the missed slots are dropped rather than queued.
A TickError is logged and the tick skipped, unless the scheduler was
built with stop_on_failure=True, in which case monitoring stops.
"""

import logging
import threading
import time

from . import config
from .errors import ConfigError, TickError

logger = logging.getLogger("soil.scheduler")


class MonitorScheduler:
    """
    Background ticker for one engine.

    Attributes:
        engine (AnomalyEngine): Engine to tick.
        interval_seconds (float): Tick cadence.
        stop_on_failure (bool): Stop monitoring on the first TickError.
        failures (int): TickErrors seen since construction.
        dropped (int): Tick slots skipped because a tick overran.
    """

    def __init__(self, engine, interval_seconds: float = None,
                 stop_on_failure: bool = False, on_result=None):
        """
        Args:
            engine: AnomalyEngine to drive.
            interval_seconds: Defaults to config.TICK_INTERVAL_SECONDS (2 s).
            stop_on_failure: Stop monitoring on the first TickError.
            on_result: Optional callback receiving each TickResult.
        """
        self.engine = engine
        self.on_result = on_result
        self.interval_seconds = float(interval_seconds if interval_seconds is not None
                                      else config.TICK_INTERVAL_SECONDS)
        if self.interval_seconds <= 0:
            raise ConfigError(f"Tick interval must be > 0, got {self.interval_seconds}")
        self.stop_on_failure = stop_on_failure
        self.failures = 0
        self.dropped = 0
        # One event per run, so a worker still finishing its last tick
        # cannot be revived by a later start().
        self._stop_event = threading.Event()
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Put the engine in RUNNING and start ticking."""
        if self.is_running and not self._stop_event.is_set():
            logger.info("Scheduler already running")
            return
        if self._thread is not None and self._thread is not threading.current_thread():
            logger.info("Waiting for the previous worker to finish its tick")
            self._thread.join()
        self.engine.start()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,),
            name="soil-monitor-scheduler", daemon=True,
        )
        self._thread.start()
        logger.info(f"Scheduler started (interval={self.interval_seconds}s)")

    def stop(self, timeout: float = None) -> None:
        """Stop ticking and put the engine in IDLE. Engine state is kept."""
        self._stop_event.set()
        thread = self._thread
        if thread is threading.current_thread():
            self._thread = None
        elif thread is not None:
            thread.join(timeout if timeout is not None else self.interval_seconds + 1.0)
            if thread.is_alive():
                logger.warning("Scheduler worker still finishing a tick")
            else:
                self._thread = None
        self.engine.stop()
        logger.info("Scheduler stopped")

    def reset(self) -> None:
        """Reset the engine without interrupting the schedule."""
        self.engine.reset()

    def tick_once(self):
        """
        Run a single tick now, applying the failure policy.

        A failing on_result callback is logged; the tick itself has
        already been committed and the schedule carries on.

        Returns:
            The TickResult, or None if the tick failed.
        """
        try:
            result = self.engine.tick()
        except TickError as e:
            self.failures += 1
            logger.error(f"Tick failed ({self.failures} so far): {e}")
            if self.stop_on_failure:
                logger.warning("Stopping monitoring after tick failure")
                self.stop()
            return None
        if self.on_result is not None:
            try:
                self.on_result(result)
            except Exception as e:
                logger.error(f"Result handler failed: {e}", exc_info=True)
        return result

    def _run(self, stop_event: threading.Event) -> None:
        next_due = time.monotonic() + self.interval_seconds
        while not stop_event.wait(max(0.0, next_due - time.monotonic())):
            self.tick_once()
            next_due += self.interval_seconds
            now = time.monotonic()
            if now > next_due:
                missed = int((now - next_due) // self.interval_seconds) + 1
                self.dropped += missed
                next_due += missed * self.interval_seconds
                logger.warning(f"Tick overran its slot, dropped {missed} tick(s)")
