"""
Runs monitoring cycles on a fixed cadence without letting them overlap.
"""

import threading
import time
from typing import Any, Callable, Optional

from app.loan_monitor.logging_config import setup_logger

logger = setup_logger()


class MonitorScheduler:
    """
    Calls ``cycle`` every ``interval`` seconds from a single worker thread.

    The next cycle is scheduled only after the previous one returns: the
    loop sleeps for whatever is left of the interval, or not at all when a
    cycle overran it. ``run_once`` is guarded by a non-blocking lock, so a
    tick that arrives while a cycle is in flight is skipped and logged.
    """

    def __init__(
        self,
        cycle: Callable[[], Any],
        interval: float,
        on_stop: Optional[Callable[[], None]] = None,
        name: str = "loan-monitor",
    ):
        self.cycle = cycle
        self.interval = interval
        self.on_stop = on_stop
        self.name = name

        self.cycles_run = 0
        self.ticks_skipped = 0
        self.last_result: Any = None

        self._busy = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            logger.warning("MonitorScheduler: %s already running", self.name)
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info("MonitorScheduler: %s started, interval %ss", self.name, self.interval)

    def run_once(self) -> Any:
        """Run one cycle unless one is already in flight. Returns None when skipped."""
        if not self._busy.acquire(blocking=False):
            self.ticks_skipped += 1
            logger.warning("MonitorScheduler: Previous cycle still running, skipping tick")
            return None

        try:
            result = self.cycle()
            self.cycles_run += 1
            self.last_result = result
            return result
        except Exception as ex:
            logger.error("MonitorScheduler: Unexpected exception in monitoring cycle: %s", ex, exc_info=True)
            return None
        finally:
            self._busy.release()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            self.run_once()

            remaining = self.interval - (time.monotonic() - started)
            if remaining <= 0:
                logger.warning(
                    "MonitorScheduler: Cycle took %.2fs, longer than the %ss interval",
                    time.monotonic() - started, self.interval,
                )
                continue
            self._stop_event.wait(remaining)

        logger.info("MonitorScheduler: %s loop exited", self.name)

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Stop scheduling and wait for the in-flight cycle to drain.

        Returns:
            True if the worker exited within the timeout.
        """
        self._stop_event.set()
        if self.on_stop:
            self.on_stop()

        if self._thread is None:
            return True

        self._thread.join(timeout)
        stopped = not self._thread.is_alive()
        if stopped:
            logger.info("MonitorScheduler: %s stopped after %s cycles", self.name, self.cycles_run)
        else:
            logger.warning("MonitorScheduler: %s still draining after %ss", self.name, timeout)
        return stopped
