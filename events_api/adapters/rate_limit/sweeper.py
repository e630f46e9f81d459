"""Background eviction of idle rate limiter clients."""

from __future__ import annotations

import logging
import threading

from events_api.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


class RegistrySweeper:
    """Daemon thread that periodically sweeps a rate limiter registry.

    The loop waits on an Event rather than sleeping, so ``stop()`` wakes it
    immediately instead of after the current interval.
    """

    def __init__(
        self,
        registry: AbstractRateLimiter,
        *,
        interval: float = 60.0,
        idle_threshold: float | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")

        self._registry = registry
        self._interval = interval
        self._idle_threshold = idle_threshold if idle_threshold is not None else interval * 3
        if self._idle_threshold <= 0:
            raise ValueError("idle_threshold must be > 0")

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def idle_threshold(self) -> float:
        return self._idle_threshold

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def run_once(self) -> int:
        """Sweep the registry a single time and return how many were evicted."""
        return self._registry.sweep(self._idle_threshold)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.run_once()
            except Exception:  # noqa: BLE001 - keep the loop alive for the process lifetime
                logger.exception("sweeper.failed")

    def start(self) -> None:
        """Start the sweep loop. Calling it on a running sweeper does nothing."""
        with self._lock:
            if self.running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="rate-limit-sweeper",
                daemon=True,
            )
            self._thread.start()

        logger.info(
            "sweeper.started",
            extra={"interval_s": self._interval, "idle_threshold_s": self._idle_threshold},
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """Wake the loop and wait for the thread to finish."""
        with self._lock:
            thread = self._thread
            self._stop_event.set()
            self._thread = None

        if thread is not None:
            thread.join(timeout)
            logger.info("sweeper.stopped")
