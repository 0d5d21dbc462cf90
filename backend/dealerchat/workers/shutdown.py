"""Signal-driven graceful shutdown of the worker process."""

from __future__ import annotations

import logging
import signal
import threading
from typing import Protocol

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class Stoppable(Protocol):
    def stop(self) -> None: ...


class Closable(Protocol):
    def close(self) -> None: ...


class ShutdownCoordinator:
    """Wait for a termination signal, then drain and release everything once.

    Order: consumers finish their in-flight jobs, the watchdog stops, then
    broker connections, Redis and the database are closed.
    """

    def __init__(self, pool, watchdog: Stoppable, resources: Closable):
        self.pool = pool
        self.watchdog = watchdog
        self.resources = resources
        self._requested = threading.Event()
        self._lock = threading.Lock()
        self._exit_code: int | None = None

    def install_signal_handlers(self) -> None:
        for sig in SHUTDOWN_SIGNALS:
            signal.signal(sig, self._handle_signal)

    def _handle_signal(self, signum, frame) -> None:
        # Only flag it here; the main thread does the draining
        logger.info(f"Received {signal.Signals(signum).name}, shutting down gracefully...")
        self._requested.set()

    def request_shutdown(self) -> None:
        self._requested.set()

    @property
    def shutdown_requested(self) -> bool:
        return self._requested.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._requested.wait(timeout)

    def shutdown(self) -> int:
        """Run the shutdown sequence and return the process exit code."""
        with self._lock:
            if self._exit_code is not None:
                return self._exit_code
            try:
                self.pool.stop()
                self.watchdog.stop()
                self.pool.close()
                self.resources.close()
            except Exception:
                logger.exception("Error during shutdown")
                self._exit_code = 1
            else:
                logger.info("Worker shut down cleanly")
                self._exit_code = 0
            return self._exit_code

    def run_until_signalled(self) -> int:
        while not self.wait(1.0):
            pass
        return self.shutdown()
