"""Periodic broker liveness check for the worker process."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class BrokerWatchdog:
    """Ping the broker on an interval and log when it stops answering.

    Jobs orphaned by a dead worker are redelivered by the broker once their
    visibility timeout lapses (tasks are acked late); this only surfaces a
    lost connection in the logs instead of letting consumers idle silently.
    """

    def __init__(self, ping: Callable[[], bool], interval: float = 30.0):
        self.ping = ping
        self.interval = interval
        self.healthy = True
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def check(self) -> bool:
        try:
            ok = bool(self.ping())
        except (RedisError, OSError) as e:
            ok = False
            logger.error(f"Broker ping failed: {e}")
        else:
            if not ok:
                logger.error("Broker ping returned no answer")

        if ok and not self.healthy:
            logger.info("Broker connection restored")
        self.healthy = ok
        return ok

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.check()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="broker-watchdog", daemon=True)
        self._thread.start()
        logger.info(f"Broker watchdog running every {self.interval}s")

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
