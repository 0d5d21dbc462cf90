"""Single-process worker runtime: one consumer per queue, shared resources."""

from __future__ import annotations

import logging
import socket
import sys
import threading
from concurrent.futures import ThreadPoolExecutor

from dealerchat.core.config import Settings, get_settings
from dealerchat.core.logging_config import configure_logging
from dealerchat.queues.policies import QUEUE_POLICIES, QueuePolicy
from dealerchat.workers.celery_app import JobApp, create_celery_app
from dealerchat.workers.pool import AppThreadPool
from dealerchat.workers.resources import WorkerResources
from dealerchat.workers.shutdown import ShutdownCoordinator
from dealerchat.workers.watchdog import BrokerWatchdog

logger = logging.getLogger(__name__)


class QueueConsumer:
    """Runs a Celery WorkController for exactly one queue on its own thread."""

    def __init__(self, app: JobApp, policy: QueuePolicy, hostname: str | None = None):
        self.app = app
        self.policy = policy
        self.hostname = hostname or f"{policy.name}@{socket.gethostname()}"
        self.controller = None
        self._thread: threading.Thread | None = None

    def build_controller(self):
        return self.app.WorkController(
            hostname=self.hostname,
            queues=[self.policy.name],
            concurrency=self.policy.concurrency,
            pool_cls=AppThreadPool,
            use_eventloop=False,
            prefetch_multiplier=1,
            without_mingle=True,
            without_gossip=True,
            without_heartbeat=True,
        )

    def _run(self) -> None:
        logger.info(
            f"Consumer for {self.policy.name} started (concurrency {self.policy.concurrency})"
        )
        self.controller.start()
        logger.info(f"Consumer for {self.policy.name} stopped")

    def start(self) -> None:
        self.controller = self.build_controller()
        self._thread = threading.Thread(
            target=self._run, name=f"consumer-{self.policy.name}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop taking new jobs and wait for the in-flight ones to finish."""
        if self.controller is not None:
            self.controller.stop()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def close(self) -> None:
        self.app.close()


class WorkerPool:
    def __init__(self, consumers: list[QueueConsumer]):
        self.consumers = consumers

    @classmethod
    def from_settings(cls, settings: Settings, resources: WorkerResources) -> "WorkerPool":
        consumers = []
        for policy in QUEUE_POLICIES.values():
            app = create_celery_app(settings, main=f"dealerchat-{policy.name}")
            app.bind_resources(resources)
            consumers.append(QueueConsumer(app, policy))
        return cls(consumers)

    def start(self) -> None:
        for consumer in self.consumers:
            consumer.start()
        logger.info(f"Worker started for queues: {', '.join(c.policy.name for c in self.consumers)}")

    def stop(self) -> None:
        if not self.consumers:
            return
        with ThreadPoolExecutor(max_workers=len(self.consumers)) as executor:
            # list() re-raises the first error from any consumer
            list(executor.map(lambda consumer: consumer.stop(), self.consumers))
        logger.info("All consumers stopped")

    def close(self) -> None:
        for consumer in self.consumers:
            consumer.close()


def log_thread_exception(args: threading.ExceptHookArgs) -> None:
    if issubclass(args.exc_type, SystemExit):
        return
    name = args.thread.name if args.thread is not None else "unknown"
    logger.error(
        f"Unhandled exception in thread {name}; worker keeps running",
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    missing = settings.missing_required()
    if missing:
        logger.critical(f"Missing required environment variables: {', '.join(missing)}")
        sys.exit(1)

    threading.excepthook = log_thread_exception

    resources = WorkerResources.from_settings(settings)
    pool = WorkerPool.from_settings(settings, resources)
    watchdog = BrokerWatchdog(resources.tracker.ping, settings.watchdog_interval_seconds)
    coordinator = ShutdownCoordinator(pool, watchdog, resources)
    coordinator.install_signal_handlers()

    pool.start()
    watchdog.start()
    sys.exit(coordinator.run_until_signalled())


if __name__ == "__main__":
    main()
