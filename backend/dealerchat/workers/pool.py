"""Thread pool that runs each queue's jobs against that queue's Celery app."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from celery.concurrency.thread import TaskPool


class AppThreadPool(TaskPool):
    """Celery's ``threads`` pool with every pool thread bound to one app.

    Celery looks up the app that executes a job through the running thread's
    current app. Several apps share the worker process, so each pool thread
    makes its consumer's app current before taking jobs.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # No threads have started yet, so swapping the executor is free
        self.executor.shutdown(wait=False)
        self.executor = ThreadPoolExecutor(
            max_workers=self.limit,
            thread_name_prefix=f"{self.app.main}-job",
            initializer=self.app.set_current,
        )
