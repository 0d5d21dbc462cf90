"""Base task class: attempt accounting, backoff retries, progress and retention."""

from __future__ import annotations

import logging
import traceback
from typing import Any

from celery import Task
from redis.exceptions import RedisError

from dealerchat.core.errors import ConfigurationError
from dealerchat.queues.policies import JobOptions, QueuePolicy, policy_for_task
from dealerchat.workers.resources import WorkerResources

logger = logging.getLogger(__name__)


class QueueTask(Task):
    """Shared behaviour for every job on the three queues.

    Jobs carry their resolved options in the ``options`` kwarg, so retry
    limits and retention follow what the producer asked for rather than
    whatever the worker happens to default to.
    """

    @property
    def policy(self) -> QueuePolicy:
        return policy_for_task(self.name)

    @property
    def resources(self) -> WorkerResources:
        resources = getattr(self.app, "resources", None)
        if resources is None:
            raise ConfigurationError(f"No worker resources bound to app {self.app.main}")
        return resources

    def job_options(self) -> JobOptions:
        kwargs = self.request.kwargs or {}
        raw = kwargs.get("options")
        if raw:
            return JobOptions.model_validate(raw)
        return self.policy.resolve_options()

    @property
    def attempt(self) -> int:
        """1-based number of the attempt currently running."""
        return (self.request.retries or 0) + 1

    @property
    def is_final_attempt(self) -> bool:
        return self.attempt >= self.job_options().attempts

    def retry_or_raise(self, exc: Exception):
        """Schedule the next attempt with backoff, or re-raise once attempts run out."""
        options = self.job_options()
        if self.attempt >= options.attempts:
            raise exc
        countdown = options.backoff.countdown(self.attempt) if options.backoff else 0
        raise self.retry(exc=exc, countdown=countdown, max_retries=options.attempts - 1)

    def update_progress(self, value: Any) -> None:
        job_id = self.request.id
        if not job_id:
            return
        try:
            self.update_state(state="PROGRESS", meta=value)
            self.resources.tracker.publish(job_id, value)
        except RedisError as e:
            # Progress is advisory; the job keeps running
            logger.warning(f"Failed to publish progress for job {job_id}: {e}")

    def _apply_retention(self, task_id: str, remove: bool) -> None:
        if not remove:
            return
        try:
            self.backend.forget(task_id)
            self.resources.tracker.forget(task_id)
        except RedisError as e:
            logger.warning(f"Failed to remove job {task_id} after it finished: {e}")

    def on_success(self, retval, task_id, args, kwargs):
        logger.info(f"Job {task_id} completed in queue {self.policy.name}")
        self._apply_retention(task_id, self.job_options().remove_on_complete)

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        logger.warning(
            f"Job {task_id} in queue {self.policy.name} failed attempt {self.attempt}, retrying: {exc}"
        )

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        stack = einfo.traceback if einfo is not None else "".join(traceback.format_exception(exc))
        logger.error(
            f"Job failed in queue {self.policy.name}: "
            f"id={task_id} attempts={self.attempt} payload={args[0] if args else None} "
            f"error={exc}\n{stack}"
        )
        self._apply_retention(task_id, self.job_options().remove_on_fail)
