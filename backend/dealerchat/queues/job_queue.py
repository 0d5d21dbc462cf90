"""Producer-side client for the background job queues."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from celery import Celery
from celery.result import AsyncResult

from dealerchat.queues.payloads import (
    AppointmentReminderPayload,
    CrmPushPayload,
    InventoryImportPayload,
)
from dealerchat.queues.policies import (
    APPOINTMENT_REMINDERS_QUEUE,
    CRM_PUSH_QUEUE,
    INVENTORY_IMPORT_QUEUE,
    JobOptions,
    get_policy,
)
from dealerchat.services.progress_tracker import ProgressTracker

if TYPE_CHECKING:
    from pydantic import BaseModel

logger = logging.getLogger(__name__)

CELERY_STATES = {
    "PENDING": "waiting",
    "RECEIVED": "waiting",
    "STARTED": "active",
    "PROGRESS": "active",
    "RETRY": "delayed",
    "SUCCESS": "completed",
    "FAILURE": "failed",
    "REVOKED": "failed",
}

# States in which the current attempt has already been counted
_SETTLED = {"completed", "failed", "delayed"}


def map_state(celery_state: str) -> str:
    return CELERY_STATES.get(celery_state, "waiting")


@dataclass
class Job:
    id: str
    queue_name: str
    payload: dict[str, Any]
    options: dict[str, Any] = field(default_factory=dict)
    state: str = "waiting"
    attempts_made: int = 0
    progress: Any = None
    return_value: Any = None
    failure_reason: str | None = None
    timestamp: str | None = None
    finished_on: str | None = None
    _queue: "JobQueue | None" = field(default=None, repr=False, compare=False)

    def get_state(self) -> str:
        """Refresh from the result backend and return the current state."""
        if self._queue is not None:
            fresh = self._queue.get_job(self.id)
            if fresh is not None:
                self.state = fresh.state
                self.attempts_made = fresh.attempts_made
                self.progress = fresh.progress
                self.return_value = fresh.return_value
                self.failure_reason = fresh.failure_reason
                self.finished_on = fresh.finished_on
        return self.state

    def update_progress(self, value: Any) -> None:
        self.progress = value
        if self._queue is not None:
            self._queue.tracker.publish(self.id, value)


class JobQueue:
    """Enqueue jobs and look them up by id from any process."""

    def __init__(self, celery_app: Celery, tracker: ProgressTracker):
        self.app = celery_app
        self.tracker = tracker

    def enqueue(
        self,
        queue_name: str,
        payload: "dict[str, Any] | BaseModel",
        options: dict[str, Any] | JobOptions | None = None,
    ) -> Job:
        policy = get_policy(queue_name)
        resolved = policy.resolve_options(options)
        if not isinstance(payload, dict):
            payload = payload.model_dump(by_alias=True, mode="json")

        job_id = str(uuid.uuid4())
        enqueued_at = datetime.now(timezone.utc).isoformat()
        options_json = resolved.model_dump(mode="json")

        self.tracker.register(
            job_id,
            {
                "id": job_id,
                "queue": queue_name,
                "task": policy.task_name,
                "timestamp": enqueued_at,
                "options": options_json,
            },
        )
        self.app.send_task(
            policy.task_name,
            args=[payload],
            kwargs={"options": options_json},
            queue=queue_name,
            task_id=job_id,
        )
        logger.info(f"Enqueued job {job_id} on {queue_name}")
        return Job(
            id=job_id,
            queue_name=queue_name,
            payload=payload,
            options=options_json,
            timestamp=enqueued_at,
            _queue=self,
        )

    def get_job(self, job_id: str) -> Job | None:
        record = self.tracker.fetch_record(job_id)
        result = AsyncResult(job_id, app=self.app)
        celery_state = result.state
        if record is None and celery_state == "PENDING":
            return None

        state = map_state(celery_state)
        retries = getattr(result, "retries", None) or 0
        attempts_made = retries + 1 if state in _SETTLED else retries

        progress = self.tracker.fetch(job_id)
        if progress is None and celery_state == "PROGRESS":
            progress = result.info

        return_value = result.result if celery_state == "SUCCESS" else None
        failure_reason = None
        if state == "failed":
            failure_reason = str(result.result) if result.result is not None else celery_state

        payload: dict[str, Any] = {}
        args = getattr(result, "args", None)
        if args:
            payload = args[0]

        finished_on = None
        date_done = getattr(result, "date_done", None) if state in ("completed", "failed") else None
        if date_done is not None:
            finished_on = date_done.isoformat() if isinstance(date_done, datetime) else str(date_done)

        record = record or {}
        return Job(
            id=job_id,
            queue_name=record.get("queue") or getattr(result, "queue", None) or "",
            payload=payload,
            options=record.get("options") or {},
            state=state,
            attempts_made=attempts_made,
            progress=progress,
            return_value=return_value,
            failure_reason=failure_reason,
            timestamp=record.get("timestamp"),
            finished_on=finished_on,
            _queue=self,
        )

    def enqueue_inventory_import(self, payload: InventoryImportPayload | dict[str, Any]) -> Job:
        # A single attempt, and results stay around so the admin UI can poll them
        return self.enqueue(
            INVENTORY_IMPORT_QUEUE,
            payload,
            {"attempts": 1, "remove_on_complete": False, "remove_on_fail": False},
        )

    def enqueue_crm_push(self, lead_id: str) -> Job:
        return self.enqueue(CRM_PUSH_QUEUE, CrmPushPayload(lead_id=lead_id))

    def enqueue_appointment_reminder(self, appointment_id: str, reminder_type: str) -> Job:
        return self.enqueue(
            APPOINTMENT_REMINDERS_QUEUE,
            AppointmentReminderPayload(appointment_id=appointment_id, type=reminder_type),
        )

    def close(self) -> None:
        self.app.close()
        self.tracker.close()
