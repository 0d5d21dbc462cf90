"""Per-queue concurrency, retry and retention policy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

CRM_PUSH_QUEUE = "crm-push"
APPOINTMENT_REMINDERS_QUEUE = "appointment-reminders"
INVENTORY_IMPORT_QUEUE = "inventory-import"


class Backoff(BaseModel):
    """Delay strategy between attempts; delay is in milliseconds."""

    type: Literal["fixed", "exponential"]
    delay: int = Field(..., ge=0)

    def countdown(self, attempts_made: int) -> float:
        """Seconds to wait before the next attempt, given attempts already made."""
        if self.type == "exponential":
            delay_ms = self.delay * 2 ** max(attempts_made - 1, 0)
        else:
            delay_ms = self.delay
        return delay_ms / 1000


class JobOptions(BaseModel):
    attempts: int = Field(1, ge=1)
    backoff: Backoff | None = None
    remove_on_complete: bool = False
    remove_on_fail: bool = False

    @field_validator("backoff", mode="before")
    @classmethod
    def numeric_backoff_is_fixed(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return {"type": "fixed", "delay": int(v)}
        return v


@dataclass(frozen=True)
class QueuePolicy:
    name: str
    task_name: str
    concurrency: int
    attempts: int
    backoff: Backoff | None = None

    def resolve_options(self, overrides: dict[str, Any] | JobOptions | None = None) -> JobOptions:
        """Merge per-job overrides on top of the queue defaults."""
        defaults: dict[str, Any] = {"attempts": self.attempts, "backoff": self.backoff}
        if isinstance(overrides, JobOptions):
            overrides = overrides.model_dump(exclude_unset=True)
        defaults.update({k: v for k, v in (overrides or {}).items() if v is not None})
        return JobOptions.model_validate(defaults)


CRM_PUSH = QueuePolicy(
    name=CRM_PUSH_QUEUE,
    task_name="dealerchat.workers.tasks.crm_push",
    concurrency=5,
    attempts=3,
    backoff=Backoff(type="exponential", delay=2000),
)

APPOINTMENT_REMINDERS = QueuePolicy(
    name=APPOINTMENT_REMINDERS_QUEUE,
    task_name="dealerchat.workers.tasks.appointment_reminders",
    concurrency=10,
    attempts=2,
    backoff=Backoff(type="fixed", delay=5000),
)

# Retrying a partially applied batch would replay its upserts, so one attempt only
INVENTORY_IMPORT = QueuePolicy(
    name=INVENTORY_IMPORT_QUEUE,
    task_name="dealerchat.workers.tasks.inventory_import",
    concurrency=2,
    attempts=1,
)

QUEUE_POLICIES: dict[str, QueuePolicy] = {
    policy.name: policy for policy in (CRM_PUSH, APPOINTMENT_REMINDERS, INVENTORY_IMPORT)
}


def get_policy(queue_name: str) -> QueuePolicy:
    try:
        return QUEUE_POLICIES[queue_name]
    except KeyError:
        raise ValueError(
            f"Unknown queue '{queue_name}'. "
            f"Available queues: {', '.join(sorted(QUEUE_POLICIES))}"
        ) from None


def policy_for_task(task_name: str) -> QueuePolicy:
    for policy in QUEUE_POLICIES.values():
        if policy.task_name == task_name:
            return policy
    raise ValueError(f"No queue policy registered for task '{task_name}'")
