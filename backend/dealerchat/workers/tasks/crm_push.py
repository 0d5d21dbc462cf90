"""Celery task pushing a lead to the dealership CRM."""

from __future__ import annotations

from celery import shared_task

from dealerchat.queues.payloads import CrmPushPayload
from dealerchat.queues.policies import CRM_PUSH
from dealerchat.services.crm_push import push_lead
from dealerchat.workers.base import QueueTask


@shared_task(bind=True, base=QueueTask, name=CRM_PUSH.task_name)
def crm_push_task(self, payload: dict, options: dict | None = None):
    data = CrmPushPayload.model_validate(payload)
    resources = self.resources
    try:
        return push_lead(
            resources.database,
            resources.crm_client,
            data.lead_id,
            final_attempt=self.is_final_attempt,
        )
    except Exception as exc:
        self.retry_or_raise(exc)
