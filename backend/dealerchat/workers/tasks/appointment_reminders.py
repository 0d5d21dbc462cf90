"""Celery task delivering appointment reminders."""

from __future__ import annotations

from celery import shared_task

from dealerchat.queues.payloads import AppointmentReminderPayload
from dealerchat.queues.policies import APPOINTMENT_REMINDERS
from dealerchat.services.appointment_reminders import send_reminder
from dealerchat.workers.base import QueueTask


@shared_task(bind=True, base=QueueTask, name=APPOINTMENT_REMINDERS.task_name)
def appointment_reminder_task(self, payload: dict, options: dict | None = None):
    data = AppointmentReminderPayload.model_validate(payload)
    resources = self.resources
    try:
        return send_reminder(resources.database, resources.notifier, data.appointment_id, data.type)
    except Exception as exc:
        self.retry_or_raise(exc)
