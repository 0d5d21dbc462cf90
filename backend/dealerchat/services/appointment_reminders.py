"""Dispatch appointment reminders."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from dealerchat.core.errors import RecordNotFoundError
from dealerchat.db.models.appointment import Appointment
from dealerchat.db.session import Database

logger = logging.getLogger(__name__)


class ReminderSender(Protocol):
    def send_appointment_reminder(self, appointment: Appointment, reminder_type: str) -> list[str]: ...


def send_reminder(
    database: Database,
    notifier: ReminderSender,
    appointment_id: str,
    reminder_type: str,
) -> dict[str, Any]:
    with database.session() as session:
        appointment = session.scalars(
            select(Appointment)
            .options(
                selectinload(Appointment.lead),
                selectinload(Appointment.vehicle),
                selectinload(Appointment.dealership),
            )
            .where(Appointment.id == appointment_id)
        ).one_or_none()
        if appointment is None:
            raise RecordNotFoundError(f"Appointment {appointment_id} not found")

        channels = notifier.send_appointment_reminder(appointment, reminder_type)

    logger.info(f"Reminder ({reminder_type}) sent for appointment {appointment_id} via {', '.join(channels)}")
    return {"success": True, "channels": channels}
