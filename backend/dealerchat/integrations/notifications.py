"""Appointment reminder delivery over SMS (Twilio) and email (SendGrid)."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from dealerchat.core.errors import NotificationError
from dealerchat.db.models.appointment import Appointment

logger = logging.getLogger(__name__)
TIMEOUT_SECONDS = 10

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"

REMINDER_TEMPLATES = {
    "24h": "Reminder: your appointment at {dealer} is tomorrow, {when}.",
    "1h": "See you soon! Your appointment at {dealer} starts in about an hour ({when}).",
    "confirmation": "Your appointment at {dealer} is confirmed for {when}.",
}
DEFAULT_TEMPLATE = "Reminder: you have an appointment at {dealer} on {when}."


def _format_when(scheduled_at: datetime | None) -> str:
    if scheduled_at is None:
        return "the scheduled time"
    return scheduled_at.strftime("%A, %B %d at %I:%M %p").replace(" 0", " ")


def build_reminder_message(appointment: Appointment, reminder_type: str) -> str:
    dealer = appointment.dealership.name if appointment.dealership else "the dealership"
    template = REMINDER_TEMPLATES.get(reminder_type, DEFAULT_TEMPLATE)
    message = template.format(dealer=dealer, when=_format_when(appointment.scheduled_at))
    vehicle = appointment.vehicle
    if vehicle is not None:
        description = " ".join(str(part) for part in (vehicle.year, vehicle.make, vehicle.model) if part)
        if description:
            message = f"{message} Vehicle: {description}."
    return message


class ReminderNotifier:
    """Sends reminders on every configured channel the lead can receive."""

    def __init__(
        self,
        twilio_account_sid: str | None = None,
        twilio_auth_token: str | None = None,
        twilio_from_number: str | None = None,
        sendgrid_api_key: str | None = None,
        sendgrid_from_email: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.twilio_account_sid = twilio_account_sid
        self.twilio_auth_token = twilio_auth_token
        self.twilio_from_number = twilio_from_number
        self.sendgrid_api_key = sendgrid_api_key
        self.sendgrid_from_email = sendgrid_from_email
        self._client = httpx.Client(timeout=TIMEOUT_SECONDS, transport=transport)

        if not self.sms_enabled and not self.email_enabled:
            logger.warning("No reminder channel configured; reminders will fail")

    @property
    def sms_enabled(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_number)

    @property
    def email_enabled(self) -> bool:
        return bool(self.sendgrid_api_key and self.sendgrid_from_email)

    def send_appointment_reminder(self, appointment: Appointment, reminder_type: str) -> list[str]:
        """Deliver the reminder and return the channels that accepted it.

        Raises:
            NotificationError: no channel delivered the reminder.
        """
        lead = appointment.lead
        message = build_reminder_message(appointment, reminder_type)
        delivered: list[str] = []
        failures: list[str] = []

        if self.sms_enabled and lead is not None and lead.phone:
            try:
                self._send_sms(lead.phone, message)
                delivered.append("sms")
            except httpx.HTTPError as e:
                failures.append(f"sms: {e}")
                logger.warning(f"SMS reminder for appointment {appointment.id} failed: {e}")

        if self.email_enabled and lead is not None and lead.email:
            try:
                self._send_email(lead.email, f"Appointment reminder ({reminder_type})", message)
                delivered.append("email")
            except httpx.HTTPError as e:
                failures.append(f"email: {e}")
                logger.warning(f"Email reminder for appointment {appointment.id} failed: {e}")

        if not delivered:
            detail = "; ".join(failures) if failures else "no reachable channel for this lead"
            raise NotificationError(
                f"Reminder for appointment {appointment.id} was not delivered: {detail}"
            )
        return delivered

    def _send_sms(self, to: str, body: str) -> None:
        response = self._client.post(
            TWILIO_MESSAGES_URL.format(sid=self.twilio_account_sid),
            data={"To": to, "From": self.twilio_from_number, "Body": body},
            auth=(self.twilio_account_sid, self.twilio_auth_token),
        )
        response.raise_for_status()

    def _send_email(self, to: str, subject: str, body: str) -> None:
        response = self._client.post(
            SENDGRID_SEND_URL,
            json={
                "personalizations": [{"to": [{"email": to}]}],
                "from": {"email": self.sendgrid_from_email},
                "subject": subject,
                "content": [{"type": "text/plain", "value": body}],
            },
            headers={"Authorization": f"Bearer {self.sendgrid_api_key}"},
        )
        response.raise_for_status()

    def close(self) -> None:
        self._client.close()
