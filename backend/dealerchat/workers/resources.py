"""Process-wide resources handed to every job execution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from dealerchat.core.config import Settings
from dealerchat.db.session import Database
from dealerchat.integrations.crm_client import CrmClient
from dealerchat.integrations.notifications import ReminderNotifier
from dealerchat.services.progress_tracker import ProgressTracker
from dealerchat.utils.redis_client import create_redis_client

logger = logging.getLogger(__name__)


@dataclass
class WorkerResources:
    database: Database
    tracker: ProgressTracker
    crm_client: CrmClient
    notifier: ReminderNotifier

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkerResources":
        return cls(
            database=Database(settings.database_url).connect(),
            tracker=ProgressTracker(
                create_redis_client(settings.redis_url, decode_responses=True),
                ttl=timedelta(seconds=settings.job_retention_seconds),
            ),
            crm_client=CrmClient(
                settings.crm_api_url,
                settings.crm_api_key,
                timeout=settings.crm_timeout_seconds,
            ),
            notifier=ReminderNotifier(
                twilio_account_sid=settings.twilio_account_sid,
                twilio_auth_token=settings.twilio_auth_token,
                twilio_from_number=settings.twilio_from_number,
                sendgrid_api_key=settings.sendgrid_api_key,
                sendgrid_from_email=settings.sendgrid_from_email,
            ),
        )

    def close(self) -> None:
        self.crm_client.close()
        self.notifier.close()
        self.tracker.close()
        self.database.close()
        logger.info("Worker resources released")
