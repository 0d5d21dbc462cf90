"""Celery application factory for the background job queues."""

from __future__ import annotations

import ssl
from typing import TYPE_CHECKING

from celery import Celery

from dealerchat.core.config import Settings, get_settings
from dealerchat.core.errors import ConfigurationError
from dealerchat.queues.policies import QUEUE_POLICIES
from dealerchat.utils.redis_client import normalize_redis_url, uses_tls

if TYPE_CHECKING:
    from dealerchat.workers.resources import WorkerResources

TASK_MODULES = [
    "dealerchat.workers.tasks.crm_push",
    "dealerchat.workers.tasks.appointment_reminders",
    "dealerchat.workers.tasks.inventory_import",
]


class JobApp(Celery):
    """Celery app that carries the worker's injected resources."""

    resources: "WorkerResources | None" = None

    def bind_resources(self, resources: "WorkerResources") -> "JobApp":
        self.resources = resources
        return self


def _with_ssl_param(url: str) -> str:
    # Celery's Redis backend reads ssl_cert_reqs from the URL during init
    if "ssl_cert_reqs" in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}ssl_cert_reqs=none"


def create_celery_app(settings: Settings | None = None, main: str = "dealerchat") -> JobApp:
    """Build a Celery app routed to the three job queues.

    The API process uses one instance as its enqueue client; the worker
    runtime builds one per consumed queue.
    """
    settings = settings or get_settings()
    if not settings.broker_url or not settings.result_backend_url:
        raise ConfigurationError("REDIS_URL (or CELERY_BROKER_URL/CELERY_RESULT_URL) is not set")

    broker_url = normalize_redis_url(settings.broker_url)
    backend_url = normalize_redis_url(settings.result_backend_url)
    is_ssl = uses_tls(broker_url) or uses_tls(backend_url)
    if is_ssl:
        broker_url = _with_ssl_param(broker_url)
        backend_url = _with_ssl_param(backend_url)

    app = JobApp(main, broker=broker_url, backend=backend_url, include=TASK_MODULES)

    transport_options: dict = {"visibility_timeout": settings.broker_visibility_timeout}
    celery_config = {
        "task_serializer": "json",
        "accept_content": ["json"],
        "result_serializer": "json",
        "timezone": "UTC",
        "enable_utc": True,
        "task_routes": {
            policy.task_name: {"queue": policy.name} for policy in QUEUE_POLICIES.values()
        },
        "task_create_missing_queues": True,
        "task_acks_late": True,  # Acknowledge after task completion
        "task_reject_on_worker_lost": True,  # Re-queue if worker dies
        "task_track_started": True,
        "worker_prefetch_multiplier": 1,  # Fair task distribution
        "worker_hijack_root_logger": False,
        "result_extended": True,  # Keep name/args/retries next to the result
        "result_expires": settings.job_retention_seconds,
        "result_backend_always_retry": True,
        "result_backend_max_retries": 3,
        "broker_connection_retry_on_startup": True,
        "broker_transport_options": transport_options,
    }

    if is_ssl:
        ssl_dict = {"ssl_cert_reqs": ssl.CERT_NONE}
        celery_config["broker_use_ssl"] = ssl_dict
        celery_config["redis_backend_use_ssl"] = ssl_dict
        celery_config["result_backend_transport_options"] = ssl_dict.copy()

    app.conf.update(celery_config)
    return app
