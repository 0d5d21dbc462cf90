"""Redis-backed job records and progress snapshots shared across processes."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any

from redis import Redis
from redis.exceptions import RedisError

PROGRESS_PREFIX = "jobs:progress:"
RECORD_PREFIX = "jobs:record:"
DEFAULT_TTL = timedelta(days=7)


class ProgressTracker:
    """Persist job records and progress snapshots so any process can poll them."""

    def __init__(self, redis_client: Redis, ttl: timedelta = DEFAULT_TTL):
        self.redis = redis_client
        self.ttl = ttl

    @staticmethod
    def _progress_key(job_id: str) -> str:
        return f"{PROGRESS_PREFIX}{job_id}"

    @staticmethod
    def _record_key(job_id: str) -> str:
        return f"{RECORD_PREFIX}{job_id}"

    def register(self, job_id: str, record: dict[str, Any]) -> None:
        """Write the durable job record. Raises RedisError: an unrecorded job must not be published."""
        self.redis.set(
            self._record_key(job_id),
            json.dumps(record),
            ex=int(self.ttl.total_seconds()),
        )

    def fetch_record(self, job_id: str) -> dict[str, Any] | None:
        raw = self.redis.get(self._record_key(job_id))
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def publish(self, job_id: str, progress: Any) -> None:
        """Overwrite the progress snapshot with a single SET."""
        self.redis.set(
            self._progress_key(job_id),
            json.dumps(progress),
            ex=int(self.ttl.total_seconds()),
        )

    def fetch(self, job_id: str) -> Any:
        """Return the latest progress snapshot, or None."""
        try:
            raw = self.redis.get(self._progress_key(job_id))
        except RedisError:
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def forget(self, job_id: str) -> None:
        self.redis.delete(self._progress_key(job_id), self._record_key(job_id))

    def ping(self) -> bool:
        return bool(self.redis.ping())

    def close(self) -> None:
        self.redis.close()
