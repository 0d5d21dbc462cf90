import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from dealerchat.core.config import Settings
from dealerchat.db.base import Base
from dealerchat.db.models import Appointment, Dealership, Lead
from dealerchat.db.session import Database
from dealerchat.queues.job_queue import JobQueue
from dealerchat.services.progress_tracker import ProgressTracker
from dealerchat.workers.celery_app import create_celery_app
from dealerchat.workers.resources import WorkerResources

# Registers the shared tasks with every app built in these tests
import dealerchat.workers.tasks.appointment_reminders  # noqa: F401
import dealerchat.workers.tasks.crm_push  # noqa: F401
import dealerchat.workers.tasks.inventory_import  # noqa: F401


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.expiries: dict[str, int | None] = {}
        self.down = False
        self.closed = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("Connection refused")

    def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check()
        self.store[key] = value
        self.expiries[key] = ex
        return True

    def get(self, key: str) -> str | None:
        self._check()
        return self.store.get(key)

    def delete(self, *keys: str) -> int:
        self._check()
        return sum(self.store.pop(key, None) is not None for key in keys)

    def ping(self) -> bool:
        self._check()
        return True

    def close(self) -> None:
        self.closed = True


class FakeCrmClient:
    def __init__(self, failures: int = 0, crm_id: str = "crm-123"):
        self.failures = failures
        self.crm_id = crm_id
        self.calls: list[str] = []
        self.closed = False

    def push_lead(self, lead):
        self.calls.append(lead.id)
        if len(self.calls) <= self.failures:
            raise RuntimeError("CRM unavailable")
        return self.crm_id

    def close(self):
        self.closed = True


class FakeNotifier:
    def __init__(self, failures: int = 0, channels=("sms",)):
        self.failures = failures
        self.channels = list(channels)
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def send_appointment_reminder(self, appointment, reminder_type):
        self.calls.append((appointment.id, reminder_type))
        if len(self.calls) <= self.failures:
            raise RuntimeError("SMS gateway down")
        return self.channels

    def close(self):
        self.closed = True


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        redis_url="redis://localhost:6379/0",
        celery_broker_url="memory://",
        celery_result_url="cache+memory://",
    )


@pytest.fixture
def database():
    db = Database("sqlite://").connect()
    Base.metadata.create_all(db.engine)
    yield db
    db.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def tracker(fake_redis):
    return ProgressTracker(fake_redis)


@pytest.fixture
def celery_app(settings):
    app = create_celery_app(settings, main="dealerchat-test")
    yield app
    app.close()


@pytest.fixture
def job_queue(celery_app, tracker):
    return JobQueue(celery_app, tracker)


@pytest.fixture
def crm_client():
    return FakeCrmClient()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def worker_resources(database, tracker, crm_client, notifier):
    return WorkerResources(database=database, tracker=tracker, crm_client=crm_client, notifier=notifier)


@pytest.fixture
def worker_app(celery_app, worker_resources):
    return celery_app.bind_resources(worker_resources)


@pytest.fixture
def dealership(database):
    with database.transaction() as session:
        record = Dealership(name="Sunrise Motors", phone="+15550100")
        session.add(record)
        session.flush()
        return record.id


@pytest.fixture
def lead(database, dealership):
    with database.transaction() as session:
        record = Lead(
            dealership_id=dealership,
            name="Dana Rivera",
            email="dana@example.com",
            phone="+15550111",
            vehicle_interest="2021 Honda Civic",
        )
        session.add(record)
        session.flush()
        return record.id


@pytest.fixture
def appointment(database, dealership, lead):
    from datetime import datetime, timedelta, timezone

    with database.transaction() as session:
        record = Appointment(
            dealership_id=dealership,
            lead_id=lead,
            scheduled_at=datetime.now(timezone.utc) + timedelta(days=1),
        )
        session.add(record)
        session.flush()
        return record.id
