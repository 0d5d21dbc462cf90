"""Tests for the inventory import and health endpoints."""

import uuid

import pytest
from fastapi.testclient import TestClient

from dealerchat.main import create_app

HEADER = "VIN,Stock#,Year,Make,Model,Trim,Condition,Price,Mileage,Color,BodyType,Images"
DEALERSHIP_ID = str(uuid.uuid4())


@pytest.fixture
def client(settings, database, job_queue):
    app = create_app(settings=settings, database=database, job_queue=job_queue)
    with TestClient(app) as test_client:
        yield test_client


def upload(client, content, **form):
    data = {"dealershipId": DEALERSHIP_ID, **form}
    return client.post(
        "/api/admin/inventory/import",
        files={"file": ("inventory.csv", content, "text/csv")},
        data=data,
    )


def test_live(client):
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_ready(client):
    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["checks"]["database"]["status"] == "healthy"
    assert response.json()["checks"]["redis"]["status"] == "healthy"


def test_ready_reports_redis_outage(client, fake_redis):
    fake_redis.down = True

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["checks"]["redis"]["status"] == "unhealthy"


def test_upload_enqueues_import(client, job_queue, fake_redis):
    content = f"{HEADER}\nV1,S1,2020,Ford,Focus,SE,Used,9000,50000,Red,Sedan,\n,S2,2020,Ford,Focus,SE,Used,9000,50000,Red,Sedan,\n"

    response = upload(client, content, markMissingAsSold="true")

    assert response.status_code == 200
    body = response.json()
    assert body["totalRows"] == 1
    assert body["skippedRows"] == [{"row": 2, "reason": "Missing VIN"}]
    assert fake_redis.get(f"jobs:record:{body['jobId']}") is not None

    status = client.get(f"/api/admin/inventory/import/{body['jobId']}")
    assert status.status_code == 200
    assert status.json()["state"] == "waiting"
    assert status.json()["progress"] == {"processed": 0}
    assert status.json()["result"] is None


def test_upload_payload_reaches_queue(client, job_queue, monkeypatch):
    sent = {}
    monkeypatch.setattr(job_queue.app, "send_task", lambda name, **kwargs: sent.update(kwargs))

    upload(client, f"{HEADER}\nv1,S1,2020,Ford,Focus,SE,Used,9000,50000,Red,Sedan,\n")

    payload = sent["args"][0]
    assert sent["queue"] == "inventory-import"
    assert payload["dealershipId"] == DEALERSHIP_ID
    assert payload["markMissingAsSold"] is False
    assert payload["totalRows"] == 1
    assert payload["rows"][0]["vin"] == "v1"
    assert sent["kwargs"]["options"]["attempts"] == 1


def test_upload_requires_file(client):
    response = client.post("/api/admin/inventory/import", data={"dealershipId": DEALERSHIP_ID})

    assert response.status_code == 400
    assert response.json() == {"error": "Bad Request", "message": "CSV file is required"}


def test_upload_rejects_invalid_form(client):
    response = upload(client, f"{HEADER}\n", dealershipId="not-a-uuid", markMissingAsSold="yes")

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert {issue["field"] for issue in body["details"]} == {"dealershipId", "markMissingAsSold"}


def test_upload_rejects_missing_columns(client):
    response = upload(client, "VIN,Make\nV1,Ford\n")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid CSV"
    assert response.json()["message"].startswith("Missing required columns: Stock#, Year")


def test_upload_rejects_empty_csv(client):
    response = upload(client, f"{HEADER}\n")

    assert response.status_code == 400
    assert response.json()["message"] == "CSV file contains no rows"


def test_upload_rejects_all_rows_without_vin(client):
    response = upload(client, f"{HEADER}\n,S1,2020,Ford,Focus,SE,Used,1,1,Red,Sedan,\n")

    assert response.status_code == 400
    assert response.json()["message"] == "All rows were invalid. Please review the CSV format."
    assert response.json()["details"] == [{"row": 1, "reason": "Missing VIN"}]


def test_enqueue_failure_is_500(client, fake_redis):
    fake_redis.down = True

    response = upload(client, f"{HEADER}\nV1,S1,2020,Ford,Focus,SE,Used,1,1,Red,Sedan,\n")

    assert response.status_code == 500
    assert response.json()["message"] == "Failed to enqueue inventory import job"


def test_unknown_job_is_404(client):
    response = client.get("/api/admin/inventory/import/missing-job")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found", "message": "Job not found"}


def test_completed_job_status(client, job_queue, celery_app):
    job = job_queue.enqueue_inventory_import(
        {"dealershipId": DEALERSHIP_ID, "rows": [{"vin": "V1"}], "totalRows": 1}
    )
    job.update_progress({"processed": 1, "total": 1})
    summary = {
        "processed": 1,
        "total": 1,
        "created": 0,
        "updated": 0,
        "errors": [{"row": 1, "error": 'Invalid condition ""'}],
        "markedSold": 0,
    }
    celery_app.backend.store_result(job.id, summary, "SUCCESS")

    response = client.get(f"/api/admin/inventory/import/{job.id}")

    body = response.json()
    assert body["id"] == job.id
    assert body["state"] == "completed"
    assert body["progress"] == {"processed": 1, "total": 1}
    assert body["result"] == summary
    assert body["failedReason"] is None
    assert body["timestamp"] is not None


def test_failed_job_status(client, job_queue, celery_app):
    job = job_queue.enqueue_inventory_import(
        {"dealershipId": DEALERSHIP_ID, "rows": [{"vin": "V1"}], "totalRows": 1}
    )
    celery_app.backend.mark_as_failure(job.id, RuntimeError("database went away"))

    body = client.get(f"/api/admin/inventory/import/{job.id}").json()

    assert body["state"] == "failed"
    assert body["failedReason"] == "database went away"


def test_other_queue_jobs_are_404(client, job_queue, lead):
    job = job_queue.enqueue_crm_push(lead)

    response = client.get(f"/api/admin/inventory/import/{job.id}")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found", "message": "Job not found"}
