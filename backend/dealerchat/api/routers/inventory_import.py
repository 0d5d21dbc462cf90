"""Admin endpoints for inventory CSV imports and job polling."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError as FormValidationError

from dealerchat.api.dependencies.jobs import get_job_queue
from dealerchat.api.schemas.job import ImportAccepted, ImportForm, ImportJobStatus, form_issues
from dealerchat.queues.job_queue import JobQueue
from dealerchat.queues.payloads import InventoryImportPayload
from dealerchat.queues.policies import INVENTORY_IMPORT_QUEUE
from dealerchat.services.inventory_csv import parse_inventory_csv
from dealerchat.utils.csv_validator import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


def _bad_request(error: str, message: str, details=None) -> HTTPException:
    body = {"error": error, "message": message}
    if details is not None:
        body["details"] = details
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=body)


@router.post(
    "",
    summary="Start an inventory import job",
    response_model=ImportAccepted,
    response_model_by_alias=True,
)
async def start_import(
    file: UploadFile | None = File(None),
    dealership_id: str | None = Form(None, alias="dealershipId"),
    mark_missing_as_sold: str | None = Form(None, alias="markMissingAsSold"),
    queue: JobQueue = Depends(get_job_queue),
) -> ImportAccepted:
    """Validate the CSV up front, then hand the rows to the inventory-import queue."""
    if file is None or not file.filename:
        raise _bad_request("Bad Request", "CSV file is required")

    try:
        form = ImportForm.model_validate(
            {"dealershipId": dealership_id, "markMissingAsSold": mark_missing_as_sold or "false"}
        )
    except FormValidationError as exc:
        raise _bad_request("Validation Error", "Invalid form submission", form_issues(exc)) from exc

    content = await file.read()
    try:
        parsed = parse_inventory_csv(content)
    except ValidationError as exc:
        if exc.details is not None:
            raise _bad_request("Bad Request", str(exc), exc.details) from exc
        raise _bad_request("Invalid CSV", str(exc)) from exc

    payload = InventoryImportPayload(
        dealership_id=str(form.dealership_id),
        rows=parsed.rows,
        mark_missing_as_sold=form.mark_missing_as_sold,
        total_rows=len(parsed.rows),
    )
    try:
        job = queue.enqueue_inventory_import(payload)
    except Exception as exc:
        logger.error(f"Error enqueueing inventory import: {exc}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal Server Error",
                "message": "Failed to enqueue inventory import job",
                "details": str(exc),
            },
        ) from exc

    logger.info(
        f"Queued inventory import {job.id} for dealership {form.dealership_id}: "
        f"{len(parsed.rows)} rows, {len(parsed.skipped)} skipped"
    )
    return ImportAccepted(job_id=job.id, total_rows=len(parsed.rows), skipped_rows=parsed.skipped)


@router.get(
    "/{job_id}",
    summary="Check inventory import progress",
    response_model=ImportJobStatus,
    response_model_by_alias=True,
)
async def get_import_status(
    job_id: str,
    queue: JobQueue = Depends(get_job_queue),
) -> ImportJobStatus:
    try:
        job = queue.get_job(job_id)
    except Exception as exc:
        logger.error(f"Failed to fetch job {job_id}: {exc}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal Server Error",
                "message": "Unable to fetch job status",
                "details": str(exc),
            },
        ) from exc

    if job is None or job.queue_name != INVENTORY_IMPORT_QUEUE:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Not Found", "message": "Job not found"},
        )

    progress = job.progress
    if not isinstance(progress, dict):
        try:
            progress = {"processed": int(progress or 0)}
        except (TypeError, ValueError):
            progress = {"processed": 0}

    return ImportJobStatus(
        id=job.id,
        state=job.state,
        progress=progress,
        result=job.return_value if isinstance(job.return_value, dict) else None,
        failed_reason=job.failure_reason,
        timestamp=job.finished_on or job.timestamp,
    )
