"""Celery task for bulk inventory imports."""

from __future__ import annotations

import logging

from celery import shared_task

from dealerchat.queues.payloads import InventoryImportPayload
from dealerchat.queues.policies import INVENTORY_IMPORT
from dealerchat.services.inventory_import import run_inventory_import
from dealerchat.workers.base import QueueTask

logger = logging.getLogger(__name__)


@shared_task(bind=True, base=QueueTask, name=INVENTORY_IMPORT.task_name)
def inventory_import_task(self, payload: dict, options: dict | None = None):
    """Upsert every row, report progress per row and return the import summary."""
    data = InventoryImportPayload.model_validate(payload)
    logger.info(
        f"Starting inventory import {self.request.id} for dealership {data.dealership_id}: "
        f"{data.total_rows} rows"
    )
    try:
        result = run_inventory_import(
            self.resources.database,
            data,
            report_progress=self.update_progress,
        )
    except Exception as exc:
        self.retry_or_raise(exc)
    logger.info(
        f"Inventory import {self.request.id} finished: {result.created} created, "
        f"{result.updated} updated, {len(result.errors)} errors, {result.marked_sold} marked sold"
    )
    return result.model_dump(by_alias=True, mode="json")
