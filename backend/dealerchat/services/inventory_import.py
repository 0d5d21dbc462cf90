"""Row-by-row inventory import with per-row error capture and sold reconciliation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.exc import InterfaceError, OperationalError

from dealerchat.db.models.vehicle import VehicleCondition
from dealerchat.db.session import Database
from dealerchat.queues.payloads import ImportResult, InventoryImportPayload, InventoryRow, RowError
from dealerchat.services.vehicle_catalog import mark_missing_as_sold, upsert_vehicle

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, int]], None]

# Losing the store mid-batch fails the whole job instead of every remaining row
INFRASTRUCTURE_ERRORS = (OperationalError, InterfaceError)

_CONDITIONS = {
    "NEW": VehicleCondition.NEW,
    "USED": VehicleCondition.USED,
    "CERTIFIED": VehicleCondition.CERTIFIED,
    "CPO": VehicleCondition.CERTIFIED,
}


class RowRejected(ValueError):
    """A row failed validation and was skipped."""


def normalize_vin(vin: Any) -> str:
    return vin.strip().upper() if isinstance(vin, str) else ""


def parse_condition(value: str | None) -> VehicleCondition | None:
    if not value:
        return None
    return _CONDITIONS.get(str(value).strip().upper())


def _vehicle_fields(dealership_id: str, row: InventoryRow, condition: VehicleCondition) -> dict[str, Any]:
    return {
        "dealership_id": dealership_id,
        "stock_number": row.stock_number,
        "year": row.year,
        "make": row.make,
        "model": row.model,
        "trim": row.trim,
        "condition": condition,
        "price": row.price_decimal,
        "mileage": row.mileage,
        "exterior_color": row.color,
        "body_type": row.body_type,
        "images": row.images,
    }


def run_inventory_import(
    database: Database,
    payload: InventoryImportPayload,
    report_progress: ProgressCallback | None = None,
) -> ImportResult:
    """Upsert every row into the catalog in submitted order.

    Row failures are recorded in ``errors`` with their 1-based index and never
    stop the batch. Only infrastructure errors escape.
    """
    errors: list[RowError] = []
    seen_vins: set[str] = set()
    created = 0
    updated = 0
    processed = 0

    with database.session() as session:
        for index, raw in enumerate(payload.rows, start=1):
            processed += 1
            try:
                vin = normalize_vin(raw.get("vin") if isinstance(raw, dict) else None)
                if not vin:
                    raise RowRejected("Missing VIN")

                # Counted as present in the feed even if the rest of the row is invalid
                seen_vins.add(vin)

                row = InventoryRow.model_validate(raw)
                condition = parse_condition(row.condition)
                if condition is None:
                    raise RowRejected(f'Invalid condition "{row.condition or ""}"')

                was_created = upsert_vehicle(
                    session, vin, _vehicle_fields(payload.dealership_id, row, condition)
                )
                session.commit()

                if was_created:
                    created += 1
                else:
                    updated += 1
            except INFRASTRUCTURE_ERRORS:
                session.rollback()
                logger.error(
                    f"Inventory import for dealership {payload.dealership_id} lost the "
                    f"data store at row {index}",
                    exc_info=True,
                )
                raise
            except Exception as exc:
                session.rollback()
                errors.append(RowError(row=index, error=str(exc) or "Unknown error"))
                if not isinstance(exc, RowRejected):
                    logger.warning(f"Row {index} failed to import: {exc}")

            if report_progress is not None:
                report_progress({"processed": processed, "total": payload.total_rows})

        marked_sold = 0
        if payload.mark_missing_as_sold and seen_vins:
            marked_sold = mark_missing_as_sold(session, payload.dealership_id, seen_vins)
            session.commit()
            logger.info(
                f"Marked {marked_sold} vehicles as SOLD for dealership {payload.dealership_id}"
            )

    return ImportResult(
        processed=processed,
        total=payload.total_rows,
        created=created,
        updated=updated,
        errors=errors,
        marked_sold=marked_sold,
    )
