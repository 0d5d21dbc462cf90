"""Vehicle catalog writes used by the inventory import."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from dealerchat.db.models.vehicle import Vehicle, VehicleAvailability

logger = logging.getLogger(__name__)

# Columns overwritten on every import of an existing VIN
DESCRIPTIVE_FIELDS = (
    "dealership_id",
    "stock_number",
    "year",
    "make",
    "model",
    "trim",
    "condition",
    "price",
    "mileage",
    "exterior_color",
    "body_type",
    "images",
)


def _dialect_insert(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"VIN upsert is not supported on {dialect}")
    return insert


def upsert_vehicle(session: Session, vin: str, fields: dict[str, Any]) -> bool:
    """Insert or overwrite the catalog entry for ``vin``; return True if it was created.

    Atomicity per VIN comes from the unique constraint and the database's
    native ON CONFLICT handling. A fresh row has identical created/updated
    stamps; a conflicting row keeps its original created_at.
    """
    insert = _dialect_insert(session)
    now = datetime.now(timezone.utc)
    values = {name: fields.get(name) for name in DESCRIPTIVE_FIELDS}
    values["images"] = values["images"] or []
    values["availability"] = VehicleAvailability.IN_STOCK

    stmt = insert(Vehicle).values(
        vin=vin,
        featured=False,
        created_at=now,
        updated_at=now,
        **values,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Vehicle.vin],
        set_={**values, "updated_at": now},
    ).returning(Vehicle.created_at, Vehicle.updated_at)

    row = session.execute(stmt).one()
    return row.created_at == row.updated_at


def mark_missing_as_sold(session: Session, dealership_id: str, seen_vins: Iterable[str]) -> int:
    """Flip IN_STOCK vehicles absent from ``seen_vins`` to SOLD; return how many changed."""
    seen = sorted(set(seen_vins))
    if not seen:
        return 0

    stmt = (
        update(Vehicle)
        .where(
            Vehicle.dealership_id == dealership_id,
            Vehicle.availability == VehicleAvailability.IN_STOCK,
            Vehicle.vin.not_in(seen),
        )
        .values(
            availability=VehicleAvailability.SOLD,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    return result.rowcount or 0
