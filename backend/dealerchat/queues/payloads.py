"""Job payload and result contracts, validated once at the queue boundary."""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InventoryRow(BaseModel):
    """One parsed CSV record.

    Validation is lenient: unparseable optional fields collapse to None so a
    single malformed row can be reported on its own instead of rejecting
    the whole batch.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    vin: str = ""
    stock_number: str | None = Field(None, alias="stockNumber")
    year: int | None = None
    make: str | None = None
    model: str | None = None
    trim: str | None = None
    condition: str | None = None
    price: float | None = None
    mileage: int | None = None
    color: str | None = None
    body_type: str | None = Field(None, alias="bodyType")
    images: list[str] = Field(default_factory=list)

    @field_validator("vin", mode="before")
    @classmethod
    def vin_as_text(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("year", "mileage", mode="before")
    @classmethod
    def integer_or_none(cls, v: Any) -> int | None:
        number = _finite_number(v)
        return int(number) if number is not None else None

    @field_validator("price", mode="before")
    @classmethod
    def price_or_none(cls, v: Any) -> float | None:
        return _finite_number(v)

    @field_validator(
        "stock_number", "make", "model", "trim", "condition", "color", "body_type",
        mode="before",
    )
    @classmethod
    def text_or_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("images", mode="before")
    @classmethod
    def image_list(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, (list, tuple)):
            return []
        return [str(url).strip() for url in v if url and str(url).strip()]

    @property
    def price_decimal(self) -> Decimal | None:
        if self.price is None:
            return None
        try:
            return Decimal(str(self.price))
        except InvalidOperation:
            return None


def _finite_number(v: Any) -> float | None:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, str):
        v = v.strip().replace(",", "").lstrip("$")
        if not v:
            return None
    try:
        number = float(v)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class InventoryImportPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dealership_id: str = Field(..., alias="dealershipId")
    # Rows stay raw here and are validated one by one inside the job
    rows: list[dict[str, Any]]
    mark_missing_as_sold: bool = Field(False, alias="markMissingAsSold")
    total_rows: int = Field(..., alias="totalRows", ge=0)


class CrmPushPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lead_id: str = Field(..., alias="leadId")


class AppointmentReminderPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    appointment_id: str = Field(..., alias="appointmentId")
    type: str


class RowError(BaseModel):
    row: int
    error: str


class ImportResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    processed: int = 0
    total: int = 0
    created: int = 0
    updated: int = 0
    errors: list[RowError] = Field(default_factory=list)
    marked_sold: int = Field(0, alias="markedSold")
