"""Parse uploaded inventory CSV files into import rows."""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from typing import Any

from dealerchat.utils.csv_validator import ValidationError, cell, validate_headers

logger = logging.getLogger(__name__)


@dataclass
class ParsedInventory:
    rows: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)


def _number(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        number = float(value.replace(",", "").lstrip("$"))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _integer(value: str | None) -> int | None:
    number = _number(value)
    return int(number) if number is not None else None


def parse_inventory_csv(content: bytes | str) -> ParsedInventory:
    """Turn CSV content into row payloads, skipping rows without a VIN.

    Raises:
        ValidationError: the file is not decodable/parseable, has no data
            rows, is missing required columns, or every row lacks a VIN.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ValidationError(f"File encoding error: {str(e)}") from e

    try:
        reader = csv.DictReader(io.StringIO(content))
        headers = reader.fieldnames
        records = [
            record
            for record in reader
            if any((value or "").strip() for value in record.values() if isinstance(value, str))
        ]
    except csv.Error as e:
        raise ValidationError(f"Unable to parse CSV file: {str(e)}") from e

    if not records:
        raise ValidationError("CSV file contains no rows")

    validate_headers(list(headers or []))

    parsed = ParsedInventory()
    for index, record in enumerate(records, start=1):
        vin = cell(record, "VIN")
        if not vin:
            parsed.skipped.append({"row": index, "reason": "Missing VIN"})
            continue

        images = [url.strip() for url in (cell(record, "Images") or "").split(",") if url.strip()]
        parsed.rows.append(
            {
                "vin": vin,
                "stockNumber": cell(record, "Stock#"),
                "year": _integer(cell(record, "Year")),
                "make": cell(record, "Make"),
                "model": cell(record, "Model"),
                "trim": cell(record, "Trim"),
                "condition": cell(record, "Condition"),
                "price": _number(cell(record, "Price")),
                "mileage": _integer(cell(record, "Mileage")),
                "color": cell(record, "Color"),
                "bodyType": cell(record, "BodyType"),
                "images": images,
            }
        )

    if not parsed.rows:
        raise ValidationError(
            "All rows were invalid. Please review the CSV format.",
            details=parsed.skipped,
        )

    logger.info(f"Parsed {len(parsed.rows)} inventory rows ({len(parsed.skipped)} skipped)")
    return parsed
