"""Validate inventory CSV headers and look up cells by normalized column name."""

from __future__ import annotations

import re
from typing import Any


class ValidationError(ValueError):
    """Custom exception for CSV validation errors."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


REQUIRED_COLUMNS = [
    "VIN",
    "Stock#",
    "Year",
    "Make",
    "Model",
    "Trim",
    "Condition",
    "Price",
    "Mileage",
    "Color",
    "BodyType",
    "Images",
]

_WHITESPACE = re.compile(r"\s+")


def normalize_column(column: str) -> str:
    """Match headers ignoring case and any whitespace ("Body Type" == "BODYTYPE")."""
    return _WHITESPACE.sub("", column.strip().upper())


def missing_columns(headers: list[str] | None) -> list[str]:
    normalized = {normalize_column(header) for header in headers or [] if header}
    return [column for column in REQUIRED_COLUMNS if normalize_column(column) not in normalized]


def validate_headers(headers: list[str] | None) -> None:
    """Ensure CSV contains the required columns before any job is enqueued."""
    if not headers:
        raise ValidationError("CSV requires a header row")
    missing = missing_columns(headers)
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")


def cell(row: dict[str, Any], column: str) -> str | None:
    """Return the trimmed cell for ``column`` or None when blank/absent."""
    target = normalize_column(column)
    for key, value in row.items():
        if key is not None and normalize_column(key) == target:
            if value is None:
                return None
            text = value.strip() if isinstance(value, str) else str(value).strip()
            return text or None
    return None
