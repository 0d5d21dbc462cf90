"""Inventory import job payloads."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ImportForm(BaseModel):
    """Multipart fields accompanying the CSV upload."""

    model_config = ConfigDict(populate_by_name=True)

    dealership_id: UUID = Field(..., alias="dealershipId")
    mark_missing_as_sold: bool = Field(False, alias="markMissingAsSold")

    @field_validator("mark_missing_as_sold", mode="before")
    @classmethod
    def true_or_false(cls, v: Any) -> bool:
        if v is None:
            return False
        if v not in ("true", "false"):
            raise ValueError("Expected 'true' or 'false'")
        return v == "true"


def form_issues(error: ValidationError) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in issue["loc"]), "message": issue["msg"]}
        for issue in error.errors()
    ]


class SkippedRow(BaseModel):
    row: int
    reason: str


class ImportAccepted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., alias="jobId")
    total_rows: int = Field(..., alias="totalRows")
    skipped_rows: list[SkippedRow] = Field(default_factory=list, alias="skippedRows")


class ImportJobStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    state: str = Field(..., description="waiting|active|completed|failed|delayed")
    progress: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] | None = None
    failed_reason: str | None = Field(None, alias="failedReason")
    timestamp: str | None = None
