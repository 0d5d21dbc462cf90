"""Push a lead to the CRM and keep its pushed_to_crm flag in sync."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from dealerchat.core.errors import RecordNotFoundError
from dealerchat.db.models.lead import Lead
from dealerchat.db.session import Database

logger = logging.getLogger(__name__)


class LeadPusher(Protocol):
    def push_lead(self, lead: Lead) -> str | None: ...


def push_lead(
    database: Database,
    crm_client: LeadPusher,
    lead_id: str,
    *,
    final_attempt: bool = False,
) -> dict[str, Any]:
    """Push one lead; on the final failed attempt leave pushed_to_crm=False behind.

    Any failure is re-raised so the queue can retry or record the job as failed.
    """
    try:
        with database.transaction() as session:
            lead = session.scalars(
                select(Lead).options(selectinload(Lead.dealership)).where(Lead.id == lead_id)
            ).one_or_none()
            if lead is None:
                raise RecordNotFoundError(f"Lead {lead_id} not found")

            crm_id = crm_client.push_lead(lead)

            lead.pushed_to_crm = True
            lead.updated_at = datetime.now(timezone.utc)
    except Exception as exc:
        logger.error(f"CRM push failed for lead {lead_id}: {exc}")
        if final_attempt:
            _mark_push_failed(database, lead_id)
        raise

    logger.info(f"CRM push successful for lead {lead_id}")
    return {"success": True, "crmId": crm_id}


def _mark_push_failed(database: Database, lead_id: str) -> None:
    try:
        with database.transaction() as session:
            session.execute(
                update(Lead)
                .where(Lead.id == lead_id)
                .values(pushed_to_crm=False, updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
    except Exception:
        # The original push error is what the caller re-raises
        logger.exception(f"Could not mark lead {lead_id} as not pushed to CRM")
