"""Push captured leads to the dealership CRM (DealerSocket-style REST API)."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from dealerchat.core.errors import CrmPushError
from dealerchat.db.models.lead import Lead

logger = logging.getLogger(__name__)
TIMEOUT_SECONDS = 10


def build_lead_payload(lead: Lead) -> dict[str, Any]:
    """Shape a lead for the CRM's lead intake endpoint."""
    first_name, _, last_name = (lead.name or "").strip().partition(" ")
    dealership = lead.dealership
    return {
        "externalId": lead.id,
        "source": "website-chat",
        "dealer": {
            "id": lead.dealership_id,
            "name": dealership.name if dealership else None,
        },
        "customer": {
            "firstName": first_name or None,
            "lastName": last_name or None,
            "email": lead.email,
            "phone": lead.phone,
        },
        "vehicleOfInterest": lead.vehicle_interest,
        "createdAt": lead.created_at.isoformat() if lead.created_at else None,
    }


class CrmClient:
    """Thin HTTP client; one instance per worker process."""

    def __init__(
        self,
        base_url: str | None,
        api_key: str | None = None,
        timeout: float = TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "Dealership-Assistant/1.0",
        }
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
            transport=transport,
        )

    def push_lead(self, lead: Lead) -> str | None:
        """Send the lead and return the CRM's record id.

        Raises:
            CrmPushError: CRM not configured, unreachable, or non-2xx response.
        """
        if not self.base_url:
            raise CrmPushError("CRM_API_URL is not configured", status="unconfigured")

        start_time = time.time()
        try:
            response = self._client.post(f"{self.base_url}/leads", json=build_lead_payload(lead))
        except httpx.TimeoutException as e:
            raise CrmPushError(
                f"CRM request timeout after {self._client.timeout.read}s", status="timeout"
            ) from e
        except httpx.RequestError as e:
            raise CrmPushError(f"CRM request failed: {str(e)}", status="error") from e

        elapsed_ms = int((time.time() - start_time) * 1000)
        if not 200 <= response.status_code < 300:
            raise CrmPushError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            body = {}
        crm_id = body.get("id") if isinstance(body, dict) else None
        logger.info(
            f"Lead {lead.id} pushed to CRM: status={response.status_code}, "
            f"crm_id={crm_id}, time={elapsed_ms}ms"
        )
        return crm_id

    def close(self) -> None:
        self._client.close()
