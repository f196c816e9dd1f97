"""Log field visits to HubSpot over its CRM REST API."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from ...config import settings
from ...errors import CrmLoggingFailed

FIELD_VISIT_OBJECT = "field_visits"
NOTE_TO_COMPANY_ASSOCIATION_TYPE_ID = 190

logger = logging.getLogger(__name__)


def format_note_body(
    company_name: str,
    user_id: str,
    lat: float,
    lng: float,
    note: Optional[str],
    timestamp: datetime,
) -> str:
    return "\n".join(
        [
            "**Field Check-In**",
            "",
            f"- **Company:** {company_name}",
            f"- **Time:** {timestamp.strftime('%Y-%m-%d %H:%M %Z').strip()}",
            f"- **GPS:** {lat:.6f}, {lng:.6f}",
            f"- **Rep:** {user_id}",
            f"- **Notes:** {note or '-'}",
        ]
    )


class HubSpotLogger:
    """Creates a ``field_visits`` record per check-in, or a company Note when
    the portal has no such custom object."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        association_type_id: int | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.hubspot_api_key
        self.base_url = (base_url or settings.hubspot_base_url).rstrip("/")
        self.association_type_id = (
            association_type_id if association_type_id is not None else settings.hubspot_association_type_id
        )
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    def log_visit(
        self,
        company_id: str,
        company_name: str,
        user_id: str,
        lat: float,
        lng: float,
        note: Optional[str],
        timestamp: datetime,
    ) -> Optional[str]:
        """Record a visit and return the CRM record id.

        Returns ``None`` without calling HubSpot when no API key is configured.

        Raises:
            CrmLoggingFailed: if HubSpot rejects both the visit and the Note.
        """
        if not self.enabled:
            logger.info("Skipping CRM visit logging, no HubSpot API key configured")
            return None

        properties = {
            "company_name": company_name,
            "company_id": company_id,
            "rep_user_id": user_id,
            "latitude": str(lat),
            "longitude": str(lng),
            "notes": note or "",
            "check_in_time": timestamp.isoformat(),
        }
        with self._get_client() as client:
            try:
                record = self._post(client, f"/crm/v3/objects/{FIELD_VISIT_OBJECT}", {"properties": properties})
            except httpx.HTTPStatusError as e:
                if e.response.status_code != 404:
                    raise CrmLoggingFailed(
                        f"HubSpot rejected field visit with HTTP {e.response.status_code}: {e.response.text[:200]}"
                    ) from e
                logger.info(f"Custom object '{FIELD_VISIT_OBJECT}' not found, falling back to a Note")
                return self._create_note(client, company_id, company_name, user_id, lat, lng, note, timestamp)
            except httpx.HTTPError as e:
                raise CrmLoggingFailed(f"Failed to reach HubSpot: {e}") from e

            record_id = self._record_id(record)
            logger.info(f"Created field visit {record_id} for company {company_id}")
            if self.association_type_id:
                self._associate(client, record_id, company_id)
            return record_id

    def _post(self, client: httpx.Client, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = client.post(path, json=payload)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise CrmLoggingFailed(f"HubSpot returned a non-JSON response from {path}") from e

    @staticmethod
    def _record_id(record: dict[str, Any]) -> str:
        if not isinstance(record, dict) or "id" not in record:
            raise CrmLoggingFailed(f"HubSpot response has no record id: {str(record)[:200]}")
        return str(record["id"])

    def _associate(self, client: httpx.Client, record_id: str, company_id: str) -> None:
        payload = {
            "inputs": [
                {
                    "from": {"id": record_id},
                    "to": {"id": company_id},
                    "types": [
                        {
                            "associationCategory": "HUBSPOT_DEFINED",
                            "associationTypeId": int(self.association_type_id),
                        }
                    ],
                }
            ]
        }
        try:
            self._post(client, f"/crm/v4/associations/{FIELD_VISIT_OBJECT}/companies/batch/create", payload)
        except (httpx.HTTPError, CrmLoggingFailed) as e:
            # The visit itself is recorded; a missing association is not fatal
            logger.warning(f"Could not associate field visit {record_id} with company {company_id}: {e}")

    def _create_note(
        self,
        client: httpx.Client,
        company_id: str,
        company_name: str,
        user_id: str,
        lat: float,
        lng: float,
        note: Optional[str],
        timestamp: datetime,
    ) -> str:
        payload = {
            "properties": {
                "hs_note_body": format_note_body(company_name, user_id, lat, lng, note, timestamp),
                "hs_timestamp": str(int(timestamp.timestamp() * 1000)),
            },
            "associations": [
                {
                    "to": {"id": company_id},
                    "types": [
                        {
                            "associationCategory": "HUBSPOT_DEFINED",
                            "associationTypeId": NOTE_TO_COMPANY_ASSOCIATION_TYPE_ID,
                        }
                    ],
                }
            ],
        }
        try:
            record = self._post(client, "/crm/v3/objects/notes", payload)
        except httpx.HTTPError as e:
            raise CrmLoggingFailed(f"Failed to create HubSpot note for company {company_id}: {e}") from e
        record_id = self._record_id(record)
        logger.info(f"Created HubSpot note {record_id} for company {company_id}")
        return record_id
