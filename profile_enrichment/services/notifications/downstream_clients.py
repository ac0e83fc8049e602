"""Clients for the services notified after an enrichment completes.

Both calls go through a coordinator-style envelope:

    {
        "requester_service": "<this service>",
        "payload": {"action": ..., "target_service": ..., **fields},
        "response": {<template of the fields wanted back>}
    }
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from profile_enrichment.core.config import ServicesSettings
from profile_enrichment.core.exceptions import NotificationError, NotificationTimeoutError
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

SKILLS_ACTION = "get_employee_skills_for_directory_profile"
APPROVAL_ACTION = "create_profile_approval_request"
APPROVAL_TARGET_SERVICE = "hr-approval-queue"


class CoordinatorClient:
    """Posts envelopes to one downstream endpoint."""

    def __init__(self, url: str, requester_service: str, timeout: int = 30):
        self.url = url
        self.requester_service = requester_service
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    def build_envelope(
        self,
        action: str,
        target_service: str,
        payload: Dict[str, Any],
        response_template: Dict[str, Any],
    ) -> Dict[str, Any]:
        return {
            "requester_service": self.requester_service,
            "payload": {"action": action, "target_service": target_service, **payload},
            "response": response_template,
        }

    async def post(self, envelope: Dict[str, Any]) -> Dict[str, Any]:
        """Send the envelope and return the filled response section.

        Raises:
            NotificationError: If the endpoint is unset, unreachable, slow or
                answers with an error status
        """
        if not self.is_configured:
            raise NotificationError("Downstream endpoint is not configured")

        action = envelope["payload"]["action"]
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=envelope)
                response.raise_for_status()
                body = response.json()

        except httpx.TimeoutException as e:
            LOGGER.warning(
                "Downstream call timed out",
                extra={"action": action, "timeout": self.timeout}
            )
            raise NotificationTimeoutError(
                f"{action} timed out after {self.timeout}s", original_error=e
            ) from e

        except httpx.HTTPStatusError as e:
            LOGGER.warning(
                "Downstream call failed - HTTP error",
                extra={"action": action, "status_code": e.response.status_code}
            )
            raise NotificationError(
                f"{action} failed: HTTP {e.response.status_code}", original_error=e
            ) from e

        except (httpx.RequestError, ValueError) as e:
            LOGGER.warning(
                "Downstream call failed",
                extra={"action": action, "error": str(e)}
            )
            raise NotificationError(f"{action} failed: {e}", original_error=e) from e

        if not isinstance(body, dict):
            return {}
        data = body.get("data")
        if isinstance(data, dict) and isinstance(data.get("response"), dict):
            return data["response"]
        if isinstance(body.get("response"), dict):
            return body["response"]
        return data if isinstance(data, dict) else body


class SkillsNormalizationClient(CoordinatorClient):
    """Sends merged raw data to the skills engine for competency normalization."""

    def __init__(self, services_settings: ServicesSettings):
        super().__init__(
            url=services_settings.skills_engine_url,
            requester_service=services_settings.requester_service,
            timeout=services_settings.notification_timeout_seconds,
        )
        self.target_service = services_settings.skills_engine_service

    async def normalize(
        self,
        subject_id: uuid.UUID,
        merged_raw_data: Dict[str, Any],
        **attributes: Any,
    ) -> List[Dict[str, Any]]:
        """Return normalized competencies for the subject.

        Extra keyword attributes (name, company, role) are forwarded as-is.
        """
        envelope = self.build_envelope(
            SKILLS_ACTION,
            self.target_service,
            {"user_id": str(subject_id), "raw_data": merged_raw_data or {}, **attributes},
            {"user_id": str(subject_id), "competencies": [], "relevance_score": 0},
        )
        response = await self.post(envelope)
        competencies = response.get("competencies") or []

        LOGGER.info(
            "Skills normalization completed",
            extra={"subject_id": str(subject_id), "competencies": len(competencies)}
        )
        return competencies if isinstance(competencies, list) else []


class ApprovalQueueClient(CoordinatorClient):
    """Queues an enriched profile for HR approval."""

    def __init__(self, services_settings: ServicesSettings):
        super().__init__(
            url=services_settings.approval_queue_url,
            requester_service=services_settings.requester_service,
            timeout=services_settings.notification_timeout_seconds,
        )

    async def create_entry(self, subject_id: uuid.UUID, enriched_at: datetime) -> Optional[str]:
        """Create a pending approval entry and return its id, when one is reported."""
        envelope = self.build_envelope(
            APPROVAL_ACTION,
            APPROVAL_TARGET_SERVICE,
            {"employee_id": str(subject_id), "enriched_at": enriched_at.isoformat()},
            {"approval_id": None, "status": "pending"},
        )
        response = await self.post(envelope)
        approval_id = response.get("approval_id")

        LOGGER.info(
            "Approval entry created",
            extra={"subject_id": str(subject_id), "approval_id": approval_id}
        )
        return str(approval_id) if approval_id is not None else None
