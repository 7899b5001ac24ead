# crm_core/services/backend_client.py
"""
HTTP client for the CRM REST backend.

The backend answers with an envelope: {"success": bool, "data": ..., "message": str}.
Every failure (transport, non-2xx, unreadable body, success=false) is raised
as BackendError. No call is retried automatically.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from django.conf import settings
from django.utils.module_loading import import_string

from crm_core.exceptions import BackendError
from crm_core.records import normalize_record
from crm_core.workflows import normalize_status

logger = logging.getLogger(__name__)


def _status_value(status: Any) -> str:
    s = normalize_status(status)
    return s.value if s is not None else str(status or "")


class BackendClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.CRM_BACKEND_URL).rstrip("/")
        self.token = token
        self.timeout = timeout if timeout is not None else settings.CRM_BACKEND_TIMEOUT
        self.session = session or requests.Session()

    # ----------------------------------------------------------
    # Transport
    # ----------------------------------------------------------
    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Cache-Control": "no-cache",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, *, json: Any = None, params: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            logger.warning("Backend %s %s failed: %s", method, path, exc)
            raise BackendError("Could not connect to server") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise BackendError("Backend returned an unreadable response", response.status_code) from exc

        if not isinstance(body, dict):
            raise BackendError("Backend returned an unexpected payload", response.status_code)

        if not response.ok or body.get("success") is False:
            message = body.get("message") or "Request failed"
            logger.info("Backend %s %s rejected: %s (%s)", method, path, message, response.status_code)
            raise BackendError(message, response.status_code)

        return body.get("data")

    # ----------------------------------------------------------
    # Auth
    # ----------------------------------------------------------
    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Returns {"token": ..., "user": {...}}.
        """
        data = self._request("POST", "/auth/login", json={"email": email, "password": password}) or {}
        return {
            "token": data.get("token"),
            "user": normalize_record(data.get("user") or {}),
        }

    def me(self) -> Dict[str, Any]:
        return normalize_record(self._request("GET", "/auth/me") or {})

    # ----------------------------------------------------------
    # Enquiries
    # ----------------------------------------------------------
    def get_enquiry(self, enquiry_id: str) -> Dict[str, Any]:
        return normalize_record(self._request("GET", f"/enquiries/{quote(str(enquiry_id))}"))

    def list_enquiries(self, limit: int = 1000) -> List[Dict[str, Any]]:
        data = self._request("GET", "/enquiries", params={"limit": limit})
        if not isinstance(data, list):
            return []
        return [normalize_record(e) for e in data]

    def update_enquiry_status(
        self,
        enquiry_id: str,
        status: Any,
        assignee_id: Optional[str],
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "status": _status_value(status),
            "assignedPersonId": assignee_id,
            "note": note,
        }
        data = self._request("PATCH", f"/enquiries/{quote(str(enquiry_id))}/status", json=payload)
        return normalize_record(data)

    def assign_enquiry(self, enquiry_id: str, assignee_id: str) -> Dict[str, Any]:
        data = self._request(
            "PATCH",
            f"/enquiries/{quote(str(enquiry_id))}/assign",
            json={"assignedPersonId": assignee_id},
        )
        return normalize_record(data)

    # ----------------------------------------------------------
    # Users
    # ----------------------------------------------------------
    def users_by_status(self, status: Any) -> List[Dict[str, Any]]:
        data = self._request("GET", f"/users/by-status/{quote(_status_value(status))}")
        if not isinstance(data, list):
            return []
        return [normalize_record(u) for u in data]

    # ----------------------------------------------------------
    # Production sub-workflow
    # ----------------------------------------------------------
    def production_workflow_for(self, enquiry_id: str) -> Optional[Dict[str, Any]]:
        """
        None when the backend has no production workflow for the enquiry.
        """
        data = self._request("GET", f"/production/enquiry/{quote(str(enquiry_id))}")
        if not isinstance(data, dict) or "id" not in data:
            return None
        return normalize_record(data)

    def start_production_workflow(self, workflow_id: str) -> None:
        self._request("POST", f"/production/{quote(str(workflow_id))}/start")

    def complete_production_workflow(self, workflow_id: str) -> Dict[str, Any]:
        """
        Returns {"workflow": {...}, "enquiry": {...}}.
        """
        data = self._request("POST", f"/production/{quote(str(workflow_id))}/complete") or {}
        if not isinstance(data, dict) or not isinstance(data.get("enquiry"), dict):
            raise BackendError("Failed to complete production")
        return {
            "workflow": normalize_record(data.get("workflow") or {}),
            "enquiry": normalize_record(data["enquiry"]),
        }


def default_client_factory(user=None) -> BackendClient:
    """
    Client bound to the session user's backend token.
    """
    return BackendClient(token=getattr(user, "token", None))


def get_backend_client(user=None):
    """
    Resolved through settings.CRM_BACKEND_CLIENT_FACTORY so deployments
    (and tests) can swap the collaborator.
    """
    factory = import_string(settings.CRM_BACKEND_CLIENT_FACTORY)
    return factory(user)
