# crm_core/exceptions.py
from __future__ import annotations

from typing import Optional


class TransitionPermissionError(PermissionError):
    """Actor is not entitled to the attempted transition. Raised before any backend call."""


class TransitionValidationError(ValueError):
    """Destination unrecognized, enquiry unknown, or a required sub-workflow is missing."""


class BackendError(Exception):
    """
    The backend call failed: transport error, non-2xx response,
    unreadable body, or a `success: false` envelope.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message
