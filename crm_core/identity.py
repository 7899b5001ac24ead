# crm_core/identity.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from crm_core.workflows import (
    EnquiryStatus,
    UserRole,
    normalize_role,
    normalize_status,
    statuses_for_role,
)


def parse_workflow_status(value: Any) -> Tuple[str, ...]:
    """
    Backend users carry workflowStatus as a list or as a JSON-encoded string.
    Anything else is treated as "no override".
    """
    if not value:
        return ()
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return ()
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(v) for v in value if v)


@dataclass(frozen=True)
class CrmUser:
    """
    The signed-in user for one session.

    resolved_statuses is computed once here so call sites never branch on
    "override vs role default" themselves.
    """

    id: str
    name: str
    email: str
    role: Optional[UserRole]
    workflow_status: Tuple[str, ...] = ()
    token: Optional[str] = field(default=None, repr=False, compare=False)
    resolved_statuses: Tuple[EnquiryStatus, ...] = field(init=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self,
            "resolved_statuses",
            statuses_for_role(self.role, self.workflow_status),
        )

    # DRF / Django auth compatibility
    is_authenticated = True
    is_anonymous = False

    @property
    def pk(self) -> str:
        return self.id

    def owns_status(self, status: Any) -> bool:
        return normalize_status(status) in self.resolved_statuses

    @classmethod
    def from_backend(cls, payload: Dict[str, Any], token: Optional[str] = None) -> "CrmUser":
        payload = payload or {}
        return cls(
            id=str(payload.get("id") or ""),
            name=str(payload.get("name") or ""),
            email=str(payload.get("email") or ""),
            role=normalize_role(payload.get("role")),
            workflow_status=parse_workflow_status(
                payload.get("workflow_status", payload.get("workflowStatus"))
            ),
            token=token,
        )

    def to_session(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value if self.role else None,
            "workflow_status": list(self.workflow_status),
        }

    def to_public(self) -> Dict[str, Any]:
        data = self.to_session()
        data["resolved_statuses"] = [s.value for s in self.resolved_statuses]
        return data
