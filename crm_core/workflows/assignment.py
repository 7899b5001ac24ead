# crm_core/workflows/assignment.py
"""
Assignee selection for a destination status.

Pure selection logic: no backend calls, no mutation of the user pool.
"""
from __future__ import annotations

from typing import Any, Iterable, List, Optional

from crm_core.workflows import is_management_role, normalize_role, roles_allowed_for


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def user_id(user: Any) -> Optional[str]:
    """
    Users arrive as backend dicts or CrmUser values; ids may be ints or strings.
    """
    if user is None:
        return None
    if isinstance(user, (str, int)):
        return str(user)
    uid = _get(user, "id")
    return str(uid) if uid not in (None, "") else None


def user_role(user: Any):
    return normalize_role(_get(user, "role"))


def eligible_assignees(status: Any, users: Iterable[Any], actor_role: Any = None) -> List[Any]:
    """
    Users that may receive an enquiry entering `status`, in source order.

    Superadmin/director actors may hand work to anyone.
    """
    pool = list(users or ())
    if is_management_role(actor_role):
        return pool

    allowed = roles_allowed_for(status)
    if not allowed:
        return []
    return [u for u in pool if user_role(u) in allowed]


def default_assignee(
    status: Any,
    users: Iterable[Any],
    fallback: Any = None,
    actor_role: Any = None,
) -> Any:
    """
    First eligible user, else `fallback` unchanged.

    The tie-break is plain source order; there is no load balancing.
    """
    candidates = eligible_assignees(status, users, actor_role)
    if candidates:
        return candidates[0]
    return fallback
