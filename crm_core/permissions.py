# crm_core/permissions.py
from __future__ import annotations

import hmac
from typing import Dict

from django.conf import settings
from rest_framework.permissions import BasePermission, SAFE_METHODS

from crm_core.workflows import UserRole, normalize_role


# ------------------------------------------------------------------
# Role -> resource access
# ------------------------------------------------------------------
# Each entry is (view, create, edit, delete).
_ALL = (True, True, True, True)
_NO_DELETE = (True, True, True, False)
_VIEW_EDIT = (True, False, True, False)
_VIEW = (True, False, False, False)
_NONE = (False, False, False, False)

ROLE_PERMISSIONS: Dict[UserRole, Dict[str, tuple]] = {
    UserRole.SUPERADMIN: {
        "dashboard": _ALL, "enquiries": _ALL, "quotations": _ALL, "invoices": _ALL,
        "clients": _ALL, "reports": _ALL, "kanban": _ALL, "tasks": _ALL, "users": _ALL,
    },
    UserRole.DIRECTOR: {
        "dashboard": _NO_DELETE, "enquiries": _NO_DELETE, "quotations": _NO_DELETE,
        "invoices": _NO_DELETE, "clients": _NO_DELETE, "reports": _VIEW,
        "kanban": _NO_DELETE, "tasks": _VIEW_EDIT, "users": _NO_DELETE,
    },
    UserRole.SALESMAN: {
        "dashboard": _NO_DELETE, "enquiries": _NO_DELETE, "quotations": _NO_DELETE,
        "invoices": _NO_DELETE, "clients": _NO_DELETE, "reports": _VIEW,
        "kanban": _NO_DELETE, "tasks": _VIEW_EDIT, "users": _NONE,
    },
    UserRole.DESIGNER: {
        "dashboard": _VIEW, "enquiries": _VIEW_EDIT, "quotations": _NONE, "invoices": _NONE,
        "clients": _VIEW, "reports": _NONE, "kanban": _VIEW_EDIT, "tasks": _VIEW_EDIT, "users": _NONE,
    },
    UserRole.PRODUCTION: {
        "dashboard": _VIEW, "enquiries": _VIEW_EDIT, "quotations": _NONE, "invoices": _NONE,
        "clients": _NONE, "reports": _VIEW, "kanban": _VIEW_EDIT, "tasks": _VIEW_EDIT, "users": _NONE,
    },
    UserRole.PURCHASE: {
        "dashboard": _VIEW, "enquiries": _VIEW_EDIT, "quotations": _NONE, "invoices": _NONE,
        "clients": _NONE, "reports": _NONE, "kanban": _VIEW_EDIT, "tasks": _VIEW_EDIT, "users": _NONE,
    },
}

_ACTIONS = {"view": 0, "create": 1, "edit": 2, "delete": 3}


def role_can(role, resource: str, action: str) -> bool:
    r = normalize_role(role)
    if r is None or action not in _ACTIONS:
        return False
    flags = ROLE_PERMISSIONS.get(r, {}).get(resource, _NONE)
    return flags[_ACTIONS[action]]


def visible_resources(role) -> list[str]:
    r = normalize_role(role)
    if r is None:
        return []
    return [res for res in ROLE_PERMISSIONS[r] if role_can(r, res, "view")]


# ------------------------------------------------------------------
# Permission classes
# ------------------------------------------------------------------
class HasResourceAccess(BasePermission):
    """
    Read requires "view" on view.crm_resource, writes require "edit".

    Users with an unrecognized role get nothing.
    """

    message = "Your role does not have access to this resource."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not getattr(user, "is_authenticated", False):
            return False

        resource = getattr(view, "crm_resource", None)
        if not resource:
            return True

        action = "view" if request.method in SAFE_METHODS else "edit"
        return role_can(getattr(user, "role", None), resource, action)


class HasEventsToken(BasePermission):
    """
    Push relay requests must carry X-CRM-Events-Token matching
    settings.CRM_EVENTS_TOKEN. An empty setting disables the endpoint.
    """

    message = "Invalid events token."

    def has_permission(self, request, view):
        expected = settings.CRM_EVENTS_TOKEN or ""
        provided = request.headers.get("X-CRM-Events-Token", "")
        if not expected or not provided:
            return False
        return hmac.compare_digest(str(expected), str(provided))
