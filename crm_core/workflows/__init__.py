# crm_core/workflows/__init__.py
from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple


# ===============================================================
# Canonical workflow definitions
# ===============================================================

class EnquiryStatus(str, Enum):
    """
    Fabrication pipeline stages, declared in canonical order.

    Order defines board column order and the "forward" direction of the
    normal workflow.
    """

    ENQUIRY = "Enquiry"
    DESIGN = "Design"
    BOQ = "BOQ"
    READY_FOR_PRODUCTION = "ReadyForProduction"
    PURCHASE_WAITING = "PurchaseWaiting"
    IN_PRODUCTION = "InProduction"
    PRODUCTION_COMPLETE = "ProductionComplete"
    HOTDIP = "Hotdip"
    READY_FOR_DISPATCH = "ReadyForDispatch"
    DISPATCHED = "Dispatched"


class UserRole(str, Enum):
    SUPERADMIN = "superadmin"
    DIRECTOR = "director"
    SALESMAN = "salesman"
    DESIGNER = "designer"
    PRODUCTION = "production"
    PURCHASE = "purchase"


STATUS_LIST: Tuple[EnquiryStatus, ...] = tuple(EnquiryStatus)

TERMINAL_STATUSES: FrozenSet[EnquiryStatus] = frozenset({EnquiryStatus.DISPATCHED})

# Roles with blanket authority over every enquiry and status.
MANAGEMENT_ROLES: FrozenSet[UserRole] = frozenset({UserRole.SUPERADMIN, UserRole.DIRECTOR})

# Roles allowed to move any enquiry to any status on the board.
BLANKET_ROLES: FrozenSet[UserRole] = MANAGEMENT_ROLES | {UserRole.SALESMAN}

# Roles that work a sub-workflow and hand the enquiry back when done.
WORKER_ROLES: FrozenSet[UserRole] = frozenset(
    {UserRole.DESIGNER, UserRole.PRODUCTION, UserRole.PURCHASE}
)


# ===============================================================
# Role -> status ownership
# ===============================================================

ROLE_STATUS_MAPPING: Dict[UserRole, Tuple[EnquiryStatus, ...]] = {
    UserRole.SUPERADMIN: STATUS_LIST,
    UserRole.DIRECTOR: STATUS_LIST,
    UserRole.SALESMAN: STATUS_LIST,
    UserRole.DESIGNER: (EnquiryStatus.DESIGN,),
    UserRole.PRODUCTION: (
        EnquiryStatus.READY_FOR_PRODUCTION,
        EnquiryStatus.IN_PRODUCTION,
        EnquiryStatus.PRODUCTION_COMPLETE,
        EnquiryStatus.HOTDIP,
    ),
    UserRole.PURCHASE: (EnquiryStatus.PURCHASE_WAITING,),
}

# Dropping an enquiry here means "done, back to the salesperson".
RETURN_STATUS_MAPPING: Dict[UserRole, EnquiryStatus] = {
    UserRole.DESIGNER: EnquiryStatus.BOQ,
    UserRole.PRODUCTION: EnquiryStatus.READY_FOR_DISPATCH,
    UserRole.PURCHASE: EnquiryStatus.READY_FOR_PRODUCTION,
}

# Hand-curated: BOQ and ReadyForDispatch are salesman-owned exit statuses
# reached from worker roles, so this is not the inverse of ROLE_STATUS_MAPPING.
STATUS_ROLE_MAPPING: Dict[EnquiryStatus, FrozenSet[UserRole]] = {
    EnquiryStatus.ENQUIRY: frozenset({UserRole.SALESMAN}),
    EnquiryStatus.DESIGN: frozenset({UserRole.DESIGNER}),
    EnquiryStatus.BOQ: frozenset({UserRole.SALESMAN}),
    EnquiryStatus.READY_FOR_PRODUCTION: frozenset({UserRole.PRODUCTION}),
    EnquiryStatus.PURCHASE_WAITING: frozenset({UserRole.PURCHASE}),
    EnquiryStatus.IN_PRODUCTION: frozenset({UserRole.PRODUCTION}),
    EnquiryStatus.PRODUCTION_COMPLETE: frozenset({UserRole.PRODUCTION}),
    EnquiryStatus.HOTDIP: frozenset({UserRole.PRODUCTION}),
    EnquiryStatus.READY_FOR_DISPATCH: frozenset({UserRole.SALESMAN}),
    EnquiryStatus.DISPATCHED: frozenset({UserRole.SALESMAN}),
}


# ===============================================================
# Normalization
# ===============================================================

ROLE_ALIASES: Dict[str, UserRole] = {
    "SUPERADMIN": UserRole.SUPERADMIN,
    "SUPERUSER": UserRole.SUPERADMIN,
    "ADMIN": UserRole.SUPERADMIN,
    "DIRECTOR": UserRole.DIRECTOR,
    "SALESMAN": UserRole.SALESMAN,
    "SALESPERSON": UserRole.SALESMAN,
    "SALES": UserRole.SALESMAN,
    "DESIGNER": UserRole.DESIGNER,
    "DESIGN": UserRole.DESIGNER,
    "PRODUCTION": UserRole.PRODUCTION,
    "PRODUCTIONLEAD": UserRole.PRODUCTION,
    "PURCHASE": UserRole.PURCHASE,
}

_STATUS_KEYS: Dict[str, EnquiryStatus] = {
    s.value.upper(): s for s in EnquiryStatus
}


def _compact(value: Any) -> str:
    """
    "Ready for dispatch", "ready_for_dispatch" and "ReadyForDispatch"
    all compact to "READYFORDISPATCH".
    """
    if isinstance(value, Enum):
        value = value.value
    return re.sub(r"[\s_\-]+", "", str(value or "")).upper()


def normalize_status(value: Any) -> Optional[EnquiryStatus]:
    if isinstance(value, EnquiryStatus):
        return value
    return _STATUS_KEYS.get(_compact(value))


def normalize_role(value: Any) -> Optional[UserRole]:
    if isinstance(value, UserRole):
        return value
    return ROLE_ALIASES.get(_compact(value))


def _canonical(statuses: Iterable[Any]) -> Tuple[EnquiryStatus, ...]:
    wanted = {normalize_status(s) for s in statuses}
    return tuple(s for s in STATUS_LIST if s in wanted)


# ===============================================================
# Public lookups
# ===============================================================

def all_statuses() -> Tuple[EnquiryStatus, ...]:
    return STATUS_LIST


def statuses_for_role(role: Any, override: Optional[Iterable[Any]] = None) -> Tuple[EnquiryStatus, ...]:
    """
    Statuses a role owns, in canonical order.

    - superadmin/director: always the full list, override ignored
    - non-empty override: its valid statuses, de-duplicated, canonical order
    - otherwise: the static default for the role
    - unknown role: empty
    """
    r = normalize_role(role)
    if r is None:
        return ()

    if r in MANAGEMENT_ROLES:
        return STATUS_LIST

    override_list = list(override or ())
    if override_list:
        return _canonical(override_list)

    return ROLE_STATUS_MAPPING.get(r, ())


def roles_allowed_for(status: Any) -> FrozenSet[UserRole]:
    s = normalize_status(status)
    if s is None:
        return frozenset()
    return STATUS_ROLE_MAPPING.get(s, frozenset())


def return_status_for(role: Any) -> Optional[EnquiryStatus]:
    r = normalize_role(role)
    if r is None:
        return None
    return RETURN_STATUS_MAPPING.get(r)


def is_terminal(status: Any) -> bool:
    return normalize_status(status) in TERMINAL_STATUSES


def is_worker_role(role: Any) -> bool:
    return normalize_role(role) in WORKER_ROLES


def has_blanket_authority(role: Any) -> bool:
    return normalize_role(role) in BLANKET_ROLES


def is_management_role(role: Any) -> bool:
    return normalize_role(role) in MANAGEMENT_ROLES


def status_label(status: Any) -> str:
    """
    "ReadyForDispatch" -> "Ready For Dispatch". BOQ stays "BOQ".
    """
    s = normalize_status(status)
    raw = s.value if s is not None else str(status or "")
    return re.sub(r"(?<=[a-z])(?=[A-Z])", " ", raw).strip()


def workflow_definition() -> Dict[str, Any]:
    """
    Stable JSON-serializable definition for UI.
    """
    return {
        "statuses": [s.value for s in STATUS_LIST],
        "roles": [r.value for r in UserRole],
        "role_statuses": {
            r.value: [s.value for s in statuses]
            for r, statuses in ROLE_STATUS_MAPPING.items()
        },
        "return_statuses": {
            r.value: s.value for r, s in RETURN_STATUS_MAPPING.items()
        },
        "status_roles": {
            s.value: sorted(r.value for r in roles)
            for s, roles in STATUS_ROLE_MAPPING.items()
        },
        "terminal_statuses": [s.value for s in STATUS_LIST if is_terminal(s)],
    }


__all__: List[str] = [
    "EnquiryStatus",
    "UserRole",
    "STATUS_LIST",
    "ROLE_STATUS_MAPPING",
    "RETURN_STATUS_MAPPING",
    "STATUS_ROLE_MAPPING",
    "BLANKET_ROLES",
    "MANAGEMENT_ROLES",
    "WORKER_ROLES",
    "normalize_status",
    "normalize_role",
    "all_statuses",
    "statuses_for_role",
    "roles_allowed_for",
    "return_status_for",
    "is_terminal",
    "is_worker_role",
    "has_blanket_authority",
    "is_management_role",
    "status_label",
    "workflow_definition",
]
