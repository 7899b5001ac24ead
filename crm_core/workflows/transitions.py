# crm_core/workflows/transitions.py
"""
Authoritative transition table for enquiry moves.

Every drag/drop or status form submission is classified here into exactly
one TransitionKind. The controller only executes the plan; it never
re-derives policy from role strings.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from crm_core.exceptions import TransitionValidationError
from crm_core.records import enquiry_assignee, enquiry_status
from crm_core.workflows import (
    STATUS_LIST,
    EnquiryStatus,
    UserRole,
    has_blanket_authority,
    is_worker_role,
    normalize_status,
    return_status_for,
    status_label,
)


class TransitionKind(str, Enum):
    NOOP = "noop"
    RETURN = "return"
    COMPLETE_PRODUCTION = "complete_production"
    START_PRODUCTION = "start_production"
    WITHIN_ROLE = "within_role"
    BLANKET = "blanket"
    REASSIGN = "reassign"
    DENIED = "denied"


MUTATING_KINDS = frozenset(
    {
        TransitionKind.RETURN,
        TransitionKind.COMPLETE_PRODUCTION,
        TransitionKind.START_PRODUCTION,
        TransitionKind.WITHIN_ROLE,
        TransitionKind.BLANKET,
    }
)


@dataclass(frozen=True)
class TransitionPlan:
    kind: TransitionKind
    current: Optional[EnquiryStatus]
    destination: Optional[EnquiryStatus]
    reason: str = ""

    @property
    def allowed(self) -> bool:
        return self.kind is not TransitionKind.DENIED


# ===============================================================
# Special exits per worker role
# ===============================================================

# (role, destination) pairs whose return edge is closed out by a
# sub-workflow call instead of a generic status update.
SUBWORKFLOW_RETURNS: Dict[tuple, TransitionKind] = {
    (UserRole.PRODUCTION, EnquiryStatus.READY_FOR_DISPATCH): TransitionKind.COMPLETE_PRODUCTION,
}

# (role, destination) pairs that require a "start" signal when entered
# from a different status.
SUBWORKFLOW_STARTS: Dict[tuple, TransitionKind] = {
    (UserRole.PRODUCTION, EnquiryStatus.IN_PRODUCTION): TransitionKind.START_PRODUCTION,
}


def same_status(a: Any, b: Any) -> bool:
    """
    Status equality by canonical name; raw text when either side is unknown.
    """
    na, nb = normalize_status(a), normalize_status(b)
    if na is None or nb is None:
        return a is not None and str(a) == str(b)
    return na == nb


def _owns(actor, enquiry: Dict[str, Any]) -> bool:
    actor_id = str(getattr(actor, "id", "") or "")
    return bool(actor_id) and enquiry_assignee(enquiry) == actor_id


def _worker_return(actor, enquiry, current, destination) -> Optional[TransitionPlan]:
    role = actor.role
    if not is_worker_role(role) or not _owns(actor, enquiry):
        return None
    if destination != return_status_for(role):
        return None
    kind = SUBWORKFLOW_RETURNS.get((role, destination), TransitionKind.RETURN)
    return TransitionPlan(kind, current, destination, "Task returned to salesperson")


def _worker_within_role(actor, enquiry, current, destination) -> Optional[TransitionPlan]:
    role = actor.role
    if not is_worker_role(role) or not _owns(actor, enquiry):
        return None
    if not (actor.owns_status(current) and actor.owns_status(destination)):
        return None
    kind = SUBWORKFLOW_STARTS.get((role, destination), TransitionKind.WITHIN_ROLE)
    return TransitionPlan(kind, current, destination, f"Status changed to {destination.value}")


def _blanket(actor, enquiry, current, destination) -> Optional[TransitionPlan]:
    if not has_blanket_authority(actor.role):
        return None
    return TransitionPlan(TransitionKind.BLANKET, current, destination, f"Status changed to {destination.value}")


# Evaluated in order; the first rule that returns a plan wins.
TRANSITION_RULES: List[Callable[..., Optional[TransitionPlan]]] = [
    _worker_return,
    _worker_within_role,
    _blanket,
]


def classify_transition(actor, enquiry: Dict[str, Any], destination: Any) -> TransitionPlan:
    """
    Decide what kind of move `actor` is making.

    A drop on the enquiry's own status is a NOOP even when that status is
    not one we recognize. Otherwise raises TransitionValidationError for an
    unrecognized destination. Never raises for permission problems: those
    come back as DENIED.
    """
    raw_current = enquiry_status(enquiry)
    current = normalize_status(raw_current)
    dest = normalize_status(destination)
    if same_status(raw_current, destination):
        return TransitionPlan(TransitionKind.NOOP, current, dest, "Status unchanged")

    if dest is None:
        raise TransitionValidationError(f"Unknown enquiry status: {destination}")

    for rule in TRANSITION_RULES:
        plan = rule(actor, enquiry, current, dest)
        if plan is not None:
            return plan

    role = actor.role.value if actor.role else "unknown"
    return TransitionPlan(
        TransitionKind.DENIED,
        current,
        dest,
        f"Role {role} cannot move enquiry to {status_label(dest)}",
    )


def allowed_destinations(actor, enquiry: Dict[str, Any]) -> List[EnquiryStatus]:
    """
    Statuses the actor may drop this enquiry on, canonical order.
    """
    current = normalize_status(enquiry_status(enquiry))
    out: List[EnquiryStatus] = []
    for status in STATUS_LIST:
        if status == current:
            continue
        if classify_transition(actor, enquiry, status).allowed:
            out.append(status)
    return out


def can_drag(actor, enquiry: Dict[str, Any]) -> bool:
    return bool(allowed_destinations(actor, enquiry))


__all__ = [
    "TransitionKind",
    "TransitionPlan",
    "MUTATING_KINDS",
    "TRANSITION_RULES",
    "classify_transition",
    "same_status",
    "allowed_destinations",
    "can_drag",
]
