from __future__ import annotations

"""
Enquiry transition controller.

Turns a board drop or a status form submission into one validated backend
call, then replaces the local record with the server's answer.

- Policy lives in crm_core.workflows.transitions; this module only executes plans.
- Permission failures are raised before any backend call.
- Local state is only written after the backend confirms.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from crm_core.exceptions import (
    BackendError,
    TransitionPermissionError,
    TransitionValidationError,
)
from crm_core.records import enquiry_assignee, enquiry_creator
from crm_core.services.enquiry_board import EnquiryBoard
from crm_core.workflows import has_blanket_authority, normalize_status, status_label
from crm_core.workflows.assignment import default_assignee, eligible_assignees, user_id
from crm_core.workflows.transitions import (
    MUTATING_KINDS,
    TransitionKind,
    TransitionPlan,
    classify_transition,
    same_status,
)

logger = logging.getLogger(__name__)


RETURN_NOTE = "Task returned to salesperson"


@dataclass
class TransitionResult:
    kind: TransitionKind
    enquiry: Optional[Dict[str, Any]]
    message: str

    @property
    def changed(self) -> bool:
        return self.kind is not TransitionKind.NOOP

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "changed": self.changed,
            "message": self.message,
            "enquiry": self.enquiry,
        }


class TransitionController:
    def __init__(self, backend, board: EnquiryBoard):
        self.backend = backend
        self.board = board
        self._handlers: Dict[TransitionKind, Callable[..., Tuple[Dict[str, Any], str]]] = {
            TransitionKind.RETURN: self._return_to_salesperson,
            TransitionKind.COMPLETE_PRODUCTION: self._complete_production,
            TransitionKind.START_PRODUCTION: self._start_production,
            TransitionKind.WITHIN_ROLE: self._within_role,
            TransitionKind.BLANKET: self._blanket,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def handle_drag_end(self, actor, enquiry_id: Any, source: Any, destination: Any) -> TransitionResult:
        """
        Board drop: `source` and `destination` are column statuses.
        """
        if source is not None and same_status(source, destination):
            return TransitionResult(TransitionKind.NOOP, self.board.get(enquiry_id), "No change")

        return self._execute(actor, enquiry_id, destination)

    def change_status(
        self,
        actor,
        enquiry_id: Any,
        new_status: Any,
        assignee_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> TransitionResult:
        """
        Status form submission. An explicit assignee only applies to
        blanket moves; worker exits always follow their fixed assignee rule.
        """
        return self._execute(actor, enquiry_id, new_status, assignee_id=assignee_id, note=note)

    def reassign(self, actor, enquiry_id: Any, assignee_id: Optional[str]) -> TransitionResult:
        """
        Assignee dropdown: new owner, same status.
        """
        if not has_blanket_authority(actor.role):
            raise TransitionPermissionError("Only sales and management can reassign enquiries")
        if not assignee_id:
            raise TransitionValidationError("assignee_id is required")

        record = self.backend.assign_enquiry(str(enquiry_id), str(assignee_id))
        self.board.replace(record, source="response")
        logger.info("Enquiry %s reassigned to %s by %s", enquiry_id, assignee_id, actor.id)
        return TransitionResult(TransitionKind.REASSIGN, record, "Assignment updated")

    def assignee_candidates(self, actor, status: Any) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """
        Eligible users for `status` plus the one a blanket move would pick.
        """
        dest = normalize_status(status)
        if dest is None:
            raise TransitionValidationError(f"Unknown enquiry status: {status}")
        pool = self.backend.users_by_status(dest)
        eligible = eligible_assignees(dest, pool, actor.role)
        return eligible, (eligible[0] if eligible else None)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def load_enquiry(self, enquiry_id: Any) -> Dict[str, Any]:
        record = self.board.get(enquiry_id)
        if record is not None:
            return record

        record = self.backend.get_enquiry(str(enquiry_id))
        if not record:
            raise TransitionValidationError(f"Enquiry {enquiry_id} not found")
        self.board.replace(record, source="fetch")
        return record

    def _execute(self, actor, enquiry_id: Any, destination: Any, **options) -> TransitionResult:
        enquiry = self.load_enquiry(enquiry_id)
        plan = classify_transition(actor, enquiry, destination)

        if plan.kind is TransitionKind.NOOP:
            return TransitionResult(TransitionKind.NOOP, enquiry, "No change")

        if plan.kind not in MUTATING_KINDS:
            logger.info("Denied move of enquiry %s by %s: %s", enquiry_id, actor.id, plan.reason)
            raise TransitionPermissionError(plan.reason)

        handler = self._handlers[plan.kind]
        try:
            record, message = handler(actor, enquiry, plan, **options)
        except BackendError:
            logger.warning(
                "Backend rejected %s move of enquiry %s to %s",
                plan.kind.value,
                enquiry_id,
                plan.destination.value,
            )
            raise

        self.board.replace(record, source="response")
        logger.info(
            "Enquiry %s moved %s -> %s (%s) by %s",
            enquiry_id,
            plan.current.value if plan.current else None,
            plan.destination.value,
            plan.kind.value,
            actor.id,
        )
        return TransitionResult(plan.kind, record, message)

    # ------------------------------------------------------------------
    # Plan handlers
    # ------------------------------------------------------------------
    def _return_to_salesperson(self, actor, enquiry, plan: TransitionPlan, note=None, **_):
        salesperson = enquiry_creator(enquiry)
        if not salesperson:
            raise TransitionValidationError("Enquiry has no originating salesperson")

        record = self.backend.update_enquiry_status(
            str(enquiry["id"]),
            plan.destination,
            salesperson,
            note or RETURN_NOTE,
        )
        return record, f"{RETURN_NOTE} ({status_label(plan.destination)})"

    def _complete_production(self, actor, enquiry, plan: TransitionPlan, **_):
        # The backend's complete call moves the enquiry and reassigns it itself.
        workflow = self.backend.production_workflow_for(str(enquiry["id"]))
        if not workflow:
            raise TransitionValidationError("Production workflow not found")

        result = self.backend.complete_production_workflow(str(workflow["id"]))
        return result["enquiry"], "Production completed! Task returned to salesperson."

    def _start_production(self, actor, enquiry, plan: TransitionPlan, note=None, **_):
        workflow = self.backend.production_workflow_for(str(enquiry["id"]))
        if workflow:
            try:
                self.backend.start_production_workflow(str(workflow["id"]))
            except BackendError as exc:
                logger.warning("Could not start production workflow %s: %s", workflow["id"], exc)
        else:
            logger.info("No production workflow to start for enquiry %s", enquiry["id"])

        return self._within_role(actor, enquiry, plan, note=note)

    def _within_role(self, actor, enquiry, plan: TransitionPlan, note=None, **_):
        record = self.backend.update_enquiry_status(
            str(enquiry["id"]),
            plan.destination,
            str(actor.id),
            note or plan.reason,
        )
        return record, f"Moved to {status_label(plan.destination)}"

    def _blanket(self, actor, enquiry, plan: TransitionPlan, assignee_id=None, note=None, **_):
        if not assignee_id:
            pool = self.backend.users_by_status(plan.destination)
            chosen = default_assignee(
                plan.destination,
                pool,
                fallback=enquiry_assignee(enquiry),
                actor_role=actor.role,
            )
            assignee_id = user_id(chosen)

        record = self.backend.update_enquiry_status(
            str(enquiry["id"]),
            plan.destination,
            assignee_id,
            note or plan.reason,
        )
        return record, f"Moved to {status_label(plan.destination)}"
