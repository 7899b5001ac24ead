# crm_core/tests/test_transitions.py
import pytest

from crm_core.exceptions import TransitionValidationError
from crm_core.workflows import EnquiryStatus as S
from crm_core.workflows.transitions import (
    TransitionKind as K,
    allowed_destinations,
    can_drag,
    classify_transition,
)


def _enquiry(status, assignee, creator="sales-1"):
    return {
        "id": "E1",
        "status": status,
        "current_assigned_person": assignee,
        "enquiry_by": creator,
    }


def test_same_status_is_noop(salesman):
    plan = classify_transition(salesman, _enquiry("Design", "des-1"), "Design")
    assert plan.kind is K.NOOP


def test_unknown_destination_is_rejected(salesman):
    with pytest.raises(TransitionValidationError):
        classify_transition(salesman, _enquiry("Design", "des-1"), "Shipped")


def test_same_status_is_checked_before_destination_is_validated(salesman, designer):
    # An enquiry stuck on a status we do not know still has a no-op drop.
    plan = classify_transition(salesman, _enquiry("Shipped", "des-1"), "Shipped")
    assert plan.kind is K.NOOP
    assert plan.destination is None

    plan = classify_transition(designer, _enquiry("Design", "sales-1"), "design")
    assert plan.kind is K.NOOP

    with pytest.raises(TransitionValidationError):
        classify_transition(salesman, _enquiry("Shipped", "des-1"), "Lost")


def test_designer_drop_on_boq_returns_to_salesperson(designer):
    plan = classify_transition(designer, _enquiry("Design", "des-1"), "BOQ")
    assert plan.kind is K.RETURN
    assert plan.destination is S.BOQ


def test_purchase_drop_on_ready_for_production_returns(purchase):
    plan = classify_transition(purchase, _enquiry("PurchaseWaiting", "pur-1"), "ReadyForProduction")
    assert plan.kind is K.RETURN


def test_production_drop_on_ready_for_dispatch_completes_workflow(production):
    plan = classify_transition(production, _enquiry("Hotdip", "prod-1"), "ReadyForDispatch")
    assert plan.kind is K.COMPLETE_PRODUCTION


def test_production_entering_in_production_starts_workflow(production):
    plan = classify_transition(production, _enquiry("ReadyForProduction", "prod-1"), "InProduction")
    assert plan.kind is K.START_PRODUCTION


def test_production_moves_within_its_statuses(production):
    plan = classify_transition(production, _enquiry("InProduction", "prod-1"), "Hotdip")
    assert plan.kind is K.WITHIN_ROLE


def test_worker_cannot_move_someone_elses_enquiry(designer):
    plan = classify_transition(designer, _enquiry("Design", "des-2"), "BOQ")
    assert plan.kind is K.DENIED
    assert not plan.allowed


def test_worker_cannot_leave_their_statuses(designer):
    plan = classify_transition(designer, _enquiry("Design", "des-1"), "Dispatched")
    assert plan.kind is K.DENIED
    assert plan.reason == "Role designer cannot move enquiry to Dispatched"


def test_worker_cannot_pull_from_outside_their_statuses(production):
    plan = classify_transition(production, _enquiry("Design", "prod-1"), "Hotdip")
    assert plan.kind is K.DENIED


def test_override_widens_worker_statuses(crm_user):
    worker = crm_user("production", id="prod-9", workflow_status=["Design", "Hotdip"])
    plan = classify_transition(worker, _enquiry("Design", "prod-9"), "Hotdip")
    assert plan.kind is K.WITHIN_ROLE


@pytest.mark.parametrize("role", ["salesman", "director", "superadmin"])
def test_blanket_roles_move_anything_anywhere(crm_user, role):
    actor = crm_user(role)
    plan = classify_transition(actor, _enquiry("Dispatched", "someone"), "Enquiry")
    assert plan.kind is K.BLANKET


def test_unknown_role_is_denied(crm_user):
    actor = crm_user("accountant")
    plan = classify_transition(actor, _enquiry("Enquiry", "x"), "Design")
    assert plan.kind is K.DENIED
    assert "unknown" in plan.reason


def test_allowed_destinations_for_designer(designer):
    assert allowed_destinations(designer, _enquiry("Design", "des-1")) == [S.BOQ]
    assert not can_drag(designer, _enquiry("Design", "des-2"))


def test_allowed_destinations_for_salesman(salesman):
    allowed = allowed_destinations(salesman, _enquiry("Enquiry", "sales-1"))
    assert S.ENQUIRY not in allowed
    assert len(allowed) == 9
