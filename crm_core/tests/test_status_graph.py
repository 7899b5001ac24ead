# crm_core/tests/test_status_graph.py
import pytest

from crm_core.workflows import (
    STATUS_LIST,
    EnquiryStatus as S,
    UserRole,
    has_blanket_authority,
    is_terminal,
    normalize_role,
    normalize_status,
    return_status_for,
    roles_allowed_for,
    status_label,
    statuses_for_role,
    workflow_definition,
)


def test_status_list_is_canonical_order():
    assert [s.value for s in STATUS_LIST] == [
        "Enquiry",
        "Design",
        "BOQ",
        "ReadyForProduction",
        "PurchaseWaiting",
        "InProduction",
        "ProductionComplete",
        "Hotdip",
        "ReadyForDispatch",
        "Dispatched",
    ]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("ReadyForDispatch", S.READY_FOR_DISPATCH),
        ("ready_for_dispatch", S.READY_FOR_DISPATCH),
        ("Ready For Dispatch", S.READY_FOR_DISPATCH),
        ("boq", S.BOQ),
        (S.HOTDIP, S.HOTDIP),
        ("Shipped", None),
        (None, None),
    ],
)
def test_normalize_status(raw, expected):
    assert normalize_status(raw) == expected


def test_normalize_role_aliases_and_unknown():
    assert normalize_role("Salesman") is UserRole.SALESMAN
    assert normalize_role("SUPERADMIN") is UserRole.SUPERADMIN
    assert normalize_role("accountant") is None


def test_default_statuses_per_role():
    assert statuses_for_role("designer") == (S.DESIGN,)
    assert statuses_for_role("purchase") == (S.PURCHASE_WAITING,)
    assert statuses_for_role("production") == (
        S.READY_FOR_PRODUCTION,
        S.IN_PRODUCTION,
        S.PRODUCTION_COMPLETE,
        S.HOTDIP,
    )
    assert statuses_for_role("salesman") == STATUS_LIST


def test_management_roles_ignore_override():
    assert statuses_for_role("director", ["Design"]) == STATUS_LIST
    assert statuses_for_role("superadmin", ["Hotdip"]) == STATUS_LIST


def test_override_is_filtered_deduplicated_and_ordered():
    override = ["Hotdip", "Bogus", "Design", "hotdip"]
    assert statuses_for_role("production", override) == (S.DESIGN, S.HOTDIP)


def test_statuses_for_role_is_repeatable_and_leaves_override_alone():
    override = ["Hotdip", "Design", "bogus", "hotdip"]
    snapshot = list(override)

    first = statuses_for_role("production", override)
    second = statuses_for_role("production", override)

    assert first == second == (S.DESIGN, S.HOTDIP)
    assert override == snapshot
    assert statuses_for_role("salesman", override) == statuses_for_role("salesman", override)
    assert override == snapshot


def test_empty_override_falls_back_to_default():
    assert statuses_for_role("designer", []) == (S.DESIGN,)
    assert statuses_for_role("designer", None) == (S.DESIGN,)


def test_unknown_role_owns_nothing():
    assert statuses_for_role("accountant") == ()
    assert statuses_for_role(None) == ()


def test_return_status_for_worker_roles():
    assert return_status_for("designer") is S.BOQ
    assert return_status_for("production") is S.READY_FOR_DISPATCH
    assert return_status_for("purchase") is S.READY_FOR_PRODUCTION
    assert return_status_for("salesman") is None


def test_roles_allowed_for_is_curated():
    assert roles_allowed_for("Design") == {UserRole.DESIGNER}
    assert roles_allowed_for("BOQ") == {UserRole.SALESMAN}
    assert roles_allowed_for("ReadyForDispatch") == {UserRole.SALESMAN}
    assert roles_allowed_for("Nope") == frozenset()


def test_only_dispatched_is_terminal():
    assert [s for s in STATUS_LIST if is_terminal(s)] == [S.DISPATCHED]


def test_blanket_authority():
    assert has_blanket_authority("salesman")
    assert has_blanket_authority("director")
    assert not has_blanket_authority("designer")


def test_status_label():
    assert status_label("ReadyForDispatch") == "Ready For Dispatch"
    assert status_label(S.BOQ) == "BOQ"
    assert status_label("InProduction") == "In Production"


def test_workflow_definition_is_json_ready():
    definition = workflow_definition()
    assert definition["statuses"][0] == "Enquiry"
    assert definition["return_statuses"]["designer"] == "BOQ"
    assert definition["status_roles"]["Design"] == ["designer"]
    assert definition["terminal_statuses"] == ["Dispatched"]
