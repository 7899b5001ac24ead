# crm_core/tests/fakes.py

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Tuple

from crm_core.exceptions import BackendError
from crm_core.workflows import EnquiryStatus, normalize_status, statuses_for_role


EVENTS_TOKEN = "events-secret"

MUTATING_CALLS = frozenset(
    {
        "update_enquiry_status",
        "assign_enquiry",
        "start_production_workflow",
        "complete_production_workflow",
    }
)


class FakeBackend:
    """
    In-memory stand-in for BackendClient.

    Behaves like the REST backend for the calls the workflow service
    makes, and records every call so tests can count them.
    """

    def __init__(self):
        self.enquiries: Dict[str, Dict[str, Any]] = {}
        self.users: List[Dict[str, Any]] = []
        self.workflows: Dict[str, Dict[str, Any]] = {}
        self.passwords: Dict[str, str] = {}
        self.tokens: Dict[str, str] = {}
        self.calls: List[Tuple[str, tuple]] = []
        self.fail: Dict[str, BackendError] = {}
        self.last_token: Optional[str] = None

    # ----------------------------------------------------------
    # Seeding helpers
    # ----------------------------------------------------------
    def add_user(self, id: str, name: str, role: str, workflow_status=None, password="pass123", token=None):
        user = {
            "id": id,
            "name": name,
            "email": f"{id}@example.com",
            "role": role,
            "workflow_status": list(workflow_status or []),
        }
        self.users.append(user)
        self.passwords[user["email"]] = password
        self.tokens[token or f"token-{id}"] = id
        return user

    def add_enquiry(self, id: str, status: str, assignee: Optional[str], creator: Optional[str] = "sales-1", version: int = 1):
        record = {
            "id": id,
            "enquiry_num": f"ENQ-{id}",
            "customer_name": f"Customer {id}",
            "status": status,
            "current_assigned_person": assignee,
            "enquiry_by": creator,
            "version": version,
        }
        self.enquiries[id] = record
        return copy.deepcopy(record)

    def add_workflow(self, enquiry_id: str, workflow_id: Optional[str] = None, status: str = "pending"):
        workflow = {"id": workflow_id or f"wf-{enquiry_id}", "enquiry_id": enquiry_id, "status": status}
        self.workflows[enquiry_id] = workflow
        return workflow

    def mutations(self) -> List[Tuple[str, tuple]]:
        return [c for c in self.calls if c[0] in MUTATING_CALLS]

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]

    # ----------------------------------------------------------
    # Internals
    # ----------------------------------------------------------
    def _record(self, name: str, *args):
        self.calls.append((name, args))
        if name in self.fail:
            raise self.fail[name]

    def _enquiry(self, enquiry_id: str) -> Dict[str, Any]:
        record = self.enquiries.get(str(enquiry_id))
        if record is None:
            raise BackendError("Enquiry not found", 404)
        return record

    def _user(self, user_id: str) -> Optional[Dict[str, Any]]:
        for u in self.users:
            if u["id"] == user_id:
                return u
        return None

    @staticmethod
    def _visible_to(user: Optional[Dict[str, Any]], record: Dict[str, Any]) -> bool:
        if user is None or user["role"] in ("superadmin", "director"):
            return True
        if user["role"] == "salesman" and record.get("enquiry_by") == user["id"]:
            return True
        return record.get("current_assigned_person") == user["id"]

    @staticmethod
    def _bump(record: Dict[str, Any]) -> None:
        record["version"] = int(record.get("version") or 0) + 1

    # ----------------------------------------------------------
    # BackendClient surface
    # ----------------------------------------------------------
    def login(self, email: str, password: str) -> Dict[str, Any]:
        self._record("login", email)
        if self.passwords.get(email) != password:
            raise BackendError("Invalid credentials", 401)
        user = next(u for u in self.users if u["email"] == email)
        token = next(t for t, uid in self.tokens.items() if uid == user["id"])
        return {"token": token, "user": copy.deepcopy(user)}

    def me(self) -> Dict[str, Any]:
        self._record("me")
        user = self._user(self.tokens.get(self.last_token or "", ""))
        if user is None:
            raise BackendError("Invalid token", 401)
        return copy.deepcopy(user)

    def get_enquiry(self, enquiry_id: str) -> Dict[str, Any]:
        self._record("get_enquiry", enquiry_id)
        return copy.deepcopy(self._enquiry(enquiry_id))

    def list_enquiries(self, limit: int = 1000) -> List[Dict[str, Any]]:
        """
        Role-filtered like GET /enquiries: management sees everything, a
        salesman sees what they raised or hold, other roles what they hold.
        Tokens that map to no seeded user act as a service account.
        """
        self._record("list_enquiries")
        user = self._user(self.tokens.get(self.last_token or "", ""))
        visible = [e for e in self.enquiries.values() if self._visible_to(user, e)]
        return [copy.deepcopy(e) for e in visible[:limit]]

    def update_enquiry_status(self, enquiry_id, status, assignee_id, note=None) -> Dict[str, Any]:
        self._record("update_enquiry_status", enquiry_id, status, assignee_id, note)
        record = self._enquiry(enquiry_id)
        record["status"] = normalize_status(status).value
        if assignee_id is not None:
            record["current_assigned_person"] = assignee_id
        self._bump(record)
        return copy.deepcopy(record)

    def assign_enquiry(self, enquiry_id, assignee_id) -> Dict[str, Any]:
        self._record("assign_enquiry", enquiry_id, assignee_id)
        record = self._enquiry(enquiry_id)
        record["current_assigned_person"] = assignee_id
        self._bump(record)
        return copy.deepcopy(record)

    def users_by_status(self, status) -> List[Dict[str, Any]]:
        self._record("users_by_status", status)
        target = normalize_status(status)
        matched = [
            u for u in self.users
            if target in statuses_for_role(u["role"], u.get("workflow_status"))
        ]
        return [copy.deepcopy(u) for u in sorted(matched, key=lambda u: u["name"])]

    def production_workflow_for(self, enquiry_id) -> Optional[Dict[str, Any]]:
        self._record("production_workflow_for", enquiry_id)
        workflow = self.workflows.get(str(enquiry_id))
        return copy.deepcopy(workflow) if workflow else None

    def _workflow(self, workflow_id) -> Dict[str, Any]:
        for wf in self.workflows.values():
            if wf["id"] == workflow_id:
                return wf
        raise BackendError("Production workflow not found", 404)

    def start_production_workflow(self, workflow_id) -> None:
        self._record("start_production_workflow", workflow_id)
        wf = self._workflow(workflow_id)
        wf["status"] = "in_progress"
        record = self._enquiry(wf["enquiry_id"])
        record["status"] = EnquiryStatus.IN_PRODUCTION.value
        self._bump(record)

    def complete_production_workflow(self, workflow_id) -> Dict[str, Any]:
        self._record("complete_production_workflow", workflow_id)
        wf = self._workflow(workflow_id)
        wf["status"] = "completed"
        record = self._enquiry(wf["enquiry_id"])
        record["status"] = EnquiryStatus.READY_FOR_DISPATCH.value
        if record.get("enquiry_by"):
            record["current_assigned_person"] = record["enquiry_by"]
        self._bump(record)
        return {"workflow": copy.deepcopy(wf), "enquiry": copy.deepcopy(record)}


# Instance handed out by fake_client_factory; set by the fake_backend fixture.
CURRENT: Optional[FakeBackend] = None


def fake_client_factory(user=None) -> FakeBackend:
    if CURRENT is None:
        raise RuntimeError("fake_backend fixture not active")
    CURRENT.last_token = getattr(user, "token", None)
    return CURRENT
