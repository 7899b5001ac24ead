# crm_core/services/enquiry_board.py
"""
Client-held enquiry collection.

Two writers feed this board: responses to our own backend calls and
pushed status_changed / assignment_changed events. Both replace the
record by id. Snapshots carry a version (explicit `version`, else
`updated_at`, else `work_assigned_date`); a write strictly older than
the held snapshot is discarded so a stale echo cannot overwrite a newer
response. Snapshots without any version fall back to last-write-wins.

Each user has their own board. Pushed events and the periodic sync only
refresh records a board already holds; new records arrive through the
user's own backend list, which the backend filters by role.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.core.cache import caches
from django.utils.dateparse import parse_datetime

from crm_core.records import enquiry_assignee, enquiry_status, normalize_record, record_id
from crm_core.workflows import is_worker_role, normalize_status, return_status_for, status_label

logger = logging.getLogger(__name__)


PUSH_EVENTS = frozenset({"status_changed", "assignment_changed"})


# ---------------------------------------------------------------------
# Versioning
# ---------------------------------------------------------------------

def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = parse_datetime(value)
        except ValueError:
            return None
    else:
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def snapshot_version(record: Dict[str, Any]) -> Optional[Tuple[str, Any]]:
    """
    ("v", int) for explicit versions, ("t", datetime) for timestamps,
    None when the record carries neither.
    """
    version = record.get("version")
    if isinstance(version, int) and not isinstance(version, bool):
        return ("v", version)
    if isinstance(version, str) and version.strip().isdigit():
        return ("v", int(version.strip()))

    for key in ("updated_at", "work_assigned_date"):
        dt = _as_datetime(record.get(key))
        if dt is not None:
            return ("t", dt)
    return None


def is_stale(incoming: Dict[str, Any], held: Optional[Dict[str, Any]]) -> bool:
    if not held:
        return False
    new_v = snapshot_version(incoming)
    old_v = snapshot_version(held)
    if new_v is None or old_v is None or new_v[0] != old_v[0]:
        return False
    return new_v[1] < old_v[1]


# ---------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------

NAMESPACES_KEY = "crm-board:namespaces"


def _event_enquiry(event: str, payload: Any) -> Optional[Dict[str, Any]]:
    if event not in PUSH_EVENTS:
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("enquiry"), dict):
        logger.warning("Push event %s without enquiry payload", event)
        return None
    return payload["enquiry"]


class EnquiryBoard:
    """
    One user's view of the enquiries the backend let them list.

    Boards are keyed by namespace (the user id); a record only enters a
    board through that user's own list or their own transition responses.
    """

    def __init__(self, namespace: str, cache_alias: Optional[str] = None):
        if not namespace:
            raise ValueError("EnquiryBoard needs a namespace")
        self.namespace = str(namespace)
        self.cache = caches[cache_alias or settings.CRM_BOARD_CACHE]
        self.timeout = settings.CRM_BOARD_TTL

    @classmethod
    def for_user(cls, user) -> "EnquiryBoard":
        return cls(str(user.id))

    @classmethod
    def namespaces(cls, cache_alias: Optional[str] = None) -> List[str]:
        cache = caches[cache_alias or settings.CRM_BOARD_CACHE]
        return list(cache.get(NAMESPACES_KEY) or [])

    @classmethod
    def holding(cls, enquiry_id: Any, cache_alias: Optional[str] = None) -> List["EnquiryBoard"]:
        """
        Boards that currently hold `enquiry_id`.
        """
        rid = str(enquiry_id)
        boards = [cls(ns, cache_alias) for ns in cls.namespaces(cache_alias)]
        return [b for b in boards if b.holds(rid)]

    def _key(self, enquiry_id: str) -> str:
        return f"crm-board:{self.namespace}:enquiry:{enquiry_id}"

    @property
    def _index_key(self) -> str:
        return f"crm-board:{self.namespace}:index"

    def _ids(self) -> List[str]:
        return list(self.cache.get(self._index_key) or [])

    def _remember(self, enquiry_id: str) -> None:
        ids = self._ids()
        if enquiry_id not in ids:
            ids.append(enquiry_id)
            self.cache.set(self._index_key, ids, self.timeout)
            self._register()

    def _register(self) -> None:
        names = self.namespaces()
        if self.namespace not in names:
            names.append(self.namespace)
            self.cache.set(NAMESPACES_KEY, names, self.timeout)

    def _unregister(self) -> None:
        names = self.namespaces()
        if self.namespace in names:
            names.remove(self.namespace)
            self.cache.set(NAMESPACES_KEY, names, self.timeout)

    # ----------------------------------------------------------
    # Reads
    # ----------------------------------------------------------
    def get(self, enquiry_id: Any) -> Optional[Dict[str, Any]]:
        return self.cache.get(self._key(str(enquiry_id)))

    def holds(self, enquiry_id: Any) -> bool:
        return str(enquiry_id) in self._ids()

    def all(self) -> List[Dict[str, Any]]:
        ids = self._ids()
        found = self.cache.get_many([self._key(i) for i in ids])
        return [found[self._key(i)] for i in ids if self._key(i) in found]

    # ----------------------------------------------------------
    # Writes
    # ----------------------------------------------------------
    def replace(self, enquiry: Dict[str, Any], source: str = "response") -> bool:
        """
        Replace the held record with a server snapshot.
        Returns False when the snapshot was discarded as stale.
        """
        record = normalize_record(enquiry)
        rid = record_id(record)
        if rid is None:
            logger.warning("Ignoring %s snapshot without id", source)
            return False

        held = self.get(rid)
        if is_stale(record, held):
            logger.info(
                "Discarded stale %s snapshot for enquiry %s (held %s, got %s)",
                source,
                rid,
                snapshot_version(held),
                snapshot_version(record),
            )
            return False

        self.cache.set(self._key(rid), record, self.timeout)
        self._remember(rid)
        return True

    def load(self, enquiries: Iterable[Dict[str, Any]], source: str = "sync") -> int:
        return sum(1 for e in enquiries if self.replace(e, source=source))

    def sync(self, enquiries: Iterable[Dict[str, Any]], source: str = "sync") -> int:
        """
        Make the board hold exactly `enquiries`, the user's own backend list.
        Records the backend no longer lists for this user are dropped.
        """
        records = [normalize_record(e) for e in enquiries]
        keep = {record_id(r) for r in records}
        dropped = [i for i in self._ids() if i not in keep]
        if dropped:
            self.cache.delete_many([self._key(i) for i in dropped])
            self.cache.set(self._index_key, [i for i in self._ids() if i in keep], self.timeout)
            logger.debug("Board %s dropped %s unlisted enquiries", self.namespace, len(dropped))
        return self.load(records, source=source)

    def refresh(self, enquiries: Iterable[Dict[str, Any]], source: str = "sync") -> int:
        """
        Replace only the records this board already holds.
        """
        ids = set(self._ids())
        return sum(
            1
            for e in enquiries
            if record_id(normalize_record(e)) in ids and self.replace(e, source=source)
        )

    def apply_event(self, event: str, payload: Any) -> bool:
        """
        Reconcile a pushed event into this board. Only status_changed /
        assignment_changed carry enquiry snapshots, and only a record the
        board already holds is replaced.
        """
        enquiry = _event_enquiry(event, payload)
        if enquiry is None:
            return False
        rid = record_id(normalize_record(enquiry))
        if rid is None or not self.holds(rid):
            return False
        return self.replace(enquiry, source=event)

    def clear(self) -> None:
        ids = self._ids()
        self.cache.delete_many([self._key(i) for i in ids] + [self._index_key])
        self._unregister()


def broadcast_event(event: str, payload: Any) -> int:
    """
    Apply a pushed event to every board holding the enquiry.
    Returns how many boards accepted the snapshot.
    """
    enquiry = _event_enquiry(event, payload)
    if enquiry is None:
        return 0
    rid = record_id(normalize_record(enquiry))
    if rid is None:
        return 0
    return sum(1 for board in EnquiryBoard.holding(rid) if board.apply_event(event, payload))


# ---------------------------------------------------------------------
# Board columns per user
# ---------------------------------------------------------------------

def columns_for(actor, enquiries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Visible columns: the actor's statuses plus a worker's return column.
    Worker columns other than the return column only hold the worker's own
    enquiries; the return column shows everything so there is a drop target.
    """
    statuses = list(actor.resolved_statuses)
    return_status = return_status_for(actor.role) if is_worker_role(actor.role) else None
    if return_status is not None and return_status not in statuses:
        statuses.append(return_status)

    actor_id = str(actor.id)
    records = [normalize_record(e) for e in enquiries]
    columns: List[Dict[str, Any]] = []

    for status in statuses:
        items = [e for e in records if normalize_status(enquiry_status(e)) == status]
        if return_status is not None and status != return_status:
            items = [e for e in items if enquiry_assignee(e) == actor_id]
        columns.append(
            {
                "status": status.value,
                "label": status_label(status),
                "is_return": status == return_status,
                "enquiries": items,
            }
        )

    return columns
