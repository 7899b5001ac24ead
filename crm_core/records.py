# crm_core/records.py
"""
Backend records arrive in camelCase (REST responses, pushed events) or
snake_case (older payloads). Everything held locally uses snake_case.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Optional


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def snake_key(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", str(key)).lower()


def normalize_record(data: Any) -> Any:
    """
    Convert top-level keys of a record (and of nested user/client records)
    to snake_case. Non-dict values pass through unchanged.
    """
    if not isinstance(data, dict):
        return data

    out: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = normalize_record(value)
        out[snake_key(key)] = value
    return out


def record_id(record: Any) -> Optional[str]:
    if not isinstance(record, dict):
        return None
    rid = record.get("id")
    return str(rid) if rid not in (None, "") else None


def _ref(record: Dict[str, Any], key: str) -> Optional[str]:
    value = record.get(key)
    if isinstance(value, dict):
        value = value.get("id")
    return str(value) if value not in (None, "") else None


def enquiry_status(record: Dict[str, Any]) -> Optional[str]:
    return record.get("status")


def enquiry_assignee(record: Dict[str, Any]) -> Optional[str]:
    return _ref(record, "current_assigned_person")


def enquiry_creator(record: Dict[str, Any]) -> Optional[str]:
    return _ref(record, "enquiry_by")
