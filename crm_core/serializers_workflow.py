# crm_core/serializers_workflow.py
from __future__ import annotations

from typing import Any

from rest_framework import serializers

from crm_core.services.enquiry_board import PUSH_EVENTS
from crm_core.workflows import normalize_status


class StatusField(serializers.CharField):
    """
    Accepts "ReadyForDispatch", "ready_for_dispatch", "Ready For Dispatch"
    and returns the canonical value.
    """

    def to_internal_value(self, data: Any) -> str:
        raw = super().to_internal_value(data)
        status = normalize_status(raw)
        if status is None:
            raise serializers.ValidationError(f"Unknown enquiry status: {raw}")
        return status.value


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)


class MoveSerializer(serializers.Serializer):
    source = StatusField(required=False, allow_null=True, default=None)
    destination = StatusField()


class StatusChangeSerializer(serializers.Serializer):
    status = StatusField()
    assignee_id = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)
    note = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)


class AssignSerializer(serializers.Serializer):
    assignee_id = serializers.CharField()


class PushEventSerializer(serializers.Serializer):
    event = serializers.ChoiceField(choices=sorted(PUSH_EVENTS))
    payload = serializers.DictField()

    def validate_payload(self, value):
        enquiry = value.get("enquiry")
        if not isinstance(enquiry, dict) or not enquiry.get("id"):
            raise serializers.ValidationError("payload.enquiry with an id is required.")
        return value
