# crm_core/views_events.py
from __future__ import annotations

import logging

from drf_spectacular.utils import extend_schema
from rest_framework.response import Response
from rest_framework.views import APIView

from crm_core.permissions import HasEventsToken
from crm_core.serializers_workflow import PushEventSerializer
from crm_core.services.enquiry_board import broadcast_event

logger = logging.getLogger(__name__)


class PushEventView(APIView):
    """
    POST /crm/events/

    Relay endpoint for backend push events:
        { "event": "status_changed", "payload": { "enquiry": {...} } }

    The enquiry snapshot replaces the record on every user board that
    already holds it, unless it is older than the held one. Boards that
    never listed the enquiry are left alone.
    """

    authentication_classes = []
    permission_classes = [HasEventsToken]

    @extend_schema(tags=["Events"], request=PushEventSerializer)
    def post(self, request):
        serializer = PushEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        event = serializer.validated_data["event"]
        payload = serializer.validated_data["payload"]

        boards = broadcast_event(event, payload)
        logger.debug("Push event %s for enquiry %s applied to %s boards", event, payload["enquiry"].get("id"), boards)

        return Response(
            {
                "event": event,
                "enquiry_id": str(payload["enquiry"].get("id")),
                "applied": boards > 0,
                "boards": boards,
            }
        )
