# crm_core/views_workflow_api.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from crm_core.api_errors import workflow_errors
from crm_core.permissions import HasResourceAccess
from crm_core.serializers_workflow import (
    AssignSerializer,
    MoveSerializer,
    StatusChangeSerializer,
)
from crm_core.services.backend_client import get_backend_client
from crm_core.services.enquiry_board import EnquiryBoard
from crm_core.services.workflow import TransitionController
from crm_core.workflows.transitions import allowed_destinations


# =============================================================
# Helpers
# =============================================================

def get_controller(request) -> TransitionController:
    return TransitionController(get_backend_client(request.user), EnquiryBoard.for_user(request.user))


class EnquiryWorkflowView(APIView):
    permission_classes = [IsAuthenticated, HasResourceAccess]
    crm_resource = "kanban"


# =============================================================
# API: Allowed destinations
# =============================================================

class EnquiryAllowedView(EnquiryWorkflowView):
    """
    GET /crm/enquiries/<id>/allowed/

    Statuses the current user may drop this enquiry on.
    An empty list means the drag handle should be disabled.
    """

    @extend_schema(tags=["Workflows"])
    def get(self, request, enquiry_id: str):
        controller = get_controller(request)
        with workflow_errors("Failed to load enquiry"):
            enquiry = controller.load_enquiry(enquiry_id)

        allowed = allowed_destinations(request.user, enquiry)
        return Response(
            {
                "enquiry_id": enquiry.get("id"),
                "current": enquiry.get("status"),
                "allowed": [s.value for s in allowed],
                "can_drag": bool(allowed),
                "role": request.user.role.value if request.user.role else None,
            }
        )


# =============================================================
# API: Assignment candidates
# =============================================================

class EnquiryAssigneesView(EnquiryWorkflowView):
    """
    GET /crm/enquiries/<id>/assignees/?status=<status>

    Eligible assignees for the destination status and the default
    a drag/drop would pick.
    """

    @extend_schema(tags=["Workflows"])
    def get(self, request, enquiry_id: str):
        controller = get_controller(request)
        with workflow_errors("Failed to load users"):
            enquiry = controller.load_enquiry(enquiry_id)
            target = request.query_params.get("status") or enquiry.get("status")
            eligible, default = controller.assignee_candidates(request.user, target)

        return Response(
            {
                "enquiry_id": enquiry.get("id"),
                "status": target,
                "assignees": eligible,
                "default": default,
                "fallback": enquiry.get("current_assigned_person"),
            }
        )


# =============================================================
# API: Drag and drop (AUTHORITATIVE)
# =============================================================

class EnquiryMoveView(EnquiryWorkflowView):
    """
    POST /crm/enquiries/<id>/move/

    Body:
        { "source": "Design", "destination": "BOQ" }
    """

    @extend_schema(tags=["Workflows"], request=MoveSerializer)
    def post(self, request, enquiry_id: str):
        serializer = MoveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        with workflow_errors():
            result = get_controller(request).handle_drag_end(
                request.user,
                enquiry_id,
                data.get("source"),
                data["destination"],
            )

        return Response(result.as_dict())


# =============================================================
# API: Status form
# =============================================================

class EnquiryStatusView(EnquiryWorkflowView):
    """
    POST /crm/enquiries/<id>/status/

    Body:
        { "status": "Design", "assignee_id": "u-12", "note": "..." }
    """

    @extend_schema(tags=["Workflows"], request=StatusChangeSerializer)
    def post(self, request, enquiry_id: str):
        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        with workflow_errors():
            result = get_controller(request).change_status(
                request.user,
                enquiry_id,
                data["status"],
                assignee_id=data.get("assignee_id") or None,
                note=data.get("note") or None,
            )

        return Response(result.as_dict())


# =============================================================
# API: Reassignment
# =============================================================

class EnquiryAssignView(EnquiryWorkflowView):
    """
    POST /crm/enquiries/<id>/assign/

    Body:
        { "assignee_id": "u-12" }
    """

    @extend_schema(tags=["Workflows"], request=AssignSerializer)
    def post(self, request, enquiry_id: str):
        serializer = AssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with workflow_errors("Failed to update assignment"):
            result = get_controller(request).reassign(
                request.user,
                enquiry_id,
                serializer.validated_data["assignee_id"],
            )

        return Response(result.as_dict())
