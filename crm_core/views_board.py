# crm_core/views_board.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from crm_core.api_errors import workflow_errors
from crm_core.permissions import HasResourceAccess, role_can
from crm_core.services.backend_client import get_backend_client
from crm_core.services.enquiry_board import EnquiryBoard, columns_for
from crm_core.workflows import has_blanket_authority, is_worker_role


class BoardView(APIView):
    """
    GET /crm/board/

    Kanban columns for the signed-in user. The user's own board is synced
    to the list the backend returns for their token before grouping; pass
    ?cached=1 to group what their board already holds.
    """

    permission_classes = [IsAuthenticated, HasResourceAccess]
    crm_resource = "kanban"

    @extend_schema(tags=["Board"])
    def get(self, request):
        board = EnquiryBoard.for_user(request.user)

        if request.query_params.get("cached") not in ("1", "true"):
            with workflow_errors("Failed to load enquiries"):
                board.sync(get_backend_client(request.user).list_enquiries())

        user = request.user
        if has_blanket_authority(user.role):
            mode = "drag"
        elif is_worker_role(user.role):
            mode = "return"
        else:
            mode = "view"

        return Response(
            {
                "mode": mode,
                "can_edit": role_can(user.role, "kanban", "edit"),
                "columns": columns_for(user, board.all()),
            }
        )
