# crm_core/views_workflows.py
from drf_spectacular.utils import extend_schema
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .workflows import (
    normalize_role,
    normalize_status,
    return_status_for,
    roles_allowed_for,
    statuses_for_role,
    workflow_definition,
)


class WorkflowDefinitionView(APIView):
    """
    Returns the full enquiry workflow definition.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Workflows"])
    def get(self, request):
        return Response(workflow_definition())


class RoleStatusesView(APIView):
    """
    Statuses a role owns.

    ?role=<role> defaults to the current user's role;
    ?override=Design,BOQ applies a per-user override list.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Workflows"])
    def get(self, request):
        raw_role = request.query_params.get("role")
        role = normalize_role(raw_role) if raw_role else request.user.role
        if role is None:
            raise ValidationError({"role": f"Unknown role: {raw_role}"})

        raw_override = request.query_params.get("override") or ""
        override = [s.strip() for s in raw_override.split(",") if s.strip()]

        statuses = statuses_for_role(role, override)
        return_status = return_status_for(role)

        return Response(
            {
                "role": role.value,
                "statuses": [s.value for s in statuses],
                "return_status": return_status.value if return_status else None,
            }
        )


class StatusRolesView(APIView):
    """
    Roles shown as candidate assignees for a status.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Workflows"])
    def get(self, request, status: str):
        s = normalize_status(status)
        if s is None:
            raise ValidationError({"status": f"Unknown enquiry status: {status}"})

        return Response(
            {
                "status": s.value,
                "roles": sorted(r.value for r in roles_allowed_for(s)),
            }
        )
