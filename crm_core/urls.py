# crm_core/urls.py

from django.urls import path

from .views import HealthCheckView

# -------------------------------------------------
# Session identity
# -------------------------------------------------
from .views_auth import LoginView, LogoutView, WhoAmIView

# -------------------------------------------------
# Workflow definitions (static metadata)
# -------------------------------------------------
from .views_workflows import (
    RoleStatusesView,
    StatusRolesView,
    WorkflowDefinitionView,
)

# -------------------------------------------------
# Board + role-aware enquiry moves
# -------------------------------------------------
from .views_board import BoardView
from .views_workflow_api import (
    EnquiryAllowedView,
    EnquiryAssigneesView,
    EnquiryAssignView,
    EnquiryMoveView,
    EnquiryStatusView,
)

# -------------------------------------------------
# Push relay
# -------------------------------------------------
from .views_events import PushEventView


app_name = "crm_core"

urlpatterns = [
    path("health/", HealthCheckView.as_view(), name="health"),

    path("auth/login/", LoginView.as_view(), name="auth-login"),
    path("auth/logout/", LogoutView.as_view(), name="auth-logout"),
    path("whoami/", WhoAmIView.as_view(), name="whoami"),

    path("workflows/definition/", WorkflowDefinitionView.as_view(), name="workflow-definition"),
    path("workflows/statuses/", RoleStatusesView.as_view(), name="workflow-role-statuses"),
    path("workflows/roles/<str:status>/", StatusRolesView.as_view(), name="workflow-status-roles"),

    path("board/", BoardView.as_view(), name="board"),

    path("enquiries/<str:enquiry_id>/allowed/", EnquiryAllowedView.as_view(), name="enquiry-allowed"),
    path("enquiries/<str:enquiry_id>/assignees/", EnquiryAssigneesView.as_view(), name="enquiry-assignees"),
    path("enquiries/<str:enquiry_id>/move/", EnquiryMoveView.as_view(), name="enquiry-move"),
    path("enquiries/<str:enquiry_id>/status/", EnquiryStatusView.as_view(), name="enquiry-status"),
    path("enquiries/<str:enquiry_id>/assign/", EnquiryAssignView.as_view(), name="enquiry-assign"),

    path("events/", PushEventView.as_view(), name="push-events"),
]
