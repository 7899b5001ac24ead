# crm_core/views_auth.py
from __future__ import annotations

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from crm_core.api_errors import BackendUnavailable
from crm_core.authentication import clear_session_user, store_session_user
from crm_core.exceptions import BackendError
from crm_core.identity import CrmUser
from crm_core.permissions import visible_resources
from crm_core.serializers_workflow import LoginSerializer
from crm_core.services.backend_client import get_backend_client

logger = logging.getLogger(__name__)


class LoginView(APIView):
    """
    POST /crm/auth/login/

    Signs in against the backend and keeps the backend user + token in the
    session. The user's permitted statuses are resolved from that payload.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(tags=["Auth"], request=LoginSerializer)
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = get_backend_client().login(
                serializer.validated_data["email"],
                serializer.validated_data["password"],
            )
        except BackendError as exc:
            if exc.status_code in (status.HTTP_400_BAD_REQUEST, status.HTTP_401_UNAUTHORIZED):
                raise AuthenticationFailed(exc.message)
            raise BackendUnavailable(f"Login failed: {exc.message}")

        if not result.get("token") or not result.get("user"):
            raise AuthenticationFailed("Login failed")

        user = CrmUser.from_backend(result["user"], token=result["token"])
        store_session_user(request, user)
        logger.info("User %s signed in as %s", user.id, user.role)

        return Response(user.to_public())


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Auth"])
    def post(self, request):
        clear_session_user(request)
        return Response(status=status.HTTP_204_NO_CONTENT)


class WhoAmIView(APIView):
    """
    Returns the signed-in user, resolved statuses and visible sections.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Auth"])
    def get(self, request):
        data = request.user.to_public()
        data["sections"] = visible_resources(request.user.role)
        return Response(data)
