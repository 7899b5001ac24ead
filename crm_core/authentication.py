# crm_core/authentication.py
from __future__ import annotations

import logging

from rest_framework.authentication import (
    BaseAuthentication,
    SessionAuthentication,
    get_authorization_header,
)
from rest_framework.exceptions import AuthenticationFailed

from crm_core.exceptions import BackendError
from crm_core.identity import CrmUser
from crm_core.services.backend_client import get_backend_client

logger = logging.getLogger(__name__)


SESSION_USER_KEY = "crm_user"
SESSION_TOKEN_KEY = "crm_token"


def store_session_user(request, user: CrmUser) -> None:
    session = request.session
    session.cycle_key()
    session[SESSION_USER_KEY] = user.to_session()
    session[SESSION_TOKEN_KEY] = user.token


def clear_session_user(request) -> None:
    request.session.flush()


class CrmSessionAuthentication(SessionAuthentication):
    """
    Rebuilds the CrmUser stored at login. Resolved statuses are derived
    once per request from the stored payload, never per call site.

    CSRF is enforced exactly as DRF's SessionAuthentication does.
    """

    def authenticate(self, request):
        session = getattr(request._request, "session", None)
        if session is None:
            return None

        payload = session.get(SESSION_USER_KEY)
        if not payload:
            return None

        self.enforce_csrf(request)

        token = session.get(SESSION_TOKEN_KEY)
        return (CrmUser.from_backend(payload, token=token), token)


class BackendTokenAuthentication(BaseAuthentication):
    """
    Authorization: Bearer <backend token>

    The token is verified by asking the backend who it belongs to.
    """

    keyword = "bearer"

    def authenticate(self, request):
        parts = get_authorization_header(request).split()
        if not parts or parts[0].lower() != self.keyword.encode():
            return None
        if len(parts) != 2:
            raise AuthenticationFailed("Invalid bearer header.")

        try:
            token = parts[1].decode()
        except UnicodeError:
            raise AuthenticationFailed("Invalid bearer token.")

        probe = CrmUser(id="", name="", email="", role=None, token=token)
        try:
            payload = get_backend_client(probe).me()
        except BackendError as exc:
            logger.info("Bearer token rejected by backend: %s", exc)
            raise AuthenticationFailed("Invalid or expired token.")

        return (CrmUser.from_backend(payload, token=token), token)

    def authenticate_header(self, request):
        return "Bearer"
