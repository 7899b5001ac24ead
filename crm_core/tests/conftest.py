# crm_core/tests/conftest.py

from __future__ import annotations

from typing import Callable, Iterable, Optional

import pytest
from django.core.cache import caches
from rest_framework.test import APIClient

from crm_core.identity import CrmUser
from crm_core.services.enquiry_board import EnquiryBoard
from crm_core.tests import fakes
from crm_core.tests.fakes import EVENTS_TOKEN


@pytest.fixture(autouse=True)
def _clear_board(settings):
    caches[settings.CRM_BOARD_CACHE].clear()
    yield
    caches[settings.CRM_BOARD_CACHE].clear()


@pytest.fixture
def fake_backend(settings) -> fakes.FakeBackend:
    """
    Backend collaborator seeded with one user per role.

    Names sort so that the superadmin comes first in any user pool.
    """
    backend = fakes.FakeBackend()
    backend.add_user("admin-1", "Alice Admin", "superadmin")
    backend.add_user("dir-1", "Dora Director", "director")
    backend.add_user("sales-1", "Sam Sales", "salesman")
    backend.add_user("des-1", "Dev Designer", "designer")
    backend.add_user("prod-1", "Pat Production", "production")
    backend.add_user("pur-1", "Quinn Purchase", "purchase")

    fakes.CURRENT = backend
    settings.CRM_BACKEND_CLIENT_FACTORY = "crm_core.tests.fakes.fake_client_factory"
    settings.CRM_EVENTS_TOKEN = EVENTS_TOKEN
    yield backend
    fakes.CURRENT = None


@pytest.fixture
def board() -> EnquiryBoard:
    return EnquiryBoard("board-user")


@pytest.fixture
def crm_user() -> Callable[..., CrmUser]:
    """
    Factory for session users.
    """

    def _factory(role: str, id: Optional[str] = None, workflow_status: Iterable[str] = (), token: Optional[str] = None) -> CrmUser:
        uid = id or f"{role}-x"
        return CrmUser.from_backend(
            {
                "id": uid,
                "name": f"{role.title()} User",
                "email": f"{uid}@example.com",
                "role": role,
                "workflow_status": list(workflow_status),
            },
            token=token or f"token-{uid}",
        )

    return _factory


@pytest.fixture
def salesman(crm_user):
    return crm_user("salesman", id="sales-1")


@pytest.fixture
def designer(crm_user):
    return crm_user("designer", id="des-1")


@pytest.fixture
def production(crm_user):
    return crm_user("production", id="prod-1")


@pytest.fixture
def purchase(crm_user):
    return crm_user("purchase", id="pur-1")


@pytest.fixture
def director(crm_user):
    return crm_user("director", id="dir-1")


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()
