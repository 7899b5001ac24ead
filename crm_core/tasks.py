# crm_core/tasks.py
from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings

from crm_core.identity import CrmUser
from crm_core.services.backend_client import get_backend_client
from crm_core.services.enquiry_board import EnquiryBoard

logger = logging.getLogger(__name__)


def sync_board(token: str | None = None, namespace: str | None = None) -> int:
    """
    Refresh the held user boards from the backend's full enquiry list.

    Only records a board already holds are replaced, so a board never
    gains an enquiry its user could not list. `namespace` limits the run
    to one user's board. Returns how many snapshots were accepted.
    """
    service = CrmUser(
        id="",
        name="crm-sync",
        email="",
        role=None,
        token=token or settings.CRM_SERVICE_TOKEN or None,
    )
    names = [namespace] if namespace else EnquiryBoard.namespaces()
    if not names:
        logger.info("Board sync: no boards held")
        return 0

    enquiries = get_backend_client(service).list_enquiries()
    accepted = sum(EnquiryBoard(name).refresh(enquiries) for name in names)
    logger.info(
        "Board sync: %s snapshots accepted across %s boards (%s enquiries listed)",
        accepted,
        len(names),
        len(enquiries),
    )
    return accepted


@shared_task
def sync_enquiry_board(namespace: str | None = None) -> int:
    return sync_board(namespace=namespace)
