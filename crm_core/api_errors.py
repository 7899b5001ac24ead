# crm_core/api_errors.py
from __future__ import annotations

from contextlib import contextmanager

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied, ValidationError

from crm_core.exceptions import BackendError, TransitionPermissionError, TransitionValidationError


class BackendUnavailable(APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Backend request failed."
    default_code = "backend_error"


@contextmanager
def workflow_errors(action: str = "Failed to update status"):
    """
    Translate workflow/backend failures into DRF responses.

    Permission -> 403, validation -> 400, backend 404 -> 404,
    any other backend failure -> 502.
    """
    try:
        yield
    except TransitionPermissionError as exc:
        raise PermissionDenied(str(exc))
    except TransitionValidationError as exc:
        raise ValidationError({"status": str(exc)})
    except BackendError as exc:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            raise NotFound(exc.message)
        raise BackendUnavailable(f"{action}: {exc.message}")
