import logging

from django.core.exceptions import ObjectDoesNotExist
from django.db import DatabaseError, IntegrityError
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class InvalidDateRange(ValidationError):
    default_detail = "check_out must be after check_in"
    default_code = "invalid_date_range"


class InvalidRate(ValidationError):
    default_detail = "nightly rate must be a positive amount"
    default_code = "invalid_rate"


class RoomUnavailable(ValidationError):
    default_detail = "Room is not available for the selected dates"
    default_code = "room_unavailable"


class AuthorizationError(PermissionDenied):
    default_detail = "You don't have admin privileges."
    default_code = "not_admin"


class InvalidTransition(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Status change is not allowed"
    default_code = "invalid_transition"

    def __init__(self, current, requested, detail=None):
        self.current = current
        self.requested = requested
        if detail is None:
            detail = f"Cannot change status from '{current}' to '{requested}'"
        super().__init__(detail)


class ReferentialConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = (
        "This room has existing bookings and cannot be deleted. "
        "You can disable it instead."
    )
    default_code = "referential_conflict"


class BackendUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The booking service is temporarily unavailable. Please try again."
    default_code = "backend_unavailable"


def api_exception_handler(exc, context):
    """Map storage failures onto the API error taxonomy before DRF renders them."""
    if isinstance(exc, ProtectedError):
        exc = ReferentialConflict()
    elif isinstance(exc, ObjectDoesNotExist):
        # Rows removed between lookup and lock.
        exc = NotFound()
    elif isinstance(exc, DatabaseError) and not isinstance(exc, IntegrityError):
        logger.error("Backend failure in %s: %s", context.get("view").__class__.__name__, exc)
        return exception_handler(BackendUnavailable(), context)

    response = exception_handler(exc, context)
    if response is not None and response.status_code >= 500:
        logger.error("Request failed with %s: %s", response.status_code, response.data)
    return response
