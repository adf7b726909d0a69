import logging

from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.core.exceptions import BusinessRuleError

logger = logging.getLogger(__name__)

STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: "authentication_failed",
    status.HTTP_403_FORBIDDEN: "permission_denied",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def _error_body(code: str, detail, field_errors=None) -> dict:
    return {"code": code, "detail": str(detail), "field_errors": field_errors or {}}


def millops_exception_handler(exc, context):
    """Render every API error as ``{code, detail, field_errors}``.

    Business rule failures keep their structured ``data`` (shortages, status
    transition) so clients can act on them without parsing the message.
    """
    if isinstance(exc, ProtectedError):
        return Response(
            _error_body("protected", "The record is still referenced and cannot be deleted."),
            status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        response.data = _error_body("validation_error", "Request validation failed.", response.data)
        return response

    if isinstance(exc, BusinessRuleError):
        codes = exc.get_codes()
        code = codes if isinstance(codes, str) else exc.default_code
        logger.info("Business rule rejected %s: %s", context["request"].path, exc.detail)
        response.data = _error_body(code, exc.detail)
        if exc.data:
            response.data["data"] = exc.data
        return response

    detail = response.data.get("detail") if isinstance(response.data, dict) else response.data
    if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        code = "internal_error"
    else:
        code = STATUS_CODES.get(response.status_code, getattr(exc, "default_code", "api_error"))
    response.data = _error_body(code, detail)
    return response
