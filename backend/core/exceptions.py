import logging

from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

OPAQUE_CONFIGURATION_MESSAGE = "Pricing is temporarily unavailable. Please try again later."


def _first_message(detail) -> str:
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _first_message(value)
            if key in ("detail", "non_field_errors"):
                return message
            return f"{key}: {message}"
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def envelope_exception_handler(exc, context):
    """
    Render every API error as ``{"success": false, "error": ..., "code": ...}``.

    Configuration errors are logged with their context and replaced with an
    opaque message so rate internals never reach the client.
    """

    if isinstance(exc, ConfigurationError):
        view = context.get("view")
        logger.error(
            "Pricing configuration error in %s: %s",
            view.__class__.__name__ if view is not None else "unknown view",
            exc.detail,
            extra={"config_context": exc.context},
        )
        return Response(
            {
                "success": False,
                "error": OPAQUE_CONFIGURATION_MESSAGE,
                "code": exc.default_code,
            },
            status=exc.status_code,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    detail = response.data
    payload = {"success": False, "error": _first_message(detail)}
    if isinstance(exc, APIException):
        payload["code"] = exc.default_code
    if isinstance(detail, dict) and set(detail) - {"detail"}:
        payload["details"] = detail
    elif isinstance(detail, list):
        payload["details"] = detail
    response.data = payload
    return response
