"""
Domain error taxonomy shared by the pricing, availability and booking code.

Every error is a DRF ``APIException`` so views can let them propagate and the
envelope exception handler renders them with the right status code.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class ServiceError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The request could not be processed."
    default_code = "error"

    def __init__(self, detail=None, code=None, *, context=None):
        super().__init__(detail, code)
        self.context = context or {}


class ValidationError(ServiceError):
    """Malformed or out-of-range input the caller can correct."""

    default_detail = "Invalid input."
    default_code = "validation_error"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class ConflictError(ServiceError):
    """The requested change lost a race against the current state (e.g. seats sold)."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the current state."
    default_code = "conflict"


class ConfigurationError(ServiceError):
    """Rate or modifier data is missing or malformed. Never user-correctable."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Pricing configuration is invalid."
    default_code = "configuration_error"


class PaymentUnavailableError(ServiceError):
    """The payment processor could not open a payment; nothing was kept."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Payments are temporarily unavailable. Please try again shortly."
    default_code = "payment_unavailable"
