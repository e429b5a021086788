import logging

import stripe
from django.conf import settings
from django.db import transaction
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.services.bookings import record_booking_payment
from core.errors import ConflictError
from core.responses import success
from tours.services.tickets import mark_ticket_paid

from .models import Payment

logger = logging.getLogger(__name__)


def _find_payment(intent_id):
    return (
        Payment.objects.select_related("booking", "ticket", "ticket__tour")
        .filter(stripe_payment_intent=intent_id)
        .first()
    )


def handle_payment_succeeded(intent) -> None:
    intent_id = intent.get("id")
    payment = _find_payment(intent_id)
    if payment is None:
        logger.warning("Stripe reported success for unknown payment intent %s", intent_id)
        return
    if payment.status == Payment.SUCCEEDED:
        logger.info("Payment intent %s already recorded as succeeded", intent_id)
        return

    with transaction.atomic():
        payment.status = Payment.SUCCEEDED
        payment.failure_message = ""
        payment.save(update_fields=["status", "failure_message", "updated_at"])

        if payment.ticket_id:
            try:
                mark_ticket_paid(payment.ticket, payment_intent_id=intent_id)
            except ConflictError as exc:
                logger.error(
                    "Payment %s captured for ticket %s that could not be reinstated: %s",
                    intent_id,
                    payment.ticket.ticket_number,
                    exc.detail,
                )
        elif payment.booking_id:
            record_booking_payment(payment.booking, payment)


def handle_payment_failed(intent) -> None:
    intent_id = intent.get("id")
    payment = _find_payment(intent_id)
    if payment is None:
        logger.warning("Stripe reported failure for unknown payment intent %s", intent_id)
        return
    error = intent.get("last_payment_error") or {}
    payment.status = Payment.FAILED
    payment.failure_message = error.get("message") or "Payment failed."
    payment.save(update_fields=["status", "failure_message", "updated_at"])
    logger.info("Payment intent %s failed: %s", intent_id, payment.failure_message)


EVENT_HANDLERS = {
    "payment_intent.succeeded": handle_payment_succeeded,
    "payment_intent.payment_failed": handle_payment_failed,
}


class StripeWebhookView(APIView):
    """Receive Stripe payment intent events for tickets and bookings."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not settings.STRIPE_WEBHOOK_SECRET:
            logger.error("Stripe webhook secret not configured.")
            return Response(
                {"success": False, "error": "Webhook is not configured."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        try:
            event = stripe.Webhook.construct_event(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)
        except ValueError:
            logger.warning("Invalid payload received on Stripe webhook.")
            return Response({"success": False, "error": "Invalid payload."}, status=status.HTTP_400_BAD_REQUEST)
        except stripe.SignatureVerificationError:
            logger.warning("Invalid Stripe signature.")
            return Response({"success": False, "error": "Invalid signature."}, status=status.HTTP_400_BAD_REQUEST)

        handler = EVENT_HANDLERS.get(event["type"])
        if handler is None:
            logger.debug("Ignoring Stripe event %s", event["type"])
        else:
            handler(event["data"]["object"])
        return success({"received": True})
