from django.utils import timezone
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action

from accounts.models import TOURS_MANAGE
from accounts.permissions import HasCapability
from bookings.services.payments import payment_payload
from core.errors import ValidationError
from core.responses import EnvelopeMixin, success

from .availability import check_availability
from .models import SharedTour, SharedTourTicket
from .serializers import (
    SharedTourAdminSerializer,
    SharedTourSerializer,
    SharedTourTicketSerializer,
    TicketCancelSerializer,
    TicketMarkPaidSerializer,
    TicketPurchaseSerializer,
    TourCancelSerializer,
)
from .services.tickets import (
    cancel_ticket,
    cancel_tour,
    check_in_ticket,
    create_ticket,
    mark_ticket_paid,
    tour_manifest,
)


class SharedTourViewSet(EnvelopeMixin, viewsets.ReadOnlyModelViewSet):
    """Published, upcoming shared tours with ticket sales for the public site."""

    serializer_class = SharedTourSerializer
    permission_classes = [permissions.AllowAny]
    filterset_fields = ["tour_date", "status"]
    ordering_fields = ["tour_date", "start_time"]

    def get_queryset(self):
        return SharedTour.objects.filter(
            is_published=True,
            tour_date__gte=timezone.localdate(),
        ).exclude(status__in=SharedTour.CLOSED_STATUSES)

    @action(detail=True, methods=["get"], url_path="availability")
    def availability(self, request, pk=None):
        raw = request.query_params.get("tickets", "1")
        try:
            requested = int(raw)
        except (TypeError, ValueError):
            raise ValidationError({"tickets": "Ticket count must be a whole number."})
        result = check_availability(pk, requested)
        return success(result.as_dict())

    @action(detail=True, methods=["post"], url_path="tickets")
    def tickets(self, request, pk=None):
        serializer = TicketPurchaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = create_ticket(tour_id=pk, **serializer.validated_data)
        data = SharedTourTicketSerializer(ticket).data
        data["payment"] = payment_payload(getattr(ticket, "payment", None))
        return success(data, status=status.HTTP_201_CREATED)


class SharedTourAdminViewSet(
    EnvelopeMixin,
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = SharedTourAdminSerializer
    permission_classes = [permissions.IsAuthenticated, HasCapability]
    required_capability = TOURS_MANAGE
    queryset = SharedTour.objects.all()
    filterset_fields = ["tour_date", "status", "is_published"]
    search_fields = ["title", "description"]
    ordering_fields = ["tour_date", "start_time"]

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        tour = self.get_object()
        serializer = TourCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tour = cancel_tour(tour, reason=serializer.validated_data["reason"])
        return success(self.get_serializer(tour).data)

    @action(detail=True, methods=["get"], url_path="manifest")
    def manifest(self, request, pk=None):
        return success(tour_manifest(self.get_object()))

    @action(detail=True, methods=["get"], url_path="tickets")
    def tickets(self, request, pk=None):
        tour = self.get_object()
        tickets = tour.tickets.select_related("tour").order_by("created_at")
        return success(SharedTourTicketSerializer(tickets, many=True).data)


class SharedTourTicketAdminViewSet(EnvelopeMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = SharedTourTicketSerializer
    permission_classes = [permissions.IsAuthenticated, HasCapability]
    required_capability = TOURS_MANAGE
    queryset = SharedTourTicket.objects.select_related("tour")
    filterset_fields = ["tour", "status", "payment_status"]
    search_fields = ["ticket_number", "customer_name", "customer_email"]

    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):
        serializer = TicketMarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = mark_ticket_paid(
            self.get_object(),
            payment_intent_id=serializer.validated_data["payment_intent_id"] or None,
        )
        return success(self.get_serializer(ticket).data)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        serializer = TicketCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = cancel_ticket(
            self.get_object(),
            serializer.validated_data["reason"],
            refund_amount=serializer.validated_data["refund_amount"],
        )
        return success(self.get_serializer(ticket).data)

    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request, pk=None):
        ticket = check_in_ticket(self.get_object())
        return success(self.get_serializer(ticket).data)
