from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.views import APIView

from accounts.models import BOOKINGS_MANAGE
from accounts.permissions import HasCapability
from core.responses import EnvelopeMixin, success

from .models import Booking
from .serializers import (
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingDetailSerializer,
    BookingRecalculateSerializer,
    BookingSerializer,
)
from .services.bookings import cancel_booking, confirm_booking, create_booking, recalculate_booking
from .services.payments import payment_payload


class BookingCreateView(APIView):
    """Public private-tour booking request; prices it and opens the deposit payment."""

    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = create_booking(**serializer.validated_data)
        data = BookingDetailSerializer(booking).data
        data["payment"] = payment_payload(getattr(booking, "payment", None))
        return success(data, status=status.HTTP_201_CREATED)


class BookingAdminViewSet(EnvelopeMixin, viewsets.ReadOnlyModelViewSet):
    permission_classes = [permissions.IsAuthenticated, HasCapability]
    required_capability = BOOKINGS_MANAGE
    queryset = Booking.objects.select_related("priced_by")
    filterset_fields = ["tour_date", "status", "payment_status", "service_key"]
    search_fields = ["booking_number", "customer_name", "customer_email"]
    ordering_fields = ["tour_date", "created_at", "total"]

    def get_serializer_class(self):
        if self.action == "list":
            return BookingSerializer
        return BookingDetailSerializer

    @action(detail=True, methods=["post"], url_path="recalculate")
    def recalculate(self, request, pk=None):
        serializer = BookingRecalculateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = recalculate_booking(self.get_object(), request.user, **serializer.validated_data)
        return success(self.get_serializer(booking).data)

    @action(detail=True, methods=["post"], url_path="confirm")
    def confirm(self, request, pk=None):
        booking = confirm_booking(self.get_object())
        return success(self.get_serializer(booking).data)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = cancel_booking(self.get_object(), serializer.validated_data["reason"])
        return success(self.get_serializer(booking).data)
