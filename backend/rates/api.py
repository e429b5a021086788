from rest_framework import mixins, permissions, viewsets
from rest_framework.decorators import action
from rest_framework.views import APIView

from accounts.models import RATES_MANAGE
from accounts.permissions import HasCapability
from core.errors import NotFoundError
from core.responses import EnvelopeMixin, success

from .config import update_rate_config
from .models import PricingModifier, RateConfig
from .pricing import quote_for_request, quote_for_transfer
from .serializers import (
    PriceCalculationSerializer,
    TransferPriceSerializer,
    PricingModifierSerializer,
    RateChangeLogSerializer,
    RateConfigSerializer,
    RateConfigUpdateSerializer,
)


class CalculatePriceView(APIView):
    """Public price quote for an hourly service."""

    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = PriceCalculationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        quote = quote_for_request(
            service_key=data["service_key"],
            tour_date=data["date"],
            duration_hours=data["duration_hours"],
            party_size=data["party_size"],
            custom_discount=data.get("custom_discount"),
        )
        return success(quote.as_dict())


class TransferPriceView(APIView):
    """Public price quote for an airport or local transfer."""

    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = TransferPriceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        quote = quote_for_transfer(
            route=data["route"],
            tour_date=data["date"],
            party_size=data["party_size"],
            miles=data.get("miles"),
            custom_discount=data.get("custom_discount"),
        )
        return success(quote.as_dict())


class RateConfigViewSet(
    EnvelopeMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = RateConfigSerializer
    permission_classes = [permissions.IsAuthenticated, HasCapability]
    required_capability = RATES_MANAGE
    lookup_field = "config_key"
    lookup_value_regex = "[^/]+"
    queryset = RateConfig.objects.select_related("updated_by").order_by("config_key")

    def get_object(self):
        key = self.kwargs[self.lookup_field]
        try:
            return self.get_queryset().get(config_key=key)
        except RateConfig.DoesNotExist:
            raise NotFoundError(f"Rate configuration '{key}' not found.")

    def update(self, request, *args, **kwargs):
        config = self.get_object()
        serializer = RateConfigUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        config = update_rate_config(
            key=config.config_key,
            value=serializer.validated_data["config_value"],
            actor=request.user,
            reason=serializer.validated_data["change_reason"],
        )
        return success(RateConfigSerializer(config).data)

    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request, config_key=None):
        config = self.get_object()
        entries = config.change_log.select_related("changed_by")
        return success(RateChangeLogSerializer(entries, many=True).data)


class PricingModifierViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    serializer_class = PricingModifierSerializer
    permission_classes = [permissions.IsAuthenticated, HasCapability]
    required_capability = RATES_MANAGE
    queryset = PricingModifier.objects.all()
    filterset_fields = ["modifier_type", "is_active", "is_exclusive"]
    search_fields = ["name", "description"]
    ordering_fields = ["priority", "name"]

    @action(detail=True, methods=["post"], url_path="toggle")
    def toggle(self, request, pk=None):
        modifier = self.get_object()
        modifier.is_active = not modifier.is_active
        modifier.save(update_fields=["is_active", "updated_at"])
        return success(self.get_serializer(modifier).data)
