from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import LoginView, MeView
from bookings.api import BookingAdminViewSet, BookingCreateView
from payments.api import StripeWebhookView
from rates.api import CalculatePriceView, PricingModifierViewSet, RateConfigViewSet, TransferPriceView
from tours.api import SharedTourAdminViewSet, SharedTourTicketAdminViewSet, SharedTourViewSet

router = DefaultRouter()
router.register(r"shared-tours", SharedTourViewSet, basename="shared-tour")
router.register(r"admin/rates", RateConfigViewSet, basename="admin-rate")
router.register(r"admin/pricing-modifiers", PricingModifierViewSet, basename="admin-pricing-modifier")
router.register(r"admin/shared-tours", SharedTourAdminViewSet, basename="admin-shared-tour")
router.register(r"admin/tickets", SharedTourTicketAdminViewSet, basename="admin-ticket")
router.register(r"admin/bookings", BookingAdminViewSet, basename="admin-booking")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path("api/pricing/calculate/", CalculatePriceView.as_view(), name="pricing-calculate"),
    path("api/pricing/transfer/", TransferPriceView.as_view(), name="pricing-transfer"),
    path("api/bookings/", BookingCreateView.as_view(), name="booking-create"),
    path("api/webhooks/stripe/", StripeWebhookView.as_view(), name="stripe-webhook"),
    path("api/", include(router.urls)),
]
