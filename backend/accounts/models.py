from django.contrib.auth.models import AbstractUser
from django.db import models

RATES_MANAGE = "rates.manage"
TOURS_MANAGE = "tours.manage"
BOOKINGS_MANAGE = "bookings.manage"


class User(AbstractUser):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    DRIVER = "DRIVER"
    PARTNER = "PARTNER"
    CUSTOMER = "CUSTOMER"
    ROLES = [
        (ADMIN, "Admin"),
        (STAFF, "Office Staff"),
        (DRIVER, "Driver"),
        (PARTNER, "Hotel Partner"),
        (CUSTOMER, "Customer"),
    ]

    ROLE_CAPABILITIES = {
        ADMIN: frozenset({RATES_MANAGE, TOURS_MANAGE, BOOKINGS_MANAGE}),
        STAFF: frozenset({TOURS_MANAGE, BOOKINGS_MANAGE}),
        DRIVER: frozenset(),
        PARTNER: frozenset(),
        CUSTOMER: frozenset(),
    }

    display_name = models.CharField(max_length=120, blank=True)
    role = models.CharField(max_length=20, choices=ROLES, default=CUSTOMER)

    def has_capability(self, capability: str) -> bool:
        if self.is_superuser:
            return True
        return capability in self.ROLE_CAPABILITIES.get(self.role, frozenset())
