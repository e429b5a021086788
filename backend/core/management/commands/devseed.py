from datetime import time, timedelta
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from rates.defaults import install_default_rate_configs
from rates.models import PricingModifier
from tours.models import SharedTour

SEED_PASSWORD = "TourDesk123!"
SUPERUSER_EMAIL = "admin@tourdesk.test"
SUPERUSER_PASSWORD = "AdminTourDesk123!"

# Shared tours run Sunday through Wednesday.
SHARED_TOUR_WEEKDAYS = (6, 0, 1, 2)


class Command(BaseCommand):
    help = "Populate the local development database with sample data."

    def add_arguments(self, parser):
        parser.add_argument("--weeks", type=int, default=4, help="How many weeks of shared tours to schedule.")

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Installing rate configuration"))
            created_keys = install_default_rate_configs()
            for key in created_keys:
                self.stdout.write(f"  created {key}")
            if not created_keys:
                self.stdout.write("  rate configuration already present")

            self.stdout.write(self.style.MIGRATE_HEADING("Creating pricing modifiers"))
            self._ensure_modifier(
                name="Early bird",
                description="5% off tours booked at least 30 days ahead.",
                modifier_type=PricingModifier.DISCOUNT,
                value=Decimal("5"),
                min_advance_days=30,
            )
            self._ensure_modifier(
                name="Large group weekend",
                description="Flat surcharge for 12+ guests on Saturdays.",
                modifier_type=PricingModifier.SURCHARGE,
                value_type=PricingModifier.FLAT,
                value=Decimal("50"),
                min_party_size=12,
                weekdays=["saturday"],
                service_keys=["wine_tours"],
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating users"))
            self._ensure_user(email="office@tourdesk.test", first_name="Olive", last_name="Office", role=User.STAFF)
            self._ensure_user(email="driver@tourdesk.test", first_name="Dale", last_name="Driver", role=User.DRIVER)
            superuser = self._ensure_superuser()

            self.stdout.write(self.style.MIGRATE_HEADING("Scheduling shared tours"))
            scheduled = self._schedule_shared_tours(options["weeks"])

        self.stdout.write(self.style.SUCCESS(f"Seed complete. {scheduled} shared tour(s) scheduled."))
        self.stdout.write(f"Staff password: {SEED_PASSWORD}")
        self.stdout.write(f"Superuser: {superuser.email} / {SUPERUSER_PASSWORD}")

    def _ensure_modifier(self, name: str, **fields) -> PricingModifier:
        modifier, created = PricingModifier.objects.get_or_create(name=name, defaults=fields)
        self.stdout.write(f"  {'created' if created else 'kept'} {modifier.name}")
        return modifier

    def _ensure_user(self, email: str, first_name: str, last_name: str, role: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": f"{first_name} {last_name}",
                "role": role,
            },
        )
        if created:
            user.set_password(SEED_PASSWORD)
            user.save()
        elif user.role != role:
            user.role = role
            user.save(update_fields=["role"])
        return user

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Admin",
                "last_name": "User",
                "display_name": "Admin User",
                "role": User.ADMIN,
                "is_staff": True,
                "is_superuser": True,
            },
        )
        flag_updates = {}
        if not user.is_staff:
            flag_updates["is_staff"] = True
        if not user.is_superuser:
            flag_updates["is_superuser"] = True
        if flag_updates:
            for attr, value in flag_updates.items():
                setattr(user, attr, value)
            user.save(update_fields=list(flag_updates.keys()))
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user

    def _schedule_shared_tours(self, weeks: int) -> int:
        today = timezone.localdate()
        scheduled = 0
        for offset in range(3, 3 + weeks * 7):
            tour_date = today + timedelta(days=offset)
            if tour_date.weekday() not in SHARED_TOUR_WEEKDAYS:
                continue
            _, created = SharedTour.objects.get_or_create(
                tour_date=tour_date,
                start_time=time(11, 0),
                defaults={
                    "title": "Shared Wine Tour",
                    "description": "Six hours, three wineries and lunch in the valley.",
                    "meeting_location": "Downtown Walla Walla, Main St & 2nd Ave",
                },
            )
            if created:
                scheduled += 1
                self.stdout.write(f"  {tour_date:%a %Y-%m-%d}")
        return scheduled
