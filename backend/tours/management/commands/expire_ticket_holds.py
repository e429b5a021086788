from django.core.management.base import BaseCommand

from tours.services.tickets import expire_ticket_holds


class Command(BaseCommand):
    help = "Release seats held by unpaid shared-tour tickets whose hold has lapsed."

    def handle(self, *args, **options):
        expired = expire_ticket_holds()
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} ticket hold(s)."))
