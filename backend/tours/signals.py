from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .availability import sync_tour_status
from .models import SharedTourTicket


@receiver(post_save, sender=SharedTourTicket)
def handle_ticket_post_save(sender, instance, raw=False, **kwargs):
    if raw:
        return
    sync_tour_status(instance.tour_id)


@receiver(post_delete, sender=SharedTourTicket)
def handle_ticket_post_delete(sender, instance, **kwargs):
    sync_tour_status(instance.tour_id)
