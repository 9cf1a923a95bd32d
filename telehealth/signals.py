import logging

from django.db.models.signals import post_save
from django.db.transaction import on_commit
from django.dispatch import receiver

from telehealth.models import Appointment
from telehealth.services.notifications import notify_appointment_created

logger = logging.getLogger(__name__)


def _notify_created(appointment):
    try:
        notify_appointment_created(appointment)
    except Exception:
        logger.exception("failed to notify about appointment %s", appointment.pk)


@receiver(post_save, sender=Appointment, dispatch_uid='telehealth.appointment_created')
def appointment_created(sender, instance, created, **kwargs):
    # only announce bookings that actually commit
    if created:
        on_commit(lambda: _notify_created(instance))
