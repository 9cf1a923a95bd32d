"""
Batch delivery of due reminders.

Each reminder is sent on its own channel (email, SMS gateway, or the
notification bus plus Web Push).  A failure marks only that reminder
``failed`` and the rest of the batch carries on.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from telehealth.models import PushSubscription, Reminder
from telehealth.services import push
from telehealth.services.notifications import notify_appointment_reminder
from telehealth.services.sms import send_sms

logger = logging.getLogger(__name__)


class ReminderDeliveryError(Exception):
    pass


@dataclass
class ReminderBatchResult:
    sent: int = 0
    failed: int = 0
    total: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def _send_email(reminder: Reminder) -> None:
    email = reminder.patient.email
    if not email:
        raise ReminderDeliveryError(f"patient {reminder.patient_id} has no email address")
    send_mail(
        subject='Appointment reminder',
        message=reminder.message,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[email],
        fail_silently=False,
    )


def _send_sms(reminder: Reminder) -> None:
    phone = reminder.patient.phone
    if not phone:
        raise ReminderDeliveryError(f"patient {reminder.patient_id} has no phone number")
    send_sms(phone, reminder.message)


def _send_push(reminder: Reminder) -> None:
    appointment = reminder.appointment
    doctor_name = appointment.doctor.display_name if appointment else ''
    when = appointment.scheduled_at if appointment else None
    notify_appointment_reminder(reminder.patient_id, doctor_name, when, message=reminder.message)

    if not push.is_configured():
        return
    if not PushSubscription.objects.filter(user_id=reminder.patient_id).exists():
        return
    payload = push.appointment_reminder_payload(
        doctor_name, when.isoformat() if when else '', reminder.message)
    result = push.send_to_users([reminder.patient_id], payload)
    if result.sent == 0:
        raise ReminderDeliveryError(f"web push to patient {reminder.patient_id} was not delivered")


SENDERS = {
    Reminder.TYPE_EMAIL: _send_email,
    Reminder.TYPE_SMS: _send_sms,
    Reminder.TYPE_PUSH: _send_push,
}


def send_reminder(reminder: Reminder) -> None:
    sender = SENDERS.get(reminder.reminder_type)
    if sender is None:
        raise ReminderDeliveryError(f"unknown reminder type {reminder.reminder_type!r}")
    sender(reminder)


def dispatch_due_reminders(now=None, batch_size: Optional[int] = None) -> ReminderBatchResult:
    now = now or timezone.now()
    if batch_size is None:
        batch_size = settings.REMINDER_BATCH_SIZE
    due = list(
        Reminder.objects.filter(status=Reminder.STATUS_PENDING, scheduled_for__lte=now)
        .select_related('patient', 'appointment__doctor')
        .order_by('scheduled_for', 'id')[:batch_size]
    )
    result = ReminderBatchResult(total=len(due))
    for reminder in due:
        try:
            send_reminder(reminder)
        except Exception:
            logger.exception("failed to send reminder %s (%s)", reminder.id, reminder.reminder_type)
            reminder.status = Reminder.STATUS_FAILED
            reminder.save(update_fields=['status'])
            result.failed += 1
            continue
        reminder.status = Reminder.STATUS_SENT
        reminder.sent_at = timezone.now()
        reminder.save(update_fields=['status', 'sent_at'])
        result.sent += 1
    logger.info("reminders processed: %d sent, %d failed of %d", result.sent, result.failed, result.total)
    return result
