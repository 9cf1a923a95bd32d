"""
Domain notifications emitted on the in-process bus.

Callers may run in a request thread, a signal handler or the reminder
cron; all of them call :meth:`NotificationBus.emit` synchronously.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from django.utils import timezone

from telehealth.realtime.bus import Notification, build_notification, notification_bus


def _when(value: datetime) -> tuple[str, str]:
    local = timezone.localtime(value) if timezone.is_aware(value) else value
    return local.strftime('%d.%m.%Y'), local.strftime('%H:%M')


def notify_appointment_created(appointment) -> List[Notification]:
    """Tell the patient and the doctor that an appointment was booked."""
    date_str, time_str = _when(appointment.scheduled_at)
    doctor_name = appointment.doctor.display_name
    base = {'appointmentId': appointment.id, 'appointmentDate': date_str, 'appointmentTime': time_str}

    patient_note = build_notification(
        type='appointment',
        title='Appointment booked',
        message=f"You are booked with {doctor_name} on {date_str} at {time_str}",
        user_id=appointment.patient_id,
        user_role='patient',
        data={**base, 'doctorId': appointment.doctor_id},
        prefix='appt',
    )
    doctor_note = build_notification(
        type='appointment',
        title='New appointment',
        message=f"New appointment on {date_str} at {time_str}",
        user_id=appointment.doctor_id,
        user_role='doctor',
        data={**base, 'patientId': appointment.patient_id},
        prefix='appt',
    )
    notification_bus.emit(patient_note)
    notification_bus.emit(doctor_note)
    return [patient_note, doctor_note]


def notify_appointment_reminder(patient_id: int, doctor_name: str, scheduled_at: Optional[datetime],
                                message: Optional[str] = None) -> Notification:
    data = {'doctorName': doctor_name}
    if scheduled_at is not None:
        date_str, time_str = _when(scheduled_at)
        data.update(appointmentDate=date_str, appointmentTime=time_str)
        default = f"Don't forget your appointment with {doctor_name} on {date_str} at {time_str}"
    else:
        default = f"Don't forget your appointment with {doctor_name}"
    note = build_notification(
        type='reminder',
        title='Appointment reminder',
        message=message or default,
        user_id=patient_id,
        user_role='patient',
        data=data,
        prefix='reminder',
    )
    notification_bus.emit(note)
    return note


def notify_emergency_call(patient_name: str, severity: str, symptoms: str) -> Notification:
    # user_id 0 is the broadcast address; the admin role routes it to admin:all
    note = build_notification(
        type='emergency',
        title='Emergency call',
        message=f"{patient_name} - {severity}. Symptoms: {symptoms}",
        user_id=0,
        user_role='admin',
        data={'patientName': patient_name, 'severity': severity, 'symptoms': symptoms},
        prefix='emergency',
    )
    notification_bus.emit(note)
    return note
