"""
Database models for the clinic backend.

Only the records the realtime layer depends on live here: users keyed by
role for notification fan-out and presence, appointments that trigger
notifications, reminders processed by the cron dispatcher and the audit
trail.  Everything else in the portal is plain CRUD and out of scope.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Custom user model carrying the portal role.

    Notification channels are keyed by ``(id, role)``, so the role is
    part of a user's realtime identity.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone = models.CharField(max_length=32, blank=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username


class Appointment(models.Model):
    STATUS_SCHEDULED = 'scheduled'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = (
        (STATUS_SCHEDULED, 'scheduled'),
        (STATUS_CONFIRMED, 'confirmed'),
        (STATUS_CANCELLED, 'cancelled'),
        (STATUS_COMPLETED, 'completed'),
    )

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patient_appointments')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_appointments')
    scheduled_at = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['doctor', 'scheduled_at'], name='appt_doctor_sched_idx'),
            models.Index(fields=['patient', 'scheduled_at'], name='appt_patient_sched_idx'),
        ]

    def __str__(self):
        return f"appt d={self.doctor_id} p={self.patient_id} @ {self.scheduled_at:%F %H:%M}"


class Reminder(models.Model):
    """A scheduled message for a patient, sent by the reminder cron."""
    TYPE_EMAIL = 'email'
    TYPE_SMS = 'sms'
    TYPE_PUSH = 'push'
    TYPE_CHOICES = ((TYPE_EMAIL, 'email'), (TYPE_SMS, 'sms'), (TYPE_PUSH, 'push'))

    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = ((STATUS_PENDING, 'pending'), (STATUS_SENT, 'sent'), (STATUS_FAILED, 'failed'))

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reminders')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.CASCADE, related_name='reminders'
    )
    reminder_type = models.CharField(max_length=8, choices=TYPE_CHOICES, default=TYPE_PUSH)
    message = models.TextField()
    scheduled_for = models.DateTimeField()
    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default=STATUS_PENDING)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['status', 'scheduled_for'], name='reminder_status_sched_idx')]

    def __str__(self):
        return f"reminder {self.id} {self.reminder_type} p={self.patient_id} [{self.status}]"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    ip = models.GenericIPAddressField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"


class PushSubscription(models.Model):
    """A browser Web Push endpoint registered by a user."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='push_subscriptions')
    endpoint = models.URLField(max_length=500)
    p256dh = models.CharField(max_length=255)
    auth = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['user', 'endpoint'], name='push_sub_user_endpoint_uniq'),
        ]

    def __str__(self):
        return f"push u={self.user_id} {self.endpoint[:40]}"

    def as_subscription_info(self) -> dict:
        return {'endpoint': self.endpoint, 'keys': {'p256dh': self.p256dh, 'auth': self.auth}}
