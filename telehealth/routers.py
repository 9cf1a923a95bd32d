"""
URL mappings for the clinic backend API.

Trailing slashes are omitted on API paths (``APPEND_SLASH`` is off).
"""
from django.urls import include, path

from .auth_views import jwt_refresh_view, login_view
from .views import audit, cron, doctors, health, notifications, push

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    path('api/auth/login', login_view),
    path('api/auth/refresh', jwt_refresh_view),
    path('api/notifications/stream', notifications.notification_stream),
    path('api/notifications/send', notifications.notification_send),
    path('api/notifications/emergency', notifications.emergency_call),
    path('api/push/subscribe', push.push_subscribe),
    path('api/push/unsubscribe', push.push_unsubscribe),
    path('api/push/send', push.push_send),
    path('api/doctors/heartbeat', doctors.doctor_heartbeat),
    path('api/doctors/online', doctors.online_doctors),
    path('api/cron/send-reminders', cron.send_reminders_view),
    path('api/audit-logs', audit.audit_logs),
]
