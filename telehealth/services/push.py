"""
Browser Web Push delivery (VAPID).

Subscriptions are stored per user and endpoint.  Endpoints the push
service reports as gone (404/410) are deleted after a send attempt.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from django.conf import settings
from pywebpush import WebPushException, webpush

from telehealth.models import PushSubscription

logger = logging.getLogger(__name__)

EXPIRED_STATUSES = (404, 410)


class PushNotConfigured(RuntimeError):
    pass


@dataclass
class PushResult:
    sent: int = 0
    failed: int = 0
    expired: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def is_configured() -> bool:
    return bool(settings.VAPID_PUBLIC_KEY and settings.VAPID_PRIVATE_KEY)


def push_payload(title: str, body: str, *, tag: str = 'notification', url: str = '/',
                 data: Optional[dict] = None, require_interaction: bool = False) -> dict:
    return {
        'title': title,
        'body': body,
        'icon': '/icon-192x192.png',
        'badge': '/badge-72x72.png',
        'tag': tag,
        'url': url,
        'requireInteraction': require_interaction,
        'data': data or {},
    }


def appointment_reminder_payload(doctor_name: str, when: str, message: str) -> dict:
    return push_payload(
        'Appointment reminder',
        message or f"Your consultation with {doctor_name} starts at {when}",
        tag='appointment-reminder',
        require_interaction=True,
        data={'type': 'appointment', 'action': 'open-appointment'},
    )


def save_subscription(user, endpoint: str, keys: dict) -> tuple[PushSubscription, bool]:
    return PushSubscription.objects.update_or_create(
        user=user, endpoint=endpoint,
        defaults={'p256dh': keys['p256dh'], 'auth': keys['auth']},
    )


def remove_subscription(user, endpoint: str) -> int:
    deleted, _ = PushSubscription.objects.filter(user=user, endpoint=endpoint).delete()
    return deleted


def send_push(subscription: PushSubscription, payload: dict) -> None:
    """Send one message; raises ``WebPushException`` on rejection."""
    if not is_configured():
        raise PushNotConfigured('VAPID keys are not configured')
    webpush(
        subscription_info=subscription.as_subscription_info(),
        data=json.dumps(payload, ensure_ascii=False),
        vapid_private_key=settings.VAPID_PRIVATE_KEY,
        vapid_claims={'sub': settings.VAPID_SUBJECT},
        ttl=settings.WEBPUSH_TTL,
        timeout=settings.WEBPUSH_TIMEOUT,
    )


def _is_expired(exc: WebPushException) -> bool:
    response = getattr(exc, 'response', None)
    return getattr(response, 'status_code', None) in EXPIRED_STATUSES


def send_bulk(subscriptions: Iterable[PushSubscription], payload: dict) -> PushResult:
    result = PushResult()
    gone = []
    for sub in subscriptions:
        try:
            send_push(sub, payload)
        except WebPushException as exc:
            if _is_expired(exc):
                gone.append(sub.pk)
                result.expired += 1
            else:
                logger.warning("web push to %s failed: %s", sub.endpoint, exc)
            result.failed += 1
            continue
        result.sent += 1
    if gone:
        PushSubscription.objects.filter(pk__in=gone).delete()
        logger.info("removed %d expired push subscriptions", len(gone))
    return result


def send_to_users(user_ids: Optional[Iterable[int]], payload: dict) -> PushResult:
    """Push ``payload`` to every subscription of ``user_ids`` (all users when None)."""
    if not is_configured():
        raise PushNotConfigured('VAPID keys are not configured')
    qs = PushSubscription.objects.all().order_by('id')
    if user_ids is not None:
        qs = qs.filter(user_id__in=list(user_ids))
    result = send_bulk(qs, payload)
    logger.info("web push sent=%d failed=%d expired=%d", result.sent, result.failed, result.expired)
    return result
