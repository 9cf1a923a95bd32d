"""
In-process notification bus.

Notifications are published on a per-user channel ``user:<id>:<role>``;
notifications addressed to an ``admin`` are also published on the shared
``admin:all`` channel that every administrator stream listens to.

Delivery is best effort: subscribers are plain callables invoked
synchronously during :meth:`NotificationBus.emit`.  Nothing is queued,
acknowledged or replayed, so a notification emitted while nobody is
subscribed is dropped.  The registry lives in this process only.
"""
from __future__ import annotations

import logging
import secrets
import string
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ('appointment', 'reminder', 'emergency', 'message')
NOTIFICATION_ROLES = ('patient', 'doctor', 'admin')

ADMIN_CHANNEL = 'admin:all'

_ID_ALPHABET = string.ascii_lowercase + string.digits


def user_channel(user_id: int, role: str) -> str:
    return f"user:{int(user_id)}:{role}"


@dataclass
class Notification:
    id: str
    type: str
    title: str
    message: str
    user_id: int
    user_role: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=timezone.now)

    @property
    def channel(self) -> str:
        return user_channel(self.user_id, self.user_role)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'userId': self.user_id,
            'userRole': self.user_role,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
        }


def new_notification_id(prefix: str = 'notif') -> str:
    suffix = ''.join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def build_notification(*, type: str, title: str, message: str, user_id: int, user_role: str,
                       data: Optional[dict] = None, prefix: str = 'notif') -> Notification:
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"unknown notification type: {type}")
    if user_role not in NOTIFICATION_ROLES:
        raise ValueError(f"unknown notification role: {user_role}")
    return Notification(
        id=new_notification_id(prefix),
        type=type,
        title=title,
        message=message,
        user_id=int(user_id),
        user_role=user_role,
        data=data or {},
    )


Callback = Callable[[Notification], None]


class NotificationBus:
    """Registry of notification subscribers keyed by channel name."""

    def __init__(self, max_subscribers: Optional[int] = None):
        self._channels: Dict[str, List[Callback]] = {}
        self._lock = threading.Lock()
        self._max_subscribers = max_subscribers

    @property
    def max_subscribers(self) -> int:
        if self._max_subscribers is not None:
            return self._max_subscribers
        return getattr(settings, 'NOTIFY_MAX_SUBSCRIBERS', 100)

    def _subscribe(self, channel: str, callback: Callback) -> Callable[[], None]:
        with self._lock:
            callbacks = self._channels.setdefault(channel, [])
            callbacks.append(callback)
            count = len(callbacks)
        if count > self.max_subscribers:
            logger.warning("channel %s has %d subscribers (soft limit %d)", channel, count, self.max_subscribers)
        logger.debug("subscribed to %s (%d listeners)", channel, count)

        released = threading.Event()

        def unsubscribe() -> None:
            if released.is_set():
                return
            released.set()
            self._unsubscribe(channel, callback)

        return unsubscribe

    def _unsubscribe(self, channel: str, callback: Callback) -> None:
        with self._lock:
            callbacks = self._channels.get(channel)
            if not callbacks or callback not in callbacks:
                return
            callbacks.remove(callback)
            if not callbacks:
                del self._channels[channel]
        logger.debug("unsubscribed from %s", channel)

    def subscribe_user(self, user_id: int, role: str, callback: Callback) -> Callable[[], None]:
        return self._subscribe(user_channel(user_id, role), callback)

    def subscribe_admins(self, callback: Callback) -> Callable[[], None]:
        return self._subscribe(ADMIN_CHANNEL, callback)

    def _publish(self, channel: str, notification: Notification) -> int:
        with self._lock:
            callbacks = list(self._channels.get(channel, ()))
        delivered = 0
        for callback in callbacks:
            try:
                callback(notification)
            except Exception:
                logger.exception("notification subscriber on %s failed", channel)
                continue
            delivered += 1
        return delivered

    def emit(self, notification: Notification) -> int:
        """Fan ``notification`` out to current subscribers.

        Returns the number of callbacks that accepted it; zero means the
        notification was not observed by anyone.
        """
        delivered = self._publish(notification.channel, notification)
        if notification.user_role == 'admin':
            delivered += self._publish(ADMIN_CHANNEL, notification)
        logger.info("notification %s emitted to %s: %s (delivered=%d)",
                    notification.id, notification.channel, notification.title, delivered)
        return delivered

    def subscriber_count(self, channel: Optional[str] = None) -> int:
        with self._lock:
            if channel is not None:
                return len(self._channels.get(channel, ()))
            return sum(len(cbs) for cbs in self._channels.values())

    def channels(self) -> List[str]:
        with self._lock:
            return sorted(self._channels)

    def clear(self) -> None:
        with self._lock:
            self._channels.clear()


notification_bus = NotificationBus()
