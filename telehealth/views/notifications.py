"""
Notification endpoints.

``notification_stream`` is a plain async Django view returning a
Server-Sent Events stream; DRF does not support streaming async views,
so it authenticates the token itself.  The send and emergency endpoints
are ordinary DRF function views.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections import deque

from asgiref.sync import sync_to_async
from django.conf import settings
from django.http import HttpResponse, StreamingHttpResponse
from django.views.decorators.http import require_GET
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from telehealth.authentication import resolve_token_user, token_from_header
from telehealth.permissions import IsDoctorOrAdmin
from telehealth.realtime.bus import build_notification, notification_bus
from telehealth.serializers.notifications import EmergencyCallSerializer, NotificationSendSerializer
from telehealth.services.audit import client_ip, log_action
from telehealth.services.notifications import notify_emergency_call

logger = logging.getLogger(__name__)

KEEP_ALIVE = ': keep-alive\n\n'
_SEEN_IDS = 256


def sse_data(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _stream_user(request):
    token = request.GET.get('token') or token_from_header(request.META.get('HTTP_AUTHORIZATION'))
    return resolve_token_user(token)


async def event_stream(user_id: int, role: str, keepalive: float | None = None):
    """Yield SSE frames for one connected client until it goes away.

    Bus callbacks may fire from any thread, so they hand notifications to
    the event loop with ``call_soon_threadsafe``.
    """
    if keepalive is None:
        keepalive = settings.NOTIFY_KEEPALIVE_SECONDS
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def deliver(notification):
        loop.call_soon_threadsafe(queue.put_nowait, notification)

    unsubscribes = [notification_bus.subscribe_user(user_id, role, deliver)]
    if role == 'admin':
        unsubscribes.append(notification_bus.subscribe_admins(deliver))
    logger.info("notification stream opened for user %s (%s)", user_id, role)

    seen: deque = deque(maxlen=_SEEN_IDS)
    try:
        yield sse_data({
            'type': 'connected',
            'message': 'Real-time notifications connected',
            'userId': user_id,
            'role': role,
        })
        while True:
            try:
                notification = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield KEEP_ALIVE
                continue
            # an admin addressed directly hears it on both channels
            if notification.id in seen:
                continue
            seen.append(notification.id)
            yield sse_data(notification.to_dict())
    finally:
        for unsubscribe in unsubscribes:
            unsubscribe()
        logger.info("notification stream closed for user %s (%s)", user_id, role)


@require_GET
async def notification_stream(request):
    user = await sync_to_async(_stream_user)(request)
    if user is None:
        return HttpResponse('Unauthorized', status=401, content_type='text/plain')
    response = StreamingHttpResponse(event_stream(user.id, user.role), content_type='text/event-stream')
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response


@api_view(['POST'])
@permission_classes([IsDoctorOrAdmin])
def notification_send(request):
    s = NotificationSendSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    notification = build_notification(
        type=vd['type'],
        title=vd['title'],
        message=vd['message'],
        user_id=vd['userId'],
        user_role=vd['userRole'],
        data=vd.get('data') or {},
    )
    delivered = notification_bus.emit(notification)

    log_action(user=request.user, action='notification_send', object_type='notification',
               object_id=notification.id, ip=client_ip(request),
               detail={'to': notification.channel, 'type': notification.type, 'delivered': delivered})

    return Response({
        'ok': True,
        'message': 'Notification sent',
        'notificationId': notification.id,
        'delivered': delivered,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def emergency_call(request):
    """Raise an emergency alert to every connected administrator."""
    s = EmergencyCallSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    notification = notify_emergency_call(request.user.display_name, vd['severity'], vd['symptoms'])

    log_action(user=request.user, action='emergency_call', object_type='notification',
               object_id=notification.id, ip=client_ip(request),
               detail={'severity': vd['severity']})

    return Response({'ok': True, 'notificationId': notification.id}, status=201)
