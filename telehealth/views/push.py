"""
Web Push subscription management and admin broadcast.

Subscriptions always belong to the calling user; a client cannot
register an endpoint for somebody else.
"""
from django.conf import settings
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from telehealth.permissions import IsAdminRole
from telehealth.serializers.push import PushSendSerializer, PushSubscribeSerializer, PushUnsubscribeSerializer
from telehealth.services import push
from telehealth.services.audit import client_ip, log_action


def _not_configured():
    return Response({'ok': False, 'error': {'code': 'push_not_configured',
                                            'message': 'Web push is not configured'}}, status=503)


class _SubscribePermission(IsAuthenticated):
    # the VAPID public key is needed before the browser can subscribe
    def has_permission(self, request, view):
        return request.method == 'GET' or super().has_permission(request, view)


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([_SubscribePermission])
def push_subscribe(request):
    if request.method == 'GET':
        if not push.is_configured():
            return _not_configured()
        return Response({'ok': True, 'publicKey': settings.VAPID_PUBLIC_KEY})

    if request.method == 'DELETE':
        s = PushUnsubscribeSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        removed = push.remove_subscription(request.user, s.validated_data['endpoint'])
        return Response({'ok': True, 'removed': removed})

    s = PushSubscribeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    sub = s.validated_data['subscription']
    _, created = push.save_subscription(request.user, sub['endpoint'], sub['keys'])
    log_action(user=request.user, action='push_subscribe', object_type='push_subscription',
               ip=client_ip(request), detail={'created': created})
    return Response({'ok': True, 'message': 'Subscription saved'}, status=201 if created else 200)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def push_unsubscribe(request):
    s = PushUnsubscribeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    removed = push.remove_subscription(request.user, s.validated_data['endpoint'])
    return Response({'ok': True, 'removed': removed})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def push_send(request):
    """Broadcast a push message to the listed users, or to every subscriber."""
    if not push.is_configured():
        return _not_configured()
    s = PushSendSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    payload = push.push_payload(vd['title'], vd['body'], tag=vd['tag'], url=vd['url'])
    result = push.send_to_users(vd.get('userIds'), payload)

    log_action(user=request.user, action='push_send', object_type='push', ip=client_ip(request),
               detail=result.as_dict())
    return Response({'ok': True, **result.as_dict()})
