"""
Authentication views.

Login issues both a DRF token and a JWT pair so that browser clients can
open the notification stream and the signaling socket with ``?token=``.
Kept apart from ``telehealth.authentication`` to avoid circular imports
when DRF initialises its authentication classes.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from telehealth.serializers.auth import LoginSerializer
from telehealth.services.audit import client_ip, log_action


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']
    ip = client_ip(request)

    user = authenticate(request, username=username, password=password)
    if not user:
        # only the username is recorded for failed attempts
        log_action(user=None, action='login', object_type='user', ip=ip,
                   detail={'result': 'fail', 'username': username})
        return Response({'ok': False, 'detail': 'Invalid username or password'}, status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id, ip=ip,
               detail={'result': 'ok'})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)

    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': {
            'id': user.id,
            'username': user.username,
            'name': user.display_name,
            'role': user.role,
        },
    }, status=200)

# ScopedRateThrottle reads throttle_scope from the APIView instance
login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    resp = TokenRefreshView.as_view()(request._request)
    data = dict(resp.data)
    if 'access' in data:
        data['jwt_access'] = data.pop('access')
    return Response(data, status=resp.status_code)
