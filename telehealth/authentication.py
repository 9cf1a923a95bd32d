"""
Authentication helpers for token-based auth.

``TokenAuthentication`` is the DRF class configured for the JSON API.
:func:`resolve_token_user` is used where DRF does not run: the async
SSE stream and the WebSocket handshake, both of which may only carry a
``?token=`` query parameter because browsers cannot attach headers to
``EventSource``/``WebSocket`` requests.
"""
from __future__ import annotations

from typing import Optional

from django.contrib.auth import get_user_model
from rest_framework import authentication
from rest_framework.authtoken.models import Token
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

User = get_user_model()


class TokenAuthentication(authentication.TokenAuthentication):
    """Custom token authentication using the ``Token`` keyword.

    Kept as a separate class to give settings a stable import path.
    """

    keyword = 'Token'


def token_from_header(value: Optional[str]) -> Optional[str]:
    """Extract the credential from ``Token <key>`` or ``Bearer <jwt>``."""
    if not value:
        return None
    parts = value.split()
    if len(parts) != 2 or parts[0] not in ('Token', 'Bearer'):
        return None
    return parts[1]


def resolve_token_user(raw: Optional[str]):
    """Return the active user for a DRF token key or a JWT access token."""
    if not raw:
        return None
    try:
        token = Token.objects.select_related('user').get(key=raw)
        user = token.user
    except Token.DoesNotExist:
        try:
            access = AccessToken(raw)
        except TokenError:
            return None
        user = User.objects.filter(id=access.get('user_id')).first()
    if user is None or not user.is_active:
        return None
    return user
