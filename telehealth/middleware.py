"""
Channels middleware that authenticates WebSocket connections by token.

Browsers cannot set an ``Authorization`` header on a WebSocket
handshake, so the token travels as ``?token=<key-or-jwt>``.  A header is
honoured too for non-browser clients.  When neither is present the
session user from ``AuthMiddlewareStack`` is kept.
"""
from urllib.parse import parse_qs

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser

from .authentication import resolve_token_user, token_from_header


def _extract_token(scope) -> str | None:
    query_string = scope.get('query_string', b'')
    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors='ignore')
    token = parse_qs(str(query_string)).get('token', [None])[0]
    if token:
        return token
    for name, value in scope.get('headers', []):
        if name == b'authorization':
            return token_from_header(value.decode(errors='ignore'))
    return None


class TokenAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        token = _extract_token(scope)
        if token:
            user = await database_sync_to_async(resolve_token_user)(token)
            scope = dict(scope, user=user or AnonymousUser())
        return await super().__call__(scope, receive, send)


def TokenAuthMiddlewareStack(inner):
    return AuthMiddlewareStack(TokenAuthMiddleware(inner))
