"""
WSGI config for the clinic project.

It exposes the WSGI callable as a module-level variable named ``application``.
Streaming notifications and the signaling WebSocket need the ASGI entrypoint
(``clinic.asgi``); WSGI only serves the plain JSON endpoints.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinic.settings')

application = get_wsgi_application()
