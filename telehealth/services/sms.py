import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class SmsNotConfigured(RuntimeError):
    pass


def send_sms(to: str, message: str) -> dict:
    """POST a text message to the configured HTTP gateway."""
    url = settings.SMS_GATEWAY_URL
    if not url:
        raise SmsNotConfigured('SMS gateway is not configured')
    if not to:
        raise ValueError('recipient phone number is empty')
    headers = {}
    if settings.SMS_GATEWAY_TOKEN:
        headers['Authorization'] = f"Bearer {settings.SMS_GATEWAY_TOKEN}"
    r = requests.post(
        url,
        json={'to': to, 'from': settings.SMS_SENDER, 'message': message},
        headers=headers,
        timeout=settings.SMS_TIMEOUT,
    )
    r.raise_for_status()
    logger.debug("sms to %s accepted by gateway (%s)", to, r.status_code)
    try:
        return r.json()
    except ValueError:
        return {}
