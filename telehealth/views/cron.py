import logging
import secrets

from django.conf import settings
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from telehealth.services.reminders import dispatch_due_reminders

logger = logging.getLogger(__name__)


def _cron_authorized(request) -> bool:
    secret = settings.CRON_SECRET
    if not secret:
        return False
    header = request.META.get('HTTP_AUTHORIZATION', '')
    return secrets.compare_digest(header.encode(), f"Bearer {secret}".encode())


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def send_reminders_view(request):
    """Process due reminders; called by an external scheduler."""
    if not _cron_authorized(request):
        return Response({'success': False, 'error': 'Unauthorized'}, status=401)
    try:
        result = dispatch_due_reminders()
    except Exception:
        logger.exception("reminder batch crashed")
        return Response({'success': False, 'error': 'Failed to process reminders'}, status=500)
    return Response({'success': True, **result.as_dict()})
