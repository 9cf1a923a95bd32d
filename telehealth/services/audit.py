import logging
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from telehealth.models import AuditEvent

logger = logging.getLogger(__name__)

User = get_user_model()


def client_ip(request) -> Optional[str]:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return request.META.get('REMOTE_ADDR') or None


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[Any] = None, detail: Optional[Dict[str, Any]] = None,
               ip: Optional[str] = None) -> Optional[AuditEvent]:
    """Persist an audit event.

    Auditing must never break the operation being audited, so a failed
    write is logged and ``None`` is returned.
    """
    try:
        return AuditEvent.objects.create(
            user=user if getattr(user, 'is_authenticated', False) else None,
            action=action,
            object_type=object_type,
            object_id=str(object_id) if object_id is not None else None,
            detail=detail or {},
            ip=ip,
        )
    except Exception:
        logger.exception("failed to write audit event %s", action)
        return None


def serialize_event(event: AuditEvent) -> dict:
    return {
        'id': event.id,
        'userId': event.user_id,
        'action': event.action,
        'objectType': event.object_type,
        'objectId': event.object_id,
        'detail': event.detail,
        'ip': event.ip,
        'createdAt': event.created_at.isoformat(),
    }


def query_events(*, action=None, object_type=None, user_id=None):
    qs = AuditEvent.objects.all().order_by('-created_at', '-id')
    if action:
        qs = qs.filter(action=action)
    if object_type:
        qs = qs.filter(object_type=object_type)
    if user_id is not None:
        qs = qs.filter(user_id=user_id)
    return qs
