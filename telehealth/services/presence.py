from typing import List

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache

User = get_user_model()


def _key(doctor_id: int) -> str:
    return f"doctor:online:{int(doctor_id)}"


def set_doctor_online(doctor_id: int) -> None:
    cache.set(_key(doctor_id), '1', timeout=settings.DOCTOR_ONLINE_TTL)


def is_doctor_online(doctor_id: int) -> bool:
    return cache.get(_key(doctor_id)) is not None


def get_online_doctors() -> List[int]:
    """Ids of active doctors whose heartbeat has not expired."""
    ids = list(
        User.objects.filter(role=User.ROLE_DOCTOR, is_active=True).order_by('id').values_list('id', flat=True)
    )
    if not ids:
        return []
    present = cache.get_many([_key(i) for i in ids])
    return [i for i in ids if _key(i) in present]
