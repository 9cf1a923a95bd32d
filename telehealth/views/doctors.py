from django.conf import settings
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from telehealth.permissions import IsDoctorRole
from telehealth.services.presence import get_online_doctors, set_doctor_online


@api_view(['POST'])
@permission_classes([IsDoctorRole])
def doctor_heartbeat(request):
    """Refresh the caller's online flag; doctors send this periodically."""
    set_doctor_online(request.user.id)
    return Response({'ok': True, 'message': 'Online status updated', 'ttl': settings.DOCTOR_ONLINE_TTL})


@api_view(['GET'])
@permission_classes([AllowAny])
def online_doctors(request):
    ids = get_online_doctors()
    return Response({'onlineDoctors': ids, 'total': len(ids)})
