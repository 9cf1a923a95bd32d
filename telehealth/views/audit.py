from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from telehealth.permissions import IsAdminRole
from telehealth.serializers.audit import AuditQuerySerializer
from telehealth.services.audit import query_events, serialize_event


@api_view(['GET'])
@permission_classes([IsAdminRole])
def audit_logs(request):
    s = AuditQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    qs = query_events(action=vd.get('action'), object_type=vd.get('objectType'), user_id=vd.get('userId'))

    page, page_size = vd['page'], vd['pageSize']
    total = qs.count()
    start = (page - 1) * page_size
    data = [serialize_event(e) for e in qs[start:start + page_size]]
    return Response({
        'ok': True,
        'data': data,
        'pagination': {'total': total, 'page': page, 'pageSize': page_size},
    })
