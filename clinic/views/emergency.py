import logging

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import EmergencyCase
from clinic.serializers.clinic import (
    EmergencyCaseCreateSerializer, EmergencyListQuerySerializer, EmergencyStatusSerializer,
)
from clinic.services.audit import log_action
from clinic.services.patients import paginate

logger = logging.getLogger(__name__)


def _to_dict(e: EmergencyCase) -> dict:
    return {
        'id': e.id,
        'patient_name': e.patient_name,
        'location': e.location,
        'emergency_type': e.emergency_type,
        'severity': e.severity,
        'status': e.status,
        'time_reported': e.time_reported.isoformat(),
        'estimated_arrival': e.estimated_arrival.isoformat() if e.estimated_arrival else None,
        'ambulance_id': e.ambulance_id,
        'description': e.description,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def emergency_cases(request):
    if request.method == 'GET':
        q = EmergencyListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        qs = EmergencyCase.objects.all()
        if vd.get('status'):
            qs = qs.filter(status=vd['status'])
        if vd.get('severity'):
            qs = qs.filter(severity=vd['severity'])
        page = vd.get('page', 1)
        page_size = vd.get('pageSize', 50)
        qs, total = paginate(qs, page, page_size)
        return Response({'ok': True, 'data': [_to_dict(e) for e in qs],
                         'pagination': {'total': total, 'page': page, 'pageSize': page_size}})

    s = EmergencyCaseCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    case = EmergencyCase.objects.create(time_reported=timezone.now(), **s.validated_data)
    logger.warning('Emergency %s (%s) reported for %s', case.emergency_type, case.severity, case.patient_name)
    log_action(user=request.user, action='emergency_create', object_type='emergency', object_id=case.id)
    return Response({'ok': True, 'data': _to_dict(case)}, status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def emergency_status(request, pk: int):
    case = EmergencyCase.objects.filter(pk=pk).first()
    if not case:
        return Response({'ok': False, 'detail': 'Emergency case not found'}, status=404)
    s = EmergencyStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    previous = case.status
    case.status = s.validated_data['status']
    case.save(update_fields=['status'])
    log_action(user=request.user, action='emergency_status', object_type='emergency', object_id=case.id,
               detail={'from': previous, 'to': case.status})
    return Response({'ok': True, 'data': _to_dict(case)})
