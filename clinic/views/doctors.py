from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import validation_failed
from clinic.models import Doctor
from clinic.permissions import IsAdminOrNotDelete
from clinic.serializers.clinic import DoctorListQuerySerializer
from clinic.services.audit import log_action
from clinic.services.doctors import build_doctor_fields, doctor_to_dict, list_doctors


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def doctors(request):
    """List doctors (``q``, ``specialization``, ``page``, ``pageSize``) or add one."""
    if request.method == 'GET':
        q = DoctorListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        page = q.validated_data.get('page', 1)
        page_size = q.validated_data.get('pageSize', 50)
        data, total = list_doctors(
            q=q.validated_data.get('q'),
            specialization=q.validated_data.get('specialization'),
            page=page,
            page_size=page_size,
        )
        return Response({'ok': True, 'data': data, 'pagination': {'total': total, 'page': page, 'pageSize': page_size}})

    fields, result = build_doctor_fields(request.data)
    if not result.is_valid:
        return validation_failed(result)
    doctor = Doctor.objects.create(**fields)
    log_action(user=request.user, action='doctor_create', object_type='doctor', object_id=doctor.id)
    return Response({'ok': True, 'data': doctor_to_dict(doctor), 'warnings': result.warnings}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrNotDelete])
def doctor_detail(request, pk: int):
    doctor = Doctor.objects.filter(pk=pk).first()
    if not doctor:
        return Response({'ok': False, 'detail': 'Doctor not found'}, status=404)
    if request.method == 'GET':
        return Response({'ok': True, 'data': doctor_to_dict(doctor)})
    if request.method == 'DELETE':
        doctor.delete()
        log_action(user=request.user, action='doctor_delete', object_type='doctor', object_id=pk)
        return Response({'ok': True})

    fields, result = build_doctor_fields(request.data, base=doctor)
    if not result.is_valid:
        return validation_failed(result)
    for name, value in fields.items():
        setattr(doctor, name, value)
    doctor.save()
    log_action(user=request.user, action='doctor_update', object_type='doctor', object_id=doctor.id)
    return Response({'ok': True, 'data': doctor_to_dict(doctor), 'warnings': result.warnings})
