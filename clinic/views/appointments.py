from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment, Doctor, Patient
from clinic.serializers.clinic import AppointmentCreateSerializer, AppointmentListQuerySerializer
from clinic.services.patients import paginate


def _to_dict(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patient_id': a.patient_id,
        'doctor_id': a.doctor_id,
        'patient_name': a.patient.full_name,
        'doctor_name': a.doctor.full_name,
        'appointment_date': a.appointment_date.isoformat(),
        'reason': a.reason,
        'status': a.status,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments(request):
    if request.method == 'GET':
        q = AppointmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        qs = Appointment.objects.select_related('patient', 'doctor')
        if vd.get('patientId'):
            qs = qs.filter(patient_id=vd['patientId'])
        if vd.get('doctorId'):
            qs = qs.filter(doctor_id=vd['doctorId'])
        if vd.get('status'):
            qs = qs.filter(status=vd['status'])
        page = vd.get('page', 1)
        page_size = vd.get('pageSize', 50)
        qs, total = paginate(qs, page, page_size)
        return Response({'ok': True, 'data': [_to_dict(a) for a in qs],
                         'pagination': {'total': total, 'page': page, 'pageSize': page_size}})

    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    patient = Patient.objects.filter(pk=vd['patient_id']).first()
    doctor = Doctor.objects.filter(pk=vd['doctor_id']).first()
    if not patient or not doctor:
        return Response({'ok': False, 'detail': 'Patient or doctor not found'}, status=404)
    a = Appointment.objects.create(
        patient=patient, doctor=doctor,
        appointment_date=vd['appointment_date'],
        reason=vd.get('reason', ''),
        status=vd['status'],
    )
    return Response({'ok': True, 'data': _to_dict(a)}, status=201)
