"""
Patient records and their embedded vital signs.

Creates and updates run the input validator first; blocking errors come
back as HTTP 400 with ``errors``/``warnings``, advisory warnings ride
along with successful responses.
"""
from __future__ import annotations

import logging

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import validation_failed
from clinic.models import Doctor, Patient, PatientVitals
from clinic.permissions import IsAdminOrNotDelete
from clinic.serializers.clinic import ListQuerySerializer, PatientVitalsCreateSerializer, VitalsUpdateSerializer
from clinic.services.audit import log_action
from clinic.services.patients import (
    build_patient_fields, list_patients, patient_to_dict, update_vitals, vitals_reading_to_dict,
)
from clinic.services.prescriptions import list_prescriptions
from clinic.services.validation import validate_medical_data
from clinic.services.vitals import UnitSystem

logger = logging.getLogger(__name__)


def _get_patient(pk):
    return Patient.objects.filter(pk=pk).first()


def _not_found():
    return Response({'ok': False, 'detail': 'Patient not found'}, status=404)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def patients(request):
    if request.method == 'GET':
        q = ListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        page = q.validated_data.get('page', 1)
        page_size = q.validated_data.get('pageSize', 50)
        data, total = list_patients(q=q.validated_data.get('q'), page=page, page_size=page_size)
        return Response({'ok': True, 'data': data, 'pagination': {'total': total, 'page': page, 'pageSize': page_size}})

    fields, result = build_patient_fields(request.data)
    if not result.is_valid:
        return validation_failed(result)
    patient = Patient.objects.create(**fields)
    log_action(user=request.user, action='patient_create', object_type='patient', object_id=patient.id)
    logger.info('Patient %s created by %s', patient.id, request.user)
    return Response({'ok': True, 'data': patient_to_dict(patient), 'warnings': result.warnings}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrNotDelete])
def patient_detail(request, pk: int):
    patient = _get_patient(pk)
    if not patient:
        return _not_found()

    if request.method == 'GET':
        log_action(user=request.user, action='patient_view', object_type='patient', object_id=patient.id)
        return Response({'ok': True, 'data': patient_to_dict(patient)})

    if request.method == 'DELETE':
        patient.delete()
        log_action(user=request.user, action='patient_delete', object_type='patient', object_id=pk)
        return Response({'ok': True})

    fields, result = build_patient_fields(request.data, base=patient)
    if not result.is_valid:
        return validation_failed(result)
    for name, value in fields.items():
        setattr(patient, name, value)
    patient.save()
    log_action(user=request.user, action='patient_update', object_type='patient', object_id=patient.id,
               detail={'fields': sorted(k for k in request.data.keys() if k in fields)})
    return Response({'ok': True, 'data': patient_to_dict(patient), 'warnings': result.warnings})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def patient_vitals(request, pk: int):
    """Edit the embedded vital signs; BMI is derived from height and weight."""
    patient = _get_patient(pk)
    if not patient:
        return _not_found()
    s = VitalsUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    result = update_vitals(patient, s.validated_data['vital_signs'], UnitSystem(s.validated_data['units']))
    log_action(user=request.user, action='vitals_update', object_type='patient', object_id=patient.id)
    return Response({'ok': True, 'vital_signs': patient.vital_signs, 'warnings': result.warnings})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_prescriptions(request, pk: int):
    if not Patient.objects.filter(pk=pk).exists():
        return _not_found()
    data, total = list_prescriptions(patient_id=pk)
    return Response({'ok': True, 'data': data, 'total': total})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def patient_vitals_history(request, pk: int):
    patient = _get_patient(pk)
    if not patient:
        return _not_found()

    if request.method == 'GET':
        readings = PatientVitals.objects.filter(patient=patient)[:100]
        return Response({'ok': True, 'data': [vitals_reading_to_dict(v) for v in readings]})

    s = PatientVitalsCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    doctor_id = vd.pop('doctor_id', None)
    doctor = Doctor.objects.filter(pk=doctor_id).first() if doctor_id else None
    if doctor_id and doctor is None:
        return Response({'ok': False, 'detail': 'Doctor not found'}, status=404)

    reading = PatientVitals.objects.create(patient=patient, doctor=doctor, last_updated=timezone.now(), **vd)
    advisory = validate_medical_data({'vital_signs': vd})
    return Response({'ok': True, 'data': vitals_reading_to_dict(reading), 'warnings': advisory.warnings}, status=201)
