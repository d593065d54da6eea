"""
Consultation session endpoints.

Each AI step answers 200 with the parsed model output, or 502 with a
conservative fallback in ``data`` when the model failed.  Steps on a
closed session answer 409.
"""
from __future__ import annotations

import logging

from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import validation_failed
from clinic.models import ConsultationSession, Doctor, Patient
from clinic.permissions import IsPrescriberOrReadOnly
from clinic.serializers.clinic import (
    ConsultationCreateSerializer, ConsultationDiagnosisSerializer, ConsultationListQuerySerializer,
    ConsultationSymptomsSerializer,
)
from clinic.services.ai import get_ai_client
from clinic.services.audit import log_action
from clinic.services.consultations import (
    ConsultationClosed, add_symptoms, close_session, generate_prescription, list_sessions,
    session_stats, session_to_dict, set_diagnosis, start_session,
)
from clinic.services.validation import validate_symptoms_input
from clinic.throttles import AIStepRateThrottle

logger = logging.getLogger(__name__)


def _get_session(pk):
    return ConsultationSession.objects.select_related('patient').filter(pk=pk).first()


def _not_found():
    return Response({'ok': False, 'detail': 'Consultation session not found'}, status=404)


def _closed():
    return Response({'ok': False, 'detail': 'Consultation session is closed'}, status=409)


def _step_response(outcome, warnings_key='red_flags', extra_warnings=()):
    flagged = outcome.data.get(warnings_key)
    body = {
        'ok': outcome.success,
        'data': outcome.data,
        'confidence': outcome.data.get('confidence'),
        'reasoning': outcome.data.get('clinical_reasoning'),
        'warnings': (flagged if isinstance(flagged, list) else []) + list(extra_warnings),
        'session': session_to_dict(outcome.session),
    }
    if not outcome.success:
        body['detail'] = outcome.error
        return Response(body, status=502)
    return Response(body)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPrescriberOrReadOnly])
@throttle_classes([AIStepRateThrottle])
def consultations(request):
    if request.method == 'GET':
        q = ConsultationListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        page = vd.get('page', 1)
        page_size = vd.get('pageSize', 50)
        data, total = list_sessions(status=vd.get('status'), patient_id=vd.get('patientId'),
                                    page=page, page_size=page_size)
        return Response({'ok': True, 'data': data, 'pagination': {'total': total, 'page': page, 'pageSize': page_size}})

    s = ConsultationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = Patient.objects.filter(pk=s.validated_data['patient_id']).first()
    if not patient:
        return Response({'ok': False, 'detail': 'Patient not found'}, status=404)
    doctor = None
    if s.validated_data.get('doctor_id'):
        doctor = Doctor.objects.filter(pk=s.validated_data['doctor_id']).first()
        if not doctor:
            return Response({'ok': False, 'detail': 'Doctor not found'}, status=404)

    session = start_session(patient, doctor=doctor, user=request.user, client=get_ai_client())
    log_action(user=request.user, action='consultation_start', object_type='consultation', object_id=session.id,
               detail={'patient_id': patient.id})
    return Response({'ok': True, 'data': session_to_dict(session), 'stats': session_stats(session)}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def consultation_detail(request, pk):
    session = _get_session(pk)
    if not session:
        return _not_found()
    return Response({'ok': True, 'data': session_to_dict(session), 'stats': session_stats(session)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPrescriberOrReadOnly])
@throttle_classes([AIStepRateThrottle])
def consultation_symptoms(request, pk):
    session = _get_session(pk)
    if not session:
        return _not_found()
    s = ConsultationSymptomsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    symptoms = s.validated_data['symptoms']
    check = validate_symptoms_input(', '.join(symptoms))
    if not check.is_valid:
        return validation_failed(check)
    try:
        outcome = add_symptoms(session, symptoms, client=get_ai_client())
    except ConsultationClosed:
        return _closed()
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    log_action(user=request.user, action='consultation_symptoms', object_type='consultation',
               object_id=session.id, detail={'count': len(symptoms)})
    return _step_response(outcome, extra_warnings=check.warnings)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPrescriberOrReadOnly])
@throttle_classes([AIStepRateThrottle])
def consultation_diagnosis(request, pk):
    session = _get_session(pk)
    if not session:
        return _not_found()
    s = ConsultationDiagnosisSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        outcome = set_diagnosis(session, s.validated_data['diagnosis'], client=get_ai_client())
    except ConsultationClosed:
        return _closed()
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    log_action(user=request.user, action='consultation_diagnosis', object_type='consultation',
               object_id=session.id)
    return _step_response(outcome)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPrescriberOrReadOnly])
@throttle_classes([AIStepRateThrottle])
def consultation_prescription(request, pk):
    session = _get_session(pk)
    if not session:
        return _not_found()
    try:
        outcome = generate_prescription(session, client=get_ai_client())
    except ConsultationClosed:
        return _closed()
    log_action(user=request.user, action='consultation_prescription', object_type='consultation',
               object_id=session.id)
    return _step_response(outcome, warnings_key='drug_interactions')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPrescriberOrReadOnly])
def consultation_close(request, pk):
    session = _get_session(pk)
    if not session:
        return _not_found()
    stats = close_session(session)
    log_action(user=request.user, action='consultation_close', object_type='consultation', object_id=session.id,
               detail={'durationSeconds': stats['durationSeconds']})
    return Response({'ok': True, 'stats': stats})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def consultation_stats(request, pk):
    session = _get_session(pk)
    if not session:
        return _not_found()
    return Response({'ok': True, 'stats': session_stats(session)})
