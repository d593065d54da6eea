"""
AI assistant endpoints backed by :mod:`clinic.services.ai`.

Failures of the remote model are logged and reported as HTTP 502 with a
generic message; nothing is retried.
"""
from __future__ import annotations

import logging

from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import validation_failed
from clinic.models import Patient
from clinic.serializers.clinic import ChatSerializer, RecommendationRequestSerializer
from clinic.services.ai import AIServiceError, get_ai_client
from clinic.services.audit import log_action
from clinic.services.validation import sanitize_input, validate_symptoms_input
from clinic.throttles import AIRateThrottle

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AIRateThrottle])
def ai_chat(request):
    s = ChatSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        reply = get_ai_client().chat(sanitize_input(s.validated_data['message']))
    except AIServiceError:
        logger.exception('AI chat failed')
        return Response({'ok': False, 'detail': 'Failed to get AI response, please try again'}, status=502)
    return Response({'ok': True, 'reply': reply})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AIRateThrottle])
def prescription_recommendations(request):
    s = RecommendationRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    check = validate_symptoms_input(vd['symptoms'])
    if not check.is_valid:
        return validation_failed(check)

    context = {
        'symptoms': [x for x in (sanitize_input(t) for t in vd['symptoms'].split(',')) if x],
        'diagnosis': sanitize_input(vd.get('diagnosis')),
        'severity': vd.get('severity'),
    }
    if vd.get('patient_id'):
        patient = Patient.objects.filter(pk=vd['patient_id']).first()
        if not patient:
            return Response({'ok': False, 'detail': 'Patient not found'}, status=404)
        context.update({
            'patient_history': patient.medical_history,
            'current_medications': patient.current_medications,
            'allergies': patient.allergies,
            'vital_signs': patient.vital_signs,
        })
        log_action(user=request.user, action='ai_recommendation', object_type='patient', object_id=patient.id)

    try:
        data = get_ai_client().prescription_recommendations(context)
    except AIServiceError:
        logger.exception('AI prescription recommendation failed')
        return Response({'ok': False, 'detail': 'Failed to generate prescription recommendations, please try again'},
                        status=502)
    return Response({'ok': True, 'data': data, 'warnings': check.warnings})
