"""
Admin action that fills every patient with synthesized demo vitals.
"""
from __future__ import annotations

import logging
import random

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Patient
from clinic.permissions import IsAdminRole
from clinic.services.audit import log_action
from clinic.services.synthesizer import VitalSignSynthesizer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def update_vitals(request):
    """Overwrite vitals, diagnosis, medications, allergies and emergency contact.

    An optional integer ``seed`` makes the run reproducible.
    """
    seed = request.data.get('seed')
    try:
        rng = random.Random(int(seed)) if seed not in (None, '') else random.Random()
    except (TypeError, ValueError):
        return Response({'ok': False, 'detail': 'seed must be an integer'}, status=400)
    synth = VitalSignSynthesizer(rng)

    updated = 0
    for patient in Patient.objects.order_by('id'):
        for name, value in synth.patient_update().items():
            setattr(patient, name, value)
        patient.save()
        updated += 1
    logger.info('Synthesized vitals for %d patients', updated)
    log_action(user=request.user, action='vitals_synthesize', object_type='patient', detail={'count': updated})
    return Response({'ok': True, 'updated': updated})
