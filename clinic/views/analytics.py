"""
Dashboard counters.
"""
from __future__ import annotations

from datetime import timedelta

from django.db.models import Count
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import Appointment, Doctor, EmergencyCase, Patient, Prescription


def _counts(qs, field: str) -> dict:
    return {row[field]: row['n'] for row in qs.values(field).annotate(n=Count('id')).order_by()}


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def analytics_summary(request):
    """Totals for the dashboard cards plus status and severity breakdowns."""
    now = timezone.now()
    week_ago = now - timedelta(days=7)
    return Response({
        'ok': True,
        'patients': Patient.objects.count(),
        'doctors': Doctor.objects.count(),
        'availableDoctors': Doctor.objects.filter(availability_status__iexact='Available').count(),
        'prescriptions': Prescription.objects.count(),
        'aiPrescriptions': Prescription.objects.filter(is_ai_generated=True).count(),
        'prescriptionsThisWeek': Prescription.objects.filter(created_at__gte=week_ago).count(),
        'appointments': _counts(Appointment.objects.all(), 'status'),
        'upcomingAppointments': Appointment.objects.filter(status='scheduled', appointment_date__gte=now).count(),
        'emergencies': {
            'active': EmergencyCase.objects.exclude(status='completed').count(),
            'bySeverity': _counts(EmergencyCase.objects.all(), 'severity'),
            'byStatus': _counts(EmergencyCase.objects.all(), 'status'),
        },
        'generatedAt': now.isoformat(),
    })
