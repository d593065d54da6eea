"""Liveness probe for load balancers and the dashboard status badge."""
import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

from clinic.services.ai import get_ai_client

logger = logging.getLogger(__name__)


def healthz(request):
    payload = {'vendor': connection.vendor, 'ai': get_ai_client().enabled}
    try:
        with connection.cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
    except DatabaseError as e:
        logger.error('Health check failed: %s', e)
        return JsonResponse({'ok': False, 'db': False, 'error': str(e), **payload}, status=503)
    return JsonResponse({'ok': True, 'db': bool(row and row[0] == 1), **payload})
