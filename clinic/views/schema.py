from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsAdminRole
from clinic.services.schema import inspect_prescriptions_table, inspect_schema


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def check_db_schema(request):
    return Response({'ok': True, **inspect_schema()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def check_prescriptions_table(request):
    info = inspect_prescriptions_table()
    if not info['tableExists']:
        return Response({'ok': False, 'detail': 'Prescriptions table does not exist', **info}, status=404)
    return Response({'ok': True, **info})
