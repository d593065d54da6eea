"""
Prescriptions and their PDF documents.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.http import HttpResponse
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.exceptions import validation_failed
from clinic.models import Prescription
from clinic.permissions import IsAdminOrNotDelete, IsPrescriberOrReadOnly
from clinic.serializers.clinic import PrescriptionListQuerySerializer
from clinic.services.audit import log_action
from clinic.services.pdf import (
    DocumentRenderError, PrescriptionRecord, RenderTargetNotFound,
    prescription_filename, render_image_pdf, render_prescription_pdf,
)
from clinic.services.prescriptions import build_prescription_fields, list_prescriptions, prescription_to_dict

logger = logging.getLogger(__name__)


def _get(pk):
    return Prescription.objects.select_related('patient', 'doctor').filter(pk=pk).first()


def _not_found():
    return Response({'ok': False, 'detail': 'Prescription not found'}, status=404)


def _pdf_response(content: bytes, filename: str) -> HttpResponse:
    resp = HttpResponse(content, content_type='application/pdf')
    resp['Content-Disposition'] = f'attachment; filename="{filename}"'
    return resp


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPrescriberOrReadOnly])
def prescriptions(request):
    """List prescriptions (filter by ``patientId``/``doctorId``) or write a new one."""
    if request.method == 'GET':
        q = PrescriptionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        page = q.validated_data.get('page', 1)
        page_size = q.validated_data.get('pageSize', 50)
        data, total = list_prescriptions(
            patient_id=q.validated_data.get('patientId'),
            doctor_id=q.validated_data.get('doctorId'),
            page=page,
            page_size=page_size,
        )
        return Response({'ok': True, 'data': data, 'pagination': {'total': total, 'page': page, 'pageSize': page_size}})

    fields, result = build_prescription_fields(request.data)
    if not result.is_valid:
        return validation_failed(result)
    p = Prescription.objects.create(**fields)
    log_action(user=request.user, action='prescription_create', object_type='prescription', object_id=p.id,
               detail={'patient_id': p.patient_id, 'ai': p.is_ai_generated})
    return Response({'ok': True, 'data': prescription_to_dict(p), 'warnings': result.warnings}, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsPrescriberOrReadOnly, IsAdminOrNotDelete])
def prescription_detail(request, pk):
    p = _get(pk)
    if not p:
        return _not_found()
    if request.method == 'GET':
        return Response({'ok': True, 'data': prescription_to_dict(p)})
    if request.method == 'DELETE':
        p.delete()
        log_action(user=request.user, action='prescription_delete', object_type='prescription', object_id=pk)
        return Response({'ok': True})

    fields, result = build_prescription_fields(request.data, base=p)
    if not result.is_valid:
        return validation_failed(result)
    for name, value in fields.items():
        setattr(p, name, value)
    p.save()
    log_action(user=request.user, action='prescription_update', object_type='prescription', object_id=p.id)
    return Response({'ok': True, 'data': prescription_to_dict(p), 'warnings': result.warnings})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def prescription_pdf(request, pk):
    p = _get(pk)
    if not p:
        return _not_found()
    record = PrescriptionRecord.from_prescription(p)
    try:
        content = render_prescription_pdf(record)
    except DocumentRenderError as e:
        logger.exception('Error generating PDF for prescription %s', pk)
        return Response({'ok': False, 'detail': str(e)}, status=422)
    log_action(user=request.user, action='prescription_pdf', object_type='prescription', object_id=p.id)
    return _pdf_response(content, prescription_filename(record.patient_name))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def prescription_pdf_from_image(request, pk):
    """Tile an uploaded capture of the on-screen prescription into a PDF."""
    p = _get(pk)
    if not p:
        return _not_found()
    upload = request.FILES.get('image')
    if upload is not None:
        if upload.size > settings.UPLOAD_MAX_MB * 1024 * 1024:
            return Response({'ok': False, 'detail': 'Image is too large'}, status=413)
        if upload.content_type not in settings.ALLOWED_UPLOAD_TYPES:
            return Response({'ok': False, 'detail': 'Unsupported image type'}, status=415)
    try:
        content = render_image_pdf(upload)
    except RenderTargetNotFound as e:
        logger.error('Element not found for PDF generation (prescription %s)', pk)
        return Response({'ok': False, 'detail': str(e)}, status=404)
    except DocumentRenderError as e:
        logger.exception('Error generating PDF from image for prescription %s', pk)
        return Response({'ok': False, 'detail': str(e)}, status=422)
    return _pdf_response(content, prescription_filename(p.patient.full_name))
