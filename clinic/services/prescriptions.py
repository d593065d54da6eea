from typing import Any, Mapping, Optional

from clinic.models import Doctor, Patient, Prescription
from clinic.services.patients import paginate
from clinic.services.validation import ValidationResult, sanitize_input, validate_prescription_data

DETAIL_KEYS = ('generic_name', 'route', 'warnings', 'interactions', 'cost_estimate', 'confidence_score')


def prescription_to_dict(p: Prescription) -> dict:
    return {
        'id': str(p.id),
        'patient_id': p.patient_id,
        'doctor_id': p.doctor_id,
        'patient_name': p.patient.full_name,
        'doctor_name': p.doctor.full_name,
        'doctor_specialization': p.doctor.specialization,
        'medication': p.medication,
        'dosage': p.dosage,
        'frequency': p.frequency,
        'duration': p.duration,
        'instructions': p.instructions,
        'medication_details': p.medication_details,
        'is_ai_generated': p.is_ai_generated,
        'created_at': p.created_at.isoformat() if p.created_at else None,
        'updated_at': p.updated_at.isoformat() if p.updated_at else None,
    }


def clean_medication_details(details: Any) -> Optional[dict]:
    if not isinstance(details, dict):
        return None
    cleaned = {}
    for key in DETAIL_KEYS:
        if key not in details:
            continue
        value = details[key]
        if key in ('warnings', 'interactions'):
            value = [sanitize_input(v) for v in value] if isinstance(value, list) else []
        elif isinstance(value, str):
            value = sanitize_input(value)
        cleaned[key] = value
    return cleaned


def build_prescription_fields(data: Mapping[str, Any], *,
                              base: Optional[Prescription] = None) -> tuple[dict, ValidationResult]:
    merged = {}
    if base is not None:
        merged = prescription_to_dict(base)
    merged.update({k: v for k, v in data.items() if k != 'id'})

    result = validate_prescription_data(merged)
    patient = doctor = None
    if merged.get('patient_id'):
        patient = Patient.objects.filter(pk=merged['patient_id']).first() if str(merged['patient_id']).isdigit() else None
        if patient is None:
            result.errors.append('Patient not found')
    if merged.get('doctor_id'):
        doctor = Doctor.objects.filter(pk=merged['doctor_id']).first() if str(merged['doctor_id']).isdigit() else None
        if doctor is None:
            result.errors.append('Doctor not found')
    if not result.is_valid:
        return {}, result

    fields = {
        'patient': patient,
        'doctor': doctor,
        'medication': sanitize_input(merged['medication']),
        'dosage': sanitize_input(merged['dosage']),
        'frequency': sanitize_input(merged['frequency']),
        'duration': sanitize_input(merged['duration']),
        'instructions': sanitize_input(merged.get('instructions')) or None,
        'medication_details': clean_medication_details(merged.get('medication_details')),
        'is_ai_generated': bool(merged.get('is_ai_generated')),
    }
    return fields, result


def list_prescriptions(*, patient_id: Optional[int] = None, doctor_id: Optional[int] = None,
                       page: Optional[int] = None, page_size: Optional[int] = None) -> tuple[list[dict], int]:
    qs = Prescription.objects.select_related('patient', 'doctor')
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    qs, total = paginate(qs, page, page_size)
    return [prescription_to_dict(p) for p in qs], total
