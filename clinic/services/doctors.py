from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from django.db.models import Q

from clinic.models import Doctor
from clinic.services.patients import paginate
from clinic.services.validation import (
    ValidationResult, contains_dangerous_patterns, is_valid_email, is_valid_phone, sanitize_input,
)

DOCTOR_TEXT_FIELDS = (
    'first_name', 'last_name', 'email', 'phone', 'specialization', 'license_number',
    'qualifications', 'working_hours', 'bio', 'availability_status',
)


def doctor_to_dict(d: Doctor) -> dict:
    return {
        'id': d.id,
        'first_name': d.first_name,
        'last_name': d.last_name,
        'name': d.full_name,
        'email': d.email,
        'phone': d.phone,
        'specialization': d.specialization,
        'license_number': d.license_number,
        'years_of_experience': d.years_of_experience,
        'qualifications': d.qualifications,
        'working_hours': d.working_hours,
        'consultation_fee': str(d.consultation_fee) if d.consultation_fee is not None else None,
        'bio': d.bio,
        'availability_status': d.availability_status,
        'created_at': d.created_at.isoformat() if d.created_at else None,
    }


def _optional_number(value: Any, cast):
    if value in (None, ''):
        return None
    return cast(value)


def build_doctor_fields(data: Mapping[str, Any], *, base: Optional[Doctor] = None) -> tuple[dict, ValidationResult]:
    merged = doctor_to_dict(base) if base is not None else {}
    merged.update({k: v for k, v in data.items() if k != 'id'})
    result = ValidationResult()

    for key, label in (('first_name', 'first name'), ('last_name', 'last name')):
        value = merged.get(key)
        if not isinstance(value, str) or len(value.strip()) < 2:
            result.errors.append(f'Doctor {label} is required and must be at least 2 characters')
        elif contains_dangerous_patterns(value):
            result.errors.append(f'Doctor {label} contains invalid characters')
    if merged.get('email') and not is_valid_email(merged['email']):
        result.errors.append('Valid email address is required')
    if merged.get('phone') and not is_valid_phone(merged['phone']):
        result.warnings.append('Phone number format may be invalid - please verify')

    fields = {f: sanitize_input(merged.get(f)) for f in DOCTOR_TEXT_FIELDS}
    fields['availability_status'] = fields['availability_status'] or 'Available'
    try:
        fields['years_of_experience'] = _optional_number(merged.get('years_of_experience'), int)
        fields['consultation_fee'] = _optional_number(merged.get('consultation_fee'), lambda v: Decimal(str(v)))
    except (TypeError, ValueError, InvalidOperation):
        result.errors.append('Years of experience and consultation fee must be numbers')
    if not result.is_valid:
        return {}, result
    return fields, result


def list_doctors(*, q: Optional[str] = None, specialization: Optional[str] = None,
                 page: Optional[int] = None, page_size: Optional[int] = None) -> tuple[list[dict], int]:
    qs = Doctor.objects.all()
    if q:
        qs = qs.filter(Q(first_name__icontains=q) | Q(last_name__icontains=q))
    if specialization:
        qs = qs.filter(specialization__iexact=specialization)
    qs, total = paginate(qs, page, page_size)
    return [doctor_to_dict(d) for d in qs], total
