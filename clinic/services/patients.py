from typing import Any, Mapping, Optional

from django.db.models import Q

from clinic.models import Patient, PatientVitals
from clinic.services.validation import (
    ValidationResult, parse_date, sanitize_input, validate_medical_data, validate_patient_data,
)
from clinic.services.vitals import (
    UnitSystem, VitalField, fill_not_examined, normalize_vital_signs, recompute_bmi,
)

PATIENT_TEXT_FIELDS = (
    'first_name', 'last_name', 'email', 'phone', 'gender', 'address',
    'medical_history', 'room_number',
)
PATIENT_LIST_FIELDS = ('diagnosis', 'allergies', 'current_medications')


def paginate(qs, page: Optional[int], page_size: Optional[int]):
    total = qs.count()
    if page and page_size:
        start = (page - 1) * page_size
        qs = qs[start:start + page_size]
    return qs, total


def patient_to_dict(p: Patient) -> dict:
    return {
        'id': p.id,
        'first_name': p.first_name,
        'last_name': p.last_name,
        'name': p.full_name,
        'email': p.email,
        'phone': p.phone,
        'date_of_birth': p.date_of_birth.isoformat() if p.date_of_birth else None,
        'gender': p.gender,
        'address': p.address,
        'medical_history': p.medical_history,
        'room_number': p.room_number,
        'vital_signs': p.vital_signs or {},
        'diagnosis': p.diagnosis or [],
        'allergies': p.allergies or [],
        'current_medications': p.current_medications or [],
        'emergency_contact': p.emergency_contact or {},
        'created_at': p.created_at.isoformat() if p.created_at else None,
        'updated_at': p.updated_at.isoformat() if p.updated_at else None,
    }


def _string_list(value: Any) -> list[str]:
    # forms send "a, b" while the API sends ["a", "b"]
    if isinstance(value, str):
        value = value.split(',')
    if not isinstance(value, (list, tuple)):
        return []
    return [s for s in (sanitize_input(v) for v in value) if s]


def build_patient_fields(data: Mapping[str, Any], *, base: Optional[Patient] = None,
                         units: UnitSystem = UnitSystem.IMPERIAL) -> tuple[dict, ValidationResult]:
    """Validate ``data`` and convert it into model field values.

    With ``base`` only the supplied keys replace the stored ones; the
    merged record is what gets validated.
    """
    merged = patient_to_dict(base) if base is not None else {}
    merged.update({k: v for k, v in data.items() if k != 'id'})

    result = validate_patient_data(merged)
    medical = validate_medical_data(merged)
    result.errors.extend(medical.errors)
    result.warnings.extend(medical.warnings)
    if not result.is_valid:
        return {}, result

    fields = {f: sanitize_input(merged.get(f)) for f in PATIENT_TEXT_FIELDS}
    fields['date_of_birth'] = parse_date(merged.get('date_of_birth'))
    for f in PATIENT_LIST_FIELDS:
        fields[f] = _string_list(merged.get(f))
    contact = merged.get('emergency_contact')
    fields['emergency_contact'] = {k: sanitize_input(v) for k, v in contact.items()} if isinstance(contact, dict) else {}
    fields['vital_signs'] = normalize_vital_signs(merged.get('vital_signs'), units)
    return fields, result


def update_vitals(patient: Patient, supplied: Mapping[str, Any],
                  units: UnitSystem = UnitSystem.IMPERIAL) -> ValidationResult:
    """Merge edited vitals into the patient, derive BMI and save."""
    vitals = dict(patient.vital_signs or {})
    vitals.update({f.value: supplied[f.value] for f in VitalField if f.value in supplied})
    vitals = recompute_bmi(fill_not_examined(vitals), units)
    patient.vital_signs = vitals
    patient.save(update_fields=['vital_signs', 'updated_at'])
    return validate_medical_data({'vital_signs': vitals})


def list_patients(*, q: Optional[str] = None, page: Optional[int] = None, page_size: Optional[int] = None):
    qs = Patient.objects.all()
    if q:
        qs = qs.filter(Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(email__icontains=q))
    qs, total = paginate(qs, page, page_size)
    return [patient_to_dict(p) for p in qs], total


def vitals_reading_to_dict(v: PatientVitals) -> dict:
    return {
        'id': v.id,
        'patient_id': v.patient_id,
        'doctor_id': v.doctor_id,
        'heart_rate': v.heart_rate,
        'blood_pressure': v.blood_pressure,
        'temperature': v.temperature,
        'oxygen_saturation': v.oxygen_saturation,
        'respiratory_rate': v.respiratory_rate,
        'last_updated': v.last_updated.isoformat(),
    }
