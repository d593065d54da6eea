"""
Rule-based validation of user-supplied clinical data.

Every ``validate_*`` function is stateless and returns a
:class:`ValidationResult`.  ``errors`` block persistence, ``warnings``
are advisory and travel back to the client next to a successful payload.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

SANITIZE_MAX_LENGTH = 1000

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_RE = re.compile(r'^[+]?[1-9]\d{0,15}$')
PHONE_STRIP_RE = re.compile(r'[\s\-()]')
SPECIAL_CHARS_RE = re.compile(r'[<>{}\[\]\\/]')
DANGEROUS_PATTERNS = [
    re.compile(r'<script', re.IGNORECASE),
    re.compile(r'javascript:', re.IGNORECASE),
    re.compile(r'on\w+\s*=', re.IGNORECASE),
    re.compile(r'data:text/html', re.IGNORECASE),
    re.compile(r'vbscript:', re.IGNORECASE),
]
DOSAGE_RE = re.compile(
    r'^\d+(\.\d+)?\s*(mg|ml|g|tablet|capsule|unit)s?'
    r'(\s+(once|twice|three times|four times)\s+(daily|weekly|monthly))?$',
    re.IGNORECASE,
)
SANITIZE_STRIP_RE = re.compile(r'[<>\'"]')

HEART_RATE_RANGE = (30, 200)
TEMPERATURE_RANGE = (95, 110)
WEIGHT_RANGE = (50, 500)


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict:
        return {'isValid': self.is_valid, 'errors': list(self.errors), 'warnings': list(self.warnings)}


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and bool(EMAIL_RE.fullmatch(email))


def is_valid_phone(phone: Any) -> bool:
    """Accept 10 to 16 digits with an optional leading ``+``.

    Spaces, dashes and parentheses are ignored.
    """
    if not isinstance(phone, str):
        return False
    clean = PHONE_STRIP_RE.sub('', phone)
    return bool(PHONE_RE.fullmatch(clean)) and len(clean) >= 10


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        return None


def is_valid_date(value: Any) -> bool:
    return parse_date(value) is not None


def calculate_age(date_of_birth: Any, today: Optional[date] = None) -> Optional[int]:
    """Whole years between ``date_of_birth`` and ``today``.

    The birthday itself counts as completed; the day before does not.
    """
    born = parse_date(date_of_birth)
    if born is None:
        return None
    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def contains_special_characters(text: Any) -> bool:
    return isinstance(text, str) and bool(SPECIAL_CHARS_RE.search(text))


def contains_dangerous_patterns(text: Any) -> bool:
    if not isinstance(text, str):
        return False
    return any(p.search(text) for p in DANGEROUS_PATTERNS)


def is_valid_dosage(dosage: Any) -> bool:
    return isinstance(dosage, str) and bool(DOSAGE_RE.fullmatch(dosage.strip()))


def sanitize_input(text: Any) -> str:
    """Drop angle brackets and quotes, trim, cap at 1000 characters.

    The result is a fixed point: sanitizing it again changes nothing.
    """
    if not text:
        return ''
    cleaned = SANITIZE_STRIP_RE.sub('', str(text)).strip()
    return cleaned[:SANITIZE_MAX_LENGTH].rstrip()


def _text_ok(value: Any, min_length: int = 1) -> bool:
    return isinstance(value, str) and len(value.strip()) >= min_length


def _number(value: Any) -> Optional[float]:
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------
def validate_patient_data(data: Mapping[str, Any], today: Optional[date] = None) -> ValidationResult:
    result = ValidationResult()

    if not _text_ok(data.get('first_name'), 2):
        result.errors.append('Patient first name is required and must be at least 2 characters')
    if not _text_ok(data.get('last_name'), 2):
        result.errors.append('Patient last name is required and must be at least 2 characters')
    if not is_valid_email(data.get('email')):
        result.errors.append('Valid email address is required')
    if not is_valid_phone(data.get('phone')):
        result.errors.append('Valid phone number is required')

    dob = data.get('date_of_birth')
    if not is_valid_date(dob):
        result.errors.append('Valid date of birth is required')
    else:
        age = calculate_age(dob, today)
        if age < 0 or age > 150:
            result.errors.append('Invalid age calculated from date of birth')
        if age < 18:
            result.warnings.append('Patient is a minor - additional consent may be required')

    if contains_special_characters(data.get('first_name')):
        result.warnings.append('Patient first name contains special characters')
    if contains_special_characters(data.get('last_name')):
        result.warnings.append('Patient last name contains special characters')
    return result


def validate_prescription_data(data: Mapping[str, Any]) -> ValidationResult:
    result = ValidationResult()

    if not data.get('patient_id'):
        result.errors.append('Patient ID is required')
    if not data.get('doctor_id'):
        result.errors.append('Doctor ID is required')
    if not _text_ok(data.get('medication'), 2):
        result.errors.append('Medication name is required')
    for key, label in (('dosage', 'Dosage'), ('frequency', 'Frequency'), ('duration', 'Duration')):
        if not _text_ok(data.get(key)):
            result.errors.append(f'{label} is required')

    if _text_ok(data.get('dosage')) and not is_valid_dosage(data['dosage']):
        result.warnings.append('Dosage format may be invalid - please verify')
    if contains_dangerous_patterns(data.get('medication')):
        result.errors.append('Medication name contains invalid characters')
    return result


def validate_symptoms_input(symptoms: Any) -> ValidationResult:
    result = ValidationResult()
    text = symptoms if isinstance(symptoms, str) else ''

    if not text.strip():
        result.errors.append('Symptoms are required for prescription generation')
    if text and len(text) < 5:
        result.warnings.append('Very brief symptom description - consider adding more detail')
    if len(text) > 1000:
        result.warnings.append('Very long symptom description - consider summarizing')
    if contains_dangerous_patterns(text):
        result.errors.append('Symptoms contain invalid characters')
    return result


def validate_medical_data(data: Mapping[str, Any]) -> ValidationResult:
    """Advisory range checks on vitals plus lab-result completeness."""
    result = ValidationResult()

    vitals = data.get('vital_signs') or {}
    if not isinstance(vitals, Mapping):
        result.errors.append('Vital signs must be an object')
        vitals = {}
    for key, (low, high), label in (
        ('heart_rate', HEART_RATE_RANGE, 'Heart rate'),
        ('temperature', TEMPERATURE_RANGE, 'Temperature'),
        ('weight', WEIGHT_RANGE, 'Weight'),
    ):
        value = _number(vitals.get(key))
        # zero counts as "not measured"
        if value and (value < low or value > high):
            result.warnings.append(f'{label} appears to be outside normal range')

    lab_results = data.get('lab_results')
    if isinstance(lab_results, list):
        for index, lab in enumerate(lab_results, start=1):
            lab = lab if isinstance(lab, Mapping) else {}
            if not (lab.get('test_name') and lab.get('value') and lab.get('date')):
                result.errors.append(f'Lab result {index} is missing required fields')
            if lab.get('date') and not is_valid_date(lab['date']):
                result.errors.append(f'Lab result {index} has invalid date')
    return result
