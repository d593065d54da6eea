from datetime import date

import pytest

from clinic.services.validation import (
    calculate_age, contains_dangerous_patterns, is_valid_dosage, is_valid_email, is_valid_phone,
    parse_date, sanitize_input, validate_medical_data, validate_patient_data,
    validate_prescription_data, validate_symptoms_input,
)


def _patient(**overrides):
    data = {
        'first_name': 'John',
        'last_name': 'Smith',
        'email': 'john@example.com',
        'phone': '(555) 123-4567',
        'date_of_birth': '1980-05-01',
    }
    data.update(overrides)
    return data


def _prescription(**overrides):
    data = {
        'patient_id': 1,
        'doctor_id': 2,
        'medication': 'Amoxicillin',
        'dosage': '500mg',
        'frequency': 'Twice a day',
        'duration': '10 days',
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize('email,ok', [
    ('john@example.com', True),
    ('a.b@c.co', True),
    ('john@example', False),
    ('john example@x.com', False),
    ('a@b.co\n', False),
    ('', False),
    (None, False),
])
def test_email(email, ok):
    assert is_valid_email(email) is ok


@pytest.mark.parametrize('phone,ok', [
    ('555-123-4567', True),
    ('(555) 123 4567', True),
    ('+15551234567', True),
    ('123', False),
    ('0123456789', False),
    ('555-CALL-NOW', False),
    (5551234567, False),
])
def test_phone(phone, ok):
    assert is_valid_phone(phone) is ok


def test_parse_date_accepts_datetimes():
    assert parse_date('2024-03-05T10:00:00Z') == date(2024, 3, 5)
    assert parse_date(date(2024, 3, 5)) == date(2024, 3, 5)
    assert parse_date('03/05/2024') is None
    assert parse_date('') is None


def test_age_boundaries():
    assert calculate_age('2010-01-01', date(2024, 1, 1)) == 14
    assert calculate_age('2010-01-01', date(2023, 12, 31)) == 13
    assert calculate_age('2000-06-15', date(2018, 6, 14)) == 17
    assert calculate_age('2000-06-15', date(2018, 6, 15)) == 18
    assert calculate_age('garbage') is None


def test_valid_patient():
    result = validate_patient_data(_patient(), today=date(2024, 1, 1))
    assert result.is_valid
    assert result.warnings == []


def test_patient_missing_fields():
    result = validate_patient_data({'first_name': 'J'})
    assert not result.is_valid
    assert 'Patient first name is required and must be at least 2 characters' in result.errors
    assert 'Patient last name is required and must be at least 2 characters' in result.errors
    assert 'Valid email address is required' in result.errors
    assert 'Valid phone number is required' in result.errors
    assert 'Valid date of birth is required' in result.errors


def test_minor_warning_turns_off_on_eighteenth_birthday():
    day_before = validate_patient_data(_patient(date_of_birth='2000-06-15'), today=date(2018, 6, 14))
    birthday = validate_patient_data(_patient(date_of_birth='2000-06-15'), today=date(2018, 6, 15))
    assert day_before.is_valid and birthday.is_valid
    assert 'Patient is a minor - additional consent may be required' in day_before.warnings
    assert birthday.warnings == []


def test_future_birth_date_is_an_error():
    result = validate_patient_data(_patient(date_of_birth='2030-01-01'), today=date(2024, 1, 1))
    assert 'Invalid age calculated from date of birth' in result.errors


def test_special_characters_in_name_warn():
    result = validate_patient_data(_patient(first_name='Jo[h]n'), today=date(2024, 1, 1))
    assert result.is_valid
    assert result.warnings == ['Patient first name contains special characters']


def test_prescription_valid():
    result = validate_prescription_data(_prescription())
    assert result.is_valid
    assert result.warnings == []


def test_prescription_script_medication_rejected():
    result = validate_prescription_data(_prescription(medication='<script>alert(1)</script>'))
    assert not result.is_valid
    assert 'Medication name contains invalid characters' in result.errors


def test_prescription_required_fields():
    result = validate_prescription_data({})
    assert result.errors == [
        'Patient ID is required',
        'Doctor ID is required',
        'Medication name is required',
        'Dosage is required',
        'Frequency is required',
        'Duration is required',
    ]


@pytest.mark.parametrize('dosage,ok', [
    ('500mg', True),
    ('5 ml', True),
    ('2 tablets', True),
    ('10mg twice daily', True),
    ('1.5 g', True),
    ('a handful', False),
    ('10mg every hour', False),
    ('500mg\n', True),
    ('500mg\nextra', False),
])
def test_dosage_format(dosage, ok):
    assert is_valid_dosage(dosage) is ok


def test_unusual_dosage_is_only_a_warning():
    result = validate_prescription_data(_prescription(dosage='a handful'))
    assert result.is_valid
    assert result.warnings == ['Dosage format may be invalid - please verify']


def test_symptoms():
    assert validate_symptoms_input('').errors == ['Symptoms are required for prescription generation']
    assert validate_symptoms_input('   ').errors == ['Symptoms are required for prescription generation']
    brief = validate_symptoms_input('cold')
    assert brief.is_valid
    assert brief.warnings == ['Very brief symptom description - consider adding more detail']
    long = validate_symptoms_input('cough ' * 200)
    assert long.is_valid
    assert long.warnings == ['Very long symptom description - consider summarizing']
    assert 'Symptoms contain invalid characters' in validate_symptoms_input('fever <script>').errors


def test_dangerous_patterns():
    assert contains_dangerous_patterns('javascript:alert(1)')
    assert contains_dangerous_patterns('<img onerror = x>')
    assert contains_dangerous_patterns('data:text/html;base64,xx')
    assert not contains_dangerous_patterns('Ibuprofen 200mg')


def test_sanitize_input():
    assert sanitize_input('  <b>"Hello"</b>  ') == 'bHello/b'
    assert sanitize_input(None) == ''
    assert sanitize_input('') == ''
    assert len(sanitize_input('a' * 1500)) == 1000


@pytest.mark.parametrize('text', [
    'plain text',
    '  <script>alert("x")</script>  ',
    "' leading quote then space",
    'x' * 999 + ' <tail>',
    '"' + ' ' * 5 + 'word',
])
def test_sanitize_input_is_a_fixed_point(text):
    once = sanitize_input(text)
    assert sanitize_input(once) == once


def test_vitals_out_of_range_warn():
    result = validate_medical_data({'vital_signs': {'heart_rate': 250, 'temperature': '98.6', 'weight': 20}})
    assert result.is_valid
    assert result.warnings == [
        'Heart rate appears to be outside normal range',
        'Weight appears to be outside normal range',
    ]


def test_unmeasured_vitals_do_not_warn():
    vitals = {'heart_rate': 0, 'temperature': 'Not Examined', 'weight': ''}
    assert validate_medical_data({'vital_signs': vitals}).warnings == []


def test_vital_signs_must_be_an_object():
    result = validate_medical_data({'vital_signs': 'abc'})
    assert result.errors == ['Vital signs must be an object']
    assert result.warnings == []
    assert not validate_medical_data({'vital_signs': [98.6]}).is_valid


def test_lab_results():
    result = validate_medical_data({'lab_results': [
        {'test_name': 'CBC', 'value': 'normal', 'date': '2024-01-02'},
        {'test_name': 'Lipids'},
        {'test_name': 'A1C', 'value': '5.4', 'date': 'yesterday'},
    ]})
    assert result.errors == [
        'Lab result 2 is missing required fields',
        'Lab result 3 has invalid date',
    ]
