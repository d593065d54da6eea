from io import StringIO

import pytest
from django.core.management import call_command

from clinic.models import (
    Appointment, Doctor, EmergencyCase, Patient, PatientVitals, Prescription, User,
)

pytestmark = pytest.mark.django_db


def _seed(**options):
    out = StringIO()
    call_command('seed_database', stdout=out, **options)
    return out.getvalue()


def _people():
    return sorted(Patient.objects.values_list('first_name', 'last_name', 'email'))


def test_seed_database_defaults():
    output = _seed(seed=1)
    assert 'Demo data created.' in output
    assert Doctor.objects.count() == 5
    assert Patient.objects.count() == 15
    assert Appointment.objects.count() == 40
    assert Prescription.objects.count() == 50
    assert EmergencyCase.objects.count() == 10
    assert PatientVitals.objects.count() == 15
    assert set(User.objects.values_list('username', 'role')) == {
        ('admin1', 'admin'), ('doctor1', 'doctor'), ('staff1', 'staff'),
    }
    for patient in Patient.objects.all():
        assert isinstance(patient.vital_signs['bmi'], float)


def test_seed_database_is_reproducible():
    _seed(seed=3, doctors=2, patients=4, appointments=0, prescriptions=0, emergencies=0)
    first = _people()
    _seed(seed=3, doctors=2, patients=4, appointments=0, prescriptions=0, emergencies=0, clear=True)
    assert _people() == first
    assert Patient.objects.count() == 4
    assert User.objects.count() == 3


def test_seed_without_doctors_skips_dependent_records():
    output = _seed(seed=1, doctors=0, patients=2, emergencies=1)
    assert 'skipping dependent records' in output
    assert Prescription.objects.count() == 0
    assert EmergencyCase.objects.count() == 1


def test_demo_accounts_can_log_in():
    _seed(seed=1, doctors=1, patients=1, appointments=1, prescriptions=1, emergencies=0, password='S3cret!pw')
    assert User.objects.get(username='doctor1').check_password('S3cret!pw')


def test_synthesize_vitals_command():
    _seed(seed=1, doctors=1, patients=3, appointments=0, prescriptions=0, emergencies=0)
    Patient.objects.update(vital_signs={})
    out = StringIO()
    call_command('synthesize_vitals', seed=5, stdout=out)
    assert 'Updated 3 patients.' in out.getvalue()
    for patient in Patient.objects.all():
        assert 65 <= patient.vital_signs['height'] < 80
        assert patient.diagnosis
