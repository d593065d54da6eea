import random
from datetime import datetime, timezone

from clinic.services.synthesizer import (
    DEFAULT_BLOOD_PRESSURE, Catalogues, DemoDataFactory, VitalSignSynthesizer, weighted_pick,
)
from clinic.services.vitals import calculate_bmi


def test_same_seed_same_output():
    a = VitalSignSynthesizer(random.Random(42))
    b = VitalSignSynthesizer(random.Random(42))
    assert [a.patient_update() for _ in range(5)] == [b.patient_update() for _ in range(5)]


def test_vital_signs_stay_in_range():
    synth = VitalSignSynthesizer(random.Random(3))
    for _ in range(200):
        v = synth.vital_signs()
        assert v['blood_pressure'] in DEFAULT_BLOOD_PRESSURE
        assert 60 <= v['heart_rate'] < 100
        assert 97.6 <= v['temperature'] < 99.6
        assert 150 <= v['weight'] < 200
        assert 65 <= v['height'] < 80
        assert v['bmi'] == calculate_bmi(v['height'], v['weight'])


def test_temperature_never_reaches_upper_bound():
    synth = VitalSignSynthesizer(random.Random(3))
    temps = [synth.vital_signs()['temperature'] for _ in range(2000)]
    assert min(temps) >= 97.6
    assert max(temps) < 99.6
    assert all(round(t, 1) == t for t in temps)


def test_clinical_lists_come_from_catalogues():
    synth = VitalSignSynthesizer(random.Random(5))
    seen = set()
    for _ in range(300):
        seen.add(tuple(synth.diagnosis()))
        assert synth.current_medications() in (['Lisinopril', 'Metformin'], ['Atorvastatin'], [])
        assert synth.allergies() in (['Penicillin', 'Shellfish'], ['Peanuts'], [])
    assert seen == {('Hypertension', 'Type 2 Diabetes'), ('Asthma',), ('Routine checkup',)}


def test_custom_catalogues():
    catalogues = Catalogues(
        blood_pressure=('100/60',),
        diagnosis=[(('Flu',), 1)],
        heart_rate=(70, 71),
        weight=(154, 155),
        height=(70, 71),
    )
    synth = VitalSignSynthesizer(random.Random(1), catalogues)
    update = synth.patient_update()
    assert update['diagnosis'] == ['Flu']
    assert update['vital_signs']['heart_rate'] == 70
    assert update['vital_signs']['blood_pressure'] == '100/60'
    assert update['vital_signs']['bmi'] == 22.1


def test_zero_weight_entries_are_never_picked():
    rng = random.Random(0)
    table = [('never', 0), ('always', 1)]
    assert {weighted_pick(table, rng) for _ in range(50)} == {'always'}


def test_demo_factory_is_reproducible():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    a = DemoDataFactory(random.Random(9), now)
    b = DemoDataFactory(random.Random(9), now)
    assert a.patient() == b.patient()
    assert a.doctor() == b.doctor()
    assert a.emergency_case() == b.emergency_case()


def test_demo_records_are_plausible():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    factory = DemoDataFactory(random.Random(11), now)
    case = factory.emergency_case()
    assert case['time_reported'] <= now
    assert case['estimated_arrival'] > now
    assert -90 <= case['location']['coordinates']['lat'] <= 90
    rx = factory.prescription(1, 2)
    assert rx['patient_id'] == 1 and rx['doctor_id'] == 2
    assert len(rx['medication_details']['warnings']) <= 2
