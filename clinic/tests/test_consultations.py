import json
from datetime import date, timedelta

import pytest

from clinic.models import ConsultationSession, Patient
from clinic.services.ai import AIServiceError, GeminiClient
from clinic.services.consultations import (
    WORKING_DIAGNOSIS, ConsultationClosed, add_symptoms, close_session, estimate_severity,
    generate_prescription, session_confidence, session_stats, set_diagnosis, start_session,
)

pytestmark = pytest.mark.django_db


class FakeClient:
    """Answers ``complete`` from a queue; an exception in the queue is raised."""

    enabled = True

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def complete(self, prompt, max_output_tokens=2048):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply if isinstance(reply, str) else json.dumps(reply)


@pytest.fixture
def patient():
    return Patient.objects.create(
        first_name='John', last_name='Smith', gender='Male', date_of_birth=date(1980, 5, 1),
        medical_history='Hypertension', current_medications=['Lisinopril'], allergies=['Penicillin'],
        vital_signs={'blood_pressure': '130/85', 'heart_rate': 80, 'temperature': 98.6},
    )


def test_start_session_records_initial_assessment(patient):
    client = FakeClient({'analysis': 'Stable', 'confidence': 0.9})
    session = start_session(patient, client=client)
    assert session.is_active
    assert [r['type'] for r in session.recommendations] == ['clinical_guideline']
    assert session.recommendations[0]['reasoning'] == 'Initial AI assessment based on patient context'
    assert session.confidence == 0.9
    prompt = client.prompts[0]
    assert 'Name: John Smith' in prompt
    assert 'Known Allergies: Penicillin' in prompt
    assert 'Blood Pressure: 130/85' in prompt


def test_start_session_survives_model_failure(patient):
    session = start_session(patient, client=FakeClient(AIServiceError('down')))
    assert ConsultationSession.objects.filter(pk=session.pk, status='active').exists()
    assert session.recommendations == []
    assert session.confidence == 0


def test_add_symptoms_accumulates_and_analyses(patient):
    session = start_session(patient, client=FakeClient({'confidence': 0.9}))
    client = FakeClient(
        {'analysis': 'Possible flu', 'confidence': 0.7, 'red_flags': ['High fever'], 'clinical_reasoning': 'fever'},
        {'analysis': 'Likely flu', 'confidence': 0.8},
    )
    outcome = add_symptoms(session, ['fever'], client=client)
    assert outcome.success
    assert outcome.data['analysis'] == 'Possible flu'
    outcome = add_symptoms(session, ['cough', '  '], client=client)
    assert 'All current symptoms: fever, cough' in client.prompts[1]

    session.refresh_from_db()
    assert session.symptoms == ['fever', 'cough']
    first = session.recommendations[1]
    assert first['type'] == 'symptom_analysis'
    assert first['warnings'] == ['High fever']
    assert first['reasoning'] == 'fever'
    assert session.confidence == session_confidence(session.recommendations) == 0.8


def test_add_symptoms_failure_keeps_symptoms_and_returns_fallback(patient):
    session = start_session(patient, client=FakeClient(AIServiceError('down')))
    outcome = add_symptoms(session, ['headache'], client=FakeClient(AIServiceError('down')))
    assert not outcome.success
    assert outcome.error == 'Failed to analyze symptoms with AI'
    assert outcome.data['confidence'] == 0.3
    assert 'headache' in outcome.data['analysis']
    session.refresh_from_db()
    assert session.symptoms == ['headache']
    assert session.recommendations == []


def test_add_symptoms_requires_a_symptom(patient):
    session = start_session(patient, client=FakeClient(AIServiceError('down')))
    with pytest.raises(ValueError):
        add_symptoms(session, ['', '   '], client=FakeClient())


def test_set_diagnosis_validates_against_symptoms(patient):
    session = start_session(patient, client=FakeClient(AIServiceError('down')))
    add_symptoms(session, ['fever'], client=FakeClient({'confidence': 0.5}))
    client = FakeClient({'validation': 'consistent', 'confidence': 85, 'red_flags': []})
    outcome = set_diagnosis(session, 'Influenza', client=client)
    assert outcome.success
    assert 'Proposed diagnosis: Influenza' in client.prompts[0]
    assert 'Patient symptoms: fever' in client.prompts[0]
    session.refresh_from_db()
    assert session.diagnosis == 'Influenza'
    # percent answers are scaled
    assert session.recommendations[-1]['confidence'] == 0.85


def test_set_diagnosis_failure_still_sets_diagnosis(patient):
    session = start_session(patient, client=FakeClient(AIServiceError('down')))
    outcome = set_diagnosis(session, 'Migraine', client=FakeClient(AIServiceError('down')))
    assert not outcome.success
    assert outcome.data['analysis'] == 'Manual validation required for diagnosis: Migraine'
    session.refresh_from_db()
    assert session.diagnosis == 'Migraine'


def test_generate_prescription_uses_session_context(patient):
    session = start_session(patient, client=FakeClient(AIServiceError('down')))
    add_symptoms(session, ['chest pain'], client=FakeClient({'confidence': 0.6}))
    client = FakeClient({'medications': [{'name': 'Aspirin'}], 'drug_interactions': ['Lisinopril'],
                         'confidence': 0.7})
    outcome = generate_prescription(session, client=client)
    assert outcome.success
    prompt = client.prompts[0]
    assert f'Diagnosis: {WORKING_DIAGNOSIS}' in prompt
    assert 'Severity: critical' in prompt
    assert 'Current medications: Lisinopril' in prompt
    session.refresh_from_db()
    assert session.recommendations[-1]['type'] == 'prescription'
    assert session.recommendations[-1]['warnings'] == ['Lisinopril']


def test_generate_prescription_failure_returns_fallback(patient):
    session = start_session(patient, client=FakeClient(AIServiceError('down')))
    outcome = generate_prescription(session, client=FakeClient(AIServiceError('down')))
    assert not outcome.success
    assert outcome.data['medications'][0]['name'] == 'Clinical prescription required'
    assert outcome.data['confidence'] == 0.1


def test_unkeyed_client_wraps_canned_reply(patient):
    session = start_session(patient, client=GeminiClient(api_key=''))
    outcome = add_symptoms(session, ['headache'], client=GeminiClient(api_key=''))
    assert outcome.success
    assert outcome.data['confidence'] == 0.6
    assert 'tension headache' in outcome.data['analysis']


def test_close_session_stops_further_steps(patient):
    session = start_session(patient, client=FakeClient({'confidence': 0.9}))
    closed_at = session.created_at + timedelta(minutes=5)
    stats = close_session(session, now=closed_at)
    assert stats['isActive'] is False
    assert stats['durationSeconds'] == 300
    assert stats['recommendationsGenerated'] == 1
    assert stats['aiProvider'] == 'gemini'

    assert close_session(session, now=closed_at + timedelta(hours=1))['durationSeconds'] == 300
    with pytest.raises(ConsultationClosed):
        add_symptoms(session, ['fever'], client=FakeClient())
    with pytest.raises(ConsultationClosed):
        generate_prescription(session, client=FakeClient())


def test_session_stats_while_active(patient):
    session = start_session(patient, client=FakeClient(AIServiceError('down')))
    add_symptoms(session, ['fever', 'cough'], client=FakeClient({'confidence': 0.4}))
    stats = session_stats(session, now=session.created_at + timedelta(seconds=42))
    assert stats == {
        'id': str(session.id),
        'durationSeconds': 42,
        'symptomsAnalyzed': 2,
        'recommendationsGenerated': 1,
        'confidence': 0.4,
        'aiProvider': 'gemini',
        'isActive': True,
    }
    assert session_stats(session)['durationSeconds'] >= 0


@pytest.mark.parametrize('symptoms,severity', [
    (['Chest pain on exertion'], 'critical'),
    (['high fever', 'difficulty breathing'], 'critical'),
    (['vomiting'], 'severe'),
    (['cough', 'sneezing', 'fatigue', 'sore throat'], 'moderate'),
    (['cough'], 'mild'),
    ([], 'mild'),
])
def test_estimate_severity(symptoms, severity):
    assert estimate_severity(symptoms) == severity


def test_session_confidence():
    assert session_confidence([]) == 0.0
    assert session_confidence([{'confidence': 0.9}, {'confidence': 0.6}, {'confidence': 0.8}]) == 0.77
