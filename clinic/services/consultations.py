"""
Consultation sessions: a doctor's running, AI-assisted workup of one patient.

A session collects symptoms, a working diagnosis and the model's answers
to each step.  Every step sends the patient's context (history,
medications, allergies, vitals) ahead of the step's own request, and
the parsed reply is appended to ``recommendations``.  When the model
fails, the step still records what the doctor entered and the caller
gets a conservative fallback answer to show instead.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from django.db import transaction
from django.utils import timezone

from clinic.models import ConsultationSession, Doctor, Patient
from clinic.services.ai import AIServiceError, GeminiClient, get_ai_client, parse_clinical_response
from clinic.services.patients import paginate
from clinic.services.validation import calculate_age, sanitize_input
from clinic.services.vitals import VitalField

logger = logging.getLogger(__name__)


class ConsultationClosed(Exception):
    """The session was closed; no further steps are accepted."""


SYSTEM_PROMPT = """You are an advanced medical AI assistant providing clinical decision support.

PATIENT CONTEXT:
- Name: {name}
- Age: {age}
- Gender: {gender}
- Medical History: {history}
- Current Medications: {medications}
- Known Allergies: {allergies}
- Current Vitals:
  * Blood Pressure: {blood_pressure}
  * Heart Rate: {heart_rate} bpm
  * Temperature: {temperature}°F

CLINICAL GUIDELINES:
1. Analyze symptoms in context of the patient's complete medical history
2. Provide evidence-based differential diagnoses with confidence levels
3. Recommend treatment plans considering current medications and allergies
4. Flag critical warnings, drug interactions and contraindications

RESPONSE FORMAT:
Always respond with structured JSON containing:
{{
  "analysis": "comprehensive symptom analysis",
  "differential_diagnoses": [{{"condition": "name", "probability": 0.85, "reasoning": "why", "urgency": "low|medium|high|critical"}}],
  "recommendations": [{{"category": "diagnostic|therapeutic|monitoring", "action": "what to do", "priority": "low|medium|high|urgent"}}],
  "drug_interactions": ["interaction warnings if applicable"],
  "contraindications": ["contraindication warnings if applicable"],
  "red_flags": ["critical warnings requiring immediate attention"],
  "confidence": 0.85,
  "clinical_reasoning": "detailed explanation of analysis",
  "next_steps": ["prioritized next actions"]
}}

AI recommendations supplement but never replace clinical judgment.
"""

INITIAL_PROMPT = 'Patient session initialized. Provide initial assessment and recommendations.'

SYMPTOM_PROMPT = """SYMPTOM ANALYSIS REQUEST

New symptoms reported: {new}
All current symptoms: {all}

Please provide symptom correlation, differential diagnoses with probabilities, clinical urgency,
recommended diagnostic workup and any red flags requiring immediate attention.
"""

DIAGNOSIS_PROMPT = """DIAGNOSIS VALIDATION REQUEST

Proposed diagnosis: {diagnosis}
Patient symptoms: {symptoms}

Please validate this diagnosis: accuracy against the symptoms, supporting evidence, alternative
diagnoses, confirmatory tests, treatment plan and complications to monitor.
"""

PRESCRIPTION_PROMPT = """PRESCRIPTION GENERATION REQUEST

Clinical Context:
- Diagnosis: {diagnosis}
- Symptoms: {symptoms}
- Severity: {severity}
- Current medications: {medications}
- Known allergies: {allergies}
- Patient age: {age}
- Patient gender: {gender}

Generate a prescription plan with medications (name, dosage, instructions, duration, monitoring),
drug interactions, contraindications, patient education and follow-up.
Format as JSON with the structure specified above.
"""

WORKING_DIAGNOSIS = 'Working diagnosis based on symptoms'

CRITICAL_SYMPTOMS = ('chest pain', 'difficulty breathing', 'severe bleeding')
SEVERE_SYMPTOMS = ('high fever', 'severe pain', 'vomiting')


def fallback_symptom_analysis(symptoms: Iterable[str]) -> dict:
    return {
        'analysis': f"Clinical analysis required for symptoms: {', '.join(symptoms)}",
        'differential_diagnoses': [{
            'condition': 'Manual clinical evaluation needed',
            'probability': 0.5,
            'reasoning': 'AI analysis unavailable - clinical assessment required',
            'urgency': 'medium',
        }],
        'recommendations': [
            {'category': 'diagnostic', 'action': 'Comprehensive clinical evaluation', 'priority': 'high'},
            {'category': 'monitoring', 'action': 'Monitor symptom progression', 'priority': 'medium'},
        ],
        'red_flags': ['AI analysis failed - manual review required'],
        'confidence': 0.3,
        'clinical_reasoning': 'AI system unavailable - clinical judgment required',
        'next_steps': ['Manual symptom assessment', 'Clinical examination', 'Consider diagnostic workup'],
    }


def fallback_diagnosis_validation(diagnosis: str) -> dict:
    return {
        'analysis': f'Manual validation required for diagnosis: {diagnosis}',
        'validation': 'Clinical confirmation needed',
        'supporting_evidence': ['AI validation unavailable'],
        'recommendations': [
            {'category': 'diagnostic', 'action': 'Clinical confirmation of diagnosis', 'priority': 'high'},
        ],
        'confidence': 0.3,
        'clinical_reasoning': 'AI validation failed - clinical review required',
    }


def fallback_prescription() -> dict:
    return {
        'medications': [{
            'name': 'Clinical prescription required',
            'dosage': 'To be determined by physician',
            'instructions': 'AI prescription generation failed - manual prescribing required',
            'duration': 'As clinically indicated',
            'monitoring': 'Standard clinical monitoring',
        }],
        'drug_interactions': ['Manual drug interaction check required'],
        'contraindications': ['Review patient allergies and contraindications manually'],
        'recommendations': [
            {'category': 'prescription', 'action': 'Manual prescription generation required', 'priority': 'high'},
        ],
        'confidence': 0.1,
        'clinical_reasoning': 'AI prescription generation failed - clinical prescribing required',
    }


@dataclass
class StepOutcome:
    session: ConsultationSession
    success: bool
    data: dict
    error: Optional[str] = None


def estimate_severity(symptoms: Iterable[str]) -> str:
    lowered = [s.lower() for s in symptoms]
    if any(c in s for s in lowered for c in CRITICAL_SYMPTOMS):
        return 'critical'
    if any(c in s for s in lowered for c in SEVERE_SYMPTOMS):
        return 'severe'
    if len(lowered) > 3:
        return 'moderate'
    return 'mild'


def _join(values: Any, default: str) -> str:
    if isinstance(values, (list, tuple)):
        return ', '.join(str(v) for v in values) or default
    return str(values) if values else default


def _vital(patient: Patient, field: VitalField) -> Any:
    value = (patient.vital_signs or {}).get(field.value)
    return 'Not recorded' if value is None else value


def build_system_prompt(patient: Patient) -> str:
    age = calculate_age(patient.date_of_birth)
    return SYSTEM_PROMPT.format(
        name=patient.full_name,
        age=age if age is not None else 'Unknown',
        gender=patient.gender or 'Not specified',
        history=patient.medical_history or 'None reported',
        medications=_join(patient.current_medications, 'None'),
        allergies=_join(patient.allergies, 'None reported'),
        blood_pressure=_vital(patient, VitalField.BLOOD_PRESSURE),
        heart_rate=_vital(patient, VitalField.HEART_RATE),
        temperature=_vital(patient, VitalField.TEMPERATURE),
    )


def _confidence(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return default
    # models sometimes answer in percent
    if 1 < value <= 100:
        value = value / 100
    return min(float(value), 1.0)


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def make_recommendation(kind: str, content: dict, *, default_confidence: float = 0.8,
                        reasoning: Optional[str] = None, warnings: Any = None) -> dict:
    return {
        'id': str(uuid.uuid4()),
        'type': kind,
        'content': content,
        'confidence': _confidence(content.get('confidence'), default_confidence),
        'timestamp': timezone.now().isoformat(),
        'reasoning': reasoning if reasoning is not None else content.get('clinical_reasoning'),
        'warnings': _as_list(warnings),
    }


def session_confidence(recommendations: Iterable[dict]) -> float:
    values = [r.get('confidence') or 0 for r in recommendations]
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def _ask(session: ConsultationSession, client: GeminiClient, request_prompt: str) -> dict:
    prompt = build_system_prompt(session.patient) + '\n' + request_prompt
    return parse_clinical_response(client.complete(prompt))


def _ensure_active(session: ConsultationSession) -> None:
    if not session.is_active:
        raise ConsultationClosed(f'Consultation {session.id} is closed')


def _record_step(session: ConsultationSession, *, symptoms: Iterable[str] = (),
                 diagnosis: Optional[str] = None, recommendation: Optional[dict] = None) -> None:
    """Append one step under a row lock so concurrent steps do not drop each other."""
    with transaction.atomic():
        locked = ConsultationSession.objects.select_for_update().get(pk=session.pk)
        _ensure_active(locked)
        locked.symptoms = list(locked.symptoms or []) + list(symptoms)
        if diagnosis is not None:
            locked.diagnosis = diagnosis
        if recommendation is not None:
            locked.recommendations = list(locked.recommendations or []) + [recommendation]
        locked.confidence = session_confidence(locked.recommendations)
        locked.save(update_fields=['symptoms', 'diagnosis', 'recommendations', 'confidence'])
    session.refresh_from_db(fields=['symptoms', 'diagnosis', 'recommendations', 'confidence', 'status'])


def start_session(patient: Patient, *, doctor: Optional[Doctor] = None, user=None,
                  client: Optional[GeminiClient] = None) -> ConsultationSession:
    """Open a session and ask the model for an initial assessment.

    A failing model does not prevent the session from opening.
    """
    client = client or get_ai_client()
    session = ConsultationSession.objects.create(patient=patient, doctor=doctor, started_by=user)
    logger.info('Consultation %s opened for patient %s', session.id, patient.id)
    try:
        content = _ask(session, client, INITIAL_PROMPT)
    except AIServiceError:
        logger.warning('Initial assessment failed for consultation %s', session.id, exc_info=True)
        return session
    _record_step(session, recommendation=make_recommendation(
        'clinical_guideline', content, default_confidence=0.9,
        reasoning='Initial AI assessment based on patient context',
    ))
    return session


def clean_symptoms(symptoms: Iterable[Any]) -> list[str]:
    return [s for s in (sanitize_input(v) for v in symptoms) if s]


def add_symptoms(session: ConsultationSession, symptoms: Iterable[Any],
                 client: Optional[GeminiClient] = None) -> StepOutcome:
    _ensure_active(session)
    new = clean_symptoms(symptoms)
    if not new:
        raise ValueError('At least one symptom is required')
    client = client or get_ai_client()
    everything = list(session.symptoms or []) + new
    try:
        analysis = _ask(session, client, SYMPTOM_PROMPT.format(new=', '.join(new), all=', '.join(everything)))
    except AIServiceError:
        logger.exception('Symptom analysis failed for consultation %s', session.id)
        _record_step(session, symptoms=new)
        return StepOutcome(session, False, fallback_symptom_analysis(new), 'Failed to analyze symptoms with AI')
    _record_step(session, symptoms=new, recommendation=make_recommendation(
        'symptom_analysis', analysis, warnings=analysis.get('red_flags'),
    ))
    return StepOutcome(session, True, analysis)


def set_diagnosis(session: ConsultationSession, diagnosis: str,
                  client: Optional[GeminiClient] = None) -> StepOutcome:
    _ensure_active(session)
    diagnosis = sanitize_input(diagnosis)
    if not diagnosis:
        raise ValueError('Diagnosis is required')
    client = client or get_ai_client()
    prompt = DIAGNOSIS_PROMPT.format(diagnosis=diagnosis, symptoms=_join(session.symptoms, 'None reported'))
    try:
        validation = _ask(session, client, prompt)
    except AIServiceError:
        logger.exception('Diagnosis validation failed for consultation %s', session.id)
        _record_step(session, diagnosis=diagnosis)
        return StepOutcome(session, False, fallback_diagnosis_validation(diagnosis),
                           'Failed to validate diagnosis with AI')
    _record_step(session, diagnosis=diagnosis, recommendation=make_recommendation(
        'diagnosis_validation', validation, warnings=validation.get('red_flags'),
    ))
    return StepOutcome(session, True, validation)


def generate_prescription(session: ConsultationSession, client: Optional[GeminiClient] = None) -> StepOutcome:
    _ensure_active(session)
    client = client or get_ai_client()
    patient = session.patient
    age = calculate_age(patient.date_of_birth)
    prompt = PRESCRIPTION_PROMPT.format(
        diagnosis=session.diagnosis or WORKING_DIAGNOSIS,
        symptoms=_join(session.symptoms, 'None reported'),
        severity=estimate_severity(session.symptoms or []),
        medications=_join(patient.current_medications, 'None'),
        allergies=_join(patient.allergies, 'None'),
        age=age if age is not None else 'Unknown',
        gender=patient.gender or 'Not specified',
    )
    try:
        plan = _ask(session, client, prompt)
    except AIServiceError:
        logger.exception('Prescription generation failed for consultation %s', session.id)
        return StepOutcome(session, False, fallback_prescription(), 'Failed to generate prescription with AI')
    _record_step(session, recommendation=make_recommendation(
        'prescription', plan, warnings=plan.get('drug_interactions'),
    ))
    return StepOutcome(session, True, plan)


def session_stats(session: ConsultationSession, now: Optional[datetime] = None) -> dict:
    end = session.closed_at or now or timezone.now()
    return {
        'id': str(session.id),
        'durationSeconds': max(0, int((end - session.created_at).total_seconds())),
        'symptomsAnalyzed': len(session.symptoms or []),
        'recommendationsGenerated': len(session.recommendations or []),
        'confidence': session.confidence,
        'aiProvider': session.ai_provider,
        'isActive': session.is_active,
    }


def close_session(session: ConsultationSession, now: Optional[datetime] = None) -> dict:
    """Mark the session closed and return its final statistics.  Closing twice is a no-op."""
    if session.is_active:
        session.status = 'closed'
        session.closed_at = now or timezone.now()
        session.save(update_fields=['status', 'closed_at'])
        logger.info('Consultation %s closed', session.id)
    return session_stats(session)


def session_to_dict(s: ConsultationSession) -> dict:
    return {
        'id': str(s.id),
        'patient_id': s.patient_id,
        'doctor_id': s.doctor_id,
        'symptoms': s.symptoms or [],
        'diagnosis': s.diagnosis,
        'recommendations': s.recommendations or [],
        'confidence': s.confidence,
        'ai_provider': s.ai_provider,
        'status': s.status,
        'created_at': s.created_at.isoformat() if s.created_at else None,
        'closed_at': s.closed_at.isoformat() if s.closed_at else None,
    }


def list_sessions(*, status: Optional[str] = None, patient_id: Optional[int] = None,
                  page: Optional[int] = None, page_size: Optional[int] = None):
    qs = ConsultationSession.objects.all()
    if status:
        qs = qs.filter(status=status)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    qs, total = paginate(qs, page, page_size)
    return [session_to_dict(s) for s in qs], total
