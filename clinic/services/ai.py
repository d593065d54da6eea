"""
Client for the Gemini ``generateContent`` REST endpoint.

One :class:`GeminiClient` is built when the app is ready (see
``clinic.apps.ClinicConfig``) and handed out by :func:`get_ai_client`.
Without an API key the client answers from canned responses so the
dashboard stays usable in development.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """The AI endpoint failed or returned something unusable."""


CHAT_PROMPT = """You are MediOca AI, a concise medical AI assistant for healthcare providers.

INSTRUCTIONS:
- Provide extremely concise, practical responses
- Use simple, non-technical language when possible
- Focus only on the exact question asked
- Keep responses under 3-4 sentences when possible
- Avoid lengthy introductions or conclusions
- Prioritize actionable information over background details
- Never include disclaimers or qualifiers unless medically necessary
- Be direct and to the point

USER QUERY: {message}

Remember: Your response should be brief, focused, and immediately useful to a healthcare professional.
"""

RECOMMENDATION_PROMPT = """You are a medical AI assistant for prescription generation. Based on the patient information below,
generate appropriate medication recommendations.

Patient Information:
- Symptoms: {symptoms}
- Diagnosis: {diagnosis}
- Severity: {severity}
- Medical History: {history}
- Current Medications: {medications}
- Allergies: {allergies}
{vitals}
Generate a prescription recommendation in JSON format with the following structure:
{{
  "medications": [
    {{
      "name": "Medication name",
      "generic_name": "Generic name",
      "dosage": "Dosage",
      "frequency": "How often to take",
      "duration": "How long to take",
      "route": "Route of administration",
      "instructions": "Special instructions",
      "warnings": ["Warning 1", "Warning 2"],
      "interactions": ["Interaction 1", "Interaction 2"],
      "cost_estimate": "Cost estimate range"
    }}
  ],
  "reasoning": "Medical reasoning for the recommendation",
  "confidence_score": 85,
  "alternative_treatments": ["Alternative 1", "Alternative 2"],
  "follow_up_recommendations": ["Recommendation 1", "Recommendation 2"],
  "red_flags": ["Red flag 1", "Red flag 2"],
  "drug_interactions": ["Drug interaction 1", "Drug interaction 2"],
  "contraindications": ["Contraindication 1", "Contraindication 2"]
}}

IMPORTANT: Return ONLY valid JSON. Do not include any additional text, explanation, or markdown formatting.
"""

MOCK_RECOMMENDATIONS = {
    'medications': [
        {
            'name': 'Amlodipine',
            'generic_name': 'Amlodipine',
            'dosage': '5mg',
            'frequency': 'Once daily',
            'duration': '30 days',
            'route': 'Oral',
            'instructions': 'Take in the morning with or without food',
            'warnings': ['May cause ankle swelling', 'Monitor blood pressure'],
            'interactions': ['Avoid grapefruit juice'],
            'cost_estimate': '$10-15/month',
        }
    ],
    'reasoning': 'Based on patient symptoms and medical history, this medication is recommended for blood pressure control.',
    'confidence_score': 85,
    'alternative_treatments': ['Lifestyle modifications', 'Diet changes'],
    'follow_up_recommendations': ['Schedule follow-up in 2 weeks'],
    'red_flags': ['Monitor for dizziness'],
    'drug_interactions': ['Monitor for interactions with existing medications'],
    'contraindications': ['Hypersensitivity to amlodipine'],
}

LIST_FIELDS = (
    'alternative_treatments', 'follow_up_recommendations', 'red_flags',
    'drug_interactions', 'contraindications',
)


def mock_chat_response(message: str) -> str:
    text = message.lower()
    if 'headache' in text:
        return ('Likely causes: tension headache, migraine, or cluster headache. Track frequency, duration, '
                'and triggers. Seek immediate care if accompanied by fever, neck stiffness, or severe sudden onset.')
    if 'prescription' in text:
        return ('For specific prescription recommendations, a licensed healthcare provider must evaluate '
                "the patient's complete medical history and current condition.")
    return ('I can provide concise medical information to support clinical decision-making. '
            'How can I assist you with a specific medical question?')


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def normalize_recommendations(data: Any) -> dict:
    if not isinstance(data, dict) or not isinstance(data.get('medications'), list):
        raise AIServiceError('Invalid medications array in AI response')
    medications = []
    for med in data['medications']:
        med = med if isinstance(med, dict) else {}
        medications.append({
            'name': med.get('name') or 'Unknown medication',
            'generic_name': med.get('generic_name') or med.get('name') or 'Unknown',
            'dosage': med.get('dosage') or 'As prescribed',
            'frequency': med.get('frequency') or 'As directed',
            'duration': med.get('duration') or 'As prescribed',
            'route': med.get('route') or 'Oral',
            'instructions': med.get('instructions') or 'Take as directed',
            'warnings': _as_list(med.get('warnings')),
            'interactions': _as_list(med.get('interactions')),
            'cost_estimate': med.get('cost_estimate') or 'Contact pharmacy',
        })
    result = {
        'medications': medications,
        'reasoning': data.get('reasoning') or 'AI-generated prescription recommendation',
        'confidence_score': data.get('confidence_score') or 75,
    }
    for key in LIST_FIELDS:
        result[key] = _as_list(data.get(key))
    return result


_CODE_BLOCK_RE = re.compile(r'```(?:json)?\s*(\{.*?\})\s*```', re.IGNORECASE | re.DOTALL)


def _find_json_object(text: str, required_key: Optional[str] = None) -> Optional[dict]:
    """Locate the JSON object in a model reply.

    Tries the whole reply, then a fenced code block, then the largest
    decodable ``{...}`` span (carrying ``required_key`` when given).
    """
    stripped = (text or '').strip()
    candidates = []
    if stripped.startswith('{') and stripped.endswith('}'):
        candidates.append(stripped)
    match = _CODE_BLOCK_RE.search(stripped)
    if match:
        candidates.append(match.group(1))
    for candidate in candidates:
        try:
            obj = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            return obj

    decoder = json.JSONDecoder()
    best, best_size = None, 0
    for start in (m.start() for m in re.finditer(r'\{', stripped)):
        try:
            obj, end = decoder.raw_decode(stripped, start)
        except json.JSONDecodeError:
            continue
        if not isinstance(obj, dict) or (required_key and not obj.get(required_key)):
            continue
        if end - start > best_size:
            best, best_size = obj, end - start
    return best


def extract_json(text: str) -> dict:
    """Pull the recommendation object out of a model reply."""
    found = _find_json_object(text, required_key='medications')
    if found is None:
        raise AIServiceError('No valid JSON found in AI response')
    return normalize_recommendations(found)


def parse_clinical_response(text: str) -> dict:
    """Structured reply for a consultation step.

    Free-text replies are wrapped with a reduced confidence and a note
    asking for manual review.
    """
    found = _find_json_object(text)
    if found is not None:
        return found
    return {
        'analysis': text,
        'confidence': 0.6,
        'clinical_reasoning': 'Parsed from unstructured AI response - manual review recommended',
        'recommendations': [{
            'category': 'clinical_review',
            'action': 'Review AI response for clinical insights',
            'priority': 'medium',
        }],
    }


def _join(values: Any, default: str) -> str:
    if isinstance(values, (list, tuple)):
        return ', '.join(str(v) for v in values) or default
    return str(values) if values else default


class GeminiClient:
    def __init__(self, api_key: str = '', model: str = 'gemini-2.5-flash',
                 base_url: str = 'https://generativelanguage.googleapis.com/v1beta',
                 timeout: int = 30, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def generate(self, prompt: str, max_output_tokens: int = 1024) -> str:
        if not self.enabled:
            raise AIServiceError('Gemini API key is not configured')
        url = f'{self.base_url}/models/{self.model}:generateContent'
        body = {
            'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
            'generationConfig': {
                'temperature': 0.2,
                'topP': 0.8,
                'topK': 40,
                'maxOutputTokens': max_output_tokens,
            },
        }
        try:
            r = self.session.post(url, params={'key': self.api_key}, json=body, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise AIServiceError(f'Gemini request failed: {e}') from e
        if 'error' in data:
            err = data['error'] or {}
            raise AIServiceError(f"Gemini error {err.get('code')}: {err.get('message')}")
        try:
            parts = data['candidates'][0]['content']['parts']
        except (KeyError, IndexError, TypeError) as e:
            raise AIServiceError('Gemini returned no candidates') from e
        usage = data.get('usageMetadata')
        if usage:
            logger.debug('Gemini token usage prompt=%s candidates=%s total=%s',
                         usage.get('promptTokenCount'), usage.get('candidatesTokenCount'),
                         usage.get('totalTokenCount'))
        return ''.join(p.get('text', '') for p in parts if isinstance(p, dict))

    def chat(self, message: str) -> str:
        if not self.enabled:
            return mock_chat_response(message)
        return self.generate(CHAT_PROMPT.format(message=message))

    def complete(self, prompt: str, max_output_tokens: int = 2048) -> str:
        """Raw completion for multi-step workflows; canned reply without a key."""
        if not self.enabled:
            return mock_chat_response(prompt)
        return self.generate(prompt, max_output_tokens=max_output_tokens)

    def prescription_recommendations(self, request: dict) -> dict:
        if not self.enabled:
            return json.loads(json.dumps(MOCK_RECOMMENDATIONS))
        vitals = request.get('vital_signs') or {}
        prompt = RECOMMENDATION_PROMPT.format(
            symptoms=_join(request.get('symptoms'), 'None provided'),
            diagnosis=request.get('diagnosis') or 'Not specified',
            severity=request.get('severity') or 'unknown',
            history=request.get('patient_history') or 'Not available',
            medications=_join(request.get('current_medications'), 'None'),
            allergies=_join(request.get('allergies'), 'None known'),
            vitals=(f"- Vital Signs: BP {vitals.get('blood_pressure')}, HR {vitals.get('heart_rate')}\n"
                    if vitals else ''),
        )
        text = self.generate(prompt, max_output_tokens=2048)
        logger.info('Received AI response length %d', len(text))
        return extract_json(text)

    def close(self) -> None:
        self.session.close()


_client: Optional[GeminiClient] = None


def build_client() -> GeminiClient:
    return GeminiClient(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        base_url=settings.GEMINI_API_BASE,
        timeout=settings.GEMINI_TIMEOUT,
    )


def configure(client: Optional[GeminiClient]) -> None:
    """Install ``client`` as the process-wide instance, closing any previous one."""
    global _client
    if _client is not None and _client is not client:
        _client.close()
    _client = client


def get_ai_client() -> GeminiClient:
    if _client is None:
        configure(build_client())
    return _client
