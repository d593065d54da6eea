import json

import pytest
import requests

from clinic.services.ai import (
    MOCK_RECOMMENDATIONS, AIServiceError, GeminiClient, extract_json, mock_chat_response,
    normalize_recommendations, parse_clinical_response,
)

RECOMMENDATION = {
    'medications': [{'name': 'Ibuprofen', 'dosage': '200mg', 'frequency': 'Every 6 hours'}],
    'reasoning': 'Pain relief',
    'confidence_score': 70,
}


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc:
            raise self.exc
        return self.response

    def close(self):
        self.closed = True


def _reply(text):
    return FakeResponse({'candidates': [{'content': {'parts': [{'text': text}]}}]})


def _client(session):
    return GeminiClient(api_key='k', model='m', base_url='https://ai.test/v1/', timeout=5, session=session)


def test_mock_chat_responses():
    assert 'tension headache' in mock_chat_response('I have a HEADACHE')
    assert 'licensed healthcare provider' in mock_chat_response('write a prescription')
    assert 'How can I assist you' in mock_chat_response('hello')


def test_disabled_client_uses_mocks():
    client = GeminiClient(api_key='', session=FakeSession())
    assert not client.enabled
    assert 'tension headache' in client.chat('headache')
    data = client.prescription_recommendations({'symptoms': ['cough']})
    assert data['medications'][0]['name'] == 'Amlodipine'
    data['medications'][0]['name'] = 'changed'
    assert MOCK_RECOMMENDATIONS['medications'][0]['name'] == 'Amlodipine'
    with pytest.raises(AIServiceError):
        client.generate('hi')


def test_generate_posts_to_model_endpoint():
    session = FakeSession(_reply('Hello there'))
    assert _client(session).generate('hi', max_output_tokens=10) == 'Hello there'
    url, kwargs = session.calls[0]
    assert url == 'https://ai.test/v1/models/m:generateContent'
    assert kwargs['params'] == {'key': 'k'}
    assert kwargs['timeout'] == 5
    assert kwargs['json']['contents'][0]['parts'][0]['text'] == 'hi'
    assert kwargs['json']['generationConfig'] == {
        'temperature': 0.2, 'topP': 0.8, 'topK': 40, 'maxOutputTokens': 10,
    }


def test_chat_wraps_message_in_prompt():
    session = FakeSession(_reply('Rest and fluids.'))
    assert _client(session).chat('flu advice') == 'Rest and fluids.'
    prompt = session.calls[0][1]['json']['contents'][0]['parts'][0]['text']
    assert 'USER QUERY: flu advice' in prompt


@pytest.mark.parametrize('session', [
    FakeSession(exc=requests.ConnectionError('down')),
    FakeSession(FakeResponse({}, status=500)),
    FakeSession(FakeResponse(ValueError('not json'))),
    FakeSession(FakeResponse({'error': {'code': 429, 'message': 'quota'}})),
    FakeSession(FakeResponse({'candidates': []})),
])
def test_generate_failures_raise_service_error(session):
    with pytest.raises(AIServiceError):
        _client(session).generate('hi')


def test_recommendations_from_fenced_reply():
    text = 'Here you go:\n```json\n' + json.dumps(RECOMMENDATION) + '\n```\nStay safe.'
    session = FakeSession(_reply(text))
    data = _client(session).prescription_recommendations({
        'symptoms': ['headache', 'fever'],
        'allergies': ['Penicillin'],
        'vital_signs': {'blood_pressure': '120/80', 'heart_rate': 72},
    })
    med = data['medications'][0]
    assert med['name'] == 'Ibuprofen'
    assert med['route'] == 'Oral'
    assert med['warnings'] == []
    assert data['red_flags'] == []
    kwargs = session.calls[0][1]
    assert kwargs['json']['generationConfig']['maxOutputTokens'] == 2048
    prompt = kwargs['json']['contents'][0]['parts'][0]['text']
    assert 'Symptoms: headache, fever' in prompt
    assert 'Allergies: Penicillin' in prompt
    assert 'BP 120/80, HR 72' in prompt


def test_extract_json_plain_and_embedded():
    assert extract_json(json.dumps(RECOMMENDATION))['reasoning'] == 'Pain relief'
    noisy = 'Sure! {"note": 1} and then ' + json.dumps(RECOMMENDATION) + ' hope this helps'
    assert extract_json(noisy)['medications'][0]['name'] == 'Ibuprofen'


def test_extract_json_failures():
    with pytest.raises(AIServiceError):
        extract_json('no json here')
    with pytest.raises(AIServiceError):
        extract_json('{"reasoning": "no medications"}')


def test_parse_clinical_response_prefers_json():
    reply = 'Analysis:\n```json\n{"analysis": "viral", "confidence": 0.9}\n```'
    assert parse_clinical_response(reply) == {'analysis': 'viral', 'confidence': 0.9}
    nested = 'Note {"a": 1} then {"analysis": "flu", "red_flags": ["dehydration"]}'
    assert parse_clinical_response(nested)['analysis'] == 'flu'


def test_parse_clinical_response_wraps_free_text():
    data = parse_clinical_response('Probably a cold.')
    assert data['analysis'] == 'Probably a cold.'
    assert data['confidence'] == 0.6
    assert data['recommendations'][0]['category'] == 'clinical_review'


def test_complete_uses_raw_prompt():
    session = FakeSession(_reply('{"analysis": "ok"}'))
    assert _client(session).complete('SYMPTOM ANALYSIS') == '{"analysis": "ok"}'
    kwargs = session.calls[0][1]
    assert kwargs['json']['contents'][0]['parts'][0]['text'] == 'SYMPTOM ANALYSIS'
    assert kwargs['json']['generationConfig']['maxOutputTokens'] == 2048
    assert 'tension headache' in GeminiClient(api_key='', session=FakeSession()).complete('headache')


def test_normalize_fills_defaults():
    data = normalize_recommendations({'medications': [{}]})
    assert data['medications'][0]['name'] == 'Unknown medication'
    assert data['confidence_score'] == 75
    assert data['reasoning'] == 'AI-generated prescription recommendation'


def test_close_closes_session():
    session = FakeSession()
    _client(session).close()
    assert session.closed
