import io
import zipfile

from fastapi.testclient import TestClient

from legalease.app import app
from legalease.config import Settings
from legalease.errors import RemoteServiceError
from legalease.tests.fakes import FakeGeminiClient, analysis_json

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 16


def _docx_bytes(paragraph):
    xml = (
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f'<w:body><w:p><w:r><w:t>{paragraph}</w:t></w:r></w:p></w:body></w:document>'
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        archive.writestr('word/document.xml', xml)
    return buffer.getvalue()


def _use_client(monkeypatch, fake):
    monkeypatch.setattr('legalease.app.get_gemini_client', lambda: fake)
    return fake


def test_health_routes():
    client = TestClient(app)

    assert client.get('/health').json() == {'status': 'ok'}
    assert client.get('/api/health').json() == {'status': 'ok'}
    assert client.get('/').json()['status'] == 'running'


def test_gemini_health_reflects_api_key(monkeypatch):
    client = TestClient(app)

    monkeypatch.setattr('legalease.app.settings', Settings(gemini_api_key=''))
    missing = client.get('/gemini/health')
    monkeypatch.setattr('legalease.app.settings', Settings(gemini_api_key='test-key'))
    present = client.get('/api/gemini/health')

    assert missing.status_code == 500
    assert missing.json()['has_api_key'] is False
    assert present.status_code == 200
    assert present.json()['status'] == 'success'


def test_analyze_returns_analysis_and_path(monkeypatch):
    fake = _use_client(monkeypatch, FakeGeminiClient([analysis_json(summary_en='Lease reviewed.')]))
    client = TestClient(app)

    response = client.post(
        '/api/gemini/analyze',
        json={'text': 'The tenant shall pay rent.', 'language': 'en', 'fileName': 'lease.pdf'},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload['status'] == 'success'
    assert payload['analysis']['summary_en'] == 'Lease reviewed.'
    assert payload['metadata']['analysis_path'] == 'single_shot'
    assert len(fake.calls) == 1


def test_analyze_without_client_uses_fallback(monkeypatch):
    monkeypatch.setattr('legalease.app.get_gemini_client', lambda: None)
    client = TestClient(app)

    response = client.post('/gemini/analyze', json={'text': 'e-challan notice', 'fileName': 'scan.pdf'})

    assert response.status_code == 200
    payload = response.json()
    assert payload['metadata']['analysis_path'] == 'fallback'
    assert payload['analysis']['clauses'][0]['risk_level'] == 'HIGH'


def test_analyze_rejects_empty_text():
    client = TestClient(app)

    response = client.post('/gemini/analyze', json={'text': '   '})

    assert response.status_code == 400
    assert response.json()['status'] == 'error'


def test_chat_returns_answer_and_evidence(monkeypatch):
    reply = '{"answer": "You may contest it in court.", "evidence": [{"chunk_id": 2, "snippet": "Section 200"}]}'
    _use_client(monkeypatch, FakeGeminiClient([reply]))
    client = TestClient(app)

    response = client.post('/gemini/chat', json={'question': 'Can I contest?', 'context': 'challan', 'docId': 'd1'})

    assert response.status_code == 200
    payload = response.json()
    assert payload['answer'] == 'You may contest it in court.'
    assert payload['evidence'] == [{'chunk_id': 2, 'snippet': 'Section 200'}]


def test_chat_validation_and_unconfigured_service(monkeypatch):
    monkeypatch.setattr('legalease.app.get_gemini_client', lambda: None)
    client = TestClient(app)

    assert client.post('/gemini/chat', json={'question': ''}).status_code == 400
    response = client.post('/gemini/chat', json={'question': 'Is this valid?'})
    assert response.status_code == 500
    assert 'API key' in response.json()['message']


def test_chat_quota_error_is_classified(monkeypatch):
    _use_client(monkeypatch, FakeGeminiClient([RemoteServiceError(429, 'Quota exceeded')]))
    client = TestClient(app)

    response = client.post('/gemini/chat', json={'question': 'Is this valid?'})

    assert response.status_code == 429
    assert response.json()['category'] == 'quota'


def test_chat_unknown_error_keeps_generic_message(monkeypatch):
    _use_client(monkeypatch, FakeGeminiClient([RuntimeError('boom')]))
    client = TestClient(app)

    response = client.post('/gemini/chat', json={'question': 'Is this valid?'})

    assert response.status_code == 500
    assert response.json()['message'] == 'Failed to get AI response'


def test_summary_route(monkeypatch):
    fake = _use_client(monkeypatch, FakeGeminiClient(['  A short   summary. ']))
    client = TestClient(app)

    response = client.post('/api/gemini/summary', json={'text': 'Long agreement text', 'language': 'hi'})

    assert response.status_code == 200
    assert response.json()['summary'] == 'A short summary.'
    assert 'Devanagari' in fake.calls[0]['parts'][0]['text']


def test_summary_network_error(monkeypatch):
    _use_client(monkeypatch, FakeGeminiClient([RemoteServiceError(None, 'network error: timed out')]))
    client = TestClient(app)

    response = client.post('/gemini/summary', json={'text': 'Long agreement text'})

    assert response.status_code == 503
    assert response.json()['category'] == 'network'


def test_upload_without_file():
    client = TestClient(app)

    response = client.post('/documents/upload', data={'language': 'en'})

    assert response.status_code == 400


def test_upload_unsupported_type():
    client = TestClient(app)

    response = client.post(
        '/api/documents/upload',
        files={'file': ('notes.txt', b'hello', 'text/plain')},
        data={'language': 'en'},
    )

    assert response.status_code == 415
    assert response.json()['status'] == 'error'


def test_upload_docx_is_analyzed(monkeypatch):
    _use_client(monkeypatch, FakeGeminiClient())
    client = TestClient(app)

    response = client.post(
        '/documents/upload',
        files={'file': ('lease.docx', _docx_bytes('The tenant shall pay rent.'), 'application/octet-stream')},
        data={'language': 'en'},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload['file_name'] == 'lease.docx'
    assert payload['text'] == 'The tenant shall pay rent.'
    assert payload['analysis_path'] == 'single_shot'
    assert payload['analysis']['clauses'][0]['title'] == 'Rent'


def test_upload_image_goes_to_vision(monkeypatch):
    fake = _use_client(monkeypatch, FakeGeminiClient())
    client = TestClient(app)

    response = client.post(
        '/documents/upload',
        files={'file': ('challan.png', PNG_BYTES, 'image/png')},
        data={'language': 'hi'},
    )

    assert response.status_code == 200
    assert response.json()['file_type'] == 'image/png'
    assert fake.calls[0]['parts'][1]['inline_data']['mime_type'] == 'image/png'


def _record_threadpool(monkeypatch):
    offloaded = []

    async def _run_in_threadpool(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return func(*args, **kwargs)

    monkeypatch.setattr('legalease.app.run_in_threadpool', _run_in_threadpool)
    return offloaded


def test_upload_analysis_runs_in_threadpool(monkeypatch):
    offloaded = _record_threadpool(monkeypatch)
    _use_client(monkeypatch, FakeGeminiClient())
    client = TestClient(app)

    response = client.post(
        '/documents/upload',
        files={'file': ('lease.docx', _docx_bytes('Rent is due monthly.'), 'application/octet-stream')},
        data={'language': 'en'},
    )

    assert response.status_code == 200
    assert offloaded == ['analyze_upload']


def test_extract_text_runs_in_threadpool(monkeypatch):
    offloaded = _record_threadpool(monkeypatch)
    client = TestClient(app)

    response = client.post(
        '/documents/extract-text',
        files={'file': ('lease.docx', _docx_bytes('Rent is due monthly.'), 'application/octet-stream')},
    )

    assert response.status_code == 200
    assert offloaded == ['extract_content']


def test_extract_text_routes():
    client = TestClient(app)

    docx = client.post(
        '/documents/extract-text',
        files={'file': ('lease.docx', _docx_bytes('Rent is due monthly.'), 'application/octet-stream')},
    )
    image = client.post('/documents/extract-text', files={'file': ('scan.png', PNG_BYTES, 'image/png')})
    unsupported = client.post('/documents/extract-text', files={'file': ('notes.txt', b'hi', 'text/plain')})
    broken = client.post(
        '/documents/extract-text',
        files={'file': ('broken.docx', b'not a zip', 'application/octet-stream')},
    )

    assert docx.json()['text'] == 'Rent is due monthly.'
    assert image.json()['text'].startswith('[IMAGE_DATA:image/png]data:image/png;base64,')
    assert unsupported.status_code == 415
    assert broken.status_code == 400
