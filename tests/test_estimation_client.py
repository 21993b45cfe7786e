import base64
import io
import json
from unittest import mock

import pytest
import requests
from PIL import Image

from aclrehab.helpers.enums import ErrorKind, KneeSide
from aclrehab.helpers.exception_handler import (
    EstimationTimeoutError, InternalEstimationError, InvalidInputError, MalformedResponseError,
    MissingAngleError, NoReliableKeypointsError, RateLimitedError, UnauthenticatedError, error_from_wire,
)
from aclrehab.services.srv_angle_estimation import (
    AgentAngleTransport, AngleEstimationClient, AngleEstimationTransport, HttpAngleTransport,
)
from tests.conftest import make_jpeg


class RecordingTransport(AngleEstimationTransport):
    def __init__(self, body=None, error=None):
        self.body = body if body is not None else {'angle': 42, 'confidence': 0.9}
        self.error = error
        self.payloads = []

    def send(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.body


def make_response(status_code=200, body=None, text=None):
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    content = text if text is not None else json.dumps(body)
    response.content = content.encode('utf-8')
    if body is not None:
        response.json.return_value = body
    else:
        response.json.side_effect = ValueError('No JSON')
    return response


def make_http_transport(response=None, error=None):
    session = mock.Mock(spec=requests.Session)
    session.headers = {}
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    return HttpAngleTransport('https://rehab.example.com/', access_token='token-123', timeout=5, session=session)


# ==================== CLIENT ====================

def test_estimate_sends_resized_jpeg():
    transport = RecordingTransport()
    client = AngleEstimationClient(transport, max_dimension=1024, jpeg_quality=80)

    result = client.estimate(make_jpeg(2048, 1536))

    assert result.angle_degrees == 42
    payload = transport.payloads[0]
    sent = Image.open(io.BytesIO(base64.b64decode(payload['imageBase64'])))
    assert sent.format == 'JPEG'
    assert sent.size == (1024, 768)
    assert 'injuredKnee' not in payload
    assert 'injuryType' not in payload


def test_estimate_passes_context_and_second_image():
    transport = RecordingTransport()
    client = AngleEstimationClient(transport)

    client.estimate(make_jpeg(), injured_side='left', injury_context='acl_mcl', second_image=make_jpeg(30, 30))

    payload = transport.payloads[0]
    assert payload['injuredKnee'] == 'left'
    assert payload['injuryType'] == 'acl_mcl'
    assert 'imageBase64_2' in payload


def test_estimate_defaults_missing_confidence():
    client = AngleEstimationClient(RecordingTransport(body={'angle': 12}), default_confidence=0.8)
    result = client.estimate(make_jpeg())
    assert result.confidence == 0.8
    assert result.confidence_defaulted


@pytest.mark.parametrize('kwargs', [{'injured_side': 'middle'}, {'injury_context': 'broken'}])
def test_estimate_rejects_unknown_tags(kwargs):
    transport = RecordingTransport()
    with pytest.raises(InvalidInputError):
        AngleEstimationClient(transport).estimate(make_jpeg(), **kwargs)
    assert transport.payloads == []


def test_estimate_rejects_empty_image_without_sending():
    transport = RecordingTransport()
    with pytest.raises(InvalidInputError):
        AngleEstimationClient(transport).estimate(b'')
    assert transport.payloads == []


def test_transport_errors_pass_through():
    client = AngleEstimationClient(RecordingTransport(error=RateLimitedError()))
    with pytest.raises(RateLimitedError):
        client.estimate(make_jpeg())


def test_unexpected_transport_failure_is_internal():
    client = AngleEstimationClient(RecordingTransport(error=RuntimeError('socket closed')))
    with pytest.raises(InternalEstimationError) as exc_info:
        client.estimate(make_jpeg())
    assert exc_info.value.kind == ErrorKind.INTERNAL


@pytest.mark.parametrize('body, expected', [
    (b'{"angle": 1' + b'0' * 400 + b', "confidence": 0.9}', 180),
    (b'{"angle": -1' + b'0' * 400 + b', "confidence": 0.9}', 0),
])
def test_estimate_clamps_huge_integer_angle(body, expected):
    result = AngleEstimationClient(RecordingTransport(body=body)).estimate(make_jpeg())
    assert result.angle_degrees == expected


def test_estimate_rejects_deeply_nested_body():
    client = AngleEstimationClient(RecordingTransport(body=b'[' * 100000 + b']' * 100000))
    with pytest.raises(MalformedResponseError):
        client.estimate(make_jpeg())


def test_estimate_rejects_decompression_bomb(monkeypatch):
    monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 1000)
    transport = RecordingTransport()
    with pytest.raises(InvalidInputError):
        AngleEstimationClient(transport).estimate(make_jpeg(100, 100))
    assert transport.payloads == []


def test_estimate_async_returns_result():
    import asyncio

    client = AngleEstimationClient(RecordingTransport(body={'angle': 77, 'confidence': 0.6}))
    result = asyncio.run(client.estimate_async(make_jpeg(), injured_side=KneeSide.RIGHT))
    assert result.angle_degrees == 77


# ==================== HTTP TRANSPORT ====================

def test_http_transport_posts_to_analyze_with_bearer_token():
    transport = make_http_transport(make_response(body={'angle': 30, 'confidence': 0.9}))

    body = transport.send({'imageBase64': 'abc'})

    transport.session.post.assert_called_once_with(
        'https://rehab.example.com/api/knee-angle/analyze', json={'imageBase64': 'abc'}, timeout=5
    )
    assert transport.session.headers['Authorization'] == 'Bearer token-123'
    assert json.loads(body) == {'angle': 30, 'confidence': 0.9}


@pytest.mark.parametrize('status, body, expected', [
    (429, {'success': False, 'code': 'resource-exhausted', 'message': 'Too many requests'}, RateLimitedError),
    (422, {'success': False, 'code': 'failed-precondition', 'message': 'No leg'}, NoReliableKeypointsError),
    (401, None, UnauthenticatedError),
    (400, {'code': 'invalid-argument'}, InvalidInputError),
    (504, None, EstimationTimeoutError),
    (500, {'code': 'internal', 'message': 'boom'}, InternalEstimationError),
    (503, None, InternalEstimationError),
])
def test_http_transport_maps_failures(status, body, expected):
    transport = make_http_transport(make_response(status, body=body, text=None if body else 'error'))
    with pytest.raises(expected):
        transport.send({'imageBase64': 'abc'})


def test_http_transport_timeout():
    transport = make_http_transport(error=requests.Timeout('read timed out'))
    with pytest.raises(EstimationTimeoutError) as exc_info:
        transport.send({'imageBase64': 'abc'})
    assert exc_info.value.kind == ErrorKind.TIMEOUT


def test_http_transport_connection_failure_is_internal():
    transport = make_http_transport(error=requests.ConnectionError('connection refused'))
    with pytest.raises(InternalEstimationError) as exc_info:
        transport.send({'imageBase64': 'abc'})
    assert not isinstance(exc_info.value, EstimationTimeoutError)


def test_client_over_http_rejects_html_body():
    transport = make_http_transport(make_response(200, text='<html>proxy error</html>'))
    with pytest.raises(MalformedResponseError):
        AngleEstimationClient(transport).estimate(make_jpeg())


def test_client_over_http_rejects_body_without_angle():
    transport = make_http_transport(make_response(200, body={'confidence': 0.9}))
    with pytest.raises(MissingAngleError):
        AngleEstimationClient(transport).estimate(make_jpeg())


# ==================== AGENT TRANSPORT ====================

def test_agent_transport_round_trip(agent, fake_gemini):
    fake_gemini.text = '{"angle": 88.4, "confidence": 0.75}'
    result = AngleEstimationClient(AgentAngleTransport(agent)).estimate(make_jpeg(), injured_side='right')
    assert result.angle_degrees == 88
    assert result.confidence == 0.75
    assert 'RIGHT knee' in fake_gemini.calls[0]['prompt']


def test_agent_transport_clamps_huge_integer_angle(agent, fake_gemini):
    fake_gemini.text = '{"angle": 1' + '0' * 400 + ', "confidence": 0.9}'
    result = AngleEstimationClient(AgentAngleTransport(agent)).estimate(make_jpeg())
    assert result.angle_degrees == 180


def test_agent_transport_rejects_unknown_side(agent):
    with pytest.raises(InvalidInputError):
        AgentAngleTransport(agent).send({'imageBase64': 'abc', 'injuredKnee': 'middle'})


# ==================== WIRE CODES ====================

@pytest.mark.parametrize('code, status, expected_kind', [
    ('invalid-argument', 500, ErrorKind.INVALID_INPUT),
    ('unauthenticated', None, ErrorKind.UNAUTHENTICATED),
    ('failed-precondition', None, ErrorKind.NO_RELIABLE_KEYPOINTS),
    ('resource-exhausted', None, ErrorKind.RATE_LIMITED),
    ('deadline-exceeded', None, ErrorKind.TIMEOUT),
    ('unavailable', None, ErrorKind.INTERNAL),
    (None, 403, ErrorKind.UNAUTHENTICATED),
    (None, None, ErrorKind.INTERNAL),
])
def test_error_from_wire(code, status, expected_kind):
    error = error_from_wire(code, 'message', http_status=status)
    assert error.kind == expected_kind
    assert error.message == 'message'


def test_error_from_wire_uses_user_message_by_default():
    error = error_from_wire('resource-exhausted')
    assert error.message == 'Too many requests. Please wait a moment and try again.'
