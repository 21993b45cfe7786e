import base64

import pytest
from pydantic import ValidationError

from aclrehab.helpers.enums import ErrorKind, InjuryType, KneeSide
from aclrehab.helpers.exception_handler import (
    InternalEstimationError, MalformedResponseError, MissingAngleError,
)
from aclrehab.schemas.sche_knee_angle import (
    UNKNOWN_KEYPOINT, AngleEstimationRequest, AngleResult, Keypoint, parse_angle_response,
)


@pytest.mark.parametrize('raw_angle, expected', [
    (-12, 0),
    (0, 0),
    (44.6, 45),
    (180, 180),
    (250, 180),
])
def test_angle_is_rounded_and_clamped(raw_angle, expected):
    result = parse_angle_response({'angle': raw_angle, 'confidence': 0.9})
    assert result.angle_degrees == expected


def test_missing_confidence_uses_default_and_is_flagged():
    result = parse_angle_response({'angle': 30})
    assert result.confidence == 0.8
    assert result.confidence_defaulted


def test_default_confidence_is_configurable():
    result = parse_angle_response({'angle': 30}, default_confidence=0.5)
    assert result.confidence == 0.5


def test_explicit_zero_confidence_is_kept():
    result = parse_angle_response({'angle': 30, 'confidence': 0})
    assert result.confidence == 0.0
    assert not result.confidence_defaulted


def test_confidence_is_clamped():
    assert parse_angle_response({'angle': 30, 'confidence': 1.7}).confidence == 1.0


def test_angle_only_payload_has_unknown_keypoints():
    result = parse_angle_response({'angle': 45, 'confidence': 0.9})
    assert result.hip == UNKNOWN_KEYPOINT
    assert result.knee == UNKNOWN_KEYPOINT
    assert result.ankle == UNKNOWN_KEYPOINT
    assert not result.has_keypoints


def test_partial_keypoints():
    result = parse_angle_response({
        'angle': 45,
        'confidence': 0.7,
        'hip': {'x': 0.4, 'y': 0.2, 'confidence': 0.95},
        'knee': {'x': 0.5},
        'ankle': 'nowhere',
    })
    assert result.hip == Keypoint(x=0.4, y=0.2, confidence=0.95)
    # Missing y defaults to 0, confidence inherited from the result
    assert result.knee == Keypoint(x=0.5, y=0.0, confidence=0.7)
    assert result.ankle.is_unknown
    assert result.has_keypoints


def test_origin_keypoint_without_confidence_is_unknown():
    result = parse_angle_response({'angle': 45, 'confidence': 0.7, 'hip': {'x': 0, 'y': 0}})
    assert result.hip.is_unknown


@pytest.mark.parametrize('payload', [
    {'confidence': 0.9},
    {'angle': 'ninety', 'confidence': 0.9},
    {'angle': None},
    {'angle': True},
    {'angle': float('nan')},
])
def test_missing_angle(payload):
    with pytest.raises(MissingAngleError) as exc_info:
        parse_angle_response(payload)
    assert exc_info.value.kind == ErrorKind.MISSING_ANGLE
    assert isinstance(exc_info.value, InternalEstimationError)


@pytest.mark.parametrize('payload', [b'not json', '<html></html>', '[1, 2]', 42, None])
def test_malformed_payload(payload):
    with pytest.raises(MalformedResponseError) as exc_info:
        parse_angle_response(payload)
    assert exc_info.value.is_internal


def test_raw_json_bytes_are_parsed():
    result = parse_angle_response(b'{"angle": 91, "confidence": 0.66}')
    assert result.angle_degrees == 91
    assert result.confidence == 0.66


@pytest.mark.parametrize('raw_angle, expected', [
    (10 ** 400, 180),
    (-10 ** 400, 0),
])
def test_huge_integer_angle_is_clamped(raw_angle, expected):
    assert parse_angle_response({'angle': raw_angle, 'confidence': 0.9}).angle_degrees == expected


def test_huge_keypoint_coordinate_defaults_to_zero():
    result = parse_angle_response({'angle': 30, 'hip': {'x': 10 ** 400, 'y': 0.5, 'confidence': 0.9}})
    assert result.hip == Keypoint(x=0.0, y=0.5, confidence=0.9)


def test_deeply_nested_json_is_malformed():
    with pytest.raises(MalformedResponseError):
        parse_angle_response(b'[' * 100000 + b']' * 100000)


def test_result_rejects_out_of_range_angle():
    with pytest.raises(ValidationError):
        AngleResult(angle_degrees=181, confidence=0.5)


def test_result_to_wire_omits_unknown_keypoints():
    result = AngleResult(angle_degrees=10, confidence=0.5, knee=Keypoint(x=1, y=2, confidence=0.4))
    assert result.to_wire() == {
        'angle': 10,
        'confidence': 0.5,
        'knee': {'x': 1.0, 'y': 2.0, 'confidence': 0.4},
    }


def test_request_to_wire_includes_only_present_fields():
    request = AngleEstimationRequest(image=b'abc')
    assert request.to_wire() == {'imageBase64': base64.b64encode(b'abc').decode('ascii')}


def test_request_to_wire_with_context():
    request = AngleEstimationRequest(
        image=b'abc',
        second_image=b'def',
        injured_side=KneeSide.LEFT,
        injury_context=InjuryType.ACL_MENISCUS,
    )
    wire = request.to_wire()
    assert wire['imageBase64_2'] == base64.b64encode(b'def').decode('ascii')
    assert wire['injuredKnee'] == 'left'
    assert wire['injuryType'] == 'acl_meniscus'


def test_request_requires_image_bytes():
    with pytest.raises(ValidationError):
        AngleEstimationRequest(image=b'')


def test_result_survives_wire_round_trip():
    result = AngleResult(
        angle_degrees=73,
        confidence=0.64,
        hip=Keypoint(x=0.41, y=0.2, confidence=0.9),
        knee=Keypoint(x=0.45, y=0.52, confidence=0.8),
        ankle=Keypoint(x=0.7, y=0.75, confidence=0.85),
    )
    assert parse_angle_response(result.to_wire()) == result
