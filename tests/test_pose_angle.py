import pytest

from aclrehab.core.data_types import PoseCandidate
from aclrehab.core.detector import PoseDetector
from aclrehab.helpers.enums import KneeSide
from aclrehab.helpers.exception_handler import (
    EstimationTimeoutError, InternalEstimationError, InvalidInputError, MalformedResponseError,
    NoReliableKeypointsError, RateLimitedError,
)
from aclrehab.schemas.sche_knee_angle import Keypoint
from aclrehab.services.srv_angle_estimation import AngleEstimationClient, AngleEstimationTransport
from aclrehab.services.srv_pose_angle import GeometricAngleEstimator, KneeAngleMeasurer
from tests.conftest import make_jpeg


def right_angle_candidate(confidence=0.9):
    return PoseCandidate(joints={
        'right_hip': Keypoint(x=200, y=500, confidence=confidence),
        'right_knee': Keypoint(x=500, y=500, confidence=0.95),
        'right_ankle': Keypoint(x=500, y=800, confidence=0.99),
    })


class FixedDetector(PoseDetector):
    def __init__(self, candidates):
        self.candidates = candidates
        self.calls = 0

    def detect(self, image_bytes):
        self.calls += 1
        return self.candidates


class FailingTransport(AngleEstimationTransport):
    def __init__(self, error):
        self.error = error

    def send(self, payload):
        raise self.error


def test_geometric_estimate_from_candidates():
    result = GeometricAngleEstimator(threshold=0.3).estimate_from_candidates([right_angle_candidate(0.8)])
    assert result.angle_degrees == 90
    assert result.confidence == 0.8
    assert result.knee.x == 500
    assert not result.confidence_defaulted


def test_geometric_estimate_rejects_degenerate_leg():
    candidate = PoseCandidate(joints={
        'left_hip': Keypoint(x=0.5, y=0.5, confidence=0.9),
        'left_knee': Keypoint(x=0.5, y=0.5, confidence=0.9),
        'left_ankle': Keypoint(x=0.5, y=0.9, confidence=0.9),
    })
    with pytest.raises(InvalidInputError):
        GeometricAngleEstimator().estimate_from_candidates([candidate], injured_side=KneeSide.LEFT)


def test_geometric_estimate_without_detector():
    with pytest.raises(InternalEstimationError):
        GeometricAngleEstimator().estimate(make_jpeg())


def test_geometric_estimate_with_detector_and_no_body():
    with pytest.raises(NoReliableKeypointsError):
        GeometricAngleEstimator(FixedDetector([])).estimate(make_jpeg())


@pytest.mark.parametrize('error', [InternalEstimationError('offline'), EstimationTimeoutError()])
def test_measurer_falls_back_when_remote_is_unavailable(error):
    detector = FixedDetector([right_angle_candidate()])
    measurer = KneeAngleMeasurer(
        client=AngleEstimationClient(FailingTransport(error)),
        geometric=GeometricAngleEstimator(detector),
        fallback_enabled=True,
    )
    assert measurer.measure(make_jpeg()).angle_degrees == 90
    assert detector.calls == 1


@pytest.mark.parametrize('error', [RateLimitedError(), NoReliableKeypointsError(), MalformedResponseError()])
def test_measurer_reports_other_failures(error):
    detector = FixedDetector([right_angle_candidate()])
    measurer = KneeAngleMeasurer(
        client=AngleEstimationClient(FailingTransport(error)),
        geometric=GeometricAngleEstimator(detector),
        fallback_enabled=True,
    )
    with pytest.raises(type(error)):
        measurer.measure(make_jpeg())
    assert detector.calls == 0


def test_measurer_fallback_can_be_disabled():
    measurer = KneeAngleMeasurer(
        client=AngleEstimationClient(FailingTransport(InternalEstimationError())),
        geometric=GeometricAngleEstimator(FixedDetector([right_angle_candidate()])),
        fallback_enabled=False,
    )
    with pytest.raises(InternalEstimationError):
        measurer.measure(make_jpeg())


def test_measurer_without_client_uses_geometry():
    measurer = KneeAngleMeasurer(geometric=GeometricAngleEstimator(FixedDetector([right_angle_candidate()])))
    assert measurer.measure(make_jpeg()).angle_degrees == 90
