import enum


class KneeSide(str, enum.Enum):
    LEFT = 'left'
    RIGHT = 'right'

    @property
    def opposite(self) -> 'KneeSide':
        return KneeSide.RIGHT if self is KneeSide.LEFT else KneeSide.LEFT


class InjuryType(str, enum.Enum):
    ACL_ONLY = 'acl_only'
    ACL_MENISCUS = 'acl_meniscus'
    ACL_MCL = 'acl_mcl'
    ACL_MENISCUS_MCL = 'acl_meniscus_mcl'
    OTHER = 'other'

    @property
    def description(self) -> str:
        return INJURY_DESCRIPTIONS[self]


INJURY_DESCRIPTIONS = {
    InjuryType.ACL_ONLY: 'ACL reconstruction',
    InjuryType.ACL_MENISCUS: 'ACL reconstruction with meniscus repair',
    InjuryType.ACL_MCL: 'ACL and MCL repair',
    InjuryType.ACL_MENISCUS_MCL: 'ACL, meniscus, and MCL repair',
    InjuryType.OTHER: 'knee surgery',
}


class MeasurementType(str, enum.Enum):
    EXTENSION = 'extension'
    FLEXION = 'flexion'

    @property
    def goal_angle(self) -> int:
        return 0 if self is MeasurementType.EXTENSION else 135


class ErrorKind(str, enum.Enum):
    INVALID_INPUT = 'invalid_input'
    UNAUTHENTICATED = 'unauthenticated'
    NO_RELIABLE_KEYPOINTS = 'no_reliable_keypoints'
    MALFORMED_RESPONSE = 'malformed_response'
    MISSING_ANGLE = 'missing_angle'
    RATE_LIMITED = 'rate_limited'
    TIMEOUT = 'timeout'
    INTERNAL = 'internal'
