from __future__ import annotations

from enum import Enum


class PrincipalRole(str, Enum):
    """Who is asking the persistence layer for rows."""

    ANONYMOUS = "anonymous"
    STUDENT = "student"
    SERVICE = "service"


class VerificationStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"


class VerificationMethod(str, Enum):
    FACE_AND_VOICE = "face+voice"
    FACE_ONLY = "face_only"


class FlowState(str, Enum):
    """Tagged state of one attendance verification session."""

    IDLE = "idle"
    LOCATION = "location"
    CAMERA = "camera"
    VOICE = "voice"
    COMPLETE = "complete"
    ABORTED = "aborted"


class VoiceOutcome(str, Enum):
    PENDING = "pending"
    MATCHED = "matched"
    FALLBACK = "fallback"


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Action(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
