"""Device capabilities consumed by the verification flow.

The flow only talks to the Protocols below. In the web app the browser owns
the real devices, so the ``Reported*`` adapters replay what the client sent
(a position fix, a camera permission result, a speech transcript) and raise
DeviceUnavailable for the error codes the browser APIs report.

Face and speaker checks are baselines: a settle-delay timer and a first-name
substring match. Swap in real models by implementing FaceDetector and
SpeakerVerifier.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Protocol

from ..core.constants import FACE_SETTLE_SECONDS
from ..core.exceptions import DeviceUnavailable, ValidationError
from .model import Position


@dataclass(frozen=True)
class Frame:
    captured_at: datetime
    stream_started_at: datetime
    data: Optional[bytes] = None


class PositionProvider(Protocol):
    def current_position(self) -> Position:
        raise NotImplementedError


class CaptureHandle(Protocol):
    def read_frame(self, now: datetime) -> Frame:
        raise NotImplementedError

    def release(self) -> None:
        raise NotImplementedError


class CaptureDevice(Protocol):
    def acquire(self, now: datetime) -> CaptureHandle:
        raise NotImplementedError


class SpeechRecognizer(Protocol):
    supported: bool

    def listen_once(self, *, lang: str) -> str:
        """Single utterance, non-continuous; returns the transcript."""

        raise NotImplementedError


class FaceDetector(Protocol):
    def detect_face(self, frame: Frame) -> bool:
        raise NotImplementedError


class SpeakerVerifier(Protocol):
    def verify_speaker(self, transcript: str, expected_name: str) -> bool:
        raise NotImplementedError


class SettleDelayFaceDetector(FaceDetector):
    """Reports a face once the stream has been open for the settle delay."""

    def __init__(self, settle: timedelta = timedelta(seconds=FACE_SETTLE_SECONDS)):
        self._settle = settle

    def detect_face(self, frame: Frame) -> bool:
        return frame.captured_at - frame.stream_started_at >= self._settle


class FirstNameSpeakerVerifier(SpeakerVerifier):
    """Transcript must contain the first token of the expected name (case-insensitive)."""

    def verify_speaker(self, transcript: str, expected_name: str) -> bool:
        first = (expected_name or "").lower().split(" ")[0]
        if not first:
            return False
        return first in (transcript or "").lower()


# ---- client-reported adapters ---------------------------------------------


class ReportedPosition(PositionProvider):
    def __init__(self, payload: Optional[Mapping[str, Any]]):
        self._payload = payload or {}

    def current_position(self) -> Position:
        error = self._payload.get("error")
        if error == "unsupported":
            raise DeviceUnavailable("Geolocation is not supported by your browser", device="geolocation")
        if error:
            raise DeviceUnavailable("Unable to get your location. Please enable location services.", device="geolocation")

        try:
            latitude = float(self._payload["latitude"])
            longitude = float(self._payload["longitude"])
        except (KeyError, TypeError, ValueError):
            raise ValidationError("Position requires numeric latitude and longitude")

        if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
            raise ValidationError("Position is out of range")

        accuracy = self._payload.get("accuracy")
        return Position(
            latitude=latitude,
            longitude=longitude,
            accuracy=float(accuracy) if accuracy is not None else None,
        )


class ReportedCaptureHandle(CaptureHandle):
    def __init__(self, opened_at: datetime):
        self.opened_at = opened_at
        self.released = False

    def read_frame(self, now: datetime) -> Frame:
        if self.released:
            raise DeviceUnavailable("Camera stream has ended", device="camera", retryable=False)
        return Frame(captured_at=now, stream_started_at=self.opened_at)

    def release(self) -> None:
        self.released = True


class ReportedCamera(CaptureDevice):
    def __init__(self, payload: Optional[Mapping[str, Any]]):
        self._payload = payload or {}

    def acquire(self, now: datetime) -> CaptureHandle:
        if self._payload.get("error"):
            raise DeviceUnavailable(
                "Unable to access camera. Please enable camera permissions.",
                device="camera",
                retryable=False,
            )
        return ReportedCaptureHandle(opened_at=now)


class ReportedSpeech(SpeechRecognizer):
    def __init__(self, payload: Optional[Mapping[str, Any]]):
        self._payload = payload or {}
        self.supported = bool(self._payload.get("supported", True))

    def listen_once(self, *, lang: str) -> str:
        if self._payload.get("error"):
            raise DeviceUnavailable("Voice recognition error", device="microphone")
        return str(self._payload.get("transcript") or "")
