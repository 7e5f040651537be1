"""Attendance verification state machine.

One session per student walks Location -> Camera -> Voice -> Complete.
Nothing retries on its own; every retry is the user calling the current
step again. Errors never leave a step: they become notifications on the
session, and the session stays interactive (or moves to ABORTED when the
camera is lost, which only reset() leaves).
"""
from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..common.geo import haversine_distance
from ..common.logger import get_logger
from ..core.constants import (
    CAMPUS_LATITUDE,
    CAMPUS_LONGITUDE,
    CAMPUS_RADIUS_METERS,
    FACE_SETTLE_SECONDS,
    SPEECH_LANGUAGE,
    VOICE_FALLBACK_SECONDS,
)
from ..core.enums import FlowState, VerificationMethod, VoiceOutcome
from ..core.exceptions import DeviceUnavailable, DomainError, PersistenceError, ValidationError, VerificationMismatch
from ..database.access_policy import Principal
from ..students.model import Student
from .devices import (
    CaptureDevice,
    CaptureHandle,
    FaceDetector,
    FirstNameSpeakerVerifier,
    PositionProvider,
    SettleDelayFaceDetector,
    SpeakerVerifier,
    SpeechRecognizer,
)
from .model import AttendanceRecord
from .service import AttendanceService

logger = get_logger(__name__)


@dataclass(frozen=True)
class FlowSettings:
    campus_latitude: float = CAMPUS_LATITUDE
    campus_longitude: float = CAMPUS_LONGITUDE
    radius_meters: float = CAMPUS_RADIUS_METERS
    face_settle: timedelta = timedelta(seconds=FACE_SETTLE_SECONDS)
    voice_fallback_delay: timedelta = timedelta(seconds=VOICE_FALLBACK_SECONDS)
    voice_fallback_enabled: bool = True
    speech_language: str = SPEECH_LANGUAGE


@dataclass(frozen=True)
class FlowEvent:
    at: datetime
    kind: str
    state: FlowState
    detail: Optional[str] = None


@dataclass(frozen=True)
class Notification:
    notification_id: int
    level: str
    message: str
    retryable: bool = True
    error: Optional[str] = None


@dataclass
class VerificationSession:
    session_id: str
    student: Student
    state: FlowState = FlowState.IDLE
    face_detected: bool = False
    voice: VoiceOutcome = VoiceOutcome.PENDING
    voice_fallback_due: Optional[datetime] = None
    capture: Optional[CaptureHandle] = None
    last_distance_m: Optional[float] = None
    record: Optional[AttendanceRecord] = None
    events: List[FlowEvent] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)
    _next_notification_id: int = 1

    @property
    def voice_verified(self) -> bool:
        return self.voice in (VoiceOutcome.MATCHED, VoiceOutcome.FALLBACK)

    @property
    def ready_to_submit(self) -> bool:
        return self.state == FlowState.VOICE and self.face_detected and self.voice_verified

    @property
    def verification_method(self) -> VerificationMethod:
        if self.voice_verified:
            return VerificationMethod.FACE_AND_VOICE
        return VerificationMethod.FACE_ONLY

    def log(self, now: datetime, kind: str, detail: Optional[str] = None) -> None:
        self.events.append(FlowEvent(at=now, kind=kind, state=self.state, detail=detail))

    def notify(self, level: str, message: str, *, retryable: bool = True, error: Optional[str] = None) -> Notification:
        n = Notification(
            notification_id=self._next_notification_id,
            level=level,
            message=message,
            retryable=retryable,
            error=error,
        )
        self._next_notification_id += 1
        self.notifications.append(n)
        return n

    def dismiss(self, notification_id: int) -> bool:
        before = len(self.notifications)
        self.notifications = [n for n in self.notifications if n.notification_id != int(notification_id)]
        return len(self.notifications) != before

    def snapshot(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "face_detected": self.face_detected,
            "voice": self.voice.value,
            "voice_pending_fallback": self.voice_fallback_due is not None,
            "camera_active": self.capture is not None,
            "distance_m": round(self.last_distance_m) if self.last_distance_m is not None else None,
            "ready_to_submit": self.ready_to_submit,
            "record_id": self.record.record_id if self.record else None,
            "notifications": [
                {
                    "id": n.notification_id,
                    "level": n.level,
                    "message": n.message,
                    "retryable": n.retryable,
                    "error": n.error,
                }
                for n in self.notifications
            ],
            "events": [
                {"at": e.at.isoformat(), "kind": e.kind, "state": e.state.value, "detail": e.detail}
                for e in self.events
            ],
        }


class AttendanceFlow:
    def __init__(
        self,
        attendance: AttendanceService,
        *,
        settings: Optional[FlowSettings] = None,
        face_detector: Optional[FaceDetector] = None,
        speaker_verifier: Optional[SpeakerVerifier] = None,
    ):
        self._attendance = attendance
        self._settings = settings or FlowSettings()
        self._faces = face_detector or SettleDelayFaceDetector(self._settings.face_settle)
        self._speaker = speaker_verifier or FirstNameSpeakerVerifier()

    @property
    def settings(self) -> FlowSettings:
        return self._settings

    # ---- session lifecycle -------------------------------------------------

    def new_session(self, student: Student, *, now: datetime) -> VerificationSession:
        session = VerificationSession(session_id=str(uuid.uuid4()), student=student)
        session.log(now, "created")
        return session

    def begin(self, session: VerificationSession, *, now: datetime) -> None:
        with self._step(session, "begin", now):
            if session.state != FlowState.IDLE:
                raise ValidationError("Attendance session already started")
            self._transition(session, FlowState.LOCATION, now)

    def reset(self, session: VerificationSession, *, now: datetime) -> None:
        """Start over at Location with a fresh session id; releases the camera."""
        self._release_capture(session, now)
        session.session_id = str(uuid.uuid4())
        session.face_detected = False
        session.voice = VoiceOutcome.PENDING
        session.voice_fallback_due = None
        session.last_distance_m = None
        session.record = None
        session.events = []
        session.notifications = []
        session.state = FlowState.IDLE
        session.log(now, "reset")
        self._transition(session, FlowState.LOCATION, now)

    def close(self, session: VerificationSession, *, now: datetime) -> None:
        self._release_capture(session, now)
        session.log(now, "closed")

    # ---- steps -------------------------------------------------------------

    def check_location(self, session: VerificationSession, positions: PositionProvider, *, now: datetime) -> None:
        with self._step(session, "location", now):
            if session.state == FlowState.IDLE:
                self._transition(session, FlowState.LOCATION, now)
            self._require(session, FlowState.LOCATION)

            position = positions.current_position()
            distance = haversine_distance(
                position.latitude,
                position.longitude,
                self._settings.campus_latitude,
                self._settings.campus_longitude,
            )
            session.last_distance_m = distance
            session.log(now, "location_measured", f"{distance:.1f}m")

            if distance <= self._settings.radius_meters:
                session.notify("success", "Location verified! You are inside campus.")
                self._transition(session, FlowState.CAMERA, now)
            else:
                session.notify(
                    "danger",
                    "You must be inside the college campus to mark attendance. "
                    f"(Distance: {round(distance)}m)",
                )

    def activate_camera(self, session: VerificationSession, camera: CaptureDevice, *, now: datetime) -> None:
        with self._step(session, "camera", now):
            self._require(session, FlowState.CAMERA)
            if session.capture is not None:
                raise ValidationError("Camera is already active")

            try:
                session.capture = camera.acquire(now)
            except DeviceUnavailable:
                self._abort(session, now)
                raise
            session.log(now, "camera_acquired")

        self.poll(session, now=now)

    def capture_lost(self, session: VerificationSession, *, now: datetime, reason: str = "Camera stream has ended") -> None:
        if session.capture is None and session.state not in (FlowState.CAMERA, FlowState.VOICE):
            # stale report, e.g. the track ending after submit stopped the camera
            session.log(now, "camera_ended_ignored", reason)
            return
        with self._step(session, "camera", now):
            self._abort(session, now)
            raise DeviceUnavailable(reason, device="camera", retryable=False)

    def poll(self, session: VerificationSession, *, now: datetime) -> None:
        """Advance timer-driven work: face settle and the voice fallback."""
        with self._step(session, "poll", now):
            if session.state == FlowState.CAMERA and session.capture is not None and not session.face_detected:
                try:
                    frame = session.capture.read_frame(now)
                except DeviceUnavailable:
                    self._abort(session, now)
                    raise
                if self._faces.detect_face(frame):
                    session.face_detected = True
                    session.notify("success", "Face detected!")
                    self._transition(session, FlowState.VOICE, now)

            due = session.voice_fallback_due
            if session.state == FlowState.VOICE and due is not None and now >= due:
                session.voice_fallback_due = None
                session.voice = VoiceOutcome.FALLBACK
                session.notify("success", "Voice verification completed!")
                session.log(now, "voice_fallback")

    def verify_voice(self, session: VerificationSession, recognizer: Optional[SpeechRecognizer], *, now: datetime) -> None:
        with self._step(session, "voice", now):
            self._require(session, FlowState.VOICE)
            if session.voice_verified:
                raise ValidationError("Voice already verified")
            if session.voice_fallback_due is not None:
                raise ValidationError("Voice verification is already in progress")

            if recognizer is None or not recognizer.supported:
                if not self._settings.voice_fallback_enabled:
                    raise DeviceUnavailable("Voice recognition not supported in your browser", device="microphone")
                session.voice_fallback_due = now + self._settings.voice_fallback_delay
                session.notify("danger", "Voice recognition not supported in your browser", error="DeviceUnavailable")
                session.log(now, "voice_unsupported")
                return

            try:
                transcript = recognizer.listen_once(lang=self._settings.speech_language)
            except DeviceUnavailable:
                if not self._settings.voice_fallback_enabled:
                    raise
                session.voice = VoiceOutcome.FALLBACK
                session.notify(
                    "warning",
                    "Voice recognition error. Proceeding with face verification only.",
                    error="DeviceUnavailable",
                )
                session.log(now, "voice_fallback", "recognition error")
                return

            if not self._speaker.verify_speaker(transcript, session.student.name):
                session.log(now, "voice_mismatch", transcript)
                raise VerificationMismatch("Voice verification failed. Please try again.")

            session.voice = VoiceOutcome.MATCHED
            session.notify("success", "Voice verification successful!")
            session.log(now, "voice_matched")

        self.poll(session, now=now)

    def submit(
        self,
        session: VerificationSession,
        positions: PositionProvider,
        *,
        principal: Principal,
        now: datetime,
    ) -> Optional[AttendanceRecord]:
        with self._step(session, "submit", now):
            self._require(session, FlowState.VOICE)
            if not session.ready_to_submit:
                raise ValidationError("Complete face and voice verification before marking attendance")

            try:
                position = positions.current_position()
            except DeviceUnavailable as e:
                raise DeviceUnavailable("Failed to get location for attendance record", device=e.device) from e

            try:
                record = self._attendance.mark(
                    student=session.student,
                    position=position,
                    method=session.verification_method,
                    principal=principal,
                    now=now,
                )
            except PersistenceError as e:
                logger.error("Attendance insert failed for %s: %s", session.student.roll_number, e)
                raise PersistenceError("Failed to mark attendance") from e

            session.record = record
            self._release_capture(session, now)
            session.notify("success", "Attendance marked successfully!")
            self._transition(session, FlowState.COMPLETE, now)
            logger.info(
                "Attendance marked for %s (%s)", session.student.roll_number, record.verification_method.value
            )
            return record
        return None

    # ---- helpers -----------------------------------------------------------

    @contextmanager
    def _step(self, session: VerificationSession, name: str, now: datetime):
        try:
            yield
        except DomainError as e:
            level = "warning" if e.retryable else "danger"
            session.notify(level, str(e), retryable=e.retryable, error=type(e).__name__)
            session.log(now, f"{name}_failed", str(e))
            logger.info("Attendance step %s failed for %s: %s", name, session.student.roll_number, e)

    @staticmethod
    def _require(session: VerificationSession, state: FlowState) -> None:
        if session.state == FlowState.ABORTED:
            raise DeviceUnavailable("Camera unavailable. Please restart attendance.", device="camera", retryable=False)
        if session.state != state:
            raise ValidationError(f"This step is not available while in {session.state.value}")

    @staticmethod
    def _transition(session: VerificationSession, state: FlowState, now: datetime) -> None:
        previous = session.state
        session.state = state
        session.log(now, "transition", f"{previous.value}->{state.value}")

    def _abort(self, session: VerificationSession, now: datetime) -> None:
        self._release_capture(session, now)
        self._transition(session, FlowState.ABORTED, now)

    @staticmethod
    def _release_capture(session: VerificationSession, now: datetime) -> None:
        capture, session.capture = session.capture, None
        if capture is not None:
            try:
                capture.release()
            finally:
                session.log(now, "camera_released")
