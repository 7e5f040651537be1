from __future__ import annotations

from datetime import timedelta

import pytest

from src.smart_attendance.smart_attendance.attendance.devices import (
    FirstNameSpeakerVerifier,
    Frame,
    ReportedCamera,
    ReportedPosition,
    ReportedSpeech,
    SettleDelayFaceDetector,
)
from src.smart_attendance.smart_attendance.core.exceptions import DeviceUnavailable, ValidationError


def test_face_detected_after_settle_delay(fixed_now):
    detector = SettleDelayFaceDetector(timedelta(seconds=2))

    assert not detector.detect_face(Frame(captured_at=fixed_now + timedelta(seconds=1), stream_started_at=fixed_now))
    assert detector.detect_face(Frame(captured_at=fixed_now + timedelta(seconds=2), stream_started_at=fixed_now))


@pytest.mark.parametrize(
    "transcript,name,expected",
    [
        ("My name is Asha", "Asha Verma", True),
        ("ASHA VERMA present", "Asha Verma", True),
        ("Verma here", "Asha Verma", False),
        ("", "Asha Verma", False),
        ("anything", "", False),
    ],
)
def test_first_name_speaker_verifier(transcript, name, expected):
    assert FirstNameSpeakerVerifier().verify_speaker(transcript, name) is expected


def test_reported_position_parses_coordinates():
    position = ReportedPosition({"latitude": "28.6139", "longitude": 77.209, "accuracy": 12}).current_position()

    assert position.latitude == pytest.approx(28.6139)
    assert position.accuracy == 12.0


def test_reported_position_errors():
    with pytest.raises(DeviceUnavailable, match="not supported"):
        ReportedPosition({"error": "unsupported"}).current_position()
    with pytest.raises(DeviceUnavailable, match="enable location services"):
        ReportedPosition({"error": "permission_denied"}).current_position()
    with pytest.raises(ValidationError):
        ReportedPosition({"latitude": "north"}).current_position()
    with pytest.raises(ValidationError):
        ReportedPosition({"latitude": 91, "longitude": 0}).current_position()


def test_reported_camera_handle_stops_after_release(fixed_now):
    handle = ReportedCamera({}).acquire(fixed_now)
    assert handle.read_frame(fixed_now).stream_started_at == fixed_now

    handle.release()
    with pytest.raises(DeviceUnavailable):
        handle.read_frame(fixed_now)


def test_reported_camera_denied(fixed_now):
    with pytest.raises(DeviceUnavailable) as exc:
        ReportedCamera({"error": "NotAllowedError"}).acquire(fixed_now)
    assert exc.value.retryable is False


def test_reported_speech():
    assert ReportedSpeech({"transcript": "Asha"}).listen_once(lang="en-US") == "Asha"
    assert ReportedSpeech({"supported": False}).supported is False
    with pytest.raises(DeviceUnavailable):
        ReportedSpeech({"error": "not-allowed"}).listen_once(lang="en-US")
