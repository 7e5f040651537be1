from __future__ import annotations

import json
import queue
import time
from functools import wraps

from flask import Flask, Response, g, jsonify, session, stream_with_context

from ..common.http import error_response, json_body, server_error
from ..common.logger import get_logger
from ..core.enums import FlowState
from ..core.exceptions import DomainError
from ..database.access_policy import Principal
from ..container import Container
from .devices import ReportedCamera, ReportedPosition, ReportedSpeech
from .service import AttendanceService
from .viewer import RecordsViewer

logger = get_logger(__name__)


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "access_token" not in session:
                return jsonify({"success": False, "message": "Please login to continue"}), 401
            try:
                current = container.auth_service.current(session.get("access_token"), now=container.clock())
            except DomainError as e:
                return error_response(e)
            if current is None:
                session.clear()
                return jsonify({"success": False, "message": "Session expired. Please login again."}), 401
            g.current = current
            return view(*args, **kwargs)

        return wrapper

    def _principal() -> Principal:
        return Principal.student(g.current.session.user_id)

    def _session_response(flow_session, **extra):
        payload = {"success": True, "session": flow_session.snapshot()}
        payload.update(extra)
        return jsonify(payload)

    def _with_session(step):
        """Run ``step(flow_session, now)`` under the user's session lock."""
        now = container.clock()
        student = g.current.student
        try:
            with container.flow_sessions.acquire(g.current.session.user_id, student, now=now) as flow_session:
                extra = step(flow_session, now) or {}
                return _session_response(flow_session, **extra)
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("Attendance step failed for %s", student.roll_number)
            return server_error("An error occurred while processing attendance")

    @app.route("/api/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        return jsonify({"success": True, "student": g.current.student.to_public_dict()})

    @app.route("/api/attendance/session", methods=["GET"], endpoint="attendance_session")
    @login_required
    def attendance_session():
        def step(flow_session, now):
            container.flow.poll(flow_session, now=now)

        return _with_session(step)

    @app.route("/api/attendance/session", methods=["POST"], endpoint="attendance_start")
    @login_required
    def attendance_start():
        def step(flow_session, now):
            if flow_session.state == FlowState.IDLE:
                container.flow.begin(flow_session, now=now)
            else:
                container.flow.reset(flow_session, now=now)

        return _with_session(step)

    @app.route("/api/attendance/session", methods=["DELETE"], endpoint="attendance_close")
    @login_required
    def attendance_close():
        closed = container.flow_sessions.discard(g.current.session.user_id, now=container.clock())
        return jsonify({"success": True, "closed": closed})

    @app.route("/api/attendance/location", methods=["POST"], endpoint="attendance_location")
    @login_required
    def attendance_location():
        positions = ReportedPosition(json_body())

        def step(flow_session, now):
            container.flow.check_location(flow_session, positions, now=now)

        return _with_session(step)

    @app.route("/api/attendance/camera", methods=["POST"], endpoint="attendance_camera")
    @login_required
    def attendance_camera():
        data = json_body()

        def step(flow_session, now):
            if data.get("ended"):
                container.flow.capture_lost(flow_session, now=now)
            else:
                container.flow.activate_camera(flow_session, ReportedCamera(data), now=now)

        return _with_session(step)

    @app.route("/api/attendance/voice", methods=["POST"], endpoint="attendance_voice")
    @login_required
    def attendance_voice():
        recognizer = ReportedSpeech(json_body())

        def step(flow_session, now):
            container.flow.poll(flow_session, now=now)
            container.flow.verify_voice(flow_session, recognizer, now=now)

        return _with_session(step)

    @app.route("/api/attendance/submit", methods=["POST"], endpoint="attendance_submit")
    @login_required
    def attendance_submit():
        positions = ReportedPosition(json_body())

        def step(flow_session, now):
            container.flow.poll(flow_session, now=now)
            record = container.flow.submit(flow_session, positions, principal=_principal(), now=now)
            return {"record": AttendanceService.to_ui(record) if record else None}

        return _with_session(step)

    @app.route(
        "/api/attendance/notifications/<int:notification_id>",
        methods=["DELETE"],
        endpoint="attendance_dismiss",
    )
    @login_required
    def attendance_dismiss(notification_id: int):
        def step(flow_session, now):
            return {"dismissed": flow_session.dismiss(notification_id)}

        return _with_session(step)

    @app.route("/api/attendance/records", methods=["GET"], endpoint="attendance_records")
    @login_required
    def attendance_records():
        try:
            data = container.attendance_service.get_history_ui(g.current.student.student_id, principal=_principal())
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "records": data})

    @app.route("/api/attendance/records/stream", methods=["GET"], endpoint="attendance_records_stream")
    @login_required
    def attendance_records_stream():
        updates: "queue.Queue[list]" = queue.Queue()
        viewer = RecordsViewer(
            container.attendance_service,
            container.change_feed,
            student_id=g.current.student.student_id,
            principal=_principal(),
            on_update=updates.put,
        )
        keepalive = float(app.config.get("RECORDS_STREAM_KEEPALIVE_SECONDS", 15))
        max_seconds = float(app.config.get("RECORDS_STREAM_MAX_SECONDS", 300))

        def generate():
            viewer.open()
            deadline = time.monotonic() + max_seconds
            try:
                while time.monotonic() < deadline:
                    try:
                        records = updates.get(timeout=keepalive)
                    except queue.Empty:
                        yield ": keepalive\n\n"
                        continue
                    payload = [AttendanceService.to_ui(r) for r in records]
                    yield f"event: records\ndata: {json.dumps(payload)}\n\n"
            finally:
                viewer.close()

        return Response(
            stream_with_context(generate()),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )
