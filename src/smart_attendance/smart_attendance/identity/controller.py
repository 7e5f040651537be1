from __future__ import annotations

from flask import Flask, jsonify, session

from ..common.http import client_ip, error_response, json_body, server_error
from ..common.logger import get_logger
from ..core.exceptions import DomainError
from ..container import Container

logger = get_logger(__name__)


def register(app: Flask, container: Container) -> None:
    def _start_session(result) -> None:
        session.clear()
        session.permanent = True
        session["access_token"] = result.session.access_token
        session["user_id"] = result.session.user_id
        session["roll_number"] = result.student.roll_number
        session["name"] = result.student.name

    @app.route("/api/auth/signup", methods=["POST"], endpoint="signup")
    def signup():
        data = json_body()
        try:
            student = container.auth_service.sign_up(
                roll_number=str(data.get("roll_number", "")),
                name=str(data.get("name", "")),
                email=str(data.get("email", "")),
                password=str(data.get("password", "")),
                now=container.clock(),
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("Signup failed")
            return server_error("An error occurred during signup")

        return jsonify({"success": True, "message": "Account created successfully! Please login.", "student": student.to_public_dict()}), 201

    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        try:
            result = container.auth_service.login(
                str(data.get("roll_number", "")),
                str(data.get("password", "")),
                ip_address=client_ip() or None,
                now=container.clock(),
            )
        except DomainError as e:
            return error_response(e)

        _start_session(result)
        return jsonify(
            {
                "success": True,
                "message": "Login successful!",
                "student": result.student.to_public_dict(),
                "expires_at": result.session.expires_at.isoformat(),
            }
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        user_id = session.get("user_id")
        try:
            if user_id:
                container.flow_sessions.discard(user_id, now=container.clock())
            container.auth_service.logout(session.get("access_token"))
        except DomainError as e:
            logger.warning("Logout cleanup failed: %s", e)
        session.clear()
        return jsonify({"success": True, "message": "Logged out successfully"})

    @app.route("/api/auth/session", methods=["GET"], endpoint="auth_session")
    def auth_session():
        try:
            current = container.auth_service.current(session.get("access_token"), now=container.clock())
        except DomainError as e:
            return error_response(e)

        if current is None:
            session.clear()
            return jsonify({"authenticated": False})
        return jsonify(
            {
                "authenticated": True,
                "student": current.student.to_public_dict(),
                "expires_at": current.session.expires_at.isoformat(),
            }
        )
