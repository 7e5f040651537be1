from __future__ import annotations

from typing import Any, Dict, Tuple

from flask import jsonify, request

from ..core.exceptions import (
    AuthError,
    AuthorizationError,
    DeviceUnavailable,
    DomainError,
    RateLimited,
    ValidationError,
    VerificationMismatch,
)

_STATUS_BY_ERROR = (
    (RateLimited, 429),
    (AuthError, 401),
    (AuthorizationError, 403),
    (ValidationError, 400),
    (DeviceUnavailable, 400),
    (VerificationMismatch, 400),
)


def status_for(error: DomainError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def error_response(error: DomainError):
    status = status_for(error)
    return jsonify({"success": False, "message": str(error), "retryable": bool(error.retryable)}), status


def server_error(message: str) -> Tuple[Any, int]:
    return jsonify({"success": False, "message": message}), 500


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or ""
