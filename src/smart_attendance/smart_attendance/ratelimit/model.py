from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class LoginAttempt:
    """Append-only audit row used for rate-limit computation."""

    attempt_id: str
    identifier: str
    attempt_time: datetime
    success: bool
    ip_address: Optional[str] = None
