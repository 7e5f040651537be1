from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Account:
    """Email/password identity. Attributes carry signup metadata (roll_number, name)."""

    user_id: str
    email: str
    password_hash: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user_id: str
    email: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
