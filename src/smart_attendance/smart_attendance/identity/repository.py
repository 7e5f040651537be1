from __future__ import annotations

from typing import Optional, Protocol

from .model import Account, AuthSession


class AccountRepository(Protocol):
    def get_by_email(self, email: str) -> Optional[Account]:
        raise NotImplementedError

    def get_by_id(self, user_id: str) -> Optional[Account]:
        raise NotImplementedError

    def create(self, account: Account) -> None:
        raise NotImplementedError

    def delete(self, user_id: str) -> bool:
        raise NotImplementedError


class AuthSessionRepository(Protocol):
    def save(self, session: AuthSession) -> None:
        raise NotImplementedError

    def get(self, access_token: str) -> Optional[AuthSession]:
        raise NotImplementedError

    def delete(self, access_token: str) -> bool:
        raise NotImplementedError
