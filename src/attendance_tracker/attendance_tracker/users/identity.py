from __future__ import annotations

from typing import Optional, Protocol

from flask import session

from .model import Teacher


class IdentityProvider(Protocol):
    """Who is calling. The id is opaque to everything but cache keys and gating."""

    def current_user_id(self) -> Optional[str]:
        raise NotImplementedError


class SessionIdentityProvider(IdentityProvider):
    """Identity kept in the signed Flask session cookie."""

    SESSION_KEY = "user_id"

    def current_user_id(self) -> Optional[str]:
        user_id = session.get(self.SESSION_KEY)
        return str(user_id) if user_id else None

    def sign_in(self, teacher: Teacher, *, remember: bool = False) -> None:
        session.clear()
        session.permanent = bool(remember)
        session[self.SESSION_KEY] = teacher.teacher_id
        session["name"] = teacher.name

    def sign_out(self) -> None:
        session.clear()
