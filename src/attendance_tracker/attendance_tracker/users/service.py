from __future__ import annotations

import logging
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..cache.data_cache import DataCache
from ..cache.invalidation import clear_all_cache, invalidate_teacher
from ..common.validators import require_min_length, require_non_empty
from ..core.exceptions import AuthenticationError, NotFoundError, ValidationError
from ..queries.resource import ResourceQuery
from ..queries.resources import teacher_profile_query
from ..store.repository import TEACHERS, BackingStore, eq, select_one
from .model import Teacher

logger = logging.getLogger(__name__)


class AuthService:
    """Use case: register, sign in and sign out teachers."""

    def __init__(self, store: BackingStore, cache: DataCache):
        self._store = store
        self._cache = cache

    def register(self, *, email: str, password: str, name: str) -> Teacher:
        email = require_non_empty(email, "Email").lower()
        name = require_non_empty(name, "Name")
        require_min_length(password, "Password", 6)

        if select_one(self._store, TEACHERS, [eq("email", email)]):
            raise ValidationError("An account with this email already exists")

        row = self._store.insert(
            TEACHERS,
            {"email": email, "name": name, "password_hash": generate_password_hash(password)},
        )
        teacher = Teacher.from_row(row)
        invalidate_teacher(self._cache, teacher.teacher_id)
        logger.info("registered teacher %s", teacher.teacher_id)
        return teacher

    def authenticate(self, email: str, password: str) -> Teacher:
        row = select_one(self._store, TEACHERS, [eq("email", (email or "").strip().lower())])
        if not row:
            raise AuthenticationError("Invalid email or password")

        teacher = Teacher.from_row(row)
        try:
            ok = check_password_hash(teacher.password_hash, password or "")
        except ValueError:
            # e.g. placeholder or corrupted hashes
            ok = False

        if not ok:
            raise AuthenticationError("Invalid email or password")
        return teacher

    def sign_out(self, user_id: Optional[str]) -> None:
        # No cached data may outlive the session that loaded it.
        clear_all_cache(self._cache)
        logger.info("signed out %s, cache cleared", user_id or "anonymous")


class TeacherService:
    """Use case: read and edit the signed-in teacher's profile."""

    def __init__(self, store: BackingStore, cache: DataCache):
        self._store = store
        self._cache = cache

    def profile_query(self, user_id: Optional[str]) -> ResourceQuery[Optional[Teacher]]:
        return teacher_profile_query(self._store, self._cache, user_id).load()

    def get_profile(self, user_id: str) -> Teacher:
        query = self.profile_query(user_id)
        if query.error:
            raise query.error
        if query.data is None:
            raise NotFoundError("Teacher profile not found")
        return query.data

    def refresh_profile(self, user_id: str) -> ResourceQuery[Optional[Teacher]]:
        invalidate_teacher(self._cache, user_id)
        return self.profile_query(user_id)

    def update_profile(self, user_id: str, *, name: str) -> Teacher:
        name = require_non_empty(name, "Name")
        row = self._store.update(TEACHERS, user_id, {"name": name})
        invalidate_teacher(self._cache, user_id)
        return Teacher.from_row(row)

    def change_password(self, user_id: str, *, current_password: str, new_password: str) -> None:
        teacher = self.get_profile(user_id)
        try:
            ok = check_password_hash(teacher.password_hash, current_password or "")
        except ValueError:
            ok = False
        if not ok:
            raise AuthenticationError("Current password is incorrect")
        require_min_length(new_password, "Password", 6)

        self._store.update(TEACHERS, user_id, {"password_hash": generate_password_hash(new_password)})
        invalidate_teacher(self._cache, user_id)
