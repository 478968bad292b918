from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from attendance_tracker.cache import keys
from attendance_tracker.core.exceptions import AuthenticationError, NotFoundError, ValidationError
from attendance_tracker.users.service import AuthService, TeacherService


@pytest.fixture
def auth(store, cache):
    return AuthService(store, cache)


@pytest.fixture
def teachers(store, cache):
    return TeacherService(store, cache)


def test_register_then_authenticate(auth):
    teacher = auth.register(email="Grace@Example.edu ", password="secret1", name="Grace")

    assert teacher.email == "grace@example.edu"
    assert teacher.password_hash != "secret1"
    assert auth.authenticate("grace@example.edu", "secret1").teacher_id == teacher.teacher_id


def test_register_rejects_short_password_and_duplicates(auth):
    with pytest.raises(ValidationError):
        auth.register(email="a@b.c", password="123", name="A")

    auth.register(email="a@b.c", password="123456", name="A")
    with pytest.raises(ValidationError):
        auth.register(email="A@B.C", password="123456", name="A again")


def test_wrong_password_and_unknown_email_look_the_same(auth, roster):
    # the roster teacher has a placeholder hash
    with pytest.raises(AuthenticationError) as bad_hash:
        auth.authenticate("ada@example.edu", "anything")
    with pytest.raises(AuthenticationError) as unknown:
        auth.authenticate("nobody@example.edu", "anything")

    assert str(bad_hash.value) == str(unknown.value)


def test_sign_out_clears_the_whole_cache(auth, cache):
    cache.set(keys.subjects_key("t1"), [], 60)
    cache.set(keys.students_key("subj1"), [], 60)

    auth.sign_out("t1")

    assert len(cache) == 0


def test_profile_is_cached_and_refreshed(teachers, roster, cache):
    assert teachers.get_profile("t1").name == "Ada"
    roster.tables["teachers"]["t1"]["name"] = "Ada L."

    assert teachers.get_profile("t1").name == "Ada"
    assert teachers.refresh_profile("t1").data.name == "Ada L."


def test_update_profile_invalidates_cached_profile(teachers, roster):
    teachers.get_profile("t1")

    teachers.update_profile("t1", name="Ada Lovelace")

    assert teachers.get_profile("t1").name == "Ada Lovelace"


def test_missing_profile(teachers):
    with pytest.raises(NotFoundError):
        teachers.get_profile("ghost")


def test_change_password(teachers, auth, roster):
    roster.tables["teachers"]["t1"]["password_hash"] = generate_password_hash("old-pass")

    with pytest.raises(AuthenticationError):
        teachers.change_password("t1", current_password="wrong", new_password="new-pass")

    teachers.change_password("t1", current_password="old-pass", new_password="new-pass")
    assert auth.authenticate("ada@example.edu", "new-pass").teacher_id == "t1"
