"""Invalidation helpers for mutations made outside the attendance buffer."""

from __future__ import annotations

import logging
from datetime import date
from typing import Union

from . import keys
from .data_cache import DataCache

logger = logging.getLogger(__name__)


def invalidate_user_cache(cache: DataCache, user_id: str) -> None:
    removed = cache.clear_by_prefix(str(user_id))
    logger.debug("cache: dropped %d entries for user %s", removed, user_id)


def invalidate_subjects(cache: DataCache, teacher_id: str) -> None:
    cache.delete(keys.subjects_key(teacher_id))


def invalidate_students(cache: DataCache, subject_id: str) -> None:
    key = keys.students_key(subject_id)
    logger.debug("cache: invalidating %s", key)
    cache.delete(key)
    cache.delete(keys.subject_with_students_key(subject_id))


def invalidate_attendance(cache: DataCache, subject_id: str, work_date: Union[date, str]) -> None:
    cache.delete(keys.attendance_key(subject_id, work_date))


def invalidate_teacher(cache: DataCache, user_id: str) -> None:
    cache.delete(keys.teacher_key(user_id))


def clear_all_cache(cache: DataCache) -> None:
    cache.clear()


def invalidate_reports(cache: DataCache, subject_id: str) -> None:
    # every date-range label cached for this subject
    cache.clear_by_prefix(f"reports:{subject_id}:")


def invalidate_student_history(cache: DataCache, student_id: str) -> None:
    cache.clear_by_prefix(f"history:{student_id}:")


def invalidate_subject_scope(cache: DataCache, subject_id: str) -> None:
    """Drop every entry scoped to a subject (roster, attendance days, reports)."""
    removed = cache.clear_by_prefix(str(subject_id))
    logger.debug("cache: dropped %d entries for subject %s", removed, subject_id)
