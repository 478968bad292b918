from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.service import AttendanceService
from .cache.data_cache import DataCache, data_cache
from .core.constants import DEFAULT_SUBMIT_MAX_WORKERS
from .database.connection import DBConfig, DatabaseConnection
from .reports.service import ReportService
from .store.mysql_store import MySQLBackingStore
from .store.repository import BackingStore
from .students.service import StudentService
from .subjects.service import SubjectService
from .users.service import AuthService, TeacherService


@dataclass(frozen=True)
class Container:
    store: BackingStore
    cache: DataCache

    auth_service: AuthService
    teacher_service: TeacherService
    subject_service: SubjectService
    student_service: StudentService
    attendance_service: AttendanceService
    report_service: ReportService


def build_container(
    *,
    db_config: Optional[dict] = None,
    store: Optional[BackingStore] = None,
    cache: Optional[DataCache] = None,
    submit_max_workers: int = DEFAULT_SUBMIT_MAX_WORKERS,
) -> Container:
    """Wire services to one store and one cache.

    Pass ``store`` to run against something other than MySQL (tests do);
    otherwise ``db_config`` is required. The process-wide ``data_cache`` is
    used unless a cache is given.
    """

    if store is None:
        if db_config is None:
            raise ValueError("build_container needs either db_config or store")
        store = MySQLBackingStore(DatabaseConnection.get_instance(DBConfig.from_dict(db_config)))
    cache = data_cache if cache is None else cache

    return Container(
        store=store,
        cache=cache,
        auth_service=AuthService(store, cache),
        teacher_service=TeacherService(store, cache),
        subject_service=SubjectService(store, cache),
        student_service=StudentService(store, cache),
        attendance_service=AttendanceService(store, cache, max_workers=submit_max_workers),
        report_service=ReportService(store, cache),
    )
