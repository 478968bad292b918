from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from ..cache.data_cache import DataCache
from ..common.datetime_utils import now_local
from ..queries.resource import ResourceQuery
from ..queries.resources import attendance_report_query
from ..store.repository import BackingStore
from .model import SubjectReport


class ReportService:
    def __init__(self, store: BackingStore, cache: DataCache, *, today: Callable[[], date] = lambda: now_local().date()):
        self._store = store
        self._cache = cache
        self._today = today

    def report_query(self, subject_id: str, date_range: Optional[str]) -> ResourceQuery[SubjectReport]:
        return attendance_report_query(self._store, self._cache, subject_id, date_range, today=self._today()).load()

    def today(self) -> date:
        return self._today()
