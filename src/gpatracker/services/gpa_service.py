from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from gpatracker.core.errors import StoreUnavailableError
from gpatracker.core.gpa import (
    HistoryEntry,
    Ranking,
    calculate_cumulative_gpa,
    compute_rank,
    cumulative_history,
    semester_credits,
)
from gpatracker.core.grades import Course, academic_standing
from gpatracker.core.records import SemesterRecord, build_semester_record
from gpatracker.services.record_store import RecordStore, RecordStoreError


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Summary:
    cumulative_gpa: float
    total_credits: int
    semesters_completed: int
    standing: str
    trend: List[Dict] = field(default_factory=list)


class GPATrackerService:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def _call_store(self, action: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except RecordStoreError as exc:
            logger.exception("Record store failed while trying to %s", action)
            raise StoreUnavailableError() from exc

    @staticmethod
    def _record_time(record: SemesterRecord) -> datetime:
        return record.created_at or record.updated_at or datetime.min.replace(tzinfo=timezone.utc)

    def save_semester(
        self,
        uid: Optional[str],
        year: Optional[str],
        semester: Optional[str],
        gpa: Optional[float],
        courses: Sequence[Course],
    ) -> SemesterRecord:
        record = build_semester_record(uid, year, semester, gpa, courses)
        saved = self._call_store("save a semester record", lambda: self.store.upsert_record(record))
        logger.info("Saved %s GPA %.2f for user %s", record.label, record.gpa, record.user_id)
        return saved

    def list_semesters(self, uid: str, newest_first: bool = True) -> List[SemesterRecord]:
        records = self._call_store("list semester records", lambda: self.store.list_records(uid))
        return sorted(records, key=self._record_time, reverse=newest_first)

    def cumulative_gpa(self, uid: str) -> float:
        return calculate_cumulative_gpa(self.list_semesters(uid, newest_first=False))

    def standing(self, uid: str) -> Ranking:
        all_records = self._call_store("list all semester records", self.store.list_all_records)
        ranking = compute_rank(all_records, uid)
        logger.debug("User %s ranked %d of %d", uid, ranking.rank, ranking.total_users)
        return ranking

    def history(self, uid: str) -> List[HistoryEntry]:
        return cumulative_history(self.list_semesters(uid, newest_first=False))

    def summary(self, uid: str) -> Summary:
        records = self.list_semesters(uid, newest_first=False)
        cumulative = calculate_cumulative_gpa(records)
        trend = [
            {"name": record.label, "gpa": record.gpa, "semester": index}
            for index, record in enumerate(records, start=1)
        ]
        return Summary(
            cumulative_gpa=cumulative,
            total_credits=sum(semester_credits(record) for record in records),
            semesters_completed=len(records),
            standing=academic_standing(cumulative),
            trend=trend,
        )
