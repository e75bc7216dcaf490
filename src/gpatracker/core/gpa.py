from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, Iterable, List, Sequence, Tuple

from gpatracker.core.errors import (
    InvalidCourseDataError,
    InvalidRankOverrideError,
    NoCoursesError,
    RankNotFoundError,
)
from gpatracker.core.grades import Course, academic_standing, grade_point, valid_courses

if TYPE_CHECKING:
    from gpatracker.core.records import SemesterRecord


@dataclass(frozen=True)
class UserStanding:
    user_id: str
    cumulative_gpa: float
    total_credits: int


@dataclass(frozen=True)
class Ranking:
    rank: int
    total_users: int
    cumulative_gpa: float
    overridden: bool = False

    @property
    def standing(self) -> str:
        return academic_standing(self.cumulative_gpa)


@dataclass(frozen=True)
class HistoryEntry:
    record: SemesterRecord
    cumulative_gpa: float

    @property
    def standing(self) -> str:
        return academic_standing(self.record.gpa)


def calculate_semester_gpa(courses: Sequence[Course]) -> float:
    """
    GPA = Σ(grade_point * credit_hours) / Σ(credit_hours) over valid courses.
    The value is left unrounded; display formatting is the caller's concern.
    """
    if not courses:
        raise NoCoursesError()

    usable = valid_courses(courses)
    if not usable:
        raise InvalidCourseDataError()

    total_points = 0.0
    total_credits = 0
    for course in usable:
        total_points += grade_point(course.grade) * course.credit_hours
        total_credits += course.credit_hours

    return total_points / total_credits


def semester_credits(record: SemesterRecord) -> int:
    return sum(course.credit_hours for course in record.courses)


def _accumulate(records: Iterable[SemesterRecord]) -> Tuple[float, int]:
    total_points = 0.0
    total_credits = 0
    for record in records:
        credits = semester_credits(record)
        total_points += record.gpa * credits
        total_credits += credits
    return total_points, total_credits


def calculate_cumulative_gpa(records: Iterable[SemesterRecord]) -> float:
    """
    CGPA = Σ(semester_gpa * semester_credits) / Σ(semester_credits)
    Credits come from each record's stored courses. No records -> 0.0.
    """
    total_points, total_credits = _accumulate(records)
    if total_credits <= 0:
        return 0.0
    return total_points / total_credits


def cumulative_history(records: Sequence[SemesterRecord]) -> List[HistoryEntry]:
    history: List[HistoryEntry] = []
    total_points = 0.0
    total_credits = 0
    for record in records:
        credits = semester_credits(record)
        total_points += record.gpa * credits
        total_credits += credits
        running = total_points / total_credits if total_credits > 0 else 0.0
        history.append(HistoryEntry(record=record, cumulative_gpa=running))
    return history


def rank_users(all_records: Iterable[SemesterRecord]) -> List[UserStanding]:
    """Cumulative GPA per user, best first.

    Users with an identical cumulative GPA are ordered by ascending user id so
    that rank assignment never depends on the order the store returned rows in.
    """
    totals: Dict[str, List[float]] = {}
    for record in all_records:
        credits = semester_credits(record)
        entry = totals.setdefault(record.user_id, [0.0, 0])
        entry[0] += record.gpa * credits
        entry[1] += credits

    standings = [
        UserStanding(
            user_id=user_id,
            cumulative_gpa=points / credits if credits > 0 else 0.0,
            total_credits=int(credits),
        )
        for user_id, (points, credits) in totals.items()
    ]
    standings.sort(key=lambda row: (-row.cumulative_gpa, row.user_id))
    return standings


def compute_rank(all_records: Iterable[SemesterRecord], user_id: str) -> Ranking:
    standings = rank_users(all_records)
    for position, row in enumerate(standings, start=1):
        if row.user_id == user_id:
            return Ranking(
                rank=position,
                total_users=len(standings),
                cumulative_gpa=row.cumulative_gpa,
            )
    raise RankNotFoundError()


def validate_rank_override(rank: object, total_users: object) -> Tuple[int, int]:
    for value in (rank, total_users):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRankOverrideError()
    if rank < 1 or total_users < 1 or rank > total_users:
        raise InvalidRankOverrideError()
    return rank, total_users


def apply_rank_override(ranking: Ranking, rank: object, total_users: object) -> Ranking:
    """Return a display-only copy of ``ranking`` with a user-entered position.

    The computed cumulative GPA is kept; nothing here feeds back into
    :func:`rank_users`.
    """
    checked_rank, checked_total = validate_rank_override(rank, total_users)
    return replace(ranking, rank=checked_rank, total_users=checked_total, overridden=True)
