from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from gpatracker.core.errors import InvalidCourseDataError, MissingSelectionError
from gpatracker.core.gpa import calculate_semester_gpa
from gpatracker.core.grades import MAX_GRADE_POINT, Course, valid_courses


@dataclass
class SemesterRecord:
    user_id: str
    year: str
    semester: str
    gpa: float
    courses: List[Course] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        return self.user_id, self.year, self.semester

    @property
    def label(self) -> str:
        return f"{self.year} {self.semester}"

    def to_document(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "year": self.year,
            "semester": self.semester,
            "gpa": self.gpa,
            "courses": [course.to_dict() for course in self.courses],
            "created_at": _to_iso(self.created_at),
            "updated_at": _to_iso(self.updated_at),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "SemesterRecord":
        raw_courses = doc.get("courses") or []
        if isinstance(raw_courses, str):
            try:
                raw_courses = json.loads(raw_courses)
            except ValueError:
                raw_courses = []
        if not isinstance(raw_courses, list):
            raw_courses = []

        return cls(
            user_id=str(doc.get("user_id") or ""),
            year=str(doc.get("year") or ""),
            semester=str(doc.get("semester") or ""),
            gpa=float(doc.get("gpa") or 0.0),
            courses=[Course.from_dict(course) for course in raw_courses if isinstance(course, dict)],
            created_at=_from_any(doc.get("created_at")),
            updated_at=_from_any(doc.get("updated_at")),
            id=doc.get("$id") or doc.get("id"),
        )


def build_semester_record(
    user_id: Optional[str],
    year: Optional[str],
    semester: Optional[str],
    gpa: Optional[float],
    courses: Iterable[Course],
    *,
    now: Optional[datetime] = None,
) -> SemesterRecord:
    """Validate the save-flow inputs and derive a record ready for upsert.

    Only courses that pass the validity filter are kept on the record. The
    stored ``gpa`` is recomputed from those courses, so the client value only
    has to be a finite number on the grade scale; a stale one is replaced.
    """
    if not (user_id or "").strip():
        raise MissingSelectionError("No active user to save the semester for.")
    if not (year or "").strip() or not (semester or "").strip() or gpa is None:
        raise MissingSelectionError()
    if not math.isfinite(gpa) or not 0.0 <= gpa <= MAX_GRADE_POINT:
        raise InvalidCourseDataError(f"Semester GPA must be between 0.00 and {MAX_GRADE_POINT:.2f}.")

    kept = valid_courses(courses)
    if not kept:
        raise InvalidCourseDataError()
    computed = calculate_semester_gpa(kept)

    timestamp = now or datetime.now(timezone.utc)
    return SemesterRecord(
        user_id=user_id.strip(),
        year=year.strip(),
        semester=semester.strip(),
        gpa=computed,
        courses=kept,
        created_at=None,
        updated_at=timestamp,
    )


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_any(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
