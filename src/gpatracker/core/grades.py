from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping


GRADE_SCALE: Mapping[str, float] = MappingProxyType(
    {
        "A+": 4.50,
        "A": 4.00,
        "B+": 3.50,
        "B": 3.00,
        "C+": 2.50,
        "C": 2.00,
        "D+": 1.50,
        "D": 1.00,
        "F": 0.00,
    }
)

MAX_GRADE_POINT = max(GRADE_SCALE.values())

# (minimum gpa, label), checked top to bottom
STANDING_BANDS = (
    (3.7, "Excellent"),
    (3.0, "Good"),
    (2.0, "Fair"),
)
LOWEST_STANDING = "Needs Improvement"


@dataclass(frozen=True)
class Course:
    name: str
    grade: str
    credit_hours: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Course":
        credits = data.get("creditHours", data.get("credit_hours", 0))
        try:
            credit_hours = int(credits)
        except (TypeError, ValueError):
            credit_hours = 0
        return cls(
            name=str(data.get("name") or ""),
            grade=str(data.get("grade") or ""),
            credit_hours=credit_hours,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "grade": self.grade,
            "creditHours": self.credit_hours,
        }


def grade_point(grade: str) -> float:
    try:
        return GRADE_SCALE[grade]
    except KeyError as exc:
        raise ValueError(f"Unsupported letter grade: {grade}") from exc


def is_valid_course(course: Course) -> bool:
    return bool(course.name.strip()) and course.grade in GRADE_SCALE and course.credit_hours > 0


def valid_courses(courses: Iterable[Course]) -> List[Course]:
    return [course for course in courses if is_valid_course(course)]


def academic_standing(gpa: float) -> str:
    for minimum, label in STANDING_BANDS:
        if gpa >= minimum:
            return label
    return LOWEST_STANDING


def format_gpa(gpa: float) -> str:
    return f"{gpa:.2f}"
