from typing import Dict, List, Tuple

from gpatracker.core.grades import Course


ACADEMIC_YEARS: Tuple[str, ...] = ("Freshman", "Sophomore")
SEMESTERS: Tuple[str, ...] = ("Fall", "Spring")

# (course name, credit hours) per year and semester
PRESET_COURSES: Dict[str, Dict[str, Tuple[Tuple[str, int], ...]]] = {
    "Freshman": {
        "Fall": (
            ("Academic English 1", 2),
            ("Academic English Reading", 2),
            ("Calculus 1", 3),
            ("Introduction to IT", 3),
            ("Physics 1", 3),
            ("Physics Experiments 1", 1),
            ("Object Oriented Programming 1", 3),
        ),
        "Spring": (
            ("Academic English 2", 2),
            ("Academic English Writing", 2),
            ("Calculus 2", 3),
            ("Creative Engineering Design", 3),
            ("Physics 2", 3),
            ("Physics Experiments 2", 1),
            ("Object Oriented Programming 2", 3),
        ),
    },
    "Sophomore": {
        "Fall": (
            ("Academic English 3", 2),
            ("Basic Korean 1", 2),
            ("Linear Algebra", 3),
            ("Engineering Maths", 3),
            ("Application Programming in Java", 3),
            ("Data Structure", 3),
            ("Circuit and Lab", 3),
        ),
        "Spring": (
            ("Academic English 4", 2),
            ("Basic Korean 2", 2),
            ("Discrete Mathematics", 3),
            ("Digital Logic & Circuit", 3),
            ("System Programming", 3),
            ("Computer Architecture", 3),
            ("History 1", 1),
        ),
    },
}


def preset_courses(year: str, semester: str) -> List[Course]:
    """Ungraded courses for a known year/semester, or an empty list."""
    presets = PRESET_COURSES.get(year, {}).get(semester, ())
    return [Course(name=name, grade="", credit_hours=credits) for name, credits in presets]
