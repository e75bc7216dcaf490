import logging
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from gpatracker.config.logging_config import configure_logging
from gpatracker.config.settings import settings
from gpatracker.core.errors import GPATrackerError, RankNotFoundError, StoreUnavailableError
from gpatracker.core.gpa import (
    HistoryEntry,
    Ranking,
    apply_rank_override,
    calculate_semester_gpa,
    semester_credits,
)
from gpatracker.core.grades import GRADE_SCALE, Course, format_gpa, valid_courses
from gpatracker.core.presets import ACADEMIC_YEARS, SEMESTERS, preset_courses
from gpatracker.core.records import SemesterRecord
from gpatracker.services.auth_service import AppwriteAuthService, AuthServiceError
from gpatracker.services.gpa_service import GPATrackerService
from gpatracker.services.record_store import RecordStoreError, record_store_from_settings
from gpatracker.state.session_state import SessionState


configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="GPA Tracker API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_origin_regex=settings.cors_allow_origin_regex or None,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CoursePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    grade: str = ""
    credit_hours: int = Field(default=0, alias="creditHours")

    def to_course(self) -> Course:
        return Course(name=self.name, grade=self.grade, credit_hours=self.credit_hours)


class CalculatePayload(BaseModel):
    courses: List[CoursePayload] = Field(default_factory=list)


class SemesterPayload(BaseModel):
    year: Optional[str] = None
    semester: Optional[str] = None
    gpa: Optional[float] = None
    courses: List[CoursePayload] = Field(default_factory=list)


class RankOverridePayload(BaseModel):
    rank: int
    total_users: int


def _http_error(exc: GPATrackerError) -> HTTPException:
    if isinstance(exc, StoreUnavailableError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(exc, RankNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"code": exc.code, "message": exc.message})


def get_session(
    x_user_id: Optional[str] = Header(default=None),
    x_appwrite_user_jwt: Optional[str] = Header(default=None),
) -> SessionState:
    if x_appwrite_user_jwt:
        try:
            session = AppwriteAuthService.from_settings().current_user(x_appwrite_user_jwt)
        except AuthServiceError as exc:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
        if session is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")
        return session

    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing x-user-id header")
    return SessionState(uid=x_user_id.strip())


def get_tracker_service() -> GPATrackerService:
    try:
        return GPATrackerService(record_store_from_settings())
    except RecordStoreError as exc:
        logger.error("Record store is not configured: %s", exc)
        raise _http_error(StoreUnavailableError()) from exc


def _course_out(course: Course) -> Dict:
    return course.to_dict()


def _record_out(record: SemesterRecord) -> Dict:
    return {
        "id": record.id,
        "year": record.year,
        "semester": record.semester,
        "gpa": record.gpa,
        "gpa_display": format_gpa(record.gpa),
        "courses": [_course_out(course) for course in record.courses],
        "course_count": len(record.courses),
        "total_credits": semester_credits(record),
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }


def _ranking_out(ranking: Ranking) -> Dict:
    return {
        "rank": ranking.rank,
        "total_users": ranking.total_users,
        "cumulative_gpa": ranking.cumulative_gpa,
        "cumulative_gpa_display": format_gpa(ranking.cumulative_gpa),
        "standing": ranking.standing,
        "overridden": ranking.overridden,
    }


def _history_out(entry: HistoryEntry) -> Dict:
    row = _record_out(entry.record)
    row["cumulative_gpa"] = entry.cumulative_gpa
    row["cumulative_gpa_display"] = format_gpa(entry.cumulative_gpa)
    row["performance"] = entry.standing
    return row


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/grade-scale")
def grade_scale() -> Dict[str, float]:
    return dict(GRADE_SCALE)


@app.get("/presets")
def list_presets() -> Dict:
    return {"years": list(ACADEMIC_YEARS), "semesters": list(SEMESTERS)}


@app.get("/presets/{year}/{semester}")
def get_presets(year: str, semester: str) -> List[Dict]:
    return [_course_out(course) for course in preset_courses(year, semester)]


@app.post("/gpa/calculate")
def calculate_gpa(payload: CalculatePayload) -> Dict:
    courses = [item.to_course() for item in payload.courses]
    try:
        gpa = calculate_semester_gpa(courses)
    except GPATrackerError as exc:
        raise _http_error(exc) from exc
    counted = valid_courses(courses)
    return {
        "gpa": gpa,
        "display": format_gpa(gpa),
        "total_credits": sum(course.credit_hours for course in counted),
        "courses": [_course_out(course) for course in counted],
    }


@app.get("/semesters")
def list_semesters(
    session: SessionState = Depends(get_session),
    tracker: GPATrackerService = Depends(get_tracker_service),
) -> List[Dict]:
    try:
        return [_record_out(record) for record in tracker.list_semesters(session.uid)]
    except GPATrackerError as exc:
        raise _http_error(exc) from exc


@app.post("/semesters")
def save_semester(
    payload: SemesterPayload,
    session: SessionState = Depends(get_session),
    tracker: GPATrackerService = Depends(get_tracker_service),
) -> Dict:
    try:
        record = tracker.save_semester(
            session.uid,
            payload.year,
            payload.semester,
            payload.gpa,
            [item.to_course() for item in payload.courses],
        )
    except GPATrackerError as exc:
        raise _http_error(exc) from exc
    return _record_out(record)


@app.get("/standing")
def get_standing(
    session: SessionState = Depends(get_session),
    tracker: GPATrackerService = Depends(get_tracker_service),
) -> Dict:
    try:
        return _ranking_out(tracker.standing(session.uid))
    except GPATrackerError as exc:
        raise _http_error(exc) from exc


@app.post("/standing/override")
def override_standing(
    payload: RankOverridePayload,
    session: SessionState = Depends(get_session),
    tracker: GPATrackerService = Depends(get_tracker_service),
) -> Dict:
    # Display-only: the override is returned to the caller and never stored.
    try:
        base = tracker.standing(session.uid)
        return _ranking_out(apply_rank_override(base, payload.rank, payload.total_users))
    except GPATrackerError as exc:
        raise _http_error(exc) from exc


@app.get("/history")
def get_history(
    session: SessionState = Depends(get_session),
    tracker: GPATrackerService = Depends(get_tracker_service),
) -> List[Dict]:
    try:
        return [_history_out(entry) for entry in tracker.history(session.uid)]
    except GPATrackerError as exc:
        raise _http_error(exc) from exc


@app.get("/summary")
def get_summary(
    session: SessionState = Depends(get_session),
    tracker: GPATrackerService = Depends(get_tracker_service),
) -> Dict:
    try:
        summary = tracker.summary(session.uid)
    except GPATrackerError as exc:
        raise _http_error(exc) from exc
    return {
        "cumulative_gpa": summary.cumulative_gpa,
        "cumulative_gpa_display": format_gpa(summary.cumulative_gpa),
        "total_credits": summary.total_credits,
        "semesters_completed": summary.semesters_completed,
        "standing": summary.standing,
        "trend": summary.trend,
    }
