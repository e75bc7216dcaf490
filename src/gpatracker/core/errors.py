class GPATrackerError(Exception):
    """Recoverable, user-correctable failure raised by the aggregation core."""

    code = "GPA_TRACKER_ERROR"
    default_message = "GPA tracker error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NoCoursesError(GPATrackerError):
    code = "NO_COURSES"
    default_message = "Please add at least one course to calculate GPA."


class InvalidCourseDataError(GPATrackerError):
    code = "INVALID_COURSE_DATA"
    default_message = "Please ensure all courses have valid names, grades, and credit hours."


class MissingSelectionError(GPATrackerError):
    code = "MISSING_SELECTION"
    default_message = "Please select year, semester, and calculate GPA first."


class RankNotFoundError(GPATrackerError):
    code = "RANK_NOT_FOUND"
    default_message = "No ranking available for this user."


class InvalidRankOverrideError(GPATrackerError):
    code = "INVALID_RANK_OVERRIDE"
    default_message = "Please enter valid rank and total users numbers."


class StoreUnavailableError(GPATrackerError):
    code = "STORE_UNAVAILABLE"
    default_message = "Record store is unavailable. Please try again later."
