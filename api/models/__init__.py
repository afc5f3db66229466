"""
API data models. Single import surface for DB entities.

DB entities (api.models.models):
- Course, CourseDay (authored content, read-only for the engine)
- Enrollment, QuizSubmission, DayNote (learner state)
"""

from api.models.models import (
    Course,
    CourseDay,
    Enrollment,
    QuizSubmission,
    DayNote,
)

__all__ = [
    "Course",
    "CourseDay",
    "Enrollment",
    "QuizSubmission",
    "DayNote",
]
