from api.config import Base
from sqlalchemy import Column, Integer, String, JSON, DateTime, ForeignKey, Text, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime

from progression.aggregator import EnrollmentStatus


class Course(Base):
    """Authored course (read-only for the engine)."""
    __tablename__ = "courses"
    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    duration = Column(String, nullable=True)  # as authored, e.g. "5 days"
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    days = relationship("CourseDay", backref="course", cascade="all, delete-orphan", order_by="CourseDay.day")


class CourseDay(Base):
    __tablename__ = "course_days"
    __table_args__ = (UniqueConstraint("course_id", "day", name="uq_course_day"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    day = Column(Integer, nullable=False)  # 1-based
    video = Column(String, nullable=False, default="")
    topics = Column(Text, nullable=False, default="")
    transcript = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    mcqs = Column(JSON, nullable=True)  # [{question, options: [{text, isCorrect}], explanation?}]


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("learner_id", "course_id", name="uq_enrollment"),)
    id = Column(String, primary_key=True, index=True)  # uuid
    learner_id = Column(String, index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    completed_days = Column(JSON, nullable=True)  # list[int]; NULL on legacy rows
    progress = Column(Integer, default=0, nullable=False)
    status = Column(SQLEnum(EnrollmentStatus), default=EnrollmentStatus.ENROLLED, nullable=False)
    enrolled_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_accessed_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class QuizSubmission(Base):
    __tablename__ = "quiz_submissions"
    __table_args__ = (
        UniqueConstraint("learner_id", "course_id", "day", "attempt_number", name="uq_quiz_attempt"),
    )
    id = Column(String, primary_key=True, index=True)  # uuid
    learner_id = Column(String, index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    day = Column(Integer, nullable=False)
    attempt_number = Column(Integer, nullable=False)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class DayNote(Base):
    __tablename__ = "day_notes"
    __table_args__ = (UniqueConstraint("learner_id", "course_id", "day", name="uq_day_note"),)
    id = Column(String, primary_key=True, index=True)  # uuid
    learner_id = Column(String, index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    day = Column(Integer, nullable=False)
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
