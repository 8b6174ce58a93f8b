"""Ownership-scoped lookups. A row that belongs to another user is reported as missing."""
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from aula.models.all_models import (
    Activity, ActivityGrade, Course, DiaryEntry, Event, Observation, Period, Student, WeeklyPlanning,
)


def _get_owned_or_404(db: Session, model, row_id: UUID, user_id: UUID, label: str):
    row = db.query(model).filter(model.id == row_id, model.user_id == user_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return row


def get_course_or_404(db: Session, course_id: UUID, user_id: UUID) -> Course:
    return _get_owned_or_404(db, Course, course_id, user_id, "Course")


def get_student_or_404(db: Session, student_id: UUID, user_id: UUID) -> Student:
    return _get_owned_or_404(db, Student, student_id, user_id, "Student")


def get_period_or_404(db: Session, period_id: UUID, user_id: UUID) -> Period:
    return _get_owned_or_404(db, Period, period_id, user_id, "Period")


def get_activity_or_404(db: Session, activity_id: UUID, user_id: UUID) -> Activity:
    return _get_owned_or_404(db, Activity, activity_id, user_id, "Activity")


def get_diary_entry_or_404(db: Session, entry_id: UUID, user_id: UUID) -> DiaryEntry:
    return _get_owned_or_404(db, DiaryEntry, entry_id, user_id, "Diary entry")


def get_observation_or_404(db: Session, observation_id: UUID, user_id: UUID) -> Observation:
    return _get_owned_or_404(db, Observation, observation_id, user_id, "Observation")


def get_planning_or_404(db: Session, planning_id: UUID, user_id: UUID) -> WeeklyPlanning:
    return _get_owned_or_404(db, WeeklyPlanning, planning_id, user_id, "Planning")


def get_event_or_404(db: Session, event_id: UUID, user_id: UUID) -> Event:
    return _get_owned_or_404(db, Event, event_id, user_id, "Event")


def get_activity_grade_or_404(db: Session, grade_id: UUID, user_id: UUID) -> ActivityGrade:
    # Grades are owned through their activity
    grade = db.query(ActivityGrade).join(
        Activity, ActivityGrade.activity_id == Activity.id
    ).filter(
        ActivityGrade.id == grade_id,
        Activity.user_id == user_id
    ).first()
    if not grade:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Grade not found")
    return grade


def refresh_students_count(db: Session, course_id) -> None:
    """Recompute the cached student count of a course. The caller commits."""
    if course_id is None:
        return
    db.flush()
    course = db.query(Course).filter(Course.id == course_id).first()
    if course is None:
        return
    course.students_count = db.query(func.count(Student.id)).filter(
        Student.course_id == course_id
    ).scalar() or 0
