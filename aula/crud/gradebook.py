import logging
from collections import defaultdict
from datetime import datetime, time
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from aula.models.all_models import Activity, ActivityGrade, Course, DiaryEntry, Observation, Period, Student
from aula.schemas.gradebook import (
    CourseInfo, GradebookSnapshot, GradeItem, PeriodGrades, PeriodKey, StudentGrades,
    period_key_from_name,
)
from aula.schemas.reports import RecentActivity

logger = logging.getLogger(__name__)


class GradebookRepository:
    """
    Reads one teacher's courses, periods, students and activity grades and
    hands them out as validated DTOs.

    Database errors are logged and turned into empty collections, so the
    dashboard and reports render their "no data" shapes instead of failing.
    """

    def __init__(self, db: Session, user_id: UUID):
        self.db = db
        self.user_id = user_id

    def fetch_courses(self) -> List[CourseInfo]:
        try:
            courses = self.db.query(Course).filter(
                Course.user_id == self.user_id
            ).order_by(Course.grade, Course.group_number).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch courses for user {self.user_id}: {e}")
            return []
        return [CourseInfo(id=c.id, name=c.name, color=c.color) for c in courses]

    def fetch_period_keys(self) -> Dict[UUID, PeriodKey]:
        try:
            periods = self.db.query(Period).filter(Period.user_id == self.user_id).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch periods for user {self.user_id}: {e}")
            return {}

        keys = {}
        for period in periods:
            key = period_key_from_name(period.name)
            if key is None:
                logger.debug(f"Period '{period.name}' does not map to P1-P4, skipping")
                continue
            keys[period.id] = key
        return keys

    def fetch_students(self, course_id: Optional[UUID] = None, student_id: Optional[UUID] = None) -> List[StudentGrades]:
        try:
            query = self.db.query(Student).options(joinedload(Student.course)).filter(Student.user_id == self.user_id)
            if course_id:
                query = query.filter(Student.course_id == course_id)
            if student_id:
                query = query.filter(Student.id == student_id)
            students = query.order_by(Student.last_name, Student.first_name).all()
            grades = self._fetch_grades([s.id for s in students])
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch students for user {self.user_id}: {e}")
            return []

        results = []
        for student in students:
            try:
                results.append(StudentGrades(
                    id=student.id,
                    first_name=student.first_name,
                    last_name=student.last_name,
                    document_number=student.document_number,
                    course_id=student.course_id,
                    course_name=student.course.name if student.course else None,
                    status=student.status.value if student.status else "active",
                    grades=grades.get(student.id, PeriodGrades()),
                ))
            except ValidationError as e:
                logger.error(f"Skipping student {student.id} with invalid grade data: {e}")
        return results

    def fetch_student(self, student_id: UUID) -> Optional[StudentGrades]:
        students = self.fetch_students(student_id=student_id)
        return students[0] if students else None

    def snapshot(self, course_id: Optional[UUID] = None) -> GradebookSnapshot:
        return GradebookSnapshot(
            courses=self.fetch_courses(),
            students=self.fetch_students(course_id),
        )

    def fetch_recent_activity(self, limit: int = 5) -> List[RecentActivity]:
        """Latest diary entries and observations; the dashboard builder merges and trims them."""
        try:
            entries = self.db.query(DiaryEntry).options(joinedload(DiaryEntry.course)).filter(
                DiaryEntry.user_id == self.user_id
            ).order_by(DiaryEntry.created_at.desc()).limit(limit).all()
            observations = self.db.query(Observation).options(
                joinedload(Observation.student).joinedload(Student.course)
            ).filter(
                Observation.user_id == self.user_id
            ).order_by(Observation.created_at.desc()).limit(limit).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch recent activity for user {self.user_id}: {e}")
            return []

        items = [
            RecentActivity(
                id=entry.id,
                kind="diary",
                message=f"Nuevo registro: {entry.topic}",
                course=entry.course.name if entry.course else None,
                created_at=entry.created_at or datetime.combine(entry.date, time()),
            )
            for entry in entries
        ]
        for observation in observations:
            student = observation.student
            items.append(RecentActivity(
                id=observation.id,
                kind="observation",
                message=f"Observación a {student.full_name if student else 'Estudiante no encontrado'}",
                course=student.course.name if student and student.course else None,
                created_at=observation.created_at or datetime.combine(observation.date, time()),
            ))
        return items

    def _fetch_grades(self, student_ids: List[UUID]) -> Dict[UUID, PeriodGrades]:
        if not student_ids:
            return {}
        period_keys = self.fetch_period_keys()

        rows = self.db.query(ActivityGrade, Activity).join(
            Activity, ActivityGrade.activity_id == Activity.id
        ).filter(
            Activity.user_id == self.user_id,
            ActivityGrade.student_id.in_(student_ids),
        ).order_by(ActivityGrade.created_at).all()

        buckets = defaultdict(lambda: defaultdict(list))
        for grade, activity in rows:
            key = period_keys.get(activity.period_id)
            if key is None:
                continue
            try:
                item = GradeItem(value=grade.value, title=activity.title, created_at=grade.created_at)
            except ValidationError:
                logger.warning(f"Ignoring out of range grade {grade.id} ({grade.value})")
                continue
            buckets[grade.student_id][key].append(item)

        return {
            student_id: PeriodGrades(**{key.value: items for key, items in by_period.items()})
            for student_id, by_period in buckets.items()
        }
