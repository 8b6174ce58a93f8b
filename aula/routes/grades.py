import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from aula.crud.gradebook import GradebookRepository
from aula.crud.lookups import (
    get_activity_grade_or_404, get_activity_or_404, get_course_or_404, get_period_or_404,
)
from aula.database import get_db
from aula.models.all_models import Activity, ActivityGrade, Period, Student, User
from aula.schemas.gradebook import PeriodKey
from aula.services.grade_aggregation import PeriodStats, period_stats
from aula.utils.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/grades", tags=["Grades"])


# Pydantic Models
class PeriodCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

class PeriodResponse(PeriodCreate):
    id: UUID

    class Config:
        from_attributes = True

class ActivityCreate(BaseModel):
    course_id: UUID
    period_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None

class ActivityUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None

class ActivityResponse(ActivityCreate):
    id: UUID
    grades_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class GradeInput(BaseModel):
    student_id: UUID
    value: float = Field(..., ge=1.0, le=5.0)

class BulkGradesRequest(BaseModel):
    grades: List[GradeInput]

class GradeUpdate(BaseModel):
    value: float = Field(..., ge=1.0, le=5.0)

class ActivityGradeResponse(BaseModel):
    id: UUID
    activity_id: UUID
    student_id: UUID
    student_name: str
    value: float
    created_at: Optional[datetime] = None

class PeriodStatsResponse(PeriodStats):
    course_id: UUID
    period: PeriodKey


# Helper Functions
def to_grade_response(grade: ActivityGrade) -> ActivityGradeResponse:
    return ActivityGradeResponse(
        id=grade.id,
        activity_id=grade.activity_id,
        student_id=grade.student_id,
        student_name=grade.student.full_name,
        value=grade.value,
        created_at=grade.created_at,
    )


# Periods
@router.get("/periods", response_model=List[PeriodResponse])
async def get_periods(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return db.query(Period).filter(Period.user_id == current_user.id).order_by(Period.name).all()


@router.post("/periods", response_model=PeriodResponse, status_code=status.HTTP_201_CREATED)
async def create_period(
    period_data: PeriodCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    existing = db.query(Period).filter(
        Period.user_id == current_user.id,
        Period.name == period_data.name
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A period with this name already exists"
        )

    db_period = Period(**period_data.model_dump(), user_id=current_user.id)
    db.add(db_period)
    db.commit()
    db.refresh(db_period)
    return db_period


# Activities
@router.get("/activities", response_model=List[ActivityResponse])
async def get_activities(
    course_id: Optional[UUID] = None,
    period_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(Activity, func.count(ActivityGrade.id)).outerjoin(
        ActivityGrade, ActivityGrade.activity_id == Activity.id
    ).filter(Activity.user_id == current_user.id)

    if course_id:
        query = query.filter(Activity.course_id == course_id)
    if period_id:
        query = query.filter(Activity.period_id == period_id)

    rows = query.group_by(Activity.id).order_by(Activity.created_at.desc()).all()

    activities = []
    for activity, grades_count in rows:
        response = ActivityResponse.model_validate(activity)
        response.grades_count = grades_count
        activities.append(response)
    return activities


@router.post("/activities", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    activity_data: ActivityCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    get_course_or_404(db, activity_data.course_id, current_user.id)
    get_period_or_404(db, activity_data.period_id, current_user.id)

    db_activity = Activity(**activity_data.model_dump(), user_id=current_user.id)
    db.add(db_activity)
    db.commit()
    db.refresh(db_activity)
    logger.info(f"Activity '{db_activity.title}' created for course {db_activity.course_id}")
    return db_activity


@router.put("/activities/{activity_id}", response_model=ActivityResponse)
async def update_activity(
    activity_id: UUID,
    activity_data: ActivityUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_activity = get_activity_or_404(db, activity_id, current_user.id)
    for field, value in activity_data.model_dump(exclude_unset=True).items():
        setattr(db_activity, field, value)
    db.commit()
    db.refresh(db_activity)

    response = ActivityResponse.model_validate(db_activity)
    response.grades_count = len(db_activity.grades)
    return response


@router.delete("/activities/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_activity(
    activity_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Delete an activity together with its grades
    """
    db_activity = get_activity_or_404(db, activity_id, current_user.id)
    db.delete(db_activity)
    db.commit()


# Activity grades
@router.get("/activities/{activity_id}/grades", response_model=List[ActivityGradeResponse])
async def get_activity_grades(
    activity_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_activity = get_activity_or_404(db, activity_id, current_user.id)
    grades = sorted(db_activity.grades, key=lambda g: (g.student.last_name, g.student.first_name))
    return [to_grade_response(g) for g in grades]


@router.post("/activities/{activity_id}/grades", response_model=List[ActivityGradeResponse])
async def save_activity_grades(
    activity_id: UUID,
    grades_data: BulkGradesRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Save the grades of an activity. A student that already has a grade for
    the activity gets it replaced.
    """
    db_activity = get_activity_or_404(db, activity_id, current_user.id)

    student_ids = [g.student_id for g in grades_data.grades]
    if len(student_ids) != len(set(student_ids)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Each student can only be graded once per activity"
        )

    students = {
        s.id: s.course_id for s in db.query(Student.id, Student.course_id).filter(
            Student.user_id == current_user.id,
            Student.id.in_(student_ids)
        ).all()
    } if student_ids else {}
    missing = [str(sid) for sid in student_ids if sid not in students]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Student not found: {', '.join(missing)}"
        )
    outside = [str(sid) for sid in student_ids if students[sid] != db_activity.course_id]
    if outside:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Student not enrolled in the activity's course: {', '.join(outside)}"
        )

    existing = {g.student_id: g for g in db_activity.grades}
    try:
        for grade_input in grades_data.grades:
            db_grade = existing.get(grade_input.student_id)
            if db_grade:
                db_grade.value = grade_input.value
            else:
                db.add(ActivityGrade(
                    activity_id=db_activity.id,
                    student_id=grade_input.student_id,
                    value=grade_input.value,
                ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_activity)
    logger.info(f"Saved {len(student_ids)} grades for activity {activity_id}")
    grades = sorted(db_activity.grades, key=lambda g: (g.student.last_name, g.student.first_name))
    return [to_grade_response(g) for g in grades]


@router.put("/{grade_id}", response_model=ActivityGradeResponse)
async def update_grade(
    grade_id: UUID,
    grade_data: GradeUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_grade = get_activity_grade_or_404(db, grade_id, current_user.id)
    db_grade.value = grade_data.value
    db.commit()
    db.refresh(db_grade)
    return to_grade_response(db_grade)


@router.delete("/{grade_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_grade(
    grade_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_grade = get_activity_grade_or_404(db, grade_id, current_user.id)
    db.delete(db_grade)
    db.commit()


# Statistics
@router.get("/stats/{course_id}", response_model=PeriodStatsResponse)
async def get_course_period_stats(
    course_id: UUID,
    period: PeriodKey,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Average, highest, lowest, passing and failing counts of a course in one period
    """
    get_course_or_404(db, course_id, current_user.id)
    students = GradebookRepository(db, current_user.id).fetch_students(course_id)
    stats = period_stats(students, period)
    return PeriodStatsResponse(course_id=course_id, period=period, **stats.model_dump())
