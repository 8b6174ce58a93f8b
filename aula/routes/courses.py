import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from aula.crud.lookups import get_course_or_404
from aula.database import get_db
from aula.models.all_models import Course, User
from aula.utils.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses", tags=["Courses"])


class CourseBase(BaseModel):
    subject: str = Field(..., min_length=1, max_length=100)
    grade: int = Field(..., ge=0, le=13)
    group_number: int = Field(..., ge=1)
    schedule: Optional[str] = None
    color: Optional[str] = "#3b82f6"

class CourseCreate(CourseBase):
    pass

class CourseUpdate(BaseModel):
    subject: Optional[str] = Field(None, min_length=1, max_length=100)
    grade: Optional[int] = Field(None, ge=0, le=13)
    group_number: Optional[int] = Field(None, ge=1)
    schedule: Optional[str] = None
    color: Optional[str] = None

class CourseResponse(CourseBase):
    id: UUID
    name: str
    students_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


@router.get("", response_model=List[CourseResponse])
async def get_courses(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return db.query(Course).filter(
        Course.user_id == current_user.id
    ).order_by(Course.grade, Course.group_number).all()


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course_data: CourseCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_course = Course(**course_data.model_dump(), user_id=current_user.id, students_count=0)
    db.add(db_course)
    db.commit()
    db.refresh(db_course)
    logger.info(f"Course {db_course.name} created by {current_user.email}")
    return db_course


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return get_course_or_404(db, course_id, current_user.id)


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: UUID,
    course_data: CourseUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_course = get_course_or_404(db, course_id, current_user.id)
    for field, value in course_data.model_dump(exclude_unset=True).items():
        setattr(db_course, field, value)
    db.commit()
    db.refresh(db_course)
    return db_course


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Delete a course with its activities, diary entries and plannings.
    Its students stay, without a course.
    """
    db_course = get_course_or_404(db, course_id, current_user.id)
    for student in db_course.students:
        student.course_id = None
    db.delete(db_course)
    db.commit()
    logger.info(f"Course {course_id} deleted by {current_user.email}")
