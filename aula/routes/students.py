import logging
from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session, joinedload

from aula.crud.gradebook import GradebookRepository
from aula.crud.lookups import get_course_or_404, get_student_or_404, refresh_students_count
from aula.database import get_db
from aula.models.all_models import DocumentType, Gender, Student, StudentStatus, User
from aula.schemas.gradebook import PERIOD_KEYS, PeriodGrades
from aula.services.grade_aggregation import RiskTier, overall_average, period_averages, student_tier
from aula.utils.auth import get_current_user
from aula.utils.dates import calculate_age

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/students", tags=["Students"])


# Pydantic Models
class StudentBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    gender: Gender
    birth_date: Optional[date] = None
    document_type: DocumentType = DocumentType.TI
    document_number: Optional[str] = None
    course_id: Optional[UUID] = None
    enrollment_date: Optional[date] = None
    status: StudentStatus = StudentStatus.ACTIVE
    blood_type: Optional[str] = None
    health_insurance: Optional[str] = None
    disabilities: Optional[str] = None
    special_needs: Optional[str] = None
    allergies: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = "Bogotá"
    guardian_name: Optional[str] = None
    guardian_relationship: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_email: Optional[EmailStr] = None
    guardian_occupation: Optional[str] = None
    guardian_address: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    photo_url: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

class StudentCreate(StudentBase):
    pass

class StudentUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    gender: Optional[Gender] = None
    birth_date: Optional[date] = None
    document_type: Optional[DocumentType] = None
    document_number: Optional[str] = None
    course_id: Optional[UUID] = None
    enrollment_date: Optional[date] = None
    status: Optional[StudentStatus] = None
    blood_type: Optional[str] = None
    health_insurance: Optional[str] = None
    disabilities: Optional[str] = None
    special_needs: Optional[str] = None
    allergies: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    guardian_name: Optional[str] = None
    guardian_relationship: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_email: Optional[EmailStr] = None
    guardian_occupation: Optional[str] = None
    guardian_address: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    photo_url: Optional[str] = None
    notes: Optional[str] = None

class StudentResponse(StudentBase):
    id: UUID
    full_name: str
    age: Optional[int] = None
    course_name: Optional[str] = None
    created_at: Optional[datetime] = None

class StudentWithGradesResponse(StudentResponse):
    grades: PeriodGrades = PeriodGrades()
    average: Optional[float] = None

class StudentProfileResponse(StudentWithGradesResponse):
    period_averages: Dict[str, Optional[float]] = {}
    risk_tier: Optional[RiskTier] = None


# Helper Functions
def to_student_response(student: Student, response_model=StudentResponse):
    response = response_model.model_validate(student)
    response.age = calculate_age(student.birth_date) if student.birth_date else None
    response.course_name = student.course.name if student.course else None
    return response


# Student CRUD Endpoints
@router.get("", response_model=List[StudentWithGradesResponse])
async def get_students(
    course_id: Optional[UUID] = None,
    status: Optional[StudentStatus] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(Student).options(joinedload(Student.course)).filter(
        Student.user_id == current_user.id
    )
    if course_id:
        query = query.filter(Student.course_id == course_id)
    if status is not None:
        query = query.filter(Student.status == status)
    students = query.order_by(Student.last_name, Student.first_name).all()

    grades = {
        s.id: s.grades
        for s in GradebookRepository(db, current_user.id).fetch_students(course_id)
    }

    responses = []
    for student in students:
        response = to_student_response(student, StudentWithGradesResponse)
        response.grades = grades.get(student.id, PeriodGrades())
        response.average = overall_average(response.grades)
        responses.append(response)
    return responses


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if student_data.course_id:
        get_course_or_404(db, student_data.course_id, current_user.id)

    db_student = Student(**student_data.model_dump(exclude_none=True), user_id=current_user.id)
    try:
        db.add(db_student)
        refresh_students_count(db, db_student.course_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_student)
    logger.info(f"Student {db_student.full_name} created by {current_user.email}")
    return to_student_response(db_student)


@router.get("/{student_id}", response_model=StudentProfileResponse)
async def get_student(
    student_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Student profile with per-period averages, overall average and risk tier
    """
    student = get_student_or_404(db, student_id, current_user.id)
    gradebook = GradebookRepository(db, current_user.id).fetch_student(student_id)
    grades = gradebook.grades if gradebook else PeriodGrades()

    response = to_student_response(student, StudentProfileResponse)
    response.grades = grades
    response.average = overall_average(grades)
    averages = period_averages(grades)
    response.period_averages = {key.label: averages[key] for key in PERIOD_KEYS}
    response.risk_tier = student_tier(grades)
    return response


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: UUID,
    student_data: StudentUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_student = get_student_or_404(db, student_id, current_user.id)
    update_data = student_data.model_dump(exclude_unset=True)

    previous_course_id = db_student.course_id
    if update_data.get("course_id"):
        get_course_or_404(db, update_data["course_id"], current_user.id)

    for field, value in update_data.items():
        setattr(db_student, field, value)

    try:
        if "course_id" in update_data and update_data["course_id"] != previous_course_id:
            refresh_students_count(db, previous_course_id)
            refresh_students_count(db, db_student.course_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_student)
    return to_student_response(db_student)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_student = get_student_or_404(db, student_id, current_user.id)
    course_id = db_student.course_id
    try:
        db.delete(db_student)
        refresh_students_count(db, course_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Student {student_id} deleted by {current_user.email}")
