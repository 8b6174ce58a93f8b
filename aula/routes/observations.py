import logging
import datetime as dt
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, joinedload

from aula.crud.lookups import get_observation_or_404, get_student_or_404
from aula.database import get_db
from aula.models.all_models import Observation, ObservationType, SeverityLevel, Student, User
from aula.utils.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/observations", tags=["Observations"])

UNKNOWN_STUDENT = "Estudiante no encontrado"


class ObservationBase(BaseModel):
    student_id: UUID
    type: ObservationType
    severity: SeverityLevel = SeverityLevel.LOW
    description: str = Field(..., min_length=1)
    date: dt.date

    class Config:
        from_attributes = True

class ObservationCreate(ObservationBase):
    pass

class ObservationUpdate(BaseModel):
    student_id: Optional[UUID] = None
    type: Optional[ObservationType] = None
    severity: Optional[SeverityLevel] = None
    description: Optional[str] = Field(None, min_length=1)
    date: Optional[dt.date] = None

class ObservationResponse(ObservationBase):
    id: UUID
    student_name: str = UNKNOWN_STUDENT
    course_id: Optional[UUID] = None
    course_name: Optional[str] = None
    created_at: Optional[dt.datetime] = None


def to_observation_response(observation: Observation) -> ObservationResponse:
    response = ObservationResponse.model_validate(observation)
    student = observation.student
    if student:
        response.student_name = student.full_name
        response.course_id = student.course_id
        response.course_name = student.course.name if student.course else None
    return response


@router.get("", response_model=List[ObservationResponse])
async def get_observations(
    student_id: Optional[UUID] = None,
    course_id: Optional[UUID] = None,
    type: Optional[ObservationType] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(Observation).options(
        joinedload(Observation.student).joinedload(Student.course)
    ).filter(Observation.user_id == current_user.id)

    if student_id:
        query = query.filter(Observation.student_id == student_id)
    if course_id:
        query = query.join(Student, Observation.student_id == Student.id).filter(
            Student.course_id == course_id
        )
    if type is not None:
        query = query.filter(Observation.type == type)

    observations = query.order_by(Observation.date.desc(), Observation.created_at.desc()).all()
    return [to_observation_response(o) for o in observations]


@router.post("", response_model=ObservationResponse, status_code=status.HTTP_201_CREATED)
async def create_observation(
    observation_data: ObservationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    student = get_student_or_404(db, observation_data.student_id, current_user.id)

    db_observation = Observation(**observation_data.model_dump(), user_id=current_user.id)
    db.add(db_observation)
    db.commit()
    db.refresh(db_observation)
    logger.info(f"Observation ({db_observation.type.value}) recorded for {student.full_name}")
    return to_observation_response(db_observation)


@router.put("/{observation_id}", response_model=ObservationResponse)
async def update_observation(
    observation_id: UUID,
    observation_data: ObservationUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_observation = get_observation_or_404(db, observation_id, current_user.id)
    update_data = observation_data.model_dump(exclude_unset=True, exclude_none=True)
    if "student_id" in update_data:
        get_student_or_404(db, update_data["student_id"], current_user.id)

    for field, value in update_data.items():
        setattr(db_observation, field, value)
    db.commit()
    db.refresh(db_observation)
    return to_observation_response(db_observation)


@router.delete("/{observation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_observation(
    observation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_observation = get_observation_or_404(db, observation_id, current_user.id)
    db.delete(db_observation)
    db.commit()
