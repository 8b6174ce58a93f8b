import logging
import datetime as dt
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session, joinedload

from aula.crud.lookups import get_course_or_404, get_planning_or_404
from aula.database import get_db
from aula.models.all_models import PlanningStatus, User, WeeklyPlanning
from aula.utils.auth import get_current_user
from aula.utils.dates import format_date_range

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/planning", tags=["Planning"])


class DayActivity(BaseModel):
    day: str
    activity: str

class PlanningBase(BaseModel):
    course_id: UUID
    week_number: int = Field(..., ge=1)
    start_date: dt.date
    end_date: dt.date
    unit: str = Field(..., min_length=1)
    competence: str = Field(..., min_length=1)
    standard: str = Field(..., min_length=1)
    indicators: List[str] = []
    activities: List[DayActivity] = []
    resources: List[str] = []
    status: PlanningStatus = PlanningStatus.DRAFT

    class Config:
        from_attributes = True

class PlanningCreate(PlanningBase):
    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

class PlanningUpdate(BaseModel):
    week_number: Optional[int] = Field(None, ge=1)
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    unit: Optional[str] = Field(None, min_length=1)
    competence: Optional[str] = Field(None, min_length=1)
    standard: Optional[str] = Field(None, min_length=1)
    indicators: Optional[List[str]] = None
    activities: Optional[List[DayActivity]] = None
    resources: Optional[List[str]] = None
    status: Optional[PlanningStatus] = None

class DuplicatePlanningRequest(BaseModel):
    start_date: dt.date
    end_date: dt.date

class PlanningResponse(PlanningBase):
    id: UUID
    course_name: Optional[str] = None
    date_range: str = ""
    created_at: Optional[dt.datetime] = None


def to_planning_response(planning: WeeklyPlanning) -> PlanningResponse:
    response = PlanningResponse.model_validate(planning)
    response.course_name = planning.course.name if planning.course else None
    response.date_range = format_date_range(planning.start_date, planning.end_date)
    return response


def demote_current(db: Session, course_id: UUID, user_id: UUID, keep_id: Optional[UUID] = None):
    """Mark the course's current planning as completed; at most one planning per course is current."""
    query = db.query(WeeklyPlanning).filter(
        WeeklyPlanning.user_id == user_id,
        WeeklyPlanning.course_id == course_id,
        WeeklyPlanning.status == PlanningStatus.CURRENT
    )
    if keep_id:
        query = query.filter(WeeklyPlanning.id != keep_id)
    for planning in query.all():
        planning.status = PlanningStatus.COMPLETED


@router.get("", response_model=List[PlanningResponse])
async def get_plannings(
    course_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(WeeklyPlanning).options(joinedload(WeeklyPlanning.course)).filter(
        WeeklyPlanning.user_id == current_user.id
    )
    if course_id:
        query = query.filter(WeeklyPlanning.course_id == course_id)
    plannings = query.order_by(WeeklyPlanning.start_date).all()
    return [to_planning_response(p) for p in plannings]


@router.get("/current/{course_id}", response_model=Optional[PlanningResponse])
async def get_current_planning(
    course_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    get_course_or_404(db, course_id, current_user.id)
    planning = db.query(WeeklyPlanning).filter(
        WeeklyPlanning.user_id == current_user.id,
        WeeklyPlanning.course_id == course_id,
        WeeklyPlanning.status == PlanningStatus.CURRENT
    ).first()
    return to_planning_response(planning) if planning else None


@router.post("", response_model=PlanningResponse, status_code=status.HTTP_201_CREATED)
async def create_planning(
    planning_data: PlanningCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    get_course_or_404(db, planning_data.course_id, current_user.id)

    try:
        if planning_data.status == PlanningStatus.CURRENT:
            demote_current(db, planning_data.course_id, current_user.id)
        db_planning = WeeklyPlanning(**planning_data.model_dump(), user_id=current_user.id)
        db.add(db_planning)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_planning)
    logger.info(f"Planning week {db_planning.week_number} created for course {db_planning.course_id}")
    return to_planning_response(db_planning)


@router.put("/{planning_id}", response_model=PlanningResponse)
async def update_planning(
    planning_id: UUID,
    planning_data: PlanningUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_planning = get_planning_or_404(db, planning_id, current_user.id)
    update_data = planning_data.model_dump(exclude_unset=True, exclude_none=True)

    start_date = update_data.get("start_date", db_planning.start_date)
    end_date = update_data.get("end_date", db_planning.end_date)
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date"
        )

    try:
        if update_data.get("status") == PlanningStatus.CURRENT:
            demote_current(db, db_planning.course_id, current_user.id, keep_id=db_planning.id)
        for field, value in update_data.items():
            setattr(db_planning, field, value)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_planning)
    return to_planning_response(db_planning)


@router.delete("/{planning_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_planning(
    planning_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_planning = get_planning_or_404(db, planning_id, current_user.id)
    db.delete(db_planning)
    db.commit()


@router.post("/{planning_id}/duplicate", response_model=PlanningResponse, status_code=status.HTTP_201_CREATED)
async def duplicate_planning(
    planning_id: UUID,
    duplicate_data: DuplicatePlanningRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Copy a planning to new dates as the next week's draft
    """
    if duplicate_data.end_date < duplicate_data.start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date"
        )
    original = get_planning_or_404(db, planning_id, current_user.id)

    db_planning = WeeklyPlanning(
        user_id=current_user.id,
        course_id=original.course_id,
        week_number=original.week_number + 1,
        start_date=duplicate_data.start_date,
        end_date=duplicate_data.end_date,
        unit=original.unit,
        competence=original.competence,
        standard=original.standard,
        indicators=list(original.indicators or []),
        activities=list(original.activities or []),
        resources=list(original.resources or []),
        status=PlanningStatus.DRAFT,
    )
    db.add(db_planning)
    db.commit()
    db.refresh(db_planning)
    return to_planning_response(db_planning)


@router.post("/{planning_id}/set-current", response_model=PlanningResponse)
async def set_current_planning(
    planning_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_planning = get_planning_or_404(db, planning_id, current_user.id)
    try:
        demote_current(db, db_planning.course_id, current_user.id, keep_id=db_planning.id)
        db_planning.status = PlanningStatus.CURRENT
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_planning)
    return to_planning_response(db_planning)
