import logging
import datetime as dt
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from aula.crud.lookups import get_course_or_404, get_diary_entry_or_404
from aula.database import get_db
from aula.models.all_models import DiaryEntry, User
from aula.utils.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/diary", tags=["Diary"])


class DiaryEntryBase(BaseModel):
    course_id: UUID
    date: dt.date
    topic: str = Field(..., min_length=1, max_length=300)
    activities: str = Field(..., min_length=1)
    observations: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

class DiaryEntryCreate(DiaryEntryBase):
    pass

class DiaryEntryUpdate(BaseModel):
    course_id: Optional[UUID] = None
    date: Optional[dt.date] = None
    topic: Optional[str] = Field(None, min_length=1, max_length=300)
    activities: Optional[str] = Field(None, min_length=1)
    observations: Optional[str] = None
    notes: Optional[str] = None

class DiaryEntryResponse(DiaryEntryBase):
    id: UUID
    course_name: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


def to_diary_response(entry: DiaryEntry) -> DiaryEntryResponse:
    response = DiaryEntryResponse.model_validate(entry)
    response.course_name = entry.course.name if entry.course else None
    return response


@router.get("", response_model=List[DiaryEntryResponse])
async def get_diary_entries(
    course_id: Optional[UUID] = None,
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Diary entries, newest first. ``search`` matches topic, activities and observations.
    """
    query = db.query(DiaryEntry).options(joinedload(DiaryEntry.course)).filter(
        DiaryEntry.user_id == current_user.id
    )
    if course_id:
        query = query.filter(DiaryEntry.course_id == course_id)
    if start_date:
        query = query.filter(DiaryEntry.date >= start_date)
    if end_date:
        query = query.filter(DiaryEntry.date <= end_date)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            DiaryEntry.topic.ilike(pattern),
            DiaryEntry.activities.ilike(pattern),
            DiaryEntry.observations.ilike(pattern),
        ))

    entries = query.order_by(DiaryEntry.date.desc(), DiaryEntry.created_at.desc()).all()
    return [to_diary_response(e) for e in entries]


@router.post("", response_model=DiaryEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_diary_entry(
    entry_data: DiaryEntryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    get_course_or_404(db, entry_data.course_id, current_user.id)

    db_entry = DiaryEntry(**entry_data.model_dump(), user_id=current_user.id)
    db.add(db_entry)
    db.commit()
    db.refresh(db_entry)
    return to_diary_response(db_entry)


@router.put("/{entry_id}", response_model=DiaryEntryResponse)
async def update_diary_entry(
    entry_id: UUID,
    entry_data: DiaryEntryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_entry = get_diary_entry_or_404(db, entry_id, current_user.id)
    update_data = entry_data.model_dump(exclude_unset=True, exclude_none=True)
    if update_data.get("course_id"):
        get_course_or_404(db, update_data["course_id"], current_user.id)

    for field, value in update_data.items():
        setattr(db_entry, field, value)
    db.commit()
    db.refresh(db_entry)
    return to_diary_response(db_entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_diary_entry(
    entry_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_entry = get_diary_entry_or_404(db, entry_id, current_user.id)
    db.delete(db_entry)
    db.commit()
