import logging
import datetime as dt
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from aula.crud.lookups import get_course_or_404, get_event_or_404
from aula.database import get_db
from aula.models.all_models import Event, EventType, User
from aula.utils.auth import get_current_user
from aula.utils.dates import month_bounds

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agenda", tags=["Agenda"])


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    date: dt.date
    time: Optional[dt.time] = None
    type: EventType = EventType.OTHER
    course_id: Optional[UUID] = None

    class Config:
        from_attributes = True

class EventCreate(EventBase):
    pass

class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    type: Optional[EventType] = None
    course_id: Optional[UUID] = None

class EventResponse(EventBase):
    id: UUID
    course_name: Optional[str] = None
    created_at: Optional[dt.datetime] = None


def to_event_response(event: Event) -> EventResponse:
    response = EventResponse.model_validate(event)
    response.course_name = event.course.name if event.course else None
    return response


@router.get("", response_model=List[EventResponse])
async def get_events(
    year: Optional[int] = Query(None, ge=1900, le=2999),
    month: Optional[int] = Query(None, ge=1, le=12),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Events in date order. Pass ``year`` and ``month`` to get a single month.
    """
    query = db.query(Event).options(joinedload(Event.course)).filter(Event.user_id == current_user.id)
    if year and month:
        start, end = month_bounds(year, month)
        query = query.filter(Event.date >= start, Event.date < end)
    events = query.order_by(Event.date, Event.time).all()
    return [to_event_response(e) for e in events]


@router.get("/counts", response_model=Dict[str, int])
async def get_event_counts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Number of events per type, every type included
    """
    rows = db.query(Event.type, func.count(Event.id)).filter(
        Event.user_id == current_user.id
    ).group_by(Event.type).all()

    counts = {event_type.value: 0 for event_type in EventType}
    for event_type, count in rows:
        counts[event_type.value] = count
    counts["total"] = sum(counts.values())
    return counts


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if event_data.course_id:
        get_course_or_404(db, event_data.course_id, current_user.id)

    db_event = Event(**event_data.model_dump(), user_id=current_user.id)
    db.add(db_event)
    db.commit()
    db.refresh(db_event)
    return to_event_response(db_event)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    event_data: EventUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_event = get_event_or_404(db, event_id, current_user.id)
    update_data = event_data.model_dump(exclude_unset=True)
    if update_data.get("course_id"):
        get_course_or_404(db, update_data["course_id"], current_user.id)

    for field in ("title", "date", "type"):
        if field in update_data and update_data[field] is None:
            update_data.pop(field)

    for field, value in update_data.items():
        setattr(db_event, field, value)
    db.commit()
    db.refresh(db_event)
    return to_event_response(db_event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    db_event = get_event_or_404(db, event_id, current_user.id)
    db.delete(db_event)
    db.commit()
