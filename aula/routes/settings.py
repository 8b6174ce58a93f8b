from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from aula.crud.teacher import get_or_create_settings
from aula.database import get_db
from aula.models.all_models import Language, Theme, User
from aula.utils.auth import get_current_user

router = APIRouter(prefix="/api/settings", tags=["Settings"])

REQUIRED_FIELDS = {
    "notify_low_performance", "notify_planning_reminders", "notify_email_summaries", "theme", "language",
}


class SettingsResponse(BaseModel):
    id: UUID
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    institution: Optional[str] = None
    notify_low_performance: bool = True
    notify_planning_reminders: bool = True
    notify_email_summaries: bool = False
    theme: Theme = Theme.SYSTEM
    language: Language = Language.ES
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SettingsUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    institution: Optional[str] = None
    notify_low_performance: Optional[bool] = None
    notify_planning_reminders: Optional[bool] = None
    notify_email_summaries: Optional[bool] = None
    theme: Optional[Theme] = None
    language: Optional[Language] = None


@router.get("", response_model=SettingsResponse)
async def get_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    The caller's settings; a row with defaults is created the first time
    """
    return get_or_create_settings(db, current_user)


@router.patch("", response_model=SettingsResponse)
async def update_settings(
    settings_data: SettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    settings_row = get_or_create_settings(db, current_user)
    for field, value in settings_data.model_dump(exclude_unset=True).items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        setattr(settings_row, field, value)
    db.commit()
    db.refresh(settings_row)
    return settings_row
