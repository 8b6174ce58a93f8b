import logging
from typing import Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from aula.models.all_models import Period, TeacherProfile, User, UserSettings

logger = logging.getLogger(__name__)

DEFAULT_PERIODS = ["Periodo 1", "Periodo 2", "Periodo 3", "Periodo 4"]


def get_fullname(profile: Optional[TeacherProfile]) -> str:
    """
    Utility function to get the full name of a teacher.
    """
    if profile is None:
        return ""
    return f"{profile.first_name} {profile.last_name}"


def create_teacher_with_user(
    db: Session,
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str,
    phone: Optional[str] = None,
    institution: Optional[str] = None,
    subject_specialty: Optional[str] = None,
) -> User:
    """
    Create the user, its teacher profile, its settings row and the four
    default grading periods in one transaction.
    """
    try:
        new_user = User(
            id=uuid4(),
            email=email.lower(),
            password_hash=password_hash,
            is_active=True,
        )
        db.add(new_user)
        db.flush()

        db.add(TeacherProfile(
            user_id=new_user.id,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            institution=institution,
            subject_specialty=subject_specialty,
        ))
        db.add(UserSettings(
            user_id=new_user.id,
            full_name=f"{first_name} {last_name}",
            email=new_user.email,
            phone=phone,
            institution=institution,
        ))
        for name in DEFAULT_PERIODS:
            db.add(Period(user_id=new_user.id, name=name))

        db.commit()
        db.refresh(new_user)
        logger.info(f"Registered teacher {new_user.email}")
        return new_user

    except Exception:
        db.rollback()
        raise


def get_or_create_settings(db: Session, user: User) -> UserSettings:
    settings_row = db.query(UserSettings).filter(UserSettings.user_id == user.id).first()
    if settings_row:
        return settings_row

    profile = user.profile
    settings_row = UserSettings(
        user_id=user.id,
        full_name=get_fullname(profile) or None,
        email=user.email,
        phone=profile.phone if profile else None,
        institution=profile.institution if profile else None,
    )
    db.add(settings_row)
    db.commit()
    db.refresh(settings_row)
    logger.info(f"Created default settings for user {user.id}")
    return settings_row
