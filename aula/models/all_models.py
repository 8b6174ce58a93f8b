from sqlalchemy import Column, String, Integer, Float, Date, DateTime, Time, Boolean, Text, ForeignKey, Enum as SQLEnum, JSON, UniqueConstraint, Uuid
from sqlalchemy.orm import declarative_base, relationship
from enum import Enum
import uuid

from aula.utils.dates import now_local, now_naive

Base = declarative_base()

# Enum Classes
class Gender(str, Enum):
    MALE = "masculino"
    FEMALE = "femenino"
    OTHER = "otro"

class DocumentType(str, Enum):
    TI = "TI"
    CC = "CC"
    RC = "RC"
    CE = "CE"
    PEP = "PEP"

class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TRANSFERRED = "transferred"
    GRADUATED = "graduated"

class ObservationType(str, Enum):
    ACADEMIC = "academic"
    BEHAVIORAL = "behavioral"
    ATTENDANCE = "attendance"
    POSITIVE = "positive"

class SeverityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class PlanningStatus(str, Enum):
    DRAFT = "draft"
    CURRENT = "current"
    COMPLETED = "completed"

class EventType(str, Enum):
    DEADLINE = "deadline"
    MEETING = "meeting"
    EXAM = "exam"
    PLANNING = "planning"
    OTHER = "other"

class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"

class Language(str, Enum):
    ES = "es"
    EN = "en"

# Model Classes
class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    profile = relationship("TeacherProfile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    settings = relationship("UserSettings", back_populates="user", uselist=False, cascade="all, delete-orphan")

class TeacherProfile(Base):
    __tablename__ = "teacher_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(30))
    institution = Column(String(200))
    subject_specialty = Column(String(100))
    avatar_url = Column(Text)
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    user = relationship("User", back_populates="profile")

class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    full_name = Column(String(200))
    email = Column(String(255))
    phone = Column(String(30))
    institution = Column(String(200))
    notify_low_performance = Column(Boolean, default=True)
    notify_planning_reminders = Column(Boolean, default=True)
    notify_email_summaries = Column(Boolean, default=False)
    theme = Column(SQLEnum(Theme), default=Theme.SYSTEM)
    language = Column(SQLEnum(Language), default=Language.ES)
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    user = relationship("User", back_populates="settings")

class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(128), unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False)
    created_at = Column(DateTime, default=now_naive)

class Course(Base):
    __tablename__ = "courses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject = Column(String(100), nullable=False)
    grade = Column(Integer, nullable=False)
    group_number = Column(Integer, nullable=False)
    schedule = Column(String(200))
    students_count = Column(Integer, default=0)
    color = Column(String(30), default="#3b82f6")
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    students = relationship("Student", back_populates="course")
    activities = relationship("Activity", back_populates="course", cascade="all, delete-orphan")
    diary_entries = relationship("DiaryEntry", back_populates="course", cascade="all, delete-orphan")
    plannings = relationship("WeeklyPlanning", back_populates="course", cascade="all, delete-orphan")
    events = relationship("Event", back_populates="course")

    @property
    def name(self) -> str:
        return f"{self.subject} {self.grade}-{self.group_number}"

class Student(Base):
    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    gender = Column(SQLEnum(Gender), nullable=False)
    birth_date = Column(Date)
    document_type = Column(SQLEnum(DocumentType), default=DocumentType.TI)
    document_number = Column(String(30))
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="SET NULL"), index=True)
    enrollment_date = Column(Date, default=lambda: now_local().date())
    status = Column(SQLEnum(StudentStatus), default=StudentStatus.ACTIVE)
    blood_type = Column(String(5))
    health_insurance = Column(String(100))
    disabilities = Column(Text)
    special_needs = Column(Text)
    allergies = Column(Text)
    email = Column(String(255))
    phone = Column(String(30))
    address = Column(Text)
    neighborhood = Column(String(100))
    city = Column(String(100), default="Bogotá")
    guardian_name = Column(String(200))
    guardian_relationship = Column(String(50))
    guardian_phone = Column(String(30))
    guardian_email = Column(String(255))
    guardian_occupation = Column(String(100))
    guardian_address = Column(Text)
    emergency_contact_name = Column(String(200))
    emergency_contact_phone = Column(String(30))
    emergency_contact_relationship = Column(String(50))
    photo_url = Column(Text)
    notes = Column(Text)
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    course = relationship("Course", back_populates="students")
    activity_grades = relationship("ActivityGrade", back_populates="student", cascade="all, delete-orphan")
    observations = relationship("Observation", back_populates="student", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

class Period(Base):
    __tablename__ = "periods"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    start_date = Column(Date)
    end_date = Column(Date)
    created_at = Column(DateTime, default=now_naive)

    activities = relationship("Activity", back_populates="period", cascade="all, delete-orphan")

class Activity(Base):
    __tablename__ = "activities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    period_id = Column(Uuid, ForeignKey("periods.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    course = relationship("Course", back_populates="activities")
    period = relationship("Period", back_populates="activities")
    grades = relationship("ActivityGrade", back_populates="activity", cascade="all, delete-orphan")

class ActivityGrade(Base):
    __tablename__ = "activity_grades"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    activity_id = Column(Uuid, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Float, nullable=False)
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    # One grade per student per activity
    __table_args__ = (
        UniqueConstraint('activity_id', 'student_id', name='unique_activity_student_grade'),
    )
    activity = relationship("Activity", back_populates="grades")
    student = relationship("Student", back_populates="activity_grades")

class DiaryEntry(Base):
    __tablename__ = "diary_entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    topic = Column(String(300), nullable=False)
    activities = Column(Text, nullable=False)
    observations = Column(Text)
    notes = Column(Text)
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    course = relationship("Course", back_populates="diary_entries")

class Observation(Base):
    __tablename__ = "observations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    type = Column(SQLEnum(ObservationType), nullable=False)
    severity = Column(SQLEnum(SeverityLevel), nullable=False, default=SeverityLevel.LOW)
    description = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    student = relationship("Student", back_populates="observations")

class WeeklyPlanning(Base):
    __tablename__ = "weekly_planning"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    week_number = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    unit = Column(Text, nullable=False)
    competence = Column(Text, nullable=False)
    standard = Column(Text, nullable=False)
    indicators = Column(JSON, default=list)
    activities = Column(JSON, default=list)
    resources = Column(JSON, default=list)
    status = Column(SQLEnum(PlanningStatus), default=PlanningStatus.DRAFT, index=True)
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    course = relationship("Course", back_populates="plannings")

class Event(Base):
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    date = Column(Date, nullable=False)
    time = Column(Time)
    type = Column(SQLEnum(EventType), nullable=False, default=EventType.OTHER)
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=now_naive)
    updated_at = Column(DateTime, default=now_naive, onupdate=now_naive)

    course = relationship("Course", back_populates="events")
