import uuid
from datetime import datetime
from sqlalchemy import Column, String, Float, Boolean, Text, Date, DateTime, ForeignKey, Index, JSON, UniqueConstraint
from sqlalchemy.orm import relationship, declarative_base
from shared.enums import ProjectStatus, PriorityLevel, TaskStatus, MilestoneStatus, UserRole, SessionKind

Base = declarative_base()

# Global timezone configuration - Eastern Time (US/Eastern)
# Uses zoneinfo for proper DST handling (EST/EDT)
from zoneinfo import ZoneInfo
APP_TIMEZONE = ZoneInfo('America/New_York')


def now():
    """Return current datetime in application timezone (timezone-aware).

    Note: When stored in SQLite, timezone info is stripped (SQLite limitation).
    """
    return datetime.now(APP_TIMEZONE)


def today():
    """Return the current date in application timezone."""
    return now().date()


def new_id():
    """Generate a UUID string primary key."""
    return str(uuid.uuid4())


class TimestampMixin:
    """Mixin providing created/updated timestamps."""

    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)


class Profile(Base, TimestampMixin):
    """Canonical identity table (replaces the legacy users table)."""
    __tablename__ = 'profiles'
    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(120), unique=True, nullable=False)
    full_name = Column(String(200), server_default="")
    phone = Column(String(40), server_default="")
    avatar_url = Column(String(1000), server_default="")
    role = Column(String(30), default=UserRole.MEMBER.value, nullable=False)
    password_hash = Column(String(256), server_default="")
    sessions = relationship('AuthSession', backref='profile', lazy='select', cascade="all, delete-orphan")


class ExpiringMixin:
    """Token rows that stop working at ``expires_at``."""

    expires_at = Column(DateTime)

    def is_expired(self, at=None):
        if self.expires_at is None:
            return False
        at = at or now()
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=APP_TIMEZONE)
        return at >= expires_at


class AuthSession(Base, ExpiringMixin):
    __tablename__ = 'auth_sessions'
    token = Column(String(128), primary_key=True)
    profile_id = Column(String(36), ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True)
    kind = Column(String(20), default=SessionKind.ACCESS.value, nullable=False)
    created_at = Column(DateTime, default=now)


class Project(Base, TimestampMixin):
    __tablename__ = 'projects'
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    description = Column(Text, server_default="")
    status = Column(String(20), default=ProjectStatus.ACTIVE.value, nullable=False, index=True)
    priority = Column(String(20), default=PriorityLevel.MEDIUM.value, nullable=False)
    address1 = Column(String(200), server_default="")
    address2 = Column(String(200), server_default="")
    city = Column(String(100), server_default="")
    state = Column(String(50), server_default="")
    zip = Column(String(20), server_default="")
    location = Column(String(200), server_default="")
    contact_name = Column(String(200), server_default="")
    contact_phone = Column(String(40), server_default="")
    start_date = Column(Date)
    end_date = Column(Date)
    created_by = Column(String(36), ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True, index=True)

    collaborators = relationship('ProjectCollaborator', backref='project', lazy='select', cascade="all, delete-orphan")
    milestones = relationship('Milestone', backref='project', lazy='select', cascade="all, delete-orphan",
                              order_by='Milestone.due_date')
    photos = relationship('Photo', backref='project', lazy='select', cascade="all, delete-orphan")
    tasks = relationship('Task', backref='project', lazy='select', cascade="all, delete-orphan")
    reports = relationship('Report', backref='project', lazy='select', cascade="all, delete-orphan")


class ProjectCollaborator(Base):
    __tablename__ = 'project_collaborators'
    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True)
    role = Column(String(50), server_default="member")
    created_at = Column(DateTime, default=now)
    user = relationship('Profile', lazy='joined')

    __table_args__ = (
        UniqueConstraint('project_id', 'user_id', name='uq_project_collaborator'),
    )


class Milestone(Base, TimestampMixin):
    __tablename__ = 'milestones'
    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    status = Column(String(20), default=MilestoneStatus.PENDING.value, nullable=False)
    due_date = Column(Date, nullable=False)
    completion_date = Column(Date)


class Photo(Base):
    __tablename__ = 'photos'
    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey('projects.id', ondelete='CASCADE'), index=True)
    url = Column(String(1000), nullable=False, server_default="")
    title = Column(String(200), server_default="")
    caption = Column(Text, server_default="")
    # Capture day as YYYY-MM-DD; used for grid grouping
    date = Column(String(10), index=True)
    date_taken = Column(DateTime)
    tags = Column(JSON, default=list)
    assigned_to = Column(String(200))
    group = Column('photo_group', String(200))
    flagged = Column(Boolean, default=False, server_default='0')
    flag_reason = Column(Text, server_default="")
    progress = Column(Float)
    # JSON-encoded list of annotation tasks
    tasks = Column(Text, server_default="[]")
    created_at = Column(DateTime, default=now, index=True)


class ReportPhoto(Base):
    __tablename__ = 'report_photos'
    report_id = Column(String(36), ForeignKey('reports.id', ondelete='CASCADE'), primary_key=True)
    photo_id = Column(String(36), ForeignKey('photos.id', ondelete='CASCADE'), primary_key=True)


class Report(Base):
    __tablename__ = 'reports'
    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
    report_type = Column(String(50), nullable=False, index=True)
    title = Column(String(200), server_default="")
    generated_by = Column(String(36), ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    generated_at = Column(DateTime, default=now, index=True)
    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)
    is_archived = Column(Boolean, default=False, server_default='0')
    content = Column(JSON, default=dict)
    photos = relationship('Photo', secondary='report_photos', lazy='select', passive_deletes=True)
    previews = relationship('ReportPreview', backref='report', lazy='select', cascade="all, delete-orphan",
                            passive_deletes=True)

    @property
    def photo_ids(self):
        return [photo.id for photo in self.photos]


class ReportPreview(Base, ExpiringMixin):
    """Short-lived token that opens one report's preview page without a login.

    The page reports back when it is closed, which sets ``closed_at``.
    """
    __tablename__ = 'report_previews'
    token = Column(String(128), primary_key=True)
    report_id = Column(String(36), ForeignKey('reports.id', ondelete='CASCADE'), nullable=False, index=True)
    created_by = Column(String(36), ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=now)
    closed_at = Column(DateTime)


class Task(Base, TimestampMixin):
    __tablename__ = 'tasks'
    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(300), nullable=False)
    description = Column(Text, server_default="")
    status = Column(String(20), default=TaskStatus.ACTIVE.value, nullable=False, index=True)
    priority = Column(String(20), default=PriorityLevel.MEDIUM.value, nullable=False)
    category = Column(String(100), server_default="general")
    project_id = Column(String(36), ForeignKey('projects.id', ondelete='CASCADE'), index=True)
    assigned_to = Column(String(36), ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    created_by = Column(String(36), ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    due_date = Column(Date)
    photo_id = Column(String(36), ForeignKey('photos.id', ondelete='SET NULL'), nullable=True, index=True)
    photo_url = Column(String(1000), server_default="")
    annotation_task_id = Column(String(100))

Index('idx_task_photo_annotation', Task.photo_id, Task.annotation_task_id)
Index('idx_photo_project_date', Photo.project_id, Photo.date)
Index('idx_report_project_generated', Report.project_id, Report.generated_at)
