"""Pydantic schemas for validation and serialization."""
from datetime import date, datetime
from typing import Optional, List, Dict, Any, Union
import bleach
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from shared.enums import (
    ProjectStatus, PriorityLevel, TaskStatus, MilestoneStatus, ReportType, UserRole
)
from shared.utils import decode_annotation_tasks, encode_annotation_tasks, PROGRESS_STAGE_NAMES
from shared.validation import ValidationError, Validator


def sanitize_html(text: str) -> str:
    """Secure HTML sanitization using bleach library."""
    if not text:
        return text
    if '<' not in text and '>' not in text and '&' not in text:
        return text
    allowed_tags = ['p', 'br', 'strong', 'em', 'u', 'ul', 'ol', 'li', 'blockquote']
    return bleach.clean(text, tags=allowed_tags, attributes={}, strip=True)


def validate_string_length(value: str, field_name: str, min_length: int = 0, max_length: Optional[int] = None) -> str:
    """Validate string length constraints."""
    if not isinstance(value, str):
        raise ValidationError(f"Validation failed: {field_name} must be a string")
    value = value.strip()
    if len(value) < min_length:
        raise ValidationError(f"Validation failed: {field_name} must be at least {min_length} characters")
    if max_length and len(value) > max_length:
        raise ValidationError(f"Validation failed: {field_name} must be no more than {max_length} characters")
    return value


def sanitize_content(value: Any) -> Any:
    """Recursively sanitize string values inside report content."""
    if isinstance(value, str):
        return sanitize_html(value)
    if isinstance(value, list):
        return [sanitize_content(v) for v in value]
    if isinstance(value, dict):
        return {k: sanitize_content(v) for k, v in value.items()}
    return value


# Profile / auth schemas
class SignupRequest(BaseModel):
    email: str = Field(..., max_length=120)
    password: str = Field(..., min_length=6, max_length=200)
    full_name: Optional[str] = Field(default="", max_length=200)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return Validator.validate_email(v).lower()

    @field_validator('full_name')
    @classmethod
    def sanitize_name(cls, v):
        return sanitize_html(v.strip()) if v else ""


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=200)


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=40)
    avatar_url: Optional[str] = Field(None, max_length=1000)
    role: Optional[UserRole] = None

    @field_validator('full_name')
    @classmethod
    def sanitize_name(cls, v):
        return sanitize_html(v.strip()) if v else v

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if v:
            return Validator.validate_phone(v)
        return v

    model_config = ConfigDict(use_enum_values=True)


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = ""
    phone: Optional[str] = ""
    avatar_url: Optional[str] = ""
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Project Schemas
class ProjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default="", max_length=2000)
    status: ProjectStatus = Field(default=ProjectStatus.ACTIVE)
    priority: PriorityLevel = Field(default=PriorityLevel.MEDIUM)
    address1: Optional[str] = Field(default="", max_length=200)
    address2: Optional[str] = Field(default="", max_length=200)
    city: Optional[str] = Field(default="", max_length=100)
    state: Optional[str] = Field(default="", max_length=50)
    zip: Optional[str] = Field(default="", max_length=20)
    location: Optional[str] = Field(default="", max_length=200)
    contact_name: Optional[str] = Field(default="", max_length=200)
    contact_phone: Optional[str] = Field(default="", max_length=40)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return validate_string_length(v, 'name', 1, 200)

    @field_validator('description', 'address1', 'address2', 'city', 'state', 'location', 'contact_name')
    @classmethod
    def sanitize_text_fields(cls, v):
        if v:
            return sanitize_html(v.strip())
        return v or ""

    @model_validator(mode='after')
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError('end_date must not be before start_date')
        return self

    model_config = ConfigDict(use_enum_values=True)


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    status: Optional[ProjectStatus] = None
    priority: Optional[PriorityLevel] = None
    address1: Optional[str] = Field(None, max_length=200)
    address2: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=50)
    zip: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=200)
    contact_name: Optional[str] = Field(None, max_length=200)
    contact_phone: Optional[str] = Field(None, max_length=40)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None:
            return validate_string_length(v, 'name', 1, 200)
        return v

    @field_validator('description', 'address1', 'address2', 'city', 'state', 'location', 'contact_name')
    @classmethod
    def sanitize_text_fields(cls, v):
        if v:
            return sanitize_html(v.strip())
        return v

    model_config = ConfigDict(use_enum_values=True)


class ProjectResponse(ProjectBase):
    id: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(use_enum_values=True, from_attributes=True)


class CollaboratorCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    role: str = Field(default="member", max_length=50)


class CollaboratorResponse(BaseModel):
    project_id: str
    user_id: str
    role: Optional[str] = "member"
    created_at: Optional[datetime] = None
    user: Optional[ProfileResponse] = None

    model_config = ConfigDict(from_attributes=True)


# Milestone Schemas
class MilestoneCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    project_id: Optional[str] = None
    status: MilestoneStatus = Field(default=MilestoneStatus.PENDING)
    due_date: date
    completion_date: Optional[date] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return sanitize_html(validate_string_length(v, 'title', 1, 200))

    model_config = ConfigDict(use_enum_values=True)


class MilestoneUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    status: Optional[MilestoneStatus] = None
    due_date: Optional[date] = None
    completion_date: Optional[date] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is not None:
            return sanitize_html(validate_string_length(v, 'title', 1, 200))
        return v

    model_config = ConfigDict(use_enum_values=True)


class MilestoneResponse(MilestoneCreate):
    id: str
    project_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(use_enum_values=True, from_attributes=True)


# Report Schemas
class ReportCreate(BaseModel):
    project_id: str = Field(..., min_length=1)
    report_type: ReportType
    title: Optional[str] = Field(default="", max_length=200)
    content: Dict[str, Any] = Field(default_factory=dict)
    photo_ids: List[str] = Field(default_factory=list)
    generated_by: Optional[str] = None

    @field_validator('title')
    @classmethod
    def sanitize_title(cls, v):
        return sanitize_html(v.strip()) if v else ""

    @model_validator(mode='after')
    def validate_required_content(self):
        Validator.validate_report_content(self.report_type, self.content)
        self.content = sanitize_content(self.content)
        if not self.title:
            self.title = ReportType(self.report_type).value
        return self

    model_config = ConfigDict(use_enum_values=True)


class ReportUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    content: Optional[Dict[str, Any]] = None
    is_archived: Optional[bool] = None
    photo_ids: Optional[List[str]] = None

    @field_validator('title')
    @classmethod
    def sanitize_title(cls, v):
        return sanitize_html(v.strip()) if v else v

    @field_validator('content')
    @classmethod
    def sanitize_content_values(cls, v):
        return sanitize_content(v) if v is not None else v


class ReportResponse(BaseModel):
    id: str
    project_id: str
    report_type: str
    title: Optional[str] = ""
    generated_by: Optional[str] = None
    generated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_archived: bool = False
    content: Dict[str, Any] = Field(default_factory=dict)
    photo_ids: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


# Photo Schemas
class AnnotationTask(BaseModel):
    id: Union[str, int]
    text: str = ""
    completed: bool = False
    priority: PriorityLevel = Field(default=PriorityLevel.MEDIUM)

    @field_validator('priority', mode='before')
    @classmethod
    def lowercase_priority(cls, v):
        if v is None or v == '':
            return PriorityLevel.MEDIUM.value
        return v.lower() if isinstance(v, str) else v

    model_config = ConfigDict(use_enum_values=True)


def _normalize_tasks(v: Union[str, List[Dict[str, Any]], None]) -> Optional[str]:
    if v is None:
        return v
    tasks = decode_annotation_tasks(v)
    validated = [AnnotationTask(**task).model_dump() for task in tasks]
    return encode_annotation_tasks(validated)


class PhotoBase(BaseModel):
    project_id: Optional[str] = None
    url: str = Field(default="", max_length=1000)
    title: Optional[str] = Field(default="", max_length=200)
    caption: Optional[str] = Field(default="")
    date: Optional[str] = None
    date_taken: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    assigned_to: Optional[str] = Field(None, max_length=200)
    group: Optional[str] = Field(None, max_length=200)
    flagged: bool = False
    flag_reason: Optional[str] = ""
    progress: Optional[float] = Field(None, ge=0, le=1)

    @field_validator('date')
    @classmethod
    def validate_date(cls, v):
        if v:
            return Validator.validate_date_string(v, 'date')
        return None

    @field_validator('title', 'caption', 'flag_reason')
    @classmethod
    def sanitize_text_fields(cls, v):
        if v:
            return sanitize_html(v)
        return v or ""


class PhotoCreate(PhotoBase):
    id: Optional[str] = None
    tasks: Optional[Union[str, List[Dict[str, Any]]]] = "[]"

    @field_validator('tasks')
    @classmethod
    def normalize_tasks(cls, v):
        return _normalize_tasks(v) or "[]"

    @model_validator(mode='after')
    def default_date(self):
        if not self.date and self.date_taken:
            self.date = self.date_taken.date().isoformat()
        return self


class PhotoUpdate(BaseModel):
    project_id: Optional[str] = None
    url: Optional[str] = Field(None, max_length=1000)
    title: Optional[str] = Field(None, max_length=200)
    caption: Optional[str] = None
    date: Optional[str] = None
    date_taken: Optional[datetime] = None
    tags: Optional[List[str]] = None
    assigned_to: Optional[str] = Field(None, max_length=200)
    group: Optional[str] = Field(None, max_length=200)
    flagged: Optional[bool] = None
    flag_reason: Optional[str] = None
    progress: Optional[float] = Field(None, ge=0, le=1)
    tasks: Optional[Union[str, List[Dict[str, Any]]]] = None

    @field_validator('date')
    @classmethod
    def validate_date(cls, v):
        if v:
            return Validator.validate_date_string(v, 'date')
        return v

    @field_validator('title', 'caption', 'flag_reason')
    @classmethod
    def sanitize_text_fields(cls, v):
        if v:
            return sanitize_html(v)
        return v

    @field_validator('tasks')
    @classmethod
    def normalize_tasks(cls, v):
        return _normalize_tasks(v)


class PhotoResponse(PhotoBase):
    id: str
    tasks: str = "[]"
    created_at: Optional[datetime] = None

    @field_validator('tags', mode='before')
    @classmethod
    def default_tags(cls, v):
        return v or []

    @field_validator('date')
    @classmethod
    def validate_date(cls, v):
        # Stored dates are returned as-is, even legacy unparseable ones
        return v

    model_config = ConfigDict(from_attributes=True)


class PhotoFilterParams(BaseModel):
    """Photo grid filters as received on the query string."""
    project_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    tags: List[str] = Field(default_factory=list)
    users: List[str] = Field(default_factory=list)
    groups: List[str] = Field(default_factory=list)
    progress_stages: List[str] = Field(default_factory=list)

    @field_validator('progress_stages')
    @classmethod
    def validate_stages(cls, v):
        for stage in v:
            if stage not in PROGRESS_STAGE_NAMES:
                raise ValueError(f"unknown progress stage '{stage}'")
        return v


# Task Schemas
class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = Field(default="")
    status: TaskStatus = Field(default=TaskStatus.ACTIVE)
    priority: PriorityLevel = Field(default=PriorityLevel.MEDIUM)
    category: Optional[str] = Field(default="general", max_length=100)
    project_id: Optional[str] = None
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None
    due_date: Optional[date] = None
    photo_id: Optional[str] = None
    photo_url: Optional[str] = Field(default="", max_length=1000)
    annotation_task_id: Optional[str] = Field(None, max_length=100)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return sanitize_html(validate_string_length(v, 'title', 1, 300))

    @field_validator('description')
    @classmethod
    def sanitize_text_fields(cls, v):
        if v:
            return sanitize_html(v)
        return v or ""

    model_config = ConfigDict(use_enum_values=True)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[PriorityLevel] = None
    category: Optional[str] = Field(None, max_length=100)
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is not None:
            return sanitize_html(validate_string_length(v, 'title', 1, 300))
        return v

    @field_validator('description')
    @classmethod
    def sanitize_text_fields(cls, v):
        if v:
            return sanitize_html(v)
        return v

    model_config = ConfigDict(use_enum_values=True)


class TaskResponse(TaskCreate):
    id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(use_enum_values=True, from_attributes=True)
