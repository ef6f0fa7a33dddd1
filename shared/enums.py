import enum


class ProjectStatus(str, enum.Enum):
    """Project status values used throughout the application.

    Also used as the tab keys on the project list screen.
    """
    ACTIVE = "active"
    ARCHIVED = "archived"
    COMPLETED = "completed"
    PENDING = "pending"


class PriorityLevel(str, enum.Enum):
    """Priority levels for projects and tasks."""
    HIGH = "high"
    LOW = "low"
    MEDIUM = "medium"


# Sort weight for priority ordering, highest first
PRIORITY_ORDER = {
    PriorityLevel.HIGH.value: 0,
    PriorityLevel.MEDIUM.value: 1,
    PriorityLevel.LOW.value: 2,
}


class TaskStatus(str, enum.Enum):
    """Task status values."""
    ACTIVE = "active"
    COMPLETED = "completed"


class MilestoneStatus(str, enum.Enum):
    """Milestone status values used by the project schedule view."""
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"


class ScheduleStatus(str, enum.Enum):
    """Result of comparing milestone completion against today."""
    AHEAD = "ahead"
    BEHIND = "behind"
    COMPLETED = "completed"
    ON_TRACK = "on_track"


class ReportType(str, enum.Enum):
    """Fixed set of report document categories attached to a project."""
    INITIAL_SITE_ASSESSMENT = "Initial Site Assessment"
    PROJECT_PROGRESS = "Project Progress"
    BEFORE_AFTER_TRANSFORMATION = "Before/After Transformation"
    DAMAGE_ISSUE_DOCUMENTATION = "Damage/Issue Documentation"
    CLIENT_APPROVAL = "Client Approval"
    DAILY_WEEKLY_PROGRESS = "Daily/Weekly Progress"
    CONTRACTOR_PERFORMANCE = "Contractor Performance"
    FINAL_PROJECT_COMPLETION = "Final Project Completion"
    CUSTOM = "Custom"


# Content fields each report type must carry
REPORT_REQUIRED_FIELDS = {
    ReportType.INITIAL_SITE_ASSESSMENT: ['site_conditions'],
    ReportType.PROJECT_PROGRESS: ['recent_accomplishments', 'completion_percentage'],
    ReportType.BEFORE_AFTER_TRANSFORMATION: ['comparisons'],
    ReportType.DAMAGE_ISSUE_DOCUMENTATION: ['issue_description', 'location'],
    ReportType.CLIENT_APPROVAL: ['work_description', 'cost_breakdown'],
    ReportType.DAILY_WEEKLY_PROGRESS: ['tasks_completed', 'hours_worked'],
    ReportType.CONTRACTOR_PERFORMANCE: ['contractor_name', 'work_quality_rating', 'performance_details'],
    ReportType.FINAL_PROJECT_COMPLETION: ['project_overview', 'final_cost', 'key_achievements'],
    ReportType.CUSTOM: [],
}


class UserRole(str, enum.Enum):
    """User roles for access control.

    Used in Profile model to define permissions.
    """
    ADMIN = "admin"
    MEMBER = "member"
    PROJECT_MANAGER = "project_manager"


# Roles allowed to create, update and delete projects
PROJECT_EDITOR_ROLES = (UserRole.ADMIN, UserRole.PROJECT_MANAGER)


class SessionKind(str, enum.Enum):
    """Kind of token stored in the auth session table."""
    ACCESS = "access"
    RECOVERY = "recovery"
