"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from database.models.institutions import (
    Institution,
    InstitutionType,
    Role,
    RoleScope,
    UserInstitutionRole,
)
from database.models.users import User
from database.models.jobs import (
    ACCEPTING_STATUSES,
    Area,
    Category,
    Job,
    JobStatus,
    JobVisibility,
    SavedJob,
)
from database.models.applications import Application, ApplicationStatus
from database.models.notifications import Notification

__all__ = [
    "Institution",
    "InstitutionType",
    "Role",
    "RoleScope",
    "UserInstitutionRole",
    "User",
    "ACCEPTING_STATUSES",
    "Area",
    "Category",
    "Job",
    "JobStatus",
    "JobVisibility",
    "SavedJob",
    "Application",
    "ApplicationStatus",
    "Notification",
]
