"""
API Services Layer.

Database operations behind the HTTP routes and the Celery tasks. Every
function takes an ``AsyncSession`` and returns plain dicts the routes
validate into response schemas.
"""

from api.services.applications import (
    apply,
    cancel,
    get_managed,
    has_applied,
    list_managed,
    list_mine,
    update_status,
)

from api.services.users import (
    change_password,
    get_profile,
    login,
    register,
    switch_institution,
)

from api.services.notifications import (
    list_notifications,
    mark_all_as_read,
    mark_as_read,
)

from api.services.saved_jobs import (
    list_saved_jobs,
    save_job,
    send_saved_job_reminders,
    unsave_job,
)

from api.services.institutions import (
    list_active_institutions,
    set_active,
)

__all__ = [
    # Applications
    "apply",
    "cancel",
    "get_managed",
    "has_applied",
    "list_managed",
    "list_mine",
    "update_status",
    # Users
    "change_password",
    "get_profile",
    "login",
    "register",
    "switch_institution",
    # Notifications
    "list_notifications",
    "mark_all_as_read",
    "mark_as_read",
    # Saved jobs
    "list_saved_jobs",
    "save_job",
    "send_saved_job_reminders",
    "unsave_job",
    # Institutions
    "list_active_institutions",
    "set_active",
]
