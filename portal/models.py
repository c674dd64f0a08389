"""
portal/models.py -- Domain dataclasses for program applications.

These are pure data containers with zero logic. The one business rule
(no two active applications for the same program) lives in portal/store.py.
Status changes are made by administrators only (api/routes/v1/admin.py).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ApplicationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    in_progress = "in-progress"
    completed = "completed"


# Statuses that block a second application to the same program.
ACTIVE_STATUSES = (
    ApplicationStatus.pending.value,
    ApplicationStatus.approved.value,
    ApplicationStatus.in_progress.value,
)


@dataclass
class Application:
    """A student's application to one internship program.

    id is None before the record is written to the database.
    """

    user_id: int
    program: str  # core.models.Program value
    experience: str = "beginner"
    education: Optional[str] = None
    motivation: Optional[str] = None
    status: str = ApplicationStatus.pending.value
    notes: str = ""
    submitted_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, set on insert and on every status change
    id: Optional[int] = None
