"""
Client-side models for tracker entities.
The server is authoritative; these are projections rebuilt from every fetch.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    """User roles known to the backend."""
    ADMIN = "ADMIN"
    TESTER = "TESTER"
    DEVELOPER = "DEVELOPER"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Return the Role for ``value`` (``DEV`` is accepted for DEVELOPER), or None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        val = value.strip().upper()
        if val == "DEV":
            return cls.DEVELOPER
        try:
            return cls(val)
        except ValueError:
            return None


class BugStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    CLOSED = "CLOSED"
    RESOLVED = "RESOLVED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ProjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class BugHealth(str, Enum):
    """Summary of a project's bugs."""
    EMPTY = "EMPTY"
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class Identity:
    """
    The logged-in user. Immutable once loaded except by a fresh login.
    """

    def __init__(self, user_id: str, name: str, email: str, role: str):
        self.user_id = user_id
        self.name = name
        self.email = email
        self.role = role  # kept as sent by the server; Role.parse() for comparisons

    def has_role(self, *roles: Role) -> bool:
        return Role.parse(self.role) in roles

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)

    @property
    def can_update_bug_status(self) -> bool:
        return self.has_role(Role.ADMIN, Role.DEVELOPER)

    def to_dict(self) -> Dict[str, Any]:
        """Persisted shape: the same keys the backend uses."""
        return {"_id": self.user_id, "name": self.name, "email": self.email, "role": self.role}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> Optional["Identity"]:
        """Build an Identity from a stored or server dict, or None if a required field is missing."""
        if not isinstance(raw, dict):
            return None
        user_id = raw.get("_id") or raw.get("id")
        email = raw.get("email")
        role = raw.get("role")
        if not user_id or not email or not role:
            return None
        return cls(user_id=str(user_id), name=raw.get("name") or "", email=email, role=role)

    def __eq__(self, other):
        return isinstance(other, Identity) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"Identity(user_id={self.user_id!r}, email={self.email!r}, role={self.role!r})"


class Bug:
    """
    Normalized bug record.
    """

    def __init__(
        self,
        bug_id: str,
        title: str,
        status: str,
        priority: Optional[str] = None,
        description: str = "",
        project_id: Optional[str] = None,
        project_name: Optional[str] = None,
        created_by: Optional[str] = None,
        assigned_to: Optional[str] = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.bug_id = bug_id
        self.title = title
        self.status = status
        self.priority = priority
        self.description = description
        self.project_id = project_id
        self.project_name = project_name
        self.created_by = created_by
        self.assigned_to = assigned_to  # display name when expanded, otherwise the raw id
        self.created_at = created_at
        self.updated_at = updated_at

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class Project:
    """
    Normalized project record.
    """

    def __init__(
        self,
        project_id: str,
        name: str,
        description: str = "",
        status: str = ProjectStatus.ACTIVE.value,
        created_by: Optional[str] = None,
        members: Optional[List[str]] = None,
        created_at: Optional[str] = None,
    ):
        self.project_id = project_id
        self.name = name
        self.description = description
        self.status = status
        self.created_by = created_by
        self.members = members or []
        self.created_at = created_at

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class StatsSnapshot:
    """
    Aggregate counts from one poll. Replaced wholesale, never patched.
    ``total`` counts every bug, so it can exceed the sum of the per-status counts.
    """

    def __init__(self, total: int = 0, open: int = 0, in_progress: int = 0, closed: int = 0, resolved: int = 0, project_count: int = 0):
        self.total = total
        self.open = open
        self.in_progress = in_progress
        self.closed = closed
        self.resolved = resolved
        self.project_count = project_count

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "open": self.open,
            "in_progress": self.in_progress,
            "closed": self.closed,
            "resolved": self.resolved,
            "project_count": self.project_count,
        }

    def __eq__(self, other):
        return isinstance(other, StatsSnapshot) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return "StatsSnapshot(" + ", ".join(f"{k}={v}" for k, v in self.to_dict().items()) + ")"
