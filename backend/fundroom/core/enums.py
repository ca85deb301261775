"""Closed value sets shared by models, session claims and route guards."""

from enum import Enum


class Role(str, Enum):
    """Portal role carried in the session token."""

    GP = "GP"  # General Partner: fund manager / administrator
    LP = "LP"  # Limited Partner: investor


class LoginPortal(str, Enum):
    """Which sign-in surface issued the session."""

    ADMIN = "ADMIN"
    VISITOR = "VISITOR"


class TeamRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


# Team roles that make a user an administrator (GP)
ADMIN_TEAM_ROLES: frozenset[TeamRole] = frozenset(
    {TeamRole.OWNER, TeamRole.ADMIN, TeamRole.SUPER_ADMIN}
)


class MembershipStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AuditSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AuditEventType(str, Enum):
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
