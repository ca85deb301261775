"""SQLAlchemy ORM models.

All models are exported from this module for convenient imports:
    from fundroom.models import User, VerificationToken, ...

- user.py: User
- team.py: Team, UserTeam (read-only from the access-control layer)
- verification_token.py: VerificationToken (admin magic links)
- magic_link_callback.py: MagicLinkCallback (visitor e-mail links)
- audit_log.py: AuditLog (immutable security events)
"""

from fundroom.models.audit_log import AuditLog
from fundroom.models.base import Base, TimestampMixin
from fundroom.models.magic_link_callback import MagicLinkCallback
from fundroom.models.team import Team, UserTeam
from fundroom.models.user import User
from fundroom.models.verification_token import VerificationToken

__all__ = [
    "AuditLog",
    "Base",
    "MagicLinkCallback",
    "Team",
    "TimestampMixin",
    "User",
    "UserTeam",
    "VerificationToken",
]
