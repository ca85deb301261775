"""Insert-only repository for AuditLog."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from fundroom.core.enums import AuditEventType, AuditSeverity
from fundroom.models.audit_log import AuditLog


class AuditLogRepository:
    """Stateless repository for AuditLog inserts."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        event_type: AuditEventType,
        severity: AuditSeverity,
        ip_address: str | None,
        user_agent: str | None,
        resource: str | None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Record a security event.

        Args:
            db: Async database session.
            event_type: Event kind.
            severity: Event severity.
            ip_address: Client IP.
            user_agent: Client User-Agent header.
            resource: Endpoint or resource involved.
            details: Free-form metadata.

        Returns:
            Created AuditLog row.
        """
        entry = AuditLog(
            event_type=event_type.value,
            severity=severity.value,
            ip_address=ip_address,
            user_agent=user_agent,
            resource=resource,
            details=details or {},
        )
        db.add(entry)
        await db.flush()
        return entry
