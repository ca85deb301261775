"""Audit log model - immutable security events.

Rows are inserted and never updated or deleted by application code.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from fundroom.models.base import Base, UTCDateTime, utcnow


class AuditLog(Base):
    """Security audit event.

    Attributes:
        id: UUID primary key.
        event_type: e.g. "RATE_LIMIT_EXCEEDED".
        severity: "INFO", "WARNING" or "CRITICAL".
        ip_address: Client IP as seen by the edge ("unknown" if absent).
        user_agent: Client User-Agent header.
        resource: Endpoint or resource the event refers to.
        details: Free-form JSON metadata.
        created_at: Insert timestamp.
    """

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text(), nullable=True)
    resource: Mapped[str | None] = mapped_column(Text(), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(
        JSON(),
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
