from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


class AuditLogEntry(Base):
    """
    Append-only security event row.
    Nothing in the service updates or deletes these.
    """
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Plain strings rather than FKs: attempted ids may not exist at all
    store_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    attempted_store_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    shop: Mapped[str] = mapped_column(String(255), nullable=False, default="unknown")

    endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    method: Mapped[str] = mapped_column(String(10), nullable=False)
    ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        nullable=False,
        index=True,
    )
