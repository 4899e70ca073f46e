"""Exposure model - tracks where a user's data was found."""

import uuid
from datetime import datetime
from sqlalchemy import String, Boolean, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.db.database import Base
from app.models.enums import ExposureStatus
from app.utils.datetime_utils import utc_now


class Exposure(Base):
    """One discovered instance of a user's data on a broker."""

    __tablename__ = "exposures"
    __table_args__ = (
        Index("ix_exposures_queue", "status", "requires_manual_action", "manual_action_taken", "first_found_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), index=True)

    # Broker identifier (directory key, e.g. SPOKEO) and display fields
    source: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    source_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    status: Mapped[str] = mapped_column(String(50), default=ExposureStatus.ACTIVE.value)
    severity: Mapped[str] = mapped_column(String(20), default="MEDIUM")  # LOW, MEDIUM, HIGH, CRITICAL

    # 0-100; None for legacy exposures scanned before scoring existed
    confidence_score: Mapped[int | None] = mapped_column(Integer, nullable=True)

    requires_manual_action: Mapped[bool] = mapped_column(Boolean, default=False)
    manual_action_taken: Mapped[bool] = mapped_column(Boolean, default=False)
    manual_action_taken_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    user_confirmed: Mapped[bool] = mapped_column(Boolean, default=False)
    user_confirmed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    is_whitelisted: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    first_found_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="exposures")
    removal_request: Mapped["RemovalRequest | None"] = relationship(back_populates="exposure", uselist=False)


from app.models.user import User
from app.models.request import RemovalRequest
