"""Removal request model - tracks opt-out requests."""

import uuid
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.db.database import Base
from app.models.enums import RemovalStatus
from app.utils.datetime_utils import utc_now


class RemovalRequest(Base):
    """Removal/opt-out request for a single exposure."""

    __tablename__ = "removal_requests"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), index=True)
    # At most one request per exposure
    exposure_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("exposures.id"), unique=True, nullable=False
    )

    # PENDING, SUBMITTED, IN_PROGRESS, ACKNOWLEDGED, COMPLETED, REQUIRES_MANUAL, FAILED, CANCELLED
    status: Mapped[str] = mapped_column(String(50), default=RemovalStatus.PENDING.value, index=True)

    # AUTO_FORM, AUTO_EMAIL, MANUAL_GUIDE, API
    method: Mapped[str] = mapped_column(String(50))

    # Free-text audit trail, one line per event
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    attempts: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="requests")
    exposure: Mapped["Exposure"] = relationship(back_populates="removal_request")


from app.models.user import User
from app.models.exposure import Exposure
