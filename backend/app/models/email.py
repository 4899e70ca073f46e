"""Outbound email and suppression models."""

import uuid
from datetime import datetime
from sqlalchemy import String, Boolean, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.database import Base
from app.models.enums import DeliveryStatus
from app.utils.datetime_utils import utc_now


class OutboundEmail(Base):
    """An email sent to a broker on behalf of a removal request."""

    __tablename__ = "outbound_emails"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    provider_message_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    removal_request_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("removal_requests.id"), nullable=True, index=True
    )
    recipient: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    subject: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # sent, delivered, delivery_delayed, bounced, complained, suppressed
    delivery_status: Mapped[str] = mapped_column(String(30), default=DeliveryStatus.SENT.value)

    sent_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)
    status_checked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class EmailSuppression(Base):
    """Recipient addresses that must not be emailed again."""

    __tablename__ = "email_suppressions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # hard_bounce, soft_bounce_repeated, complaint, manual
    reason: Mapped[str] = mapped_column(String(50), nullable=False)
    bounce_count: Mapped[int] = mapped_column(Integer, default=0)
    suppressed: Mapped[bool] = mapped_column(Boolean, default=False)
    suppressed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_event_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
