"""User model."""

import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.db.database import Base
from app.models.enums import Plan
from app.utils.datetime_utils import utc_now


class User(Base):
    """User account, reduced to what the removal engine reads."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    # Subscription: FREE, PRO, ENTERPRISE
    plan: Mapped[str] = mapped_column(String(50), default=Plan.FREE.value)

    # Family members inherit the owner's ENTERPRISE plan
    family_owner_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    # Relationships
    exposures: Mapped[list["Exposure"]] = relationship(back_populates="user")
    requests: Mapped[list["RemovalRequest"]] = relationship(back_populates="user")


from app.models.exposure import Exposure
from app.models.request import RemovalRequest
