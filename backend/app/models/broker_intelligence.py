"""Broker intelligence model - cached per-source removal statistics."""

from datetime import datetime
from sqlalchemy import String, Boolean, Integer, Float, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base


class BrokerIntelligence(Base):
    """Materialized view over RemovalRequest outcomes for one source.

    Rows are disposable: they are rebuilt from removal history whenever
    ``expires_at`` has passed. Learned signals (``preferred_method``,
    ``rejects_email``) come from classified broker replies and survive rebuilds.
    """

    __tablename__ = "broker_intelligence"

    source: Mapped[str] = mapped_column(String(100), primary_key=True)

    success_rate: Mapped[float] = mapped_column(Float, default=50.0)
    completed_count: Mapped[int] = mapped_column(Integer, default=0)
    failed_count: Mapped[int] = mapped_column(Integer, default=0)
    manual_count: Mapped[int] = mapped_column(Integer, default=0)

    # EMAIL, FORM, BOTH or None when there is not enough history
    recommended_method: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Learned from broker replies
    preferred_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    rejects_email: Mapped[bool] = mapped_column(Boolean, default=False)
    last_signal_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    computed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    @property
    def sample_size(self) -> int:
        return self.completed_count + self.failed_count + self.manual_count
