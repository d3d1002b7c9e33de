"""SQLAlchemy models for the threat watchlist."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from kurator.common.models import Base, TimestampMixin, UTCDateTime, enum_column, utcnow


class RiskLevel(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _RISK_RANKS[self]


_RISK_RANKS = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


class MonitoringFrequency(str, enum.Enum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    AD_HOC = "AdHoc"


class WatchlistModel(Base, TimestampMixin):
    __tablename__ = "watchlist"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Stored in plain text on purpose: the watchlist is role-gated, not encrypted.
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role_status: Mapped[str | None] = mapped_column(String(255), nullable=True)
    risk_sphere_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("reference_values.id"), nullable=True, index=True
    )
    threat_source: Mapped[str | None] = mapped_column(Text, nullable=True)
    conflict_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    risk_level: Mapped[RiskLevel] = mapped_column(
        enum_column(RiskLevel), default=RiskLevel.LOW, index=True
    )
    monitoring_frequency: Mapped[MonitoringFrequency] = mapped_column(
        enum_column(MonitoringFrequency), default=MonitoringFrequency.MONTHLY
    )
    last_check_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    next_check_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True, index=True
    )
    dynamics_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    watch_owner_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True
    )
    attachments_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    updated_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )


class WatchlistHistoryModel(Base):
    __tablename__ = "watchlist_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    watchlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("watchlist.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_risk_level: Mapped[RiskLevel | None] = mapped_column(enum_column(RiskLevel), nullable=True)
    new_risk_level: Mapped[RiskLevel | None] = mapped_column(enum_column(RiskLevel), nullable=True)
    changed_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    changed_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
