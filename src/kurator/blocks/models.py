"""SQLAlchemy models for blocks and curator assignments."""

import enum
from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from kurator.common.models import Base, TimestampMixin, UTCDateTime, enum_column, utcnow


class BlockStatus(str, enum.Enum):
    ACTIVE = "Active"
    ARCHIVED = "Archived"


class CuratorType(str, enum.Enum):
    PRIMARY = "Primary"
    BACKUP = "Backup"


class BlockModel(Base, TimestampMixin):
    __tablename__ = "blocks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[BlockStatus] = mapped_column(
        enum_column(BlockStatus), default=BlockStatus.ACTIVE, index=True
    )


class BlockCuratorModel(Base):
    __tablename__ = "block_curators"
    __table_args__ = (
        UniqueConstraint("block_id", "user_id", name="uq_block_curator_user"),
        UniqueConstraint("block_id", "curator_type", name="uq_block_curator_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    block_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("blocks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    curator_type: Mapped[CuratorType] = mapped_column(enum_column(CuratorType), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    assigned_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True
    )
