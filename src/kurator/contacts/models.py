"""SQLAlchemy model for contacts."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from kurator.common.encryption import EncryptedString, EncryptedText
from kurator.common.models import Base, TimestampMixin, UTCDateTime


class ContactModel(Base, TimestampMixin):
    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # External identifier, {BlockCode}-{NNN}; immutable once assigned.
    contact_code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    block_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("blocks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    full_name: Mapped[EncryptedString] = mapped_column(EncryptedText, nullable=False)
    organization_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("reference_values.id"), nullable=True
    )
    position: Mapped[str | None] = mapped_column(String(255), nullable=True)
    influence_status_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("reference_values.id"), nullable=True, index=True
    )
    influence_type_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("reference_values.id"), nullable=True
    )
    usefulness_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    communication_channel_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("reference_values.id"), nullable=True
    )
    contact_source_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("reference_values.id"), nullable=True
    )
    last_interaction_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    next_touch_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True, index=True
    )
    notes: Mapped[EncryptedString | None] = mapped_column(EncryptedText, nullable=True)
    responsible_curator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    updated_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
