"""SQLAlchemy model for interactions (touches)."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from kurator.common.encryption import EncryptedString, EncryptedText
from kurator.common.models import Base, TimestampMixin, UTCDateTime, utcnow


class InteractionModel(Base, TimestampMixin):
    __tablename__ = "interactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contact_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    interaction_date: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False, index=True
    )
    interaction_type_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("reference_values.id"), nullable=True
    )
    result_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("reference_values.id"), nullable=True
    )
    curator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    comment: Mapped[EncryptedString | None] = mapped_column(EncryptedText, nullable=True)
    # e.g. {"newStatus": "2"}
    status_change_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachments_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    next_touch_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    updated_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
