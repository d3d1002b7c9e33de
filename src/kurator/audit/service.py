"""Audit service: record and query the append-only audit trail."""

import json
import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import String, and_, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kurator.audit.models import AuditAction, AuditLogModel, InfluenceStatusHistoryModel
from kurator.common.models import utcnow
from kurator.contacts.models import ContactModel
from kurator.interactions.models import InteractionModel
from kurator.users.models import UserModel

logger = logging.getLogger(__name__)

STATUS_NULL = "null"


def status_token(value: int | None) -> str:
    """Serialize an influence status id for the history table."""
    return STATUS_NULL if value is None else str(value)


class AuditService:
    """Append-only audit log plus the paired influence-status history."""

    def __init__(self):
        # Snapshots that could not be serialized and were stored as null.
        self.dropped_snapshots = 0

    # ── Write ──

    def _serialize(
        self, snapshot: Any, entity_type: str, entity_id: str, which: str,
    ) -> str | None:
        if snapshot is None:
            return None
        if isinstance(snapshot, str):
            return snapshot
        try:
            return json.dumps(snapshot, default=_json_default, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            self.dropped_snapshots += 1
            logger.warning(
                "Audit snapshot dropped for %s %s (%s values): %s",
                entity_type, entity_id, which, exc,
                extra={"audit_gap": True, "dropped_snapshots": self.dropped_snapshots},
            )
            return None

    async def record(
        self,
        session: AsyncSession,
        actor_id: int,
        action: AuditAction,
        entity_type: str,
        entity_id: int | str,
        old_values: Any = None,
        new_values: Any = None,
    ) -> AuditLogModel:
        """Append one audit row on the caller's session.

        Create rows never carry old values.
        """
        entity_id = str(entity_id)
        if action == AuditAction.CREATE:
            old_values = None
        entry = AuditLogModel(
            user_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values_json=self._serialize(old_values, entity_type, entity_id, "old"),
            new_values_json=self._serialize(new_values, entity_type, entity_id, "new"),
            timestamp=utcnow(),
        )
        session.add(entry)
        await session.flush()
        return entry

    async def record_status_change(
        self,
        session: AsyncSession,
        actor_id: int,
        contact_id: int,
        previous_status: int | None,
        new_status: int | None,
    ) -> tuple[InfluenceStatusHistoryModel, AuditLogModel]:
        """Append the history row and the StatusChange audit row together."""
        history = InfluenceStatusHistoryModel(
            contact_id=contact_id,
            previous_status=status_token(previous_status),
            new_status=status_token(new_status),
            changed_by=actor_id,
            changed_at=utcnow(),
        )
        session.add(history)
        entry = await self.record(
            session, actor_id, AuditAction.STATUS_CHANGE, "Contact", contact_id,
            old_values={"influence_status_id": previous_status},
            new_values={"influence_status_id": new_status},
        )
        return history, entry

    # ── Read ──

    async def list_logs(
        self,
        session: AsyncSession,
        user_id: int | None = None,
        block_id: int | None = None,
        action: AuditAction | None = None,
        entity_type: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[tuple[AuditLogModel, str]], int]:
        """Filtered, paginated audit rows with actor login, newest first."""
        filters = []
        if user_id is not None:
            filters.append(AuditLogModel.user_id == user_id)
        if action is not None:
            filters.append(AuditLogModel.action == action)
        if entity_type:
            filters.append(AuditLogModel.entity_type == entity_type)
        if from_date is not None:
            filters.append(AuditLogModel.timestamp >= from_date)
        if to_date is not None:
            filters.append(AuditLogModel.timestamp <= to_date)
        if block_id is not None:
            contact_ids = select(cast(ContactModel.id, String)).where(
                ContactModel.block_id == block_id
            )
            interaction_ids = (
                select(cast(InteractionModel.id, String))
                .join(ContactModel, InteractionModel.contact_id == ContactModel.id)
                .where(ContactModel.block_id == block_id)
            )
            filters.append(or_(
                and_(AuditLogModel.entity_type == "Contact",
                     AuditLogModel.entity_id.in_(contact_ids)),
                and_(AuditLogModel.entity_type == "Interaction",
                     AuditLogModel.entity_id.in_(interaction_ids)),
            ))

        count_result = await session.execute(
            select(func.count(AuditLogModel.id)).where(*filters)
        )
        total = count_result.scalar() or 0

        result = await session.execute(
            select(AuditLogModel, UserModel.login)
            .join(UserModel, AuditLogModel.user_id == UserModel.id)
            .where(*filters)
            .order_by(AuditLogModel.timestamp.desc(), AuditLogModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return [(row[0], row[1]) for row in result.all()], total

    async def get_entity_history(
        self, session: AsyncSession, entity_type: str, entity_id: int | str,
    ) -> list[tuple[AuditLogModel, str]]:
        result = await session.execute(
            select(AuditLogModel, UserModel.login)
            .join(UserModel, AuditLogModel.user_id == UserModel.id)
            .where(
                AuditLogModel.entity_type == entity_type,
                AuditLogModel.entity_id == str(entity_id),
            )
            .order_by(AuditLogModel.timestamp.desc(), AuditLogModel.id.desc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def get_user_activity(
        self, session: AsyncSession, user_id: int, limit: int = 100,
    ) -> list[AuditLogModel]:
        result = await session.execute(
            select(AuditLogModel)
            .where(AuditLogModel.user_id == user_id)
            .order_by(AuditLogModel.timestamp.desc(), AuditLogModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_recent(
        self, session: AsyncSession, count: int = 20,
    ) -> list[tuple[AuditLogModel, str]]:
        logs, _ = await self.list_logs(session, limit=count)
        return logs

    async def get_statistics(
        self,
        session: AsyncSession,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> dict[str, Any]:
        """Counts by action, entity type and actor; defaults to the last 30 days."""
        to_date = to_date or utcnow()
        from_date = from_date or to_date - timedelta(days=30)
        window = [AuditLogModel.timestamp >= from_date, AuditLogModel.timestamp <= to_date]

        total = (await session.execute(
            select(func.count(AuditLogModel.id)).where(*window)
        )).scalar() or 0

        by_action = await session.execute(
            select(AuditLogModel.action, func.count(AuditLogModel.id))
            .where(*window)
            .group_by(AuditLogModel.action)
        )
        by_entity = await session.execute(
            select(AuditLogModel.entity_type, func.count(AuditLogModel.id))
            .where(*window)
            .group_by(AuditLogModel.entity_type)
        )
        by_user = await session.execute(
            select(UserModel.login, func.count(AuditLogModel.id))
            .join(UserModel, AuditLogModel.user_id == UserModel.id)
            .where(*window)
            .group_by(UserModel.login)
            .order_by(func.count(AuditLogModel.id).desc())
            .limit(10)
        )
        return {
            "from_date": from_date,
            "to_date": to_date,
            "total": total,
            "by_action": {action.value: count for action, count in by_action.all()},
            "by_entity_type": dict(by_entity.all()),
            "by_user": dict(by_user.all()),
        }


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "value"):  # enum members
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
