"""Dashboard aggregator: read-only rollups for curators and admins."""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kurator.audit.models import InfluenceStatusHistoryModel
from kurator.audit.service import AuditService
from kurator.blocks.models import BlockModel, BlockStatus
from kurator.common.access import AccessResolver, BlockScope
from kurator.common.encryption import FieldEncryptor
from kurator.common.models import as_utc, utcnow
from kurator.common.security import RequestContext
from kurator.contacts.models import ContactModel
from kurator.interactions.models import InteractionModel
from kurator.users.models import UserModel

logger = logging.getLogger(__name__)

WINDOW_DAYS = 30
TRANSITION_WINDOW_DAYS = 90
ATTENTION_LIMIT = 5
RECENT_INTERACTIONS_LIMIT = 5
TOP_CURATORS_LIMIT = 5
TOP_TRANSITIONS_LIMIT = 10
RECENT_AUDIT_LIMIT = 20


def _active_contacts():
    return [
        ContactModel.is_active == True,  # noqa: E712
        BlockModel.status == BlockStatus.ACTIVE,
    ]


def _active_interactions():
    return [
        InteractionModel.is_active == True,  # noqa: E712
        BlockModel.status == BlockStatus.ACTIVE,
    ]


def _keyed(rows) -> dict[str, int]:
    return {str(key): count for key, count in rows}


def empty_curator_dashboard() -> dict[str, Any]:
    return {
        "total_contacts": 0,
        "interactions_last_month": 0,
        "average_interaction_interval": 0.0,
        "overdue_contacts": 0,
        "recent_interactions": [],
        "contacts_requiring_attention": [],
        "contacts_by_influence_status": {},
        "interactions_by_type": {},
    }


def month_delta(current: int, previous: int) -> dict[str, Any]:
    """Change against the previous window, with a percentage when defined."""
    change = current - previous
    percent = round(change / previous * 100, 1) if previous else None
    return {"current": current, "previous": previous, "change": change, "percent": percent}


class DashboardService:
    """Cross-entity rollups scoped by the same block rules as the services."""

    def __init__(
        self,
        encryptor: FieldEncryptor,
        access: AccessResolver,
        audit_service: AuditService,
    ):
        self.encryptor = encryptor
        self.access = access
        self.audit_service = audit_service

    def _contact_query(self, scope: BlockScope, *columns):
        query = (
            select(*columns)
            .select_from(ContactModel)
            .join(BlockModel, ContactModel.block_id == BlockModel.id)
            .where(*_active_contacts())
        )
        return scope.apply(query, ContactModel.block_id)

    def _interaction_query(self, scope: BlockScope, *columns):
        query = (
            select(*columns)
            .select_from(InteractionModel)
            .join(ContactModel, InteractionModel.contact_id == ContactModel.id)
            .join(BlockModel, ContactModel.block_id == BlockModel.id)
            .where(*_active_interactions())
        )
        return scope.apply(query, ContactModel.block_id)

    async def get_curator_dashboard(
        self, session: AsyncSession, ctx: RequestContext,
    ) -> dict[str, Any]:
        scope = await self.access.block_scope(session, ctx)
        if scope.is_empty:
            return empty_curator_dashboard()

        now = utcnow()
        since = now - timedelta(days=WINDOW_DAYS)

        total_contacts = (await session.execute(
            self._contact_query(scope, func.count(ContactModel.id))
        )).scalar() or 0

        interactions_last_month = (await session.execute(
            self._interaction_query(scope, func.count(InteractionModel.id))
            .where(InteractionModel.interaction_date >= since)
        )).scalar() or 0

        last_dates = (await session.execute(
            self._contact_query(scope, ContactModel.last_interaction_date)
            .where(ContactModel.last_interaction_date.is_not(None))
        )).scalars().all()
        average_interval = 0.0
        if last_dates:
            days = [(now - as_utc(d)).total_seconds() / 86400 for d in last_dates]
            average_interval = round(sum(days) / len(days), 1)

        overdue_filter = [
            ContactModel.next_touch_date.is_not(None),
            ContactModel.next_touch_date < now,
        ]
        overdue_count = (await session.execute(
            self._contact_query(scope, func.count(ContactModel.id)).where(*overdue_filter)
        )).scalar() or 0

        attention = (await session.execute(
            self._contact_query(scope, ContactModel)
            .where(*overdue_filter)
            .order_by(ContactModel.next_touch_date.asc())
            .limit(ATTENTION_LIMIT)
        )).scalars().all()

        recent = (await session.execute(
            self._interaction_query(scope, InteractionModel, ContactModel)
            .order_by(InteractionModel.interaction_date.desc(), InteractionModel.id.desc())
            .limit(RECENT_INTERACTIONS_LIMIT)
        )).all()

        by_status = await session.execute(
            self._contact_query(scope, ContactModel.influence_status_id, func.count(ContactModel.id))
            .where(ContactModel.influence_status_id.is_not(None))
            .group_by(ContactModel.influence_status_id)
        )
        by_type = await session.execute(
            self._interaction_query(
                scope, InteractionModel.interaction_type_id, func.count(InteractionModel.id)
            )
            .where(
                InteractionModel.interaction_date >= since,
                InteractionModel.interaction_type_id.is_not(None),
            )
            .group_by(InteractionModel.interaction_type_id)
        )

        return {
            "total_contacts": total_contacts,
            "interactions_last_month": interactions_last_month,
            "average_interaction_interval": average_interval,
            "overdue_contacts": overdue_count,
            "recent_interactions": [
                {
                    "id": interaction.id,
                    "contact_id": contact.id,
                    "contact_code": contact.contact_code,
                    "contact_name": self.encryptor.decrypt(contact.full_name),
                    "interaction_date": interaction.interaction_date,
                    "interaction_type_id": interaction.interaction_type_id,
                    "result_id": interaction.result_id,
                }
                for interaction, contact in recent
            ],
            "contacts_requiring_attention": [
                {
                    "id": contact.id,
                    "contact_code": contact.contact_code,
                    "full_name": self.encryptor.decrypt(contact.full_name),
                    "next_touch_date": contact.next_touch_date,
                    "days_overdue": (now - as_utc(contact.next_touch_date)).days,
                    "influence_status_id": contact.influence_status_id,
                }
                for contact in attention
            ],
            "contacts_by_influence_status": _keyed(by_status.all()),
            "interactions_by_type": _keyed(by_type.all()),
        }

    async def get_admin_dashboard(self, session: AsyncSession) -> dict[str, Any]:
        scope = BlockScope(unrestricted=True)
        now = utcnow()
        since = now - timedelta(days=WINDOW_DAYS)
        previous_since = since - timedelta(days=WINDOW_DAYS)

        async def count(query) -> int:
            return (await session.execute(query)).scalar() or 0

        total_contacts = await count(self._contact_query(scope, func.count(ContactModel.id)))
        total_interactions = await count(
            self._interaction_query(scope, func.count(InteractionModel.id))
        )
        total_blocks = await count(
            select(func.count(BlockModel.id)).where(BlockModel.status == BlockStatus.ACTIVE)
        )
        total_users = await count(select(func.count(UserModel.id)))

        def new_contacts(start: datetime, end: datetime):
            return self._contact_query(scope, func.count(ContactModel.id)).where(
                ContactModel.created_at >= start, ContactModel.created_at < end
            )

        def new_interactions(start: datetime, end: datetime):
            return self._interaction_query(scope, func.count(InteractionModel.id)).where(
                InteractionModel.interaction_date >= start,
                InteractionModel.interaction_date < end,
            )

        contacts_now = await count(new_contacts(since, now))
        contacts_before = await count(new_contacts(previous_since, since))
        interactions_now = await count(new_interactions(since, now))
        interactions_before = await count(new_interactions(previous_since, since))

        contacts_by_block = await session.execute(
            self._contact_query(scope, BlockModel.code, func.count(ContactModel.id))
            .group_by(BlockModel.code)
            .order_by(func.count(ContactModel.id).desc())
        )
        contacts_by_status = await session.execute(
            self._contact_query(scope, ContactModel.influence_status_id, func.count(ContactModel.id))
            .where(ContactModel.influence_status_id.is_not(None))
            .group_by(ContactModel.influence_status_id)
        )
        contacts_by_type = await session.execute(
            self._contact_query(scope, ContactModel.influence_type_id, func.count(ContactModel.id))
            .where(ContactModel.influence_type_id.is_not(None))
            .group_by(ContactModel.influence_type_id)
        )
        interactions_by_block = await session.execute(
            self._interaction_query(scope, BlockModel.code, func.count(InteractionModel.id))
            .where(InteractionModel.interaction_date >= since)
            .group_by(BlockModel.code)
            .order_by(func.count(InteractionModel.id).desc())
        )
        top_curators = await session.execute(
            self._interaction_query(scope, UserModel.login, func.count(InteractionModel.id))
            .join(UserModel, InteractionModel.curator_id == UserModel.id)
            .where(InteractionModel.interaction_date >= since)
            .group_by(UserModel.login)
            .order_by(func.count(InteractionModel.id).desc(), UserModel.login.asc())
            .limit(TOP_CURATORS_LIMIT)
        )
        transitions = await session.execute(
            select(
                InfluenceStatusHistoryModel.previous_status,
                InfluenceStatusHistoryModel.new_status,
                func.count(InfluenceStatusHistoryModel.id),
            )
            .where(
                InfluenceStatusHistoryModel.changed_at
                >= now - timedelta(days=TRANSITION_WINDOW_DAYS)
            )
            .group_by(
                InfluenceStatusHistoryModel.previous_status,
                InfluenceStatusHistoryModel.new_status,
            )
            .order_by(func.count(InfluenceStatusHistoryModel.id).desc())
            .limit(TOP_TRANSITIONS_LIMIT)
        )
        recent_audit = await self.audit_service.get_recent(session, RECENT_AUDIT_LIMIT)

        return {
            "total_contacts": total_contacts,
            "total_interactions": total_interactions,
            "total_blocks": total_blocks,
            "total_users": total_users,
            "new_contacts_last_month": contacts_now,
            "interactions_last_month": interactions_now,
            "new_contacts_delta": month_delta(contacts_now, contacts_before),
            "interactions_delta": month_delta(interactions_now, interactions_before),
            "contacts_by_block": _keyed(contacts_by_block.all()),
            "contacts_by_influence_status": _keyed(contacts_by_status.all()),
            "contacts_by_influence_type": _keyed(contacts_by_type.all()),
            "interactions_by_block": _keyed(interactions_by_block.all()),
            "top_curators_by_activity": _keyed(top_curators.all()),
            "status_change_dynamics": {
                f"{previous}→{new}": n for previous, new, n in transitions.all()
            },
            "recent_audit_logs": [
                {
                    "id": log.id,
                    "user_login": login,
                    "action": log.action.value,
                    "entity_type": log.entity_type,
                    "entity_id": log.entity_id,
                    "timestamp": log.timestamp,
                }
                for log, login in recent_audit
            ],
        }

    async def get_interaction_statistics(
        self,
        session: AsyncSession,
        ctx: RequestContext,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        block_id: int | None = None,
    ) -> dict[str, Any]:
        """Interaction counts over a window, last 30 days by default."""
        to_date = to_date or utcnow()
        from_date = from_date or to_date - timedelta(days=WINDOW_DAYS)
        result: dict[str, Any] = {
            "from_date": from_date,
            "to_date": to_date,
            "total_interactions": 0,
            "unique_contacts": 0,
            "by_type": {},
            "by_result": {},
        }

        scope = await self.access.block_scope(session, ctx)
        if scope.is_empty:
            return result

        def window(*columns):
            query = self._interaction_query(scope, *columns).where(
                InteractionModel.interaction_date >= from_date,
                InteractionModel.interaction_date <= to_date,
            )
            if block_id is not None:
                query = query.where(ContactModel.block_id == block_id)
            return query

        result["total_interactions"] = (await session.execute(
            window(func.count(InteractionModel.id))
        )).scalar() or 0
        result["unique_contacts"] = (await session.execute(
            window(func.count(InteractionModel.contact_id.distinct()))
        )).scalar() or 0
        by_type = await session.execute(
            window(InteractionModel.interaction_type_id, func.count(InteractionModel.id))
            .where(InteractionModel.interaction_type_id.is_not(None))
            .group_by(InteractionModel.interaction_type_id)
        )
        by_result = await session.execute(
            window(InteractionModel.result_id, func.count(InteractionModel.id))
            .where(InteractionModel.result_id.is_not(None))
            .group_by(InteractionModel.result_id)
        )
        result["by_type"] = _keyed(by_type.all())
        result["by_result"] = _keyed(by_result.all())
        return result
