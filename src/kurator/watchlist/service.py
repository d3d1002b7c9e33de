"""Watchlist service: threat monitoring items and their check schedule.

Access is decided by role at the router (Admin and ThreatAnalyst); nothing
here is block-scoped.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kurator.audit.models import AuditAction
from kurator.audit.service import AuditService
from kurator.common.exceptions import InvalidArgumentError, NotFoundError
from kurator.common.models import UNSET, utcnow
from kurator.references.service import check_references
from kurator.users.models import UserModel
from kurator.watchlist.models import (
    MonitoringFrequency,
    RiskLevel,
    WatchlistHistoryModel,
    WatchlistModel,
)

logger = logging.getLogger(__name__)

# Risk levels are stored as text, so severity order needs an explicit rank.
RISK_RANK = case(
    {level: level.rank for level in RiskLevel},
    value=WatchlistModel.risk_level,
    else_=-1,
)

_UPDATABLE = (
    "role_status",
    "risk_sphere_id",
    "threat_source",
    "conflict_date",
    "last_check_date",
    "next_check_date",
    "dynamics_description",
    "watch_owner_id",
    "attachments_json",
)


def _snapshot(item: WatchlistModel) -> dict[str, Any]:
    return {
        "role_status": item.role_status,
        "risk_level": item.risk_level,
        "monitoring_frequency": item.monitoring_frequency,
        "watch_owner_id": item.watch_owner_id,
    }


def _check_snapshot(item: WatchlistModel) -> dict[str, Any]:
    return {
        "last_check_date": item.last_check_date,
        "next_check_date": item.next_check_date,
        "risk_level": item.risk_level,
        "dynamics_description": item.dynamics_description,
    }


class WatchlistService:
    """CRUD, check tracking and statistics for watchlist items."""

    def __init__(self, audit_service: AuditService):
        self.audit_service = audit_service

    async def _get_or_raise(self, session: AsyncSession, item_id: int) -> WatchlistModel:
        item = await session.get(WatchlistModel, item_id)
        if item is None:
            raise NotFoundError(f"Watchlist item {item_id} not found")
        return item

    async def _check_links(
        self, session: AsyncSession, risk_sphere_id: Any, watch_owner_id: Any,
    ) -> None:
        await check_references(session, {"risk_sphere": risk_sphere_id})
        if isinstance(watch_owner_id, int) and await session.get(UserModel, watch_owner_id) is None:
            raise InvalidArgumentError(f"User {watch_owner_id} not found")

    def _record_risk_change(
        self,
        session: AsyncSession,
        item: WatchlistModel,
        old_level: RiskLevel,
        actor_id: int,
        comment: str | None = None,
    ) -> None:
        session.add(WatchlistHistoryModel(
            watchlist_id=item.id,
            old_risk_level=old_level,
            new_risk_level=item.risk_level,
            changed_by=actor_id,
            changed_at=utcnow(),
            comment=comment,
        ))
        logger.info(
            "Risk level of watchlist item %s changed %s -> %s by user %s",
            item.id, old_level.value, item.risk_level.value, actor_id,
        )

    # ── Read ──

    async def list_items(
        self,
        session: AsyncSession,
        risk_level: RiskLevel | None = None,
        risk_sphere_id: int | None = None,
        monitoring_frequency: MonitoringFrequency | None = None,
        watch_owner_id: int | None = None,
        requires_check: bool | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[WatchlistModel], int]:
        """Active items, highest risk first. Returns (items, total_count)."""
        query = select(WatchlistModel).where(WatchlistModel.is_active == True)  # noqa: E712
        if risk_level is not None:
            query = query.where(WatchlistModel.risk_level == risk_level)
        if risk_sphere_id is not None:
            query = query.where(WatchlistModel.risk_sphere_id == risk_sphere_id)
        if monitoring_frequency is not None:
            query = query.where(WatchlistModel.monitoring_frequency == monitoring_frequency)
        if watch_owner_id is not None:
            query = query.where(WatchlistModel.watch_owner_id == watch_owner_id)
        if requires_check:
            query = query.where(
                WatchlistModel.next_check_date.is_not(None),
                WatchlistModel.next_check_date <= utcnow(),
            )

        count_result = await session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar() or 0

        result = await session.execute(
            query.order_by(
                RISK_RANK.desc(),
                WatchlistModel.next_check_date.asc().nulls_last(),
                WatchlistModel.id.asc(),
            )
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        items = list(result.scalars().all())
        logger.debug(
            "Retrieved %d watchlist items (page %d, risk_level=%s, requires_check=%s)",
            len(items), page, risk_level, requires_check,
        )
        return items, total

    async def get_item(self, session: AsyncSession, item_id: int) -> WatchlistModel | None:
        return await session.get(WatchlistModel, item_id)

    async def get_items_requiring_check(self, session: AsyncSession) -> list[WatchlistModel]:
        result = await session.execute(
            select(WatchlistModel)
            .where(
                WatchlistModel.is_active == True,  # noqa: E712
                WatchlistModel.next_check_date.is_not(None),
                WatchlistModel.next_check_date <= utcnow(),
            )
            .order_by(
                WatchlistModel.next_check_date.asc(),
                RISK_RANK.desc(),
                WatchlistModel.id.asc(),
            )
        )
        return list(result.scalars().all())

    async def get_history(
        self, session: AsyncSession, item_id: int,
    ) -> list[WatchlistHistoryModel]:
        result = await session.execute(
            select(WatchlistHistoryModel)
            .where(WatchlistHistoryModel.watchlist_id == item_id)
            .order_by(WatchlistHistoryModel.changed_at.desc(), WatchlistHistoryModel.id.desc())
        )
        return list(result.scalars().all())

    async def get_statistics(self, session: AsyncSession) -> dict[str, Any]:
        active = WatchlistModel.is_active == True  # noqa: E712

        total = (await session.execute(
            select(func.count(WatchlistModel.id)).where(active)
        )).scalar() or 0
        requires_check = (await session.execute(
            select(func.count(WatchlistModel.id)).where(
                active,
                WatchlistModel.next_check_date.is_not(None),
                WatchlistModel.next_check_date <= utcnow(),
            )
        )).scalar() or 0

        by_risk = await session.execute(
            select(WatchlistModel.risk_level, func.count(WatchlistModel.id))
            .where(active)
            .group_by(WatchlistModel.risk_level)
        )
        by_sphere = await session.execute(
            select(WatchlistModel.risk_sphere_id, func.count(WatchlistModel.id))
            .where(active, WatchlistModel.risk_sphere_id.is_not(None))
            .group_by(WatchlistModel.risk_sphere_id)
        )
        by_frequency = await session.execute(
            select(WatchlistModel.monitoring_frequency, func.count(WatchlistModel.id))
            .where(active)
            .group_by(WatchlistModel.monitoring_frequency)
        )
        return {
            "total": total,
            "requires_check": requires_check,
            "by_risk_level": {level.value: count for level, count in by_risk.all()},
            "by_risk_sphere": dict(by_sphere.all()),
            "by_monitoring_frequency": {
                freq.value: count for freq, count in by_frequency.all()
            },
        }

    # ── Write ──

    async def create_item(
        self,
        session: AsyncSession,
        actor_id: int,
        full_name: str,
        role_status: str | None = None,
        risk_sphere_id: int | None = None,
        threat_source: str | None = None,
        conflict_date: datetime | None = None,
        risk_level: RiskLevel = RiskLevel.LOW,
        monitoring_frequency: MonitoringFrequency = MonitoringFrequency.MONTHLY,
        last_check_date: datetime | None = None,
        next_check_date: datetime | None = None,
        dynamics_description: str | None = None,
        watch_owner_id: int | None = None,
        attachments_json: str | None = None,
    ) -> WatchlistModel:
        if not full_name or not full_name.strip():
            raise InvalidArgumentError("Full name is required")
        await self._check_links(session, risk_sphere_id, watch_owner_id)

        now = utcnow()
        item = WatchlistModel(
            full_name=full_name,
            role_status=role_status,
            risk_sphere_id=risk_sphere_id,
            threat_source=threat_source,
            conflict_date=conflict_date,
            risk_level=risk_level,
            monitoring_frequency=monitoring_frequency,
            last_check_date=last_check_date,
            next_check_date=next_check_date,
            dynamics_description=dynamics_description,
            watch_owner_id=watch_owner_id if watch_owner_id is not None else actor_id,
            attachments_json=attachments_json,
            is_active=True,
            created_at=now,
            updated_at=now,
            updated_by=actor_id,
        )
        session.add(item)
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.CREATE, "Watchlist", item.id,
            new_values={
                "full_name": item.full_name,
                "risk_level": item.risk_level,
                "monitoring_frequency": item.monitoring_frequency,
            },
        )
        logger.info(
            "Watchlist item %s created with risk level %s by user %s",
            item.id, item.risk_level.value, actor_id,
        )
        return item

    async def update_item(
        self,
        session: AsyncSession,
        item_id: int,
        actor_id: int,
        role_status: Any = UNSET,
        risk_sphere_id: Any = UNSET,
        threat_source: Any = UNSET,
        conflict_date: Any = UNSET,
        risk_level: Any = UNSET,
        monitoring_frequency: Any = UNSET,
        last_check_date: Any = UNSET,
        next_check_date: Any = UNSET,
        dynamics_description: Any = UNSET,
        watch_owner_id: Any = UNSET,
        attachments_json: Any = UNSET,
    ) -> WatchlistModel:
        """Apply a partial update; ``UNSET`` arguments are left alone.

        Risk level and monitoring frequency cannot be cleared, so ``None``
        leaves them unchanged too.
        """
        item = await self._get_or_raise(session, item_id)
        await self._check_links(session, risk_sphere_id, watch_owner_id)
        old_values = _snapshot(item)
        old_level = item.risk_level

        supplied = {
            "role_status": role_status,
            "risk_sphere_id": risk_sphere_id,
            "threat_source": threat_source,
            "conflict_date": conflict_date,
            "last_check_date": last_check_date,
            "next_check_date": next_check_date,
            "dynamics_description": dynamics_description,
            "watch_owner_id": watch_owner_id,
            "attachments_json": attachments_json,
        }
        for field in _UPDATABLE:
            if supplied[field] is not UNSET:
                setattr(item, field, supplied[field])
        if risk_level is not UNSET and risk_level is not None:
            item.risk_level = RiskLevel(risk_level)
        if monitoring_frequency is not UNSET and monitoring_frequency is not None:
            item.monitoring_frequency = MonitoringFrequency(monitoring_frequency)
        item.updated_at = utcnow()
        item.updated_by = actor_id

        if item.risk_level != old_level:
            self._record_risk_change(session, item, old_level, actor_id)
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.UPDATE, "Watchlist", item.id,
            old_values=old_values, new_values=_snapshot(item),
        )
        logger.info("Watchlist item %s updated by user %s", item.id, actor_id)
        return item

    async def delete_item(self, session: AsyncSession, item_id: int, actor_id: int) -> None:
        """Deactivate an item. Repeating the call is harmless."""
        item = await self._get_or_raise(session, item_id)
        old_values = {"is_active": item.is_active, "full_name": item.full_name}

        item.is_active = False
        item.updated_at = utcnow()
        item.updated_by = actor_id
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.DELETE, "Watchlist", item.id,
            old_values=old_values, new_values={"is_active": False},
        )
        logger.info("Watchlist item %s deactivated by user %s", item.id, actor_id)

    async def record_check(
        self,
        session: AsyncSession,
        item_id: int,
        actor_id: int,
        next_check_date: datetime | None = None,
        dynamics_update: str | None = None,
        new_risk_level: RiskLevel | None = None,
    ) -> WatchlistModel:
        """Mark the item as checked now.

        ``next_check_date`` is always written, so calling without it clears
        the schedule and drops the item out of the requiring-check list.
        """
        item = await self._get_or_raise(session, item_id)
        old_values = _check_snapshot(item)
        old_level = item.risk_level

        item.last_check_date = utcnow()
        item.next_check_date = next_check_date
        if dynamics_update:
            item.dynamics_description = dynamics_update
        if new_risk_level is not None:
            item.risk_level = RiskLevel(new_risk_level)
        item.updated_at = utcnow()
        item.updated_by = actor_id

        if item.risk_level != old_level:
            self._record_risk_change(session, item, old_level, actor_id, comment=dynamics_update)
        await session.flush()

        # A check is an Update in the audit trail, tagged in the snapshot.
        new_values = _check_snapshot(item)
        new_values["operation"] = "Check"
        await self.audit_service.record(
            session, actor_id, AuditAction.UPDATE, "Watchlist", item.id,
            old_values=old_values, new_values=new_values,
        )
        logger.info(
            "Check recorded for watchlist item %s by user %s, next check: %s",
            item.id, actor_id, next_check_date,
        )
        return item
