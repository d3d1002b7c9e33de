"""Reference value service: managed lookup lists grouped by category."""

import logging
from collections import defaultdict
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kurator.common.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from kurator.common.models import utcnow
from kurator.references.catalogue import CATEGORIES, REFERENCE_SEEDS
from kurator.references.models import ReferenceValueModel

logger = logging.getLogger(__name__)

_ORDERING = (
    ReferenceValueModel.category,
    ReferenceValueModel.sort_order,
    ReferenceValueModel.name,
)


async def check_references(session: AsyncSession, refs: dict[str, Any]) -> None:
    """Reject ids that are unknown or belong to another category.

    ``refs`` maps a category to a value id. ``None`` and unsupplied ids are
    skipped, so callers can pass partial-update arguments straight through.
    """
    wanted = {
        category: value_id for category, value_id in refs.items()
        if isinstance(value_id, int) and not isinstance(value_id, bool)
    }
    if not wanted:
        return
    result = await session.execute(
        select(ReferenceValueModel.id, ReferenceValueModel.category)
        .where(ReferenceValueModel.id.in_(set(wanted.values())))
    )
    found = dict(result.all())
    for category, value_id in wanted.items():
        if found.get(value_id) != category:
            raise InvalidArgumentError(f"Unknown {category} reference {value_id}")


class ReferenceService:
    async def _get_or_raise(self, session: AsyncSession, value_id: int) -> ReferenceValueModel:
        value = await session.get(ReferenceValueModel, value_id)
        if value is None:
            raise NotFoundError(f"Reference value {value_id} not found")
        return value

    async def list_values(
        self, session: AsyncSession, category: str | None = None,
    ) -> list[ReferenceValueModel]:
        query = select(ReferenceValueModel)
        if category:
            query = query.where(ReferenceValueModel.category == category)
        result = await session.execute(query.order_by(*_ORDERING))
        return list(result.scalars().all())

    async def get_categories(self, session: AsyncSession) -> list[str]:
        result = await session.execute(
            select(ReferenceValueModel.category).distinct().order_by(ReferenceValueModel.category)
        )
        return list(result.scalars().all())

    async def get_by_category(
        self, session: AsyncSession,
    ) -> dict[str, list[ReferenceValueModel]]:
        """Active values grouped by category."""
        result = await session.execute(
            select(ReferenceValueModel)
            .where(ReferenceValueModel.is_active == True)  # noqa: E712
            .order_by(*_ORDERING)
        )
        grouped: dict[str, list[ReferenceValueModel]] = defaultdict(list)
        for value in result.scalars().all():
            grouped[value.category].append(value)
        return dict(grouped)

    async def create_value(
        self,
        session: AsyncSession,
        category: str,
        code: str,
        name: str,
        description: str | None = None,
        sort_order: int = 0,
    ) -> ReferenceValueModel:
        if category not in CATEGORIES:
            raise InvalidArgumentError(f"Unknown reference category '{category}'")
        if not code or not name:
            raise InvalidArgumentError("Code and name are required")

        existing = await session.execute(
            select(ReferenceValueModel.id).where(
                ReferenceValueModel.category == category,
                ReferenceValueModel.code == code,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(f"Reference value {category}/{code} already exists")

        now = utcnow()
        value = ReferenceValueModel(
            category=category,
            code=code,
            name=name,
            description=description,
            sort_order=sort_order,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        session.add(value)
        await session.flush()
        logger.info("Reference value created: %s - %s", category, name)
        return value

    async def update_value(
        self,
        session: AsyncSession,
        value_id: int,
        name: str,
        description: str | None = None,
        sort_order: int = 0,
        is_active: bool = True,
    ) -> ReferenceValueModel:
        value = await self._get_or_raise(session, value_id)
        value.name = name
        value.description = description
        value.sort_order = sort_order
        value.is_active = is_active
        value.updated_at = utcnow()
        await session.flush()
        return value

    async def deactivate_value(self, session: AsyncSession, value_id: int) -> ReferenceValueModel:
        value = await self._get_or_raise(session, value_id)
        value.is_active = False
        value.updated_at = utcnow()
        await session.flush()
        logger.info("Reference value deactivated: %s - %s", value.category, value.name)
        return value

    async def toggle_value(self, session: AsyncSession, value_id: int) -> ReferenceValueModel:
        value = await self._get_or_raise(session, value_id)
        value.is_active = not value.is_active
        value.updated_at = utcnow()
        await session.flush()
        return value

    async def seed_defaults(self, session: AsyncSession) -> int:
        """Insert the default catalogue, skipping values already present."""
        result = await session.execute(
            select(ReferenceValueModel.category, ReferenceValueModel.code)
        )
        present = {(category, code) for category, code in result.all()}

        created = 0
        now = utcnow()
        for category, entries in REFERENCE_SEEDS.items():
            for position, (code, name, description) in enumerate(entries, start=1):
                if (category, code) in present:
                    continue
                session.add(ReferenceValueModel(
                    category=category,
                    code=code,
                    name=name,
                    description=description,
                    sort_order=position,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                ))
                created += 1
        await session.flush()
        if created:
            logger.info("Seeded %d reference values", created)
        return created
