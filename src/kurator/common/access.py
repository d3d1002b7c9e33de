"""Block-scoped access control shared by every service.

Admins act on every block. Curators act only on blocks they are linked to
through a ``block_curators`` row. Threat analysts have no block or contact
access at all; their watchlist access is granted at the router.
"""

from dataclasses import dataclass

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from kurator.blocks.models import BlockCuratorModel, BlockModel
from kurator.common.exceptions import ForbiddenError, NotFoundError
from kurator.common.security import RequestContext
from kurator.contacts.models import ContactModel
from kurator.users.models import UserRole


@dataclass(frozen=True)
class BlockScope:
    """The blocks a request may touch. ``unrestricted`` skips filtering."""
    unrestricted: bool
    block_ids: frozenset[int] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.unrestricted and not self.block_ids

    def allows(self, block_id: int) -> bool:
        return self.unrestricted or block_id in self.block_ids

    def apply(self, query: Select, block_column) -> Select:
        """Constrain ``query`` to the scope via ``block_column``."""
        if self.unrestricted:
            return query
        return query.where(block_column.in_(sorted(self.block_ids)))


class AccessResolver:
    """Resolve which blocks and contacts a request context may act on."""

    async def _assigned_block_ids(self, session: AsyncSession, user_id: int) -> frozenset[int]:
        result = await session.execute(
            select(BlockCuratorModel.block_id)
            .where(BlockCuratorModel.user_id == user_id)
            .distinct()
        )
        return frozenset(result.scalars().all())

    async def block_scope(self, session: AsyncSession, ctx: RequestContext) -> BlockScope:
        if ctx.role == UserRole.ADMIN:
            return BlockScope(unrestricted=True)
        if ctx.role == UserRole.CURATOR:
            return BlockScope(
                unrestricted=False,
                block_ids=await self._assigned_block_ids(session, ctx.user_id),
            )
        return BlockScope(unrestricted=False)

    async def resolve_accessible_block_ids(
        self, session: AsyncSession, ctx: RequestContext,
    ) -> set[int]:
        if ctx.role == UserRole.ADMIN:
            result = await session.execute(select(BlockModel.id))
            return set(result.scalars().all())
        scope = await self.block_scope(session, ctx)
        return set(scope.block_ids)

    async def can_access_block(
        self, session: AsyncSession, block_id: int, ctx: RequestContext,
    ) -> bool:
        """Raises NotFoundError if the block does not exist."""
        if await session.get(BlockModel, block_id) is None:
            raise NotFoundError(f"Block {block_id} not found")
        return await self._has_block_access(session, block_id, ctx)

    async def can_access_contact(
        self, session: AsyncSession, contact_id: int, ctx: RequestContext,
    ) -> bool:
        """Raises NotFoundError if the contact does not exist."""
        contact = await session.get(ContactModel, contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found")
        return await self._has_block_access(session, contact.block_id, ctx)

    async def ensure_block_access(
        self, session: AsyncSession, block_id: int, ctx: RequestContext,
    ) -> None:
        """Raise ForbiddenError unless ``ctx`` may write to the block.

        Existence is not checked here; a curator asking about a missing block
        is simply not assigned to it.
        """
        if not await self._has_block_access(session, block_id, ctx):
            raise ForbiddenError("User does not have access to this block")

    async def ensure_contact_access(
        self, session: AsyncSession, contact_id: int, ctx: RequestContext,
    ) -> ContactModel:
        """Return the contact, raising NotFoundError or ForbiddenError."""
        contact = await session.get(ContactModel, contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found")
        if not await self._has_block_access(session, contact.block_id, ctx):
            raise ForbiddenError("User does not have access to this contact")
        return contact

    async def _has_block_access(
        self, session: AsyncSession, block_id: int, ctx: RequestContext,
    ) -> bool:
        if ctx.role == UserRole.ADMIN:
            return True
        if ctx.role != UserRole.CURATOR:
            return False
        result = await session.execute(
            select(BlockCuratorModel.id).where(
                BlockCuratorModel.block_id == block_id,
                BlockCuratorModel.user_id == ctx.user_id,
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None
