"""Block service: organizational blocks and curator assignments."""

import logging
import re
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kurator.audit.models import AuditAction
from kurator.audit.service import AuditService
from kurator.blocks.models import BlockCuratorModel, BlockModel, BlockStatus, CuratorType
from kurator.common.access import AccessResolver
from kurator.common.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from kurator.common.models import utcnow
from kurator.common.security import RequestContext
from kurator.users.models import UserModel

logger = logging.getLogger(__name__)

BLOCK_CODE_RE = re.compile(r"^[A-Z0-9]+$")


def _snapshot(block: BlockModel) -> dict:
    return {
        "name": block.name,
        "code": block.code,
        "status": block.status,
        "description": block.description,
    }


class BlockService:
    def __init__(self, access: AccessResolver, audit_service: AuditService):
        self.access = access
        self.audit_service = audit_service

    async def _get_or_raise(self, session: AsyncSession, block_id: int) -> BlockModel:
        block = await session.get(BlockModel, block_id)
        if block is None:
            raise NotFoundError(f"Block {block_id} not found")
        return block

    async def list_blocks(
        self, session: AsyncSession, status: BlockStatus | None = None,
    ) -> list[BlockModel]:
        query = select(BlockModel)
        if status is not None:
            query = query.where(BlockModel.status == status)
        result = await session.execute(query.order_by(BlockModel.code))
        return list(result.scalars().all())

    async def get_block(self, session: AsyncSession, block_id: int) -> BlockModel | None:
        return await session.get(BlockModel, block_id)

    async def my_blocks(self, session: AsyncSession, ctx: RequestContext) -> list[BlockModel]:
        """Active blocks the caller may work in."""
        scope = await self.access.block_scope(session, ctx)
        if scope.is_empty:
            return []
        query = scope.apply(
            select(BlockModel).where(BlockModel.status == BlockStatus.ACTIVE), BlockModel.id
        )
        result = await session.execute(query.order_by(BlockModel.code))
        return list(result.scalars().all())

    async def get_curators(
        self, session: AsyncSession, block_ids: list[int],
    ) -> dict[int, list[tuple[BlockCuratorModel, str]]]:
        """Curator assignments with user login, grouped by block id."""
        grouped: dict[int, list[tuple[BlockCuratorModel, str]]] = defaultdict(list)
        if not block_ids:
            return grouped
        result = await session.execute(
            select(BlockCuratorModel, UserModel.login)
            .join(UserModel, BlockCuratorModel.user_id == UserModel.id)
            .where(BlockCuratorModel.block_id.in_(block_ids))
            .order_by(BlockCuratorModel.block_id, BlockCuratorModel.curator_type)
        )
        for assignment, login in result.all():
            grouped[assignment.block_id].append((assignment, login))
        return grouped

    async def create_block(
        self,
        session: AsyncSession,
        actor_id: int,
        name: str,
        code: str,
        description: str | None = None,
        status: BlockStatus = BlockStatus.ACTIVE,
    ) -> BlockModel:
        if not name or not name.strip():
            raise InvalidArgumentError("Block name is required")
        if not BLOCK_CODE_RE.match(code or ""):
            raise InvalidArgumentError("Block code must contain only A-Z and 0-9")

        existing = await session.execute(select(BlockModel.id).where(BlockModel.code == code))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(f"Block code '{code}' already exists")

        now = utcnow()
        block = BlockModel(
            name=name,
            code=code,
            description=description,
            status=status,
            created_at=now,
            updated_at=now,
        )
        session.add(block)
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.CREATE, "Block", block.id,
            new_values=_snapshot(block),
        )
        logger.info("Block created: %s by user %s", block.code, actor_id)
        return block

    async def update_block(
        self,
        session: AsyncSession,
        block_id: int,
        actor_id: int,
        name: str,
        description: str | None = None,
        status: BlockStatus = BlockStatus.ACTIVE,
    ) -> BlockModel:
        """Replace name, description and status. The code never changes."""
        if not name or not name.strip():
            raise InvalidArgumentError("Block name is required")
        block = await self._get_or_raise(session, block_id)
        old_values = _snapshot(block)

        block.name = name
        block.description = description
        block.status = status
        block.updated_at = utcnow()
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.UPDATE, "Block", block.id,
            old_values=old_values, new_values=_snapshot(block),
        )
        logger.info("Block updated: %s by user %s", block.code, actor_id)
        return block

    async def archive_block(
        self, session: AsyncSession, block_id: int, actor_id: int,
    ) -> BlockModel:
        block = await self._get_or_raise(session, block_id)
        old_status = block.status
        block.status = BlockStatus.ARCHIVED
        block.updated_at = utcnow()
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.UPDATE, "Block", block.id,
            old_values={"status": old_status}, new_values={"status": block.status},
        )
        logger.info("Block archived: %s by user %s", block.code, actor_id)
        return block

    async def assign_curator(
        self,
        session: AsyncSession,
        block_id: int,
        actor_id: int,
        user_id: int,
        curator_type: CuratorType,
    ) -> BlockCuratorModel:
        """Link a user to a block as its primary or backup curator."""
        await self._get_or_raise(session, block_id)
        if await session.get(UserModel, user_id) is None:
            raise InvalidArgumentError(f"User {user_id} not found")

        clash = await session.execute(
            select(BlockCuratorModel).where(
                BlockCuratorModel.block_id == block_id,
                (BlockCuratorModel.user_id == user_id)
                | (BlockCuratorModel.curator_type == curator_type),
            )
        )
        existing = clash.scalars().first()
        if existing is not None:
            if existing.user_id == user_id:
                raise ConflictError("User is already a curator of this block")
            raise ConflictError(f"Block already has a {curator_type.value} curator")

        assignment = BlockCuratorModel(
            block_id=block_id,
            user_id=user_id,
            curator_type=curator_type,
            assigned_at=utcnow(),
            assigned_by=actor_id,
        )
        session.add(assignment)
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.CREATE, "BlockCurator", assignment.id,
            new_values={
                "block_id": block_id,
                "user_id": user_id,
                "curator_type": curator_type,
            },
        )
        logger.info(
            "Curator %s assigned to block %s as %s", user_id, block_id, curator_type.value,
        )
        return assignment

    async def remove_curator(
        self, session: AsyncSession, block_id: int, assignment_id: int, actor_id: int,
    ) -> None:
        result = await session.execute(
            select(BlockCuratorModel).where(
                BlockCuratorModel.id == assignment_id,
                BlockCuratorModel.block_id == block_id,
            )
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            raise NotFoundError("Curator assignment not found")

        old_values = {
            "block_id": assignment.block_id,
            "user_id": assignment.user_id,
            "curator_type": assignment.curator_type,
        }
        await session.delete(assignment)
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.DELETE, "BlockCurator", assignment_id,
            old_values=old_values,
        )
        logger.info("Curator assignment %s removed from block %s", assignment_id, block_id)
