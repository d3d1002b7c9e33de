"""Blocks API router."""

from fastapi import APIRouter, Depends, Query, Response

from kurator.blocks.models import BlockModel, BlockStatus
from kurator.blocks.schemas import (
    BlockCreate,
    BlockCuratorResponse,
    BlockResponse,
    BlockUpdate,
    CuratorAssign,
)
from kurator.common.exceptions import NotFoundError
from kurator.common.security import RequestContext, require_roles
from kurator.users.models import UserRole

router = APIRouter()

_admins = require_roles(UserRole.ADMIN)


def _get_service():
    from kurator.deps import get_block_service
    return get_block_service()


def _get_db():
    from kurator.deps import get_db
    return get_db()


async def _with_curators(svc, session, blocks: list[BlockModel]) -> list[BlockResponse]:
    curators = await svc.get_curators(session, [b.id for b in blocks])
    return [
        BlockResponse(
            id=b.id,
            name=b.name,
            code=b.code,
            description=b.description,
            status=b.status,
            curators=[
                BlockCuratorResponse(
                    id=a.id,
                    user_id=a.user_id,
                    user_login=login,
                    curator_type=a.curator_type,
                    assigned_at=a.assigned_at,
                )
                for a, login in curators.get(b.id, [])
            ],
            created_at=b.created_at,
            updated_at=b.updated_at,
        )
        for b in blocks
    ]


@router.get("/blocks", response_model=list[BlockResponse])
async def list_blocks(status: BlockStatus | None = Query(None), _=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        blocks = await svc.list_blocks(session, status=status)
        return await _with_curators(svc, session, blocks)


@router.get("/blocks/my-blocks", response_model=list[BlockResponse])
async def my_blocks(
    ctx: RequestContext = Depends(require_roles(UserRole.ADMIN, UserRole.CURATOR)),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        blocks = await svc.my_blocks(session, ctx)
        return await _with_curators(svc, session, blocks)


@router.get("/blocks/{block_id}", response_model=BlockResponse)
async def get_block(block_id: int, _=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        block = await svc.get_block(session, block_id)
        if block is None:
            raise NotFoundError(f"Block {block_id} not found")
        return (await _with_curators(svc, session, [block]))[0]


@router.post("/blocks", response_model=BlockResponse, status_code=201)
async def create_block(body: BlockCreate, ctx: RequestContext = Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        block = await svc.create_block(
            session, ctx.user_id, body.name, body.code,
            description=body.description, status=body.status,
        )
        return (await _with_curators(svc, session, [block]))[0]


@router.put("/blocks/{block_id}", response_model=BlockResponse)
async def update_block(
    block_id: int, body: BlockUpdate, ctx: RequestContext = Depends(_admins),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        block = await svc.update_block(
            session, block_id, ctx.user_id, body.name,
            description=body.description, status=body.status,
        )
        return (await _with_curators(svc, session, [block]))[0]


@router.put("/blocks/{block_id}/archive", response_model=BlockResponse)
async def archive_block(block_id: int, ctx: RequestContext = Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        block = await svc.archive_block(session, block_id, ctx.user_id)
        return (await _with_curators(svc, session, [block]))[0]


@router.post("/blocks/{block_id}/curators", response_model=BlockResponse, status_code=201)
async def assign_curator(
    block_id: int, body: CuratorAssign, ctx: RequestContext = Depends(_admins),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.assign_curator(
            session, block_id, ctx.user_id, body.user_id, body.curator_type,
        )
        block = await svc.get_block(session, block_id)
        return (await _with_curators(svc, session, [block]))[0]


@router.delete("/blocks/{block_id}/curators/{assignment_id}", status_code=204)
async def remove_curator(
    block_id: int, assignment_id: int, ctx: RequestContext = Depends(_admins),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.remove_curator(session, block_id, assignment_id, ctx.user_id)
    return Response(status_code=204)
