"""Interactions API router."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response

from kurator.common.exceptions import NotFoundError
from kurator.common.schemas import PaginatedResponse
from kurator.common.security import RequestContext, get_request_context, require_roles
from kurator.interactions.models import InteractionModel
from kurator.interactions.schemas import (
    InteractionCreate,
    InteractionResponse,
    InteractionUpdate,
)
from kurator.users.models import UserRole

router = APIRouter()

_writers = require_roles(UserRole.ADMIN, UserRole.CURATOR)
_admins = require_roles(UserRole.ADMIN)


def _get_service():
    from kurator.deps import get_interaction_service
    return get_interaction_service()


def _get_db():
    from kurator.deps import get_db
    return get_db()


def _to_response(interaction: InteractionModel) -> InteractionResponse:
    from kurator.deps import get_encryptor

    return InteractionResponse(
        id=interaction.id,
        contact_id=interaction.contact_id,
        interaction_date=interaction.interaction_date,
        interaction_type_id=interaction.interaction_type_id,
        result_id=interaction.result_id,
        curator_id=interaction.curator_id,
        comment=get_encryptor().decrypt_optional(interaction.comment),
        status_change_json=interaction.status_change_json,
        attachments_json=interaction.attachments_json,
        next_touch_date=interaction.next_touch_date,
        is_active=interaction.is_active,
        created_at=interaction.created_at,
        updated_at=interaction.updated_at,
        updated_by=interaction.updated_by,
    )


@router.get("/interactions", response_model=PaginatedResponse[InteractionResponse])
async def list_interactions(
    contact_id: int | None = Query(None),
    block_id: int | None = Query(None),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    interaction_type_id: int | None = Query(None),
    result_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    ctx: RequestContext = Depends(get_request_context),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        items, total = await svc.list_interactions(
            session, ctx,
            contact_id=contact_id,
            block_id=block_id,
            from_date=from_date,
            to_date=to_date,
            interaction_type_id=interaction_type_id,
            result_id=result_id,
            page=page,
            page_size=page_size,
        )
        return PaginatedResponse[InteractionResponse].build(
            [_to_response(i) for i in items], total, page, page_size,
        )


@router.get("/interactions/recent", response_model=list[InteractionResponse])
async def recent_interactions(
    count: int = Query(5, ge=1, le=50),
    ctx: RequestContext = Depends(_writers),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        items = await svc.get_recent(session, ctx, count=count)
        return [_to_response(i) for i in items]


@router.get("/interactions/{interaction_id}", response_model=InteractionResponse)
async def get_interaction(
    interaction_id: int, ctx: RequestContext = Depends(get_request_context),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        interaction = await svc.get_interaction(session, interaction_id, ctx)
        if interaction is None:
            raise NotFoundError("Interaction not found")
        return _to_response(interaction)


@router.post("/interactions", response_model=InteractionResponse, status_code=201)
async def create_interaction(
    body: InteractionCreate, ctx: RequestContext = Depends(_writers),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        interaction = await svc.create_interaction(session, ctx, **body.model_dump())
        return _to_response(interaction)


@router.put("/interactions/{interaction_id}", response_model=InteractionResponse)
async def update_interaction(
    interaction_id: int,
    body: InteractionUpdate,
    ctx: RequestContext = Depends(_writers),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        interaction = await svc.update_interaction(
            session, interaction_id, ctx, **body.model_dump(exclude_unset=True),
        )
        return _to_response(interaction)


@router.delete("/interactions/{interaction_id}", status_code=204)
async def deactivate_interaction(
    interaction_id: int, ctx: RequestContext = Depends(_admins),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.deactivate_interaction(session, interaction_id, ctx.user_id)
    return Response(status_code=204)
