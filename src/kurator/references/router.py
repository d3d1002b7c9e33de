"""Reference values API router."""

from fastapi import APIRouter, Depends, Query

from kurator.common.security import get_request_context, require_roles
from kurator.references.schemas import (
    ReferenceCreate,
    ReferenceResponse,
    ReferenceUpdate,
    ToggleResponse,
)
from kurator.users.models import UserRole

router = APIRouter()

_admins = require_roles(UserRole.ADMIN)


def _get_service():
    from kurator.deps import get_reference_service
    return get_reference_service()


def _get_db():
    from kurator.deps import get_db
    return get_db()


@router.get("/references", response_model=list[ReferenceResponse])
async def list_references(
    category: str | None = Query(None), _=Depends(get_request_context),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        values = await svc.list_values(session, category=category)
        return [ReferenceResponse.model_validate(v) for v in values]


@router.get("/references/categories", response_model=list[str])
async def list_categories(_=Depends(get_request_context)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return await svc.get_categories(session)


@router.get("/references/by-category", response_model=dict[str, list[ReferenceResponse]])
async def references_by_category(_=Depends(get_request_context)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        grouped = await svc.get_by_category(session)
        return {
            category: [ReferenceResponse.model_validate(v) for v in values]
            for category, values in grouped.items()
        }


@router.post("/references", response_model=ReferenceResponse, status_code=201)
async def create_reference(body: ReferenceCreate, _=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        value = await svc.create_value(
            session, body.category, body.code, body.name,
            description=body.description, sort_order=body.sort_order,
        )
        return ReferenceResponse.model_validate(value)


@router.put("/references/{value_id}", response_model=ReferenceResponse)
async def update_reference(value_id: int, body: ReferenceUpdate, _=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        value = await svc.update_value(session, value_id, **body.model_dump())
        return ReferenceResponse.model_validate(value)


@router.put("/references/{value_id}/deactivate", response_model=ReferenceResponse)
async def deactivate_reference(value_id: int, _=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        value = await svc.deactivate_value(session, value_id)
        return ReferenceResponse.model_validate(value)


@router.post("/references/{value_id}/toggle", response_model=ToggleResponse)
async def toggle_reference(value_id: int, _=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        value = await svc.toggle_value(session, value_id)
        return ToggleResponse(id=value.id, is_active=value.is_active)
