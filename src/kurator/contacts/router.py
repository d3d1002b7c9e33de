"""Contacts API router."""

from fastapi import APIRouter, Depends, Query, Response

from kurator.common.exceptions import NotFoundError
from kurator.common.models import as_utc, utcnow
from kurator.common.schemas import PaginatedResponse
from kurator.common.security import RequestContext, get_request_context, require_roles
from kurator.contacts.models import ContactModel
from kurator.contacts.schemas import (
    ContactCreate,
    ContactResponse,
    ContactSummary,
    ContactUpdate,
    StatusHistoryResponse,
)
from kurator.users.models import UserRole

router = APIRouter()

_writers = require_roles(UserRole.ADMIN, UserRole.CURATOR)
_admins = require_roles(UserRole.ADMIN)


def _get_service():
    from kurator.deps import get_contact_service
    return get_contact_service()


def _get_db():
    from kurator.deps import get_db
    return get_db()


def _summary_fields(contact: ContactModel) -> dict:
    from kurator.deps import get_encryptor

    next_touch = as_utc(contact.next_touch_date)
    return dict(
        id=contact.id,
        contact_code=contact.contact_code,
        block_id=contact.block_id,
        full_name=get_encryptor().decrypt(contact.full_name),
        organization_id=contact.organization_id,
        position=contact.position,
        influence_status_id=contact.influence_status_id,
        influence_type_id=contact.influence_type_id,
        last_interaction_date=contact.last_interaction_date,
        next_touch_date=contact.next_touch_date,
        is_overdue=next_touch is not None and next_touch < utcnow(),
        responsible_curator_id=contact.responsible_curator_id,
        updated_at=contact.updated_at,
    )


def _to_summary(contact: ContactModel) -> ContactSummary:
    return ContactSummary(**_summary_fields(contact))


def _to_response(contact: ContactModel) -> ContactResponse:
    from kurator.deps import get_encryptor

    return ContactResponse(
        **_summary_fields(contact),
        usefulness_description=contact.usefulness_description,
        communication_channel_id=contact.communication_channel_id,
        contact_source_id=contact.contact_source_id,
        notes=get_encryptor().decrypt_optional(contact.notes),
        is_active=contact.is_active,
        created_at=contact.created_at,
        updated_by=contact.updated_by,
    )


@router.get("/contacts", response_model=PaginatedResponse[ContactSummary])
async def list_contacts(
    block_id: int | None = Query(None),
    search: str | None = Query(None, max_length=100),
    influence_status_id: int | None = Query(None),
    influence_type_id: int | None = Query(None),
    organization_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    ctx: RequestContext = Depends(get_request_context),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        items, total = await svc.list_contacts(
            session, ctx,
            block_id=block_id,
            search=search,
            influence_status_id=influence_status_id,
            influence_type_id=influence_type_id,
            organization_id=organization_id,
            page=page,
            page_size=page_size,
        )
        return PaginatedResponse[ContactSummary].build(
            [_to_summary(c) for c in items], total, page, page_size,
        )


@router.get("/contacts/overdue", response_model=list[ContactSummary])
async def list_overdue_contacts(ctx: RequestContext = Depends(_writers)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        contacts = await svc.get_overdue(session, ctx)
        return [_to_summary(c) for c in contacts]


@router.get("/contacts/{contact_id}", response_model=ContactResponse)
async def get_contact(contact_id: int, ctx: RequestContext = Depends(get_request_context)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        contact = await svc.get_contact(session, contact_id, ctx)
        if contact is None:
            raise NotFoundError("Contact not found")
        return _to_response(contact)


@router.get("/contacts/{contact_id}/history", response_model=list[StatusHistoryResponse])
async def get_status_history(
    contact_id: int, ctx: RequestContext = Depends(get_request_context),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        if await svc.get_contact(session, contact_id, ctx) is None:
            raise NotFoundError("Contact not found")
        history = await svc.get_status_history(session, contact_id)
        return [StatusHistoryResponse.model_validate(h) for h in history]


@router.post("/contacts", response_model=ContactResponse, status_code=201)
async def create_contact(body: ContactCreate, ctx: RequestContext = Depends(_writers)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        contact = await svc.create_contact(session, ctx, **body.model_dump())
        return _to_response(contact)


@router.put("/contacts/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: int, body: ContactUpdate, ctx: RequestContext = Depends(_writers),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        contact = await svc.update_contact(
            session, contact_id, ctx, **body.model_dump(exclude_unset=True),
        )
        return _to_response(contact)


@router.delete("/contacts/{contact_id}", status_code=204)
async def delete_contact(contact_id: int, ctx: RequestContext = Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.delete_contact(session, contact_id, ctx.user_id)
    return Response(status_code=204)
