"""Audit log API router. Admin only."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from kurator.audit.models import AuditAction
from kurator.audit.schemas import AuditLogResponse, AuditStatistics
from kurator.common.schemas import PaginatedResponse
from kurator.common.security import require_roles
from kurator.users.models import UserRole

router = APIRouter()

_admins = require_roles(UserRole.ADMIN)


def _get_service():
    from kurator.deps import get_audit_service
    return get_audit_service()


def _get_db():
    from kurator.deps import get_db
    return get_db()


@router.get("/audit-log", response_model=PaginatedResponse[AuditLogResponse])
async def list_audit_logs(
    user_id: int | None = Query(None),
    block_id: int | None = Query(None),
    action: AuditAction | None = Query(None),
    entity_type: str | None = Query(None),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    _=Depends(_admins),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        rows, total = await svc.list_logs(
            session,
            user_id=user_id,
            block_id=block_id,
            action=action,
            entity_type=entity_type,
            from_date=from_date,
            to_date=to_date,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return PaginatedResponse[AuditLogResponse].build(
            [AuditLogResponse.from_row(log, login) for log, login in rows],
            total, page, page_size,
        )


@router.get("/audit-log/recent", response_model=list[AuditLogResponse])
async def recent_audit_logs(count: int = Query(20, ge=1, le=200), _=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        rows = await svc.get_recent(session, count=count)
        return [AuditLogResponse.from_row(log, login) for log, login in rows]


@router.get("/audit-log/statistics", response_model=AuditStatistics)
async def audit_statistics(
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    _=Depends(_admins),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return AuditStatistics(**await svc.get_statistics(session, from_date, to_date))


@router.get("/audit-log/entity/{entity_type}/{entity_id}", response_model=list[AuditLogResponse])
async def entity_history(entity_type: str, entity_id: str, _=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        rows = await svc.get_entity_history(session, entity_type, entity_id)
        return [AuditLogResponse.from_row(log, login) for log, login in rows]


@router.get("/audit-log/user/{user_id}", response_model=list[AuditLogResponse])
async def user_activity(
    user_id: int, limit: int = Query(100, ge=1, le=500), _=Depends(_admins),
):
    from kurator.deps import get_user_service

    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await get_user_service().get_user(session, user_id)
        login = user.login if user is not None else ""
        logs = await svc.get_user_activity(session, user_id, limit=limit)
        return [AuditLogResponse.from_row(log, login) for log in logs]
