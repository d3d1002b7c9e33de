"""Dashboard API router."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from kurator.common.security import RequestContext, get_request_context, require_roles
from kurator.dashboard.schemas import AdminDashboard, CuratorDashboard, InteractionStatistics
from kurator.users.models import UserRole

router = APIRouter()


def _get_service():
    from kurator.deps import get_dashboard_service
    return get_dashboard_service()


def _get_db():
    from kurator.deps import get_db
    return get_db()


@router.get("/dashboard/curator", response_model=CuratorDashboard)
async def curator_dashboard(
    ctx: RequestContext = Depends(require_roles(UserRole.ADMIN, UserRole.CURATOR)),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return CuratorDashboard(**await svc.get_curator_dashboard(session, ctx))


@router.get("/dashboard/admin", response_model=AdminDashboard)
async def admin_dashboard(_=Depends(require_roles(UserRole.ADMIN))):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return AdminDashboard(**await svc.get_admin_dashboard(session))


@router.get("/dashboard/statistics", response_model=InteractionStatistics)
async def interaction_statistics(
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    block_id: int | None = Query(None),
    ctx: RequestContext = Depends(get_request_context),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        stats = await svc.get_interaction_statistics(
            session, ctx, from_date=from_date, to_date=to_date, block_id=block_id,
        )
        return InteractionStatistics(**stats)
