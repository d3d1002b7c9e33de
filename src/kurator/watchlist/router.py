"""Watchlist API router. Admin and ThreatAnalyst only."""

from fastapi import APIRouter, Depends, Query, Response

from kurator.common.exceptions import NotFoundError
from kurator.common.schemas import PaginatedResponse
from kurator.common.security import RequestContext, require_roles
from kurator.users.models import UserRole
from kurator.watchlist.models import MonitoringFrequency, RiskLevel
from kurator.watchlist.schemas import (
    CheckRequest,
    WatchlistCreate,
    WatchlistHistoryResponse,
    WatchlistResponse,
    WatchlistStatistics,
    WatchlistUpdate,
)

router = APIRouter()

_watchers = require_roles(UserRole.ADMIN, UserRole.THREAT_ANALYST)


def _get_service():
    from kurator.deps import get_watchlist_service
    return get_watchlist_service()


def _get_db():
    from kurator.deps import get_db
    return get_db()


@router.get("/watchlist", response_model=PaginatedResponse[WatchlistResponse])
async def list_watchlist(
    risk_level: RiskLevel | None = Query(None),
    risk_sphere_id: int | None = Query(None),
    monitoring_frequency: MonitoringFrequency | None = Query(None),
    watch_owner_id: int | None = Query(None),
    requires_check: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    _=Depends(_watchers),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        items, total = await svc.list_items(
            session,
            risk_level=risk_level,
            risk_sphere_id=risk_sphere_id,
            monitoring_frequency=monitoring_frequency,
            watch_owner_id=watch_owner_id,
            requires_check=requires_check,
            page=page,
            page_size=page_size,
        )
        return PaginatedResponse[WatchlistResponse].build(
            [WatchlistResponse.model_validate(i) for i in items], total, page, page_size,
        )


@router.get("/watchlist/requires-check", response_model=list[WatchlistResponse])
async def items_requiring_check(_=Depends(_watchers)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        items = await svc.get_items_requiring_check(session)
        return [WatchlistResponse.model_validate(i) for i in items]


@router.get("/watchlist/statistics", response_model=WatchlistStatistics)
async def watchlist_statistics(_=Depends(_watchers)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return WatchlistStatistics(**await svc.get_statistics(session))


@router.get("/watchlist/{item_id}", response_model=WatchlistResponse)
async def get_watchlist_item(item_id: int, _=Depends(_watchers)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        item = await svc.get_item(session, item_id)
        if item is None:
            raise NotFoundError(f"Watchlist item {item_id} not found")
        return WatchlistResponse.model_validate(item)


@router.get("/watchlist/{item_id}/history", response_model=list[WatchlistHistoryResponse])
async def get_watchlist_history(item_id: int, _=Depends(_watchers)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        if await svc.get_item(session, item_id) is None:
            raise NotFoundError(f"Watchlist item {item_id} not found")
        history = await svc.get_history(session, item_id)
        return [WatchlistHistoryResponse.model_validate(h) for h in history]


@router.post("/watchlist", response_model=WatchlistResponse, status_code=201)
async def create_watchlist_item(
    body: WatchlistCreate, ctx: RequestContext = Depends(_watchers),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        item = await svc.create_item(session, ctx.user_id, **body.model_dump())
        return WatchlistResponse.model_validate(item)


@router.put("/watchlist/{item_id}", response_model=WatchlistResponse)
async def update_watchlist_item(
    item_id: int, body: WatchlistUpdate, ctx: RequestContext = Depends(_watchers),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        item = await svc.update_item(
            session, item_id, ctx.user_id, **body.model_dump(exclude_unset=True),
        )
        return WatchlistResponse.model_validate(item)


@router.post("/watchlist/{item_id}/check", response_model=WatchlistResponse)
async def record_check(
    item_id: int, body: CheckRequest, ctx: RequestContext = Depends(_watchers),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        item = await svc.record_check(
            session, item_id, ctx.user_id,
            next_check_date=body.next_check_date,
            dynamics_update=body.dynamics_update,
            new_risk_level=body.new_risk_level,
        )
        return WatchlistResponse.model_validate(item)


@router.delete("/watchlist/{item_id}", status_code=204)
async def delete_watchlist_item(item_id: int, ctx: RequestContext = Depends(_watchers)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.delete_item(session, item_id, ctx.user_id)
    return Response(status_code=204)
