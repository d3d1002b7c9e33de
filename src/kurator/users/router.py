"""Auth and user management API router."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from kurator.common.exceptions import NotFoundError
from kurator.common.security import (
    RequestContext,
    create_access_token,
    get_request_context,
    require_roles,
)
from kurator.users.models import UserRole
from kurator.users.schemas import (
    LoginRequest,
    PasswordChange,
    TokenResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)

router = APIRouter()

_admins = require_roles(UserRole.ADMIN)


def _get_service():
    from kurator.deps import get_user_service
    return get_user_service()


def _get_db():
    from kurator.deps import get_db
    return get_db()


# ── Auth ──

@router.post("/auth/login", response_model=TokenResponse)
async def login(body: LoginRequest):
    from kurator.common.config import get_settings

    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.authenticate(session, body.login, body.password)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid login or password")
        return TokenResponse(
            access_token=create_access_token(user.id, user.role),
            expires_in=get_settings().token_max_age,
            user_id=user.id,
            login=user.login,
            role=user.role,
            is_first_login=user.is_first_login,
        )


@router.get("/auth/me", response_model=UserResponse)
async def current_user(ctx: RequestContext = Depends(get_request_context)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.get_user(session, ctx.user_id)
        if user is None:
            raise NotFoundError("User not found")
        return UserResponse.model_validate(user)


# ── Users ──

@router.get("/users", response_model=list[UserResponse])
async def list_users(
    role: UserRole | None = Query(None),
    active_only: bool = Query(False),
    _=Depends(_admins),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        users = await svc.list_users(session, role=role, active_only=active_only)
        return [UserResponse.model_validate(u) for u in users]


@router.get("/users/curators", response_model=list[UserResponse])
async def list_curators(_=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        users = await svc.list_users(session, role=UserRole.CURATOR, active_only=True)
        return [UserResponse.model_validate(u) for u in users]


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, _=Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.get_user(session, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return UserResponse.model_validate(user)


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(body: UserCreate, ctx: RequestContext = Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.create_user(session, ctx.user_id, body.login, body.password, body.role)
        return UserResponse.model_validate(user)


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(user_id: int, body: UserUpdate, ctx: RequestContext = Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.update_user(
            session, user_id, ctx.user_id,
            role=body.role, is_active=body.is_active, new_password=body.new_password,
        )
        return UserResponse.model_validate(user)


@router.post("/users/{user_id}/change-password", status_code=204)
async def change_password(
    user_id: int, body: PasswordChange, ctx: RequestContext = Depends(_admins),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.change_password(session, user_id, ctx.user_id, body.new_password)
    return Response(status_code=204)


@router.delete("/users/{user_id}", status_code=204)
async def deactivate_user(user_id: int, ctx: RequestContext = Depends(_admins)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.deactivate_user(session, user_id, ctx.user_id)
    return Response(status_code=204)
