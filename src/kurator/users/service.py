"""User service: accounts, roles and password authentication."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kurator.audit.models import AuditAction
from kurator.audit.service import AuditService
from kurator.blocks.models import BlockCuratorModel
from kurator.common.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from kurator.common.models import UNSET, utcnow
from kurator.common.security import hash_password, password_needs_rehash, verify_password
from kurator.users.models import UserModel, UserRole

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _snapshot(user: UserModel) -> dict:
    # Password hashes and MFA secrets are never written to the audit trail.
    return {"login": user.login, "role": user.role, "is_active": user.is_active}


def _check_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidArgumentError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


class UserService:
    def __init__(self, audit_service: AuditService):
        self.audit_service = audit_service

    async def _get_or_raise(self, session: AsyncSession, user_id: int) -> UserModel:
        user = await session.get(UserModel, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def get_user(self, session: AsyncSession, user_id: int) -> UserModel | None:
        return await session.get(UserModel, user_id)

    async def get_by_login(self, session: AsyncSession, login: str) -> UserModel | None:
        result = await session.execute(select(UserModel).where(UserModel.login == login))
        return result.scalar_one_or_none()

    async def list_users(
        self,
        session: AsyncSession,
        role: UserRole | None = None,
        active_only: bool = False,
    ) -> list[UserModel]:
        query = select(UserModel)
        if role is not None:
            query = query.where(UserModel.role == role)
        if active_only:
            query = query.where(UserModel.is_active == True)  # noqa: E712
        result = await session.execute(query.order_by(UserModel.login))
        return list(result.scalars().all())

    async def authenticate(
        self, session: AsyncSession, login: str, password: str,
    ) -> UserModel | None:
        """Return the active user matching the credentials, stamping last login."""
        user = await self.get_by_login(session, login)
        if user is None or not user.is_active:
            logger.warning("Login failed for %s", login)
            return None
        if not verify_password(password, user.password_hash):
            logger.warning("Login failed for %s", login)
            return None
        if password_needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
        user.last_login_at = utcnow()
        await session.flush()
        logger.info("User %s logged in", login)
        return user

    async def create_user(
        self,
        session: AsyncSession,
        actor_id: int | None,
        login: str,
        password: str,
        role: UserRole,
    ) -> UserModel:
        """Create an account. ``actor_id`` is None only for the bootstrap admin."""
        if not login or not login.strip():
            raise InvalidArgumentError("Login is required")
        _check_password(password)
        if await self.get_by_login(session, login) is not None:
            raise ConflictError(f"User with login '{login}' already exists")

        user = UserModel(
            login=login,
            password_hash=hash_password(password),
            role=role,
            is_first_login=True,
            is_active=True,
            created_at=utcnow(),
        )
        session.add(user)
        await session.flush()

        await self.audit_service.record(
            session, actor_id if actor_id is not None else user.id,
            AuditAction.CREATE, "User", user.id,
            new_values=_snapshot(user),
        )
        logger.info("User created: %s with role %s", user.login, user.role.value)
        return user

    async def update_user(
        self,
        session: AsyncSession,
        user_id: int,
        actor_id: int,
        role: UserRole | None = None,
        is_active: bool | None = None,
        new_password=UNSET,
    ) -> UserModel:
        user = await self._get_or_raise(session, user_id)
        old_values = _snapshot(user)

        if role is not None:
            user.role = role
        if is_active is not None:
            if not is_active and user.id == actor_id:
                raise InvalidArgumentError("Cannot deactivate your own account")
            user.is_active = is_active
        password_changed = bool(new_password)
        if password_changed:
            _check_password(new_password)
            user.password_hash = hash_password(new_password)
        await session.flush()

        new_values = _snapshot(user)
        if password_changed:
            new_values["password_changed"] = True
        await self.audit_service.record(
            session, actor_id, AuditAction.UPDATE, "User", user.id,
            old_values=old_values, new_values=new_values,
        )
        logger.info("User updated: %s by user %s", user.login, actor_id)
        return user

    async def change_password(
        self, session: AsyncSession, user_id: int, actor_id: int, new_password: str,
    ) -> UserModel:
        _check_password(new_password)
        user = await self._get_or_raise(session, user_id)
        user.password_hash = hash_password(new_password)
        user.is_first_login = False
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.UPDATE, "User", user.id,
            new_values={"password_changed": True},
        )
        logger.info("Password changed for user %s by user %s", user.login, actor_id)
        return user

    async def deactivate_user(
        self, session: AsyncSession, user_id: int, actor_id: int,
    ) -> UserModel:
        """Deactivate an account that holds no block assignments."""
        user = await self._get_or_raise(session, user_id)
        if user.id == actor_id:
            raise InvalidArgumentError("Cannot deactivate your own account")

        assigned = await session.execute(
            select(BlockCuratorModel.id).where(BlockCuratorModel.user_id == user_id).limit(1)
        )
        if assigned.scalar_one_or_none() is not None:
            raise ConflictError("User is assigned to blocks; reassign them first")

        old_values = _snapshot(user)
        user.is_active = False
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.DELETE, "User", user.id,
            old_values=old_values,
        )
        logger.info("User deactivated: %s by user %s", user.login, actor_id)
        return user

    async def ensure_admin(
        self, session: AsyncSession, login: str, password: str,
    ) -> tuple[UserModel, bool]:
        """Create the bootstrap administrator if missing. Returns (user, created)."""
        existing = await self.get_by_login(session, login)
        if existing is not None:
            return existing, False
        user = await self.create_user(session, None, login, password, UserRole.ADMIN)
        return user, True
