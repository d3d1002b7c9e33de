"""Bearer-token authentication and role dependencies."""

from dataclasses import dataclass
from typing import Callable

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi import Depends, Header, HTTPException
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from kurator.users.models import UserRole

_TOKEN_SALT = "kurator-access-token"
_hasher = PasswordHasher()


@dataclass(frozen=True)
class RequestContext:
    """The acting user, passed explicitly into every service call."""
    user_id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# ── Passwords ──

def hash_password(password: str) -> str:
    """Argon2id hash in the PHC string format (``$argon2id$v=19$...``)."""
    return _hasher.hash(password)


def verify_password(password: str, stored: str) -> bool:
    try:
        return _hasher.verify(stored, password)
    except (VerificationError, InvalidHashError):
        return False


def password_needs_rehash(stored: str) -> bool:
    return _hasher.check_needs_rehash(stored)


# ── Tokens ──

def _get_serializer() -> URLSafeTimedSerializer:
    from kurator.common.config import get_settings
    return URLSafeTimedSerializer(get_settings().secret_key, salt=_TOKEN_SALT)


def create_access_token(user_id: int, role: UserRole) -> str:
    """Sign a ``{user_id, role}`` payload and return the bearer token."""
    return _get_serializer().dumps({"user_id": user_id, "role": role.value})


def verify_access_token(token: str) -> RequestContext | None:
    """Verify and decode a bearer token. Returns the context or None."""
    from kurator.common.config import get_settings

    try:
        payload = _get_serializer().loads(token, max_age=get_settings().token_max_age)
        return RequestContext(user_id=int(payload["user_id"]), role=UserRole(payload["role"]))
    except (BadSignature, SignatureExpired, KeyError, TypeError, ValueError):
        return None


# ── FastAPI dependencies ──

async def get_request_context(
    authorization: str | None = Header(None),
) -> RequestContext:
    """Resolve the acting user from ``Authorization: Bearer <token>``."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=401,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    ctx = verify_access_token(authorization[7:].strip())
    if ctx is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory that admits only the given roles."""
    allowed = frozenset(roles)

    async def _check(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if ctx.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return ctx

    return _check
