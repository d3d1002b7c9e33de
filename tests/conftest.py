"""Shared test fixtures for Kurator."""

import os

import pytest
from httpx import ASGITransport, AsyncClient

from kurator.users.models import UserRole

SECRET_KEY = "test-secret-key-for-unit-tests"
ENCRYPTION_KEY = "test-encryption-key-for-unit-tests"
# Dummy hash for users inserted directly; nobody logs in with it.
DUMMY_HASH = "$argon2id$v=19$m=65536,t=3,p=4$c2FsdHNhbHQ$bm90LWEtcmVhbC1kaWdlc3Q"


@pytest.fixture
def app():
    """Create a test app with in-memory DB."""
    os.environ["KURATOR_DB_URL"] = "sqlite+aiosqlite://"
    os.environ["KURATOR_SECRET_KEY"] = SECRET_KEY
    os.environ["KURATOR_ENCRYPTION_KEY"] = ENCRYPTION_KEY
    os.environ["KURATOR_ENVIRONMENT"] = "development"

    # Clear caches and singletons so new env vars take effect
    from kurator.common.config import get_settings
    get_settings.cache_clear()

    from kurator.deps import reset_singletons
    reset_singletons()

    from kurator.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from kurator.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


async def _insert_user(login: str, role: UserRole) -> int:
    from kurator.deps import get_db
    from kurator.users.models import UserModel

    async with get_db().get_session() as session:
        user = UserModel(login=login, password_hash=DUMMY_HASH, role=role)
        session.add(user)
        await session.flush()
        return user.id


def _bearer(user_id: int, role: UserRole) -> dict[str, str]:
    from kurator.common.security import create_access_token
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
async def admin_user(client) -> int:
    return await _insert_user("admin", UserRole.ADMIN)


@pytest.fixture
async def curator_user(client) -> int:
    return await _insert_user("curator", UserRole.CURATOR)


@pytest.fixture
async def analyst_user(client) -> int:
    return await _insert_user("analyst", UserRole.THREAT_ANALYST)


@pytest.fixture
def admin_headers(admin_user):
    return _bearer(admin_user, UserRole.ADMIN)


@pytest.fixture
def curator_headers(curator_user):
    return _bearer(curator_user, UserRole.CURATOR)


@pytest.fixture
def analyst_headers(analyst_user):
    return _bearer(analyst_user, UserRole.THREAT_ANALYST)


@pytest.fixture
async def gov_block(client, admin_headers, curator_user) -> int:
    """GOV block with ``curator_user`` as its primary curator."""
    resp = await client.post("/blocks", json={
        "name": "Government", "code": "GOV",
    }, headers=admin_headers)
    block_id = resp.json()["id"]
    await client.post(f"/blocks/{block_id}/curators", json={
        "user_id": curator_user, "curator_type": "Primary",
    }, headers=admin_headers)
    return block_id


@pytest.fixture
async def biz_block(client, admin_headers) -> int:
    """BIZ block with no curators."""
    resp = await client.post("/blocks", json={
        "name": "Business", "code": "BIZ",
    }, headers=admin_headers)
    return resp.json()["id"]
