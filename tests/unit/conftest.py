"""Service-level fixtures: in-memory database and a small seeded world."""

from dataclasses import dataclass

import pytest

from kurator.audit.service import AuditService
from kurator.blocks.models import BlockCuratorModel, BlockModel, BlockStatus, CuratorType
from kurator.blocks.service import BlockService
from kurator.common.access import AccessResolver
from kurator.common.config import KuratorSettings
from kurator.common.database import DatabaseManager
from kurator.common.encryption import FieldEncryptor
from kurator.common.security import RequestContext
from kurator.contacts.service import ContactService
from kurator.dashboard.service import DashboardService
from kurator.interactions.service import InteractionService
from kurator.references.models import ReferenceValueModel
from kurator.references.service import ReferenceService
from kurator.users.models import UserModel, UserRole
from kurator.users.service import UserService
from kurator.watchlist.service import WatchlistService

ENCRYPTION_KEY = "test-encryption-key-for-unit-tests"
DUMMY_HASH = "$argon2id$v=19$m=65536,t=3,p=4$c2FsdHNhbHQ$bm90LWEtcmVhbC1kaWdlc3Q"


def make_settings(**overrides) -> KuratorSettings:
    defaults = {
        "db_url": "sqlite+aiosqlite://",
        "secret_key": "test-secret-key-for-unit-tests",
        "encryption_key": ENCRYPTION_KEY,
    }
    defaults.update(overrides)
    return KuratorSettings(**defaults)


@dataclass
class World:
    admin: RequestContext
    curator: RequestContext
    other_curator: RequestContext
    idle_curator: RequestContext
    analyst: RequestContext
    gov_id: int
    biz_id: int
    archived_id: int
    # influence status code -> reference id
    status: dict[str, int]
    meeting_id: int
    call_id: int
    agreed_id: int
    org_id: int
    sphere_id: int


@pytest.fixture
async def db():
    manager = DatabaseManager(make_settings())
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def encryptor():
    return FieldEncryptor(ENCRYPTION_KEY)


@pytest.fixture
def access():
    return AccessResolver()


@pytest.fixture
def audit_svc():
    return AuditService()


@pytest.fixture
def contact_svc(encryptor, access, audit_svc):
    return ContactService(encryptor, access, audit_svc)


@pytest.fixture
def interaction_svc(encryptor, access, audit_svc, contact_svc):
    return InteractionService(encryptor, access, audit_svc, contact_svc)


@pytest.fixture
def watchlist_svc(audit_svc):
    return WatchlistService(audit_svc)


@pytest.fixture
def dashboard_svc(encryptor, access, audit_svc):
    return DashboardService(encryptor, access, audit_svc)


@pytest.fixture
def block_svc(access, audit_svc):
    return BlockService(access, audit_svc)


@pytest.fixture
def user_svc(audit_svc):
    return UserService(audit_svc)


@pytest.fixture
def reference_svc():
    return ReferenceService()


@pytest.fixture
async def world(db) -> World:
    """Users of every role and three blocks.

    ``curator`` is assigned to GOV, ``other_curator`` to BIZ, and
    ``idle_curator`` to nothing. ARC is archived and assigned to ``curator``.
    """
    async with db.get_session() as session:
        users = {}
        for login, role in [
            ("admin", UserRole.ADMIN),
            ("curator", UserRole.CURATOR),
            ("other", UserRole.CURATOR),
            ("idle", UserRole.CURATOR),
            ("analyst", UserRole.THREAT_ANALYST),
        ]:
            user = UserModel(login=login, password_hash=DUMMY_HASH, role=role)
            session.add(user)
            users[login] = user
        gov = BlockModel(name="Government", code="GOV")
        biz = BlockModel(name="Business", code="BIZ")
        arc = BlockModel(name="Archive", code="ARC", status=BlockStatus.ARCHIVED)
        session.add_all([gov, biz, arc])

        refs = {}
        for category, code in [
            ("influence_status", "A"),
            ("influence_status", "B"),
            ("influence_status", "C"),
            ("influence_status", "D"),
            ("interaction_type", "MEET"),
            ("interaction_type", "CALL"),
            ("interaction_result", "AGREED"),
            ("organization", "MIN"),
            ("risk_sphere", "MEDIA"),
        ]:
            ref = ReferenceValueModel(category=category, code=code, name=code)
            session.add(ref)
            refs[code] = ref
        await session.flush()

        session.add_all([
            BlockCuratorModel(block_id=gov.id, user_id=users["curator"].id,
                              curator_type=CuratorType.PRIMARY),
            BlockCuratorModel(block_id=biz.id, user_id=users["other"].id,
                              curator_type=CuratorType.PRIMARY),
            BlockCuratorModel(block_id=arc.id, user_id=users["curator"].id,
                              curator_type=CuratorType.PRIMARY),
        ])

        def ctx(login: str) -> RequestContext:
            return RequestContext(user_id=users[login].id, role=users[login].role)

        return World(
            admin=ctx("admin"),
            curator=ctx("curator"),
            other_curator=ctx("other"),
            idle_curator=ctx("idle"),
            analyst=ctx("analyst"),
            gov_id=gov.id,
            biz_id=biz.id,
            archived_id=arc.id,
            status={code: refs[code].id for code in "ABCD"},
            meeting_id=refs["MEET"].id,
            call_id=refs["CALL"].id,
            agreed_id=refs["AGREED"].id,
            org_id=refs["MIN"].id,
            sphere_id=refs["MEDIA"].id,
        )
