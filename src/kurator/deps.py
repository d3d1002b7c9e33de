"""Dependency injection singletons for Kurator."""

from kurator.common.access import AccessResolver
from kurator.common.config import get_settings
from kurator.common.database import DatabaseManager
from kurator.common.encryption import FieldEncryptor
from kurator.audit.service import AuditService
from kurator.blocks.service import BlockService
from kurator.contacts.service import ContactService
from kurator.dashboard.service import DashboardService
from kurator.interactions.service import InteractionService
from kurator.references.service import ReferenceService
from kurator.users.service import UserService
from kurator.watchlist.service import WatchlistService

_db: DatabaseManager | None = None
_encryptor: FieldEncryptor | None = None
_access: AccessResolver | None = None
_audit: AuditService | None = None
_contacts: ContactService | None = None
_interactions: InteractionService | None = None
_watchlist: WatchlistService | None = None
_dashboard: DashboardService | None = None
_blocks: BlockService | None = None
_users: UserService | None = None
_references: ReferenceService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_encryptor() -> FieldEncryptor:
    global _encryptor
    if _encryptor is None:
        settings = get_settings()
        _encryptor = FieldEncryptor(
            settings.encryption_key, legacy_mode=settings.encryption_legacy_mode
        )
    return _encryptor


def get_access_resolver() -> AccessResolver:
    global _access
    if _access is None:
        _access = AccessResolver()
    return _access


def get_audit_service() -> AuditService:
    global _audit
    if _audit is None:
        _audit = AuditService()
    return _audit


def get_contact_service() -> ContactService:
    global _contacts
    if _contacts is None:
        _contacts = ContactService(
            get_encryptor(), get_access_resolver(), get_audit_service(),
        )
    return _contacts


def get_interaction_service() -> InteractionService:
    global _interactions
    if _interactions is None:
        _interactions = InteractionService(
            get_encryptor(), get_access_resolver(), get_audit_service(),
            get_contact_service(),
        )
    return _interactions


def get_watchlist_service() -> WatchlistService:
    global _watchlist
    if _watchlist is None:
        _watchlist = WatchlistService(get_audit_service())
    return _watchlist


def get_dashboard_service() -> DashboardService:
    global _dashboard
    if _dashboard is None:
        _dashboard = DashboardService(
            get_encryptor(), get_access_resolver(), get_audit_service(),
        )
    return _dashboard


def get_block_service() -> BlockService:
    global _blocks
    if _blocks is None:
        _blocks = BlockService(get_access_resolver(), get_audit_service())
    return _blocks


def get_user_service() -> UserService:
    global _users
    if _users is None:
        _users = UserService(get_audit_service())
    return _users


def get_reference_service() -> ReferenceService:
    global _references
    if _references is None:
        _references = ReferenceService()
    return _references


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _encryptor, _access, _audit, _contacts, _interactions
    global _watchlist, _dashboard, _blocks, _users, _references
    _db = None
    _encryptor = None
    _access = None
    _audit = None
    _contacts = None
    _interactions = None
    _watchlist = None
    _dashboard = None
    _blocks = None
    _users = None
    _references = None
