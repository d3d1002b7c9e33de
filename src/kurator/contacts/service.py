"""Contact service: scoped CRUD, soft delete and status tracking."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kurator.audit.models import AuditAction, InfluenceStatusHistoryModel
from kurator.audit.service import AuditService
from kurator.blocks.models import BlockModel, BlockStatus
from kurator.common.access import AccessResolver
from kurator.common.encryption import FieldEncryptor
from kurator.common.exceptions import InvalidArgumentError, NotFoundError
from kurator.common.models import UNSET, utcnow
from kurator.common.security import RequestContext
from kurator.contacts.models import ContactModel
from kurator.references.service import check_references

logger = logging.getLogger(__name__)

# Optional fields that follow "overwrite only when supplied".
_SET_IF_SUPPLIED = (
    "position",
    "influence_type_id",
    "usefulness_description",
    "communication_channel_id",
    "contact_source_id",
    "next_touch_date",
)


def contact_number(contact_code: str) -> int | None:
    """Numeric suffix of a contact code (``GOV-012`` -> 12)."""
    suffix = contact_code.rsplit("-", 1)[-1]
    return int(suffix) if suffix.isdigit() else None


class ContactService:
    """Contacts visible through the block scope of the acting user."""

    def __init__(
        self,
        encryptor: FieldEncryptor,
        access: AccessResolver,
        audit_service: AuditService,
    ):
        self.encryptor = encryptor
        self.access = access
        self.audit_service = audit_service

    def _visible(self):
        return (
            select(ContactModel)
            .join(BlockModel, ContactModel.block_id == BlockModel.id)
            .where(
                ContactModel.is_active == True,  # noqa: E712
                BlockModel.status == BlockStatus.ACTIVE,
            )
        )

    # ── Read ──

    async def list_contacts(
        self,
        session: AsyncSession,
        ctx: RequestContext,
        block_id: int | None = None,
        search: str | None = None,
        influence_status_id: int | None = None,
        influence_type_id: int | None = None,
        organization_id: int | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ContactModel], int]:
        """List active contacts in scope. Returns (items, total_count)."""
        scope = await self.access.block_scope(session, ctx)
        if scope.is_empty:
            return [], 0

        query = scope.apply(self._visible(), ContactModel.block_id)
        if block_id is not None:
            query = query.where(ContactModel.block_id == block_id)
        if influence_status_id is not None:
            query = query.where(ContactModel.influence_status_id == influence_status_id)
        if influence_type_id is not None:
            query = query.where(ContactModel.influence_type_id == influence_type_id)
        if organization_id is not None:
            query = query.where(ContactModel.organization_id == organization_id)
        if search:
            query = query.where(or_(
                ContactModel.contact_code.icontains(search, autoescape=True),
                ContactModel.position.icontains(search, autoescape=True),
            ))

        count_result = await session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar() or 0

        result = await session.execute(
            query.order_by(ContactModel.updated_at.desc(), ContactModel.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def get_contact(
        self, session: AsyncSession, contact_id: int, ctx: RequestContext,
    ) -> ContactModel | None:
        """Return the contact, or None when missing, inactive or not permitted."""
        result = await session.execute(
            self._visible().where(ContactModel.id == contact_id)
        )
        contact = result.scalar_one_or_none()
        if contact is None:
            return None
        scope = await self.access.block_scope(session, ctx)
        if not scope.allows(contact.block_id):
            return None
        return contact

    async def get_overdue(
        self, session: AsyncSession, ctx: RequestContext,
    ) -> list[ContactModel]:
        """Contacts whose next touch date has passed, soonest first."""
        scope = await self.access.block_scope(session, ctx)
        if scope.is_empty:
            return []
        query = scope.apply(self._visible(), ContactModel.block_id).where(
            ContactModel.next_touch_date.is_not(None),
            ContactModel.next_touch_date < utcnow(),
        )
        result = await session.execute(
            query.order_by(ContactModel.next_touch_date.asc(), ContactModel.id.asc())
        )
        return list(result.scalars().all())

    async def get_status_history(
        self, session: AsyncSession, contact_id: int,
    ) -> list[InfluenceStatusHistoryModel]:
        result = await session.execute(
            select(InfluenceStatusHistoryModel)
            .where(InfluenceStatusHistoryModel.contact_id == contact_id)
            .order_by(
                InfluenceStatusHistoryModel.changed_at.desc(),
                InfluenceStatusHistoryModel.id.desc(),
            )
        )
        return list(result.scalars().all())

    # ── Write ──

    async def generate_contact_code(self, session: AsyncSession, block_id: int) -> str:
        """Next ``{BLOCKCODE}-{NNN}`` for the block.

        The sequence follows the highest numeric suffix among all of the
        block's contacts, deactivated ones included, so codes are never reused.
        """
        block = await session.get(BlockModel, block_id)
        if block is None:
            raise InvalidArgumentError(f"Block {block_id} not found")

        result = await session.execute(
            select(ContactModel.contact_code).where(ContactModel.block_id == block_id)
        )
        numbers = [n for n in map(contact_number, result.scalars().all()) if n is not None]
        next_number = max(numbers, default=0) + 1
        return f"{block.code}-{next_number:03d}"

    async def create_contact(
        self,
        session: AsyncSession,
        ctx: RequestContext,
        block_id: int,
        full_name: str,
        organization_id: int | None = None,
        position: str | None = None,
        influence_status_id: int | None = None,
        influence_type_id: int | None = None,
        usefulness_description: str | None = None,
        communication_channel_id: int | None = None,
        contact_source_id: int | None = None,
        next_touch_date: datetime | None = None,
        notes: str | None = None,
    ) -> ContactModel:
        if not full_name or not full_name.strip():
            raise InvalidArgumentError("Full name is required")
        await self.access.ensure_block_access(session, block_id, ctx)
        await check_references(session, {
            "organization": organization_id,
            "influence_status": influence_status_id,
            "influence_type": influence_type_id,
            "communication_channel": communication_channel_id,
            "contact_source": contact_source_id,
        })

        contact_code = await self.generate_contact_code(session, block_id)
        now = utcnow()
        contact = ContactModel(
            contact_code=contact_code,
            block_id=block_id,
            full_name=self.encryptor.encrypt(full_name),
            organization_id=organization_id,
            position=position,
            influence_status_id=influence_status_id,
            influence_type_id=influence_type_id,
            usefulness_description=usefulness_description,
            communication_channel_id=communication_channel_id,
            contact_source_id=contact_source_id,
            next_touch_date=next_touch_date,
            notes=self.encryptor.encrypt(notes) if notes else None,
            responsible_curator_id=ctx.user_id,
            is_active=True,
            created_at=now,
            updated_at=now,
            updated_by=ctx.user_id,
        )
        session.add(contact)
        await session.flush()

        await self.audit_service.record(
            session, ctx.user_id, AuditAction.CREATE, "Contact", contact.id,
            new_values={
                "contact_code": contact_code,
                "influence_status_id": influence_status_id,
            },
        )
        logger.info("Contact created: %s by user %s", contact_code, ctx.user_id)
        return contact

    async def update_contact(
        self,
        session: AsyncSession,
        contact_id: int,
        ctx: RequestContext,
        organization_id: int | None = None,
        position: Any = UNSET,
        influence_status_id: Any = UNSET,
        influence_type_id: Any = UNSET,
        usefulness_description: Any = UNSET,
        communication_channel_id: Any = UNSET,
        contact_source_id: Any = UNSET,
        next_touch_date: Any = UNSET,
        notes: Any = UNSET,
    ) -> ContactModel:
        """Apply a partial update.

        Arguments left as ``UNSET`` keep their stored value and an explicit
        ``None`` clears it. ``organization_id`` is the exception: it is always
        written, so omitting it clears the organization.
        """
        contact = await session.get(ContactModel, contact_id)
        if contact is None:
            raise NotFoundError("Contact not found")
        await self.access.ensure_block_access(session, contact.block_id, ctx)
        await check_references(session, {
            "organization": organization_id,
            "influence_status": influence_status_id,
            "influence_type": influence_type_id,
            "communication_channel": communication_channel_id,
            "contact_source": contact_source_id,
        })

        supplied = {
            "position": position,
            "influence_type_id": influence_type_id,
            "usefulness_description": usefulness_description,
            "communication_channel_id": communication_channel_id,
            "contact_source_id": contact_source_id,
            "next_touch_date": next_touch_date,
        }

        contact.organization_id = organization_id
        for field in _SET_IF_SUPPLIED:
            if supplied[field] is not UNSET:
                setattr(contact, field, supplied[field])
        if notes is not UNSET:
            contact.notes = self.encryptor.encrypt(notes) if notes else None
        contact.updated_at = utcnow()
        contact.updated_by = ctx.user_id

        status_changed = (
            influence_status_id is not UNSET
            and influence_status_id != contact.influence_status_id
        )
        if status_changed:
            await self.change_status(session, contact, influence_status_id, ctx.user_id)
        else:
            await session.flush()
            await self.audit_service.record(
                session, ctx.user_id, AuditAction.UPDATE, "Contact", contact.id,
                new_values={"contact_code": contact.contact_code},
            )

        logger.info("Contact updated: %s by user %s", contact.contact_code, ctx.user_id)
        return contact

    async def change_status(
        self,
        session: AsyncSession,
        contact: ContactModel,
        new_status_id: int | None,
        actor_id: int,
    ) -> bool:
        """Move a contact to a new influence status with history and audit.

        Returns False without writing anything when the status is unchanged.
        """
        previous = contact.influence_status_id
        if previous == new_status_id:
            return False
        await check_references(session, {"influence_status": new_status_id})
        contact.influence_status_id = new_status_id
        contact.updated_at = utcnow()
        contact.updated_by = actor_id
        await session.flush()
        await self.audit_service.record_status_change(
            session, actor_id, contact.id, previous, new_status_id,
        )
        logger.info(
            "Influence status of %s changed %s -> %s by user %s",
            contact.contact_code, previous, new_status_id, actor_id,
        )
        return True

    async def delete_contact(
        self, session: AsyncSession, contact_id: int, actor_id: int,
    ) -> None:
        """Deactivate a contact. Repeating the call is harmless."""
        contact = await session.get(ContactModel, contact_id)
        if contact is None:
            raise NotFoundError("Contact not found")
        contact.is_active = False
        contact.updated_at = utcnow()
        contact.updated_by = actor_id
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.DELETE, "Contact", contact.id,
            old_values={"contact_code": contact.contact_code},
        )
        logger.info("Contact deactivated: %s by user %s", contact.contact_code, actor_id)
