"""Interaction service: touches logged against contacts."""

import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kurator.audit.models import AuditAction
from kurator.audit.service import AuditService
from kurator.blocks.models import BlockModel, BlockStatus
from kurator.common.access import AccessResolver
from kurator.common.encryption import FieldEncryptor
from kurator.common.exceptions import InvalidArgumentError, MalformedPayloadError, NotFoundError
from kurator.common.models import UNSET, utcnow
from kurator.common.security import RequestContext
from kurator.contacts.models import ContactModel
from kurator.contacts.service import ContactService
from kurator.interactions.models import InteractionModel
from kurator.references.service import check_references

logger = logging.getLogger(__name__)


def parse_status_change(payload: str) -> int:
    """Extract the target influence status from ``{"newStatus": "2"}``.

    Raises MalformedPayloadError for anything that is not a JSON object whose
    ``newStatus`` is an integer or a string holding one.
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError(f"Invalid status change JSON: {exc}") from exc
    if not isinstance(data, dict) or "newStatus" not in data:
        raise MalformedPayloadError("Status change payload has no newStatus")

    value = data["newStatus"]
    if isinstance(value, bool):
        raise MalformedPayloadError("newStatus must be an integer id")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise MalformedPayloadError(f"newStatus is not an integer id: {value!r}")


class InteractionService:
    """Interactions scoped through the block of their contact."""

    def __init__(
        self,
        encryptor: FieldEncryptor,
        access: AccessResolver,
        audit_service: AuditService,
        contact_service: ContactService,
    ):
        self.encryptor = encryptor
        self.access = access
        self.audit_service = audit_service
        self.contact_service = contact_service

    def _visible(self):
        return (
            select(InteractionModel)
            .join(ContactModel, InteractionModel.contact_id == ContactModel.id)
            .join(BlockModel, ContactModel.block_id == BlockModel.id)
            .where(
                InteractionModel.is_active == True,  # noqa: E712
                BlockModel.status == BlockStatus.ACTIVE,
            )
        )

    async def _apply_status_change(
        self,
        session: AsyncSession,
        contact: ContactModel,
        payload: str | None,
        actor_id: int,
    ) -> None:
        if not payload:
            return
        try:
            new_status = parse_status_change(payload)
            await self.contact_service.change_status(session, contact, new_status, actor_id)
        except (MalformedPayloadError, InvalidArgumentError) as exc:
            logger.warning(
                "Skipping status change for contact %s: %s", contact.contact_code, exc.message,
                extra={"payload": payload},
            )

    # ── Read ──

    async def list_interactions(
        self,
        session: AsyncSession,
        ctx: RequestContext,
        contact_id: int | None = None,
        block_id: int | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        interaction_type_id: int | None = None,
        result_id: int | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[InteractionModel], int]:
        scope = await self.access.block_scope(session, ctx)
        if scope.is_empty:
            return [], 0

        query = scope.apply(self._visible(), ContactModel.block_id)
        if contact_id is not None:
            query = query.where(InteractionModel.contact_id == contact_id)
        if block_id is not None:
            query = query.where(ContactModel.block_id == block_id)
        if from_date is not None:
            query = query.where(InteractionModel.interaction_date >= from_date)
        if to_date is not None:
            query = query.where(InteractionModel.interaction_date <= to_date)
        if interaction_type_id is not None:
            query = query.where(InteractionModel.interaction_type_id == interaction_type_id)
        if result_id is not None:
            query = query.where(InteractionModel.result_id == result_id)

        count_result = await session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar() or 0

        result = await session.execute(
            query.order_by(
                InteractionModel.interaction_date.desc(), InteractionModel.id.desc()
            )
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def get_interaction(
        self, session: AsyncSession, interaction_id: int, ctx: RequestContext,
    ) -> InteractionModel | None:
        """Return the interaction, or None when missing or not permitted."""
        result = await session.execute(
            self._visible()
            .add_columns(ContactModel.block_id)
            .where(InteractionModel.id == interaction_id)
        )
        row = result.first()
        if row is None:
            return None
        interaction, block_id = row
        scope = await self.access.block_scope(session, ctx)
        if not scope.allows(block_id):
            return None
        return interaction

    async def get_recent(
        self, session: AsyncSession, ctx: RequestContext, count: int = 5,
    ) -> list[InteractionModel]:
        items, _ = await self.list_interactions(session, ctx, page=1, page_size=count)
        return items

    # ── Write ──

    async def create_interaction(
        self,
        session: AsyncSession,
        ctx: RequestContext,
        contact_id: int,
        interaction_date: datetime | None = None,
        interaction_type_id: int | None = None,
        result_id: int | None = None,
        comment: str | None = None,
        status_change_json: str | None = None,
        attachments_json: str | None = None,
        next_touch_date: datetime | None = None,
    ) -> InteractionModel:
        contact = await self.access.ensure_contact_access(session, contact_id, ctx)
        await check_references(session, {
            "interaction_type": interaction_type_id,
            "interaction_result": result_id,
        })

        now = utcnow()
        interaction = InteractionModel(
            contact_id=contact.id,
            interaction_date=interaction_date or now,
            interaction_type_id=interaction_type_id,
            result_id=result_id,
            curator_id=ctx.user_id,
            comment=self.encryptor.encrypt(comment) if comment else None,
            status_change_json=status_change_json,
            attachments_json=attachments_json,
            next_touch_date=next_touch_date,
            is_active=True,
            created_at=now,
            updated_at=now,
            updated_by=ctx.user_id,
        )
        session.add(interaction)

        contact.last_interaction_date = interaction.interaction_date
        if next_touch_date is not None:
            contact.next_touch_date = next_touch_date
        contact.updated_at = now
        contact.updated_by = ctx.user_id
        await session.flush()

        await self._apply_status_change(session, contact, status_change_json, ctx.user_id)
        await self.audit_service.record(
            session, ctx.user_id, AuditAction.CREATE, "Interaction", interaction.id,
            new_values={
                "contact_code": contact.contact_code,
                "interaction_type_id": interaction_type_id,
            },
        )
        logger.info(
            "Interaction created for contact %s by user %s", contact.contact_code, ctx.user_id
        )
        return interaction

    async def update_interaction(
        self,
        session: AsyncSession,
        interaction_id: int,
        ctx: RequestContext,
        interaction_date: Any = UNSET,
        interaction_type_id: Any = UNSET,
        result_id: Any = UNSET,
        comment: Any = UNSET,
        status_change_json: Any = UNSET,
        attachments_json: Any = UNSET,
        next_touch_date: Any = UNSET,
    ) -> InteractionModel:
        """Apply a partial update; ``UNSET`` arguments are left alone."""
        interaction = await session.get(InteractionModel, interaction_id)
        if interaction is None:
            raise NotFoundError("Interaction not found")
        contact = await self.access.ensure_contact_access(session, interaction.contact_id, ctx)
        await check_references(session, {
            "interaction_type": interaction_type_id,
            "interaction_result": result_id,
        })

        now = utcnow()
        if interaction_date is not UNSET and interaction_date is not None:
            interaction.interaction_date = interaction_date
        if interaction_type_id is not UNSET:
            interaction.interaction_type_id = interaction_type_id
        if result_id is not UNSET:
            interaction.result_id = result_id
        if comment is not UNSET:
            interaction.comment = self.encryptor.encrypt(comment) if comment else None
        if status_change_json is not UNSET:
            interaction.status_change_json = status_change_json
        if attachments_json is not UNSET:
            interaction.attachments_json = attachments_json
        if next_touch_date is not UNSET:
            interaction.next_touch_date = next_touch_date
            if next_touch_date is not None:
                contact.next_touch_date = next_touch_date
                contact.updated_at = now
                contact.updated_by = ctx.user_id
        interaction.updated_at = now
        interaction.updated_by = ctx.user_id
        await session.flush()

        if status_change_json is not UNSET:
            await self._apply_status_change(session, contact, status_change_json, ctx.user_id)
        await self.audit_service.record(
            session, ctx.user_id, AuditAction.UPDATE, "Interaction", interaction.id,
            new_values={"contact_code": contact.contact_code},
        )
        logger.info("Interaction %s updated by user %s", interaction.id, ctx.user_id)
        return interaction

    async def deactivate_interaction(
        self, session: AsyncSession, interaction_id: int, actor_id: int,
    ) -> None:
        """Soft delete. Repeating the call is harmless."""
        interaction = await session.get(InteractionModel, interaction_id)
        if interaction is None:
            raise NotFoundError("Interaction not found")
        contact = await session.get(ContactModel, interaction.contact_id)

        interaction.is_active = False
        interaction.updated_at = utcnow()
        interaction.updated_by = actor_id
        await session.flush()

        await self.audit_service.record(
            session, actor_id, AuditAction.DELETE, "Interaction", interaction.id,
            old_values={"contact_code": contact.contact_code if contact else None},
        )
        logger.info("Interaction %s deactivated by user %s", interaction.id, actor_id)
