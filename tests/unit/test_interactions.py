"""Tests for the interaction service and status-change payload handling."""

import json
from datetime import timedelta

import pytest
from sqlalchemy import select

from kurator.audit.models import AuditAction, AuditLogModel
from kurator.common.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    MalformedPayloadError,
    NotFoundError,
)
from kurator.common.models import as_utc, utcnow
from kurator.contacts.models import ContactModel
from kurator.interactions.models import InteractionModel
from kurator.interactions.service import parse_status_change


async def _contact(db, contact_svc, ctx, block_id, **kwargs):
    async with db.get_session() as session:
        return await contact_svc.create_contact(session, ctx, block_id, "Person", **kwargs)


async def _reload_contact(db, contact_id):
    async with db.get_session() as session:
        return await session.get(ContactModel, contact_id)


class TestParseStatusChange:
    def test_string_id(self):
        assert parse_status_change('{"newStatus": "2"}') == 2

    def test_integer_id(self):
        assert parse_status_change('{"newStatus": 3}') == 3

    def test_padded_string(self):
        assert parse_status_change('{"newStatus": " 4 "}') == 4

    @pytest.mark.parametrize("payload", [
        "not json",
        "[1, 2]",
        '{"status": "2"}',
        '{"newStatus": "B"}',
        '{"newStatus": true}',
        '{"newStatus": null}',
        '{"newStatus": 2.5}',
    ])
    def test_malformed(self, payload):
        with pytest.raises(MalformedPayloadError):
            parse_status_change(payload)

    def test_none_payload(self):
        with pytest.raises(MalformedPayloadError):
            parse_status_change(None)


class TestCreate:
    async def test_updates_contact_dates(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(db, contact_svc, world.curator, world.gov_id)
        touch = utcnow() + timedelta(days=14)
        async with db.get_session() as session:
            interaction = await interaction_svc.create_interaction(
                session, world.curator, contact.id,
                interaction_type_id=world.meeting_id,
                comment="Discussed the forum",
                next_touch_date=touch,
            )
        stored = await _reload_contact(db, contact.id)
        assert as_utc(stored.last_interaction_date) == as_utc(interaction.interaction_date)
        assert as_utc(stored.next_touch_date) == touch
        assert interaction.curator_id == world.curator.user_id

    async def test_without_next_touch_keeps_contact_date(
        self, db, world, contact_svc, interaction_svc,
    ):
        touch = utcnow() + timedelta(days=30)
        contact = await _contact(
            db, contact_svc, world.curator, world.gov_id, next_touch_date=touch,
        )
        async with db.get_session() as session:
            await interaction_svc.create_interaction(session, world.curator, contact.id)
        stored = await _reload_contact(db, contact.id)
        assert as_utc(stored.next_touch_date) == touch

    async def test_comment_encrypted(self, db, world, contact_svc, interaction_svc, encryptor):
        contact = await _contact(db, contact_svc, world.curator, world.gov_id)
        async with db.get_session() as session:
            interaction = await interaction_svc.create_interaction(
                session, world.curator, contact.id, comment="private remark",
            )
        assert interaction.comment.ciphertext.startswith("v2:")
        assert encryptor.decrypt(interaction.comment) == "private remark"

    async def test_create_audited(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(db, contact_svc, world.curator, world.gov_id)
        async with db.get_session() as session:
            interaction = await interaction_svc.create_interaction(
                session, world.curator, contact.id, interaction_type_id=world.call_id,
            )
        async with db.get_session() as session:
            entry = (await session.execute(
                select(AuditLogModel).where(AuditLogModel.entity_type == "Interaction")
            )).scalar_one()
        assert entry.entity_id == str(interaction.id)
        assert json.loads(entry.new_values_json) == {
            "contact_code": "GOV-001", "interaction_type_id": world.call_id,
        }

    async def test_foreign_contact_forbidden(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(db, contact_svc, world.admin, world.biz_id)
        async with db.get_session() as session:
            with pytest.raises(ForbiddenError):
                await interaction_svc.create_interaction(session, world.curator, contact.id)

    async def test_missing_contact(self, db, world, interaction_svc):
        async with db.get_session() as session:
            with pytest.raises(NotFoundError):
                await interaction_svc.create_interaction(session, world.admin, 9999)

    async def test_unknown_references_rejected(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(db, contact_svc, world.curator, world.gov_id)
        async with db.get_session() as session:
            with pytest.raises(InvalidArgumentError):
                await interaction_svc.create_interaction(
                    session, world.curator, contact.id, interaction_type_id=9999,
                )
            with pytest.raises(InvalidArgumentError):
                await interaction_svc.create_interaction(
                    session, world.curator, contact.id, result_id=world.meeting_id,
                )


class TestStatusChangePayload:
    async def test_applies_new_status(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(
            db, contact_svc, world.curator, world.gov_id,
            influence_status_id=world.status["A"],
        )
        payload = json.dumps({"newStatus": str(world.status["B"])})
        async with db.get_session() as session:
            await interaction_svc.create_interaction(
                session, world.curator, contact.id, status_change_json=payload,
            )
        stored = await _reload_contact(db, contact.id)
        assert stored.influence_status_id == world.status["B"]

        async with db.get_session() as session:
            history = await contact_svc.get_status_history(session, contact.id)
            actions = (await session.execute(
                select(AuditLogModel.action).where(AuditLogModel.entity_type == "Contact")
            )).scalars().all()
        assert len(history) == 1
        assert history[0].previous_status == str(world.status["A"])
        assert history[0].new_status == str(world.status["B"])
        assert actions.count(AuditAction.STATUS_CHANGE) == 1

    async def test_malformed_payload_skipped(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(
            db, contact_svc, world.curator, world.gov_id,
            influence_status_id=world.status["A"],
        )
        async with db.get_session() as session:
            interaction = await interaction_svc.create_interaction(
                session, world.curator, contact.id, status_change_json="{broken",
            )
        assert interaction.id is not None
        assert interaction.status_change_json == "{broken"
        stored = await _reload_contact(db, contact.id)
        assert stored.influence_status_id == world.status["A"]
        async with db.get_session() as session:
            assert await contact_svc.get_status_history(session, contact.id) == []

    async def test_unknown_status_skipped(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(
            db, contact_svc, world.curator, world.gov_id,
            influence_status_id=world.status["A"],
        )
        for new_status in (9999, world.meeting_id):
            payload = json.dumps({"newStatus": new_status})
            async with db.get_session() as session:
                interaction = await interaction_svc.create_interaction(
                    session, world.curator, contact.id, status_change_json=payload,
                )
            assert interaction.id is not None
        stored = await _reload_contact(db, contact.id)
        assert stored.influence_status_id == world.status["A"]
        async with db.get_session() as session:
            assert await contact_svc.get_status_history(session, contact.id) == []

    async def test_same_status_writes_nothing(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(
            db, contact_svc, world.curator, world.gov_id,
            influence_status_id=world.status["A"],
        )
        payload = json.dumps({"newStatus": world.status["A"]})
        async with db.get_session() as session:
            await interaction_svc.create_interaction(
                session, world.curator, contact.id, status_change_json=payload,
            )
            assert await contact_svc.get_status_history(session, contact.id) == []

    async def test_update_applies_payload(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(db, contact_svc, world.curator, world.gov_id)
        async with db.get_session() as session:
            interaction = await interaction_svc.create_interaction(
                session, world.curator, contact.id,
            )
        payload = json.dumps({"newStatus": world.status["D"]})
        async with db.get_session() as session:
            await interaction_svc.update_interaction(
                session, interaction.id, world.curator, status_change_json=payload,
            )
            history = await contact_svc.get_status_history(session, contact.id)
        assert history[0].previous_status == "null"
        assert history[0].new_status == str(world.status["D"])


class TestReadAndScope:
    async def _seed(self, db, world, contact_svc, interaction_svc):
        gov = await _contact(db, contact_svc, world.admin, world.gov_id)
        biz = await _contact(db, contact_svc, world.admin, world.biz_id)
        now = utcnow()
        async with db.get_session() as session:
            old = await interaction_svc.create_interaction(
                session, world.admin, gov.id,
                interaction_date=now - timedelta(days=3), interaction_type_id=world.call_id,
            )
            new = await interaction_svc.create_interaction(
                session, world.admin, gov.id,
                interaction_date=now - timedelta(days=1), interaction_type_id=world.meeting_id,
            )
            other = await interaction_svc.create_interaction(session, world.admin, biz.id)
        return old, new, other

    async def test_list_newest_first(self, db, world, contact_svc, interaction_svc):
        old, new, _ = await self._seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            items, total = await interaction_svc.list_interactions(session, world.curator)
        assert total == 2
        assert [i.id for i in items] == [new.id, old.id]

    async def test_list_filters(self, db, world, contact_svc, interaction_svc):
        old, new, other = await self._seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            calls, _ = await interaction_svc.list_interactions(
                session, world.admin, interaction_type_id=world.call_id,
            )
            biz, _ = await interaction_svc.list_interactions(
                session, world.admin, block_id=world.biz_id,
            )
            recent, _ = await interaction_svc.list_interactions(
                session, world.admin, from_date=utcnow() - timedelta(days=2),
            )
        assert [i.id for i in calls] == [old.id]
        assert [i.id for i in biz] == [other.id]
        assert {i.id for i in recent} == {new.id, other.id}

    async def test_no_scope(self, db, world, contact_svc, interaction_svc):
        await self._seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            items, total = await interaction_svc.list_interactions(session, world.idle_curator)
            recent = await interaction_svc.get_recent(session, world.analyst)
        assert items == [] and total == 0
        assert recent == []

    async def test_get_interaction_scope(self, db, world, contact_svc, interaction_svc):
        _, _, other = await self._seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            assert await interaction_svc.get_interaction(session, other.id, world.curator) is None
            found = await interaction_svc.get_interaction(session, other.id, world.other_curator)
        assert found.id == other.id

    async def test_recent_limit(self, db, world, contact_svc, interaction_svc):
        await self._seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            recent = await interaction_svc.get_recent(session, world.admin, count=2)
        assert len(recent) == 2


class TestUpdateAndDeactivate:
    async def test_update_next_touch_propagates(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(db, contact_svc, world.curator, world.gov_id)
        async with db.get_session() as session:
            interaction = await interaction_svc.create_interaction(
                session, world.curator, contact.id, comment="first",
            )
        touch = utcnow() + timedelta(days=7)
        async with db.get_session() as session:
            updated = await interaction_svc.update_interaction(
                session, interaction.id, world.curator, next_touch_date=touch,
            )
        stored = await _reload_contact(db, contact.id)
        assert as_utc(stored.next_touch_date) == touch
        assert as_utc(updated.next_touch_date) == touch

    async def test_update_leaves_unsupplied(
        self, db, world, contact_svc, interaction_svc, encryptor,
    ):
        contact = await _contact(db, contact_svc, world.curator, world.gov_id)
        async with db.get_session() as session:
            interaction = await interaction_svc.create_interaction(
                session, world.curator, contact.id,
                comment="keep me", result_id=world.agreed_id,
            )
        async with db.get_session() as session:
            updated = await interaction_svc.update_interaction(
                session, interaction.id, world.curator, interaction_type_id=world.call_id,
            )
        assert encryptor.decrypt(updated.comment) == "keep me"
        assert updated.result_id == world.agreed_id
        assert updated.interaction_type_id == world.call_id

    async def test_update_foreign_forbidden(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(db, contact_svc, world.admin, world.biz_id)
        async with db.get_session() as session:
            interaction = await interaction_svc.create_interaction(
                session, world.admin, contact.id,
            )
        async with db.get_session() as session:
            with pytest.raises(ForbiddenError):
                await interaction_svc.update_interaction(
                    session, interaction.id, world.curator, comment="x",
                )

    async def test_deactivate_twice(self, db, world, contact_svc, interaction_svc):
        contact = await _contact(db, contact_svc, world.admin, world.gov_id)
        async with db.get_session() as session:
            interaction = await interaction_svc.create_interaction(
                session, world.admin, contact.id,
            )
        for _ in range(2):
            async with db.get_session() as session:
                await interaction_svc.deactivate_interaction(
                    session, interaction.id, world.admin.user_id,
                )
        async with db.get_session() as session:
            assert await interaction_svc.get_interaction(
                session, interaction.id, world.admin,
            ) is None
            stored = await session.get(InteractionModel, interaction.id)
        assert stored.is_active is False

    async def test_deactivate_missing(self, db, world, interaction_svc):
        async with db.get_session() as session:
            with pytest.raises(NotFoundError):
                await interaction_svc.deactivate_interaction(session, 9999, world.admin.user_id)
