"""Tests for block-scoped access resolution."""

import pytest
from sqlalchemy import select

from kurator.blocks.models import BlockModel
from kurator.common.access import BlockScope
from kurator.common.exceptions import ForbiddenError, NotFoundError


class TestBlockScope:
    def test_unrestricted_allows_everything(self):
        scope = BlockScope(unrestricted=True)
        assert scope.allows(42)
        assert not scope.is_empty

    def test_restricted(self):
        scope = BlockScope(unrestricted=False, block_ids=frozenset({1, 2}))
        assert scope.allows(1)
        assert not scope.allows(3)
        assert not scope.is_empty

    def test_empty(self):
        assert BlockScope(unrestricted=False).is_empty

    async def test_apply_filters_query(self, db, world):
        scope = BlockScope(unrestricted=False, block_ids=frozenset({world.gov_id}))
        async with db.get_session() as session:
            result = await session.execute(scope.apply(select(BlockModel), BlockModel.id))
            codes = [b.code for b in result.scalars().all()]
        assert codes == ["GOV"]


class TestResolve:
    async def test_admin_unrestricted(self, db, world, access):
        async with db.get_session() as session:
            scope = await access.block_scope(session, world.admin)
            ids = await access.resolve_accessible_block_ids(session, world.admin)
        assert scope.unrestricted
        assert ids == {world.gov_id, world.biz_id, world.archived_id}

    async def test_curator_assigned_blocks(self, db, world, access):
        async with db.get_session() as session:
            ids = await access.resolve_accessible_block_ids(session, world.curator)
        assert ids == {world.gov_id, world.archived_id}

    async def test_archived_assignment_scoped_but_hidden(
        self, db, world, access, contact_svc, block_svc,
    ):
        async with db.get_session() as session:
            await contact_svc.create_contact(session, world.admin, world.archived_id, "Kept")
        async with db.get_session() as session:
            scope = await access.block_scope(session, world.curator)
            items, total = await contact_svc.list_contacts(session, world.curator)
            blocks = await block_svc.my_blocks(session, world.curator)
        assert scope.allows(world.archived_id)
        assert total == 0
        assert [b.code for b in blocks] == ["GOV"]

    async def test_curator_without_assignments(self, db, world, access):
        async with db.get_session() as session:
            scope = await access.block_scope(session, world.idle_curator)
        assert scope.is_empty

    async def test_analyst_has_no_blocks(self, db, world, access):
        async with db.get_session() as session:
            scope = await access.block_scope(session, world.analyst)
            ids = await access.resolve_accessible_block_ids(session, world.analyst)
        assert scope.is_empty
        assert ids == set()


class TestChecks:
    async def test_can_access_block(self, db, world, access):
        async with db.get_session() as session:
            assert await access.can_access_block(session, world.gov_id, world.curator)
            assert not await access.can_access_block(session, world.biz_id, world.curator)
            assert await access.can_access_block(session, world.biz_id, world.admin)
            assert not await access.can_access_block(session, world.gov_id, world.analyst)

    async def test_can_access_missing_block(self, db, world, access):
        async with db.get_session() as session:
            with pytest.raises(NotFoundError):
                await access.can_access_block(session, 9999, world.admin)

    async def test_ensure_block_access(self, db, world, access):
        async with db.get_session() as session:
            await access.ensure_block_access(session, world.gov_id, world.curator)
            with pytest.raises(ForbiddenError):
                await access.ensure_block_access(session, world.biz_id, world.curator)

    async def test_ensure_contact_access(self, db, world, access, contact_svc):
        async with db.get_session() as session:
            contact = await contact_svc.create_contact(
                session, world.admin, world.biz_id, "Business Person",
            )
        async with db.get_session() as session:
            found = await access.ensure_contact_access(session, contact.id, world.other_curator)
            assert found.contact_code == "BIZ-001"
            assert await access.can_access_contact(session, contact.id, world.admin)
            with pytest.raises(ForbiddenError):
                await access.ensure_contact_access(session, contact.id, world.curator)
            with pytest.raises(NotFoundError):
                await access.ensure_contact_access(session, 9999, world.admin)
