"""Tests for dashboard rollups."""

import json
from datetime import timedelta

from kurator.common.models import utcnow
from kurator.dashboard.service import empty_curator_dashboard, month_delta


async def _seed(db, world, contact_svc, interaction_svc):
    """Two GOV contacts (one overdue) and one BIZ contact with interactions."""
    now = utcnow()
    async with db.get_session() as session:
        overdue = await contact_svc.create_contact(
            session, world.admin, world.gov_id, "Overdue Person",
            influence_status_id=world.status["A"],
            next_touch_date=now - timedelta(days=4),
        )
        fresh = await contact_svc.create_contact(
            session, world.admin, world.gov_id, "Fresh Person",
            influence_status_id=world.status["A"],
        )
        biz = await contact_svc.create_contact(
            session, world.admin, world.biz_id, "Business Person",
            influence_status_id=world.status["C"],
        )
        await interaction_svc.create_interaction(
            session, world.curator, fresh.id,
            interaction_date=now - timedelta(days=2), interaction_type_id=world.meeting_id,
            result_id=world.agreed_id,
        )
        await interaction_svc.create_interaction(
            session, world.other_curator, biz.id,
            interaction_date=now - timedelta(days=1), interaction_type_id=world.call_id,
            status_change_json=json.dumps({"newStatus": world.status["B"]}),
        )
        await interaction_svc.create_interaction(
            session, world.other_curator, biz.id,
            interaction_date=now - timedelta(days=45), interaction_type_id=world.call_id,
        )
    return overdue, fresh, biz


class TestHelpers:
    def test_month_delta(self):
        assert month_delta(15, 10) == {
            "current": 15, "previous": 10, "change": 5, "percent": 50.0,
        }

    def test_month_delta_from_zero(self):
        assert month_delta(3, 0)["percent"] is None

    def test_empty_dashboard(self):
        empty = empty_curator_dashboard()
        assert empty["total_contacts"] == 0
        assert empty["recent_interactions"] == []


class TestCuratorDashboard:
    async def test_scoped_to_assigned_blocks(
        self, db, world, contact_svc, interaction_svc, dashboard_svc,
    ):
        overdue, fresh, _ = await _seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            data = await dashboard_svc.get_curator_dashboard(session, world.curator)
        assert data["total_contacts"] == 2
        assert data["interactions_last_month"] == 1
        assert data["overdue_contacts"] == 1
        assert data["contacts_by_influence_status"] == {str(world.status["A"]): 2}
        assert data["interactions_by_type"] == {str(world.meeting_id): 1}

        attention = data["contacts_requiring_attention"]
        assert [c["id"] for c in attention] == [overdue.id]
        assert attention[0]["full_name"] == "Overdue Person"
        assert attention[0]["days_overdue"] >= 3

        recent = data["recent_interactions"]
        assert [r["contact_id"] for r in recent] == [fresh.id]
        assert recent[0]["contact_name"] == "Fresh Person"

    async def test_average_interval(self, db, world, contact_svc, interaction_svc, dashboard_svc):
        await _seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            data = await dashboard_svc.get_curator_dashboard(session, world.curator)
        # Only the fresh contact has a last interaction, two days ago.
        assert 1.9 <= data["average_interaction_interval"] <= 2.1

    async def test_empty_for_unassigned(
        self, db, world, contact_svc, interaction_svc, dashboard_svc,
    ):
        await _seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            idle = await dashboard_svc.get_curator_dashboard(session, world.idle_curator)
            analyst = await dashboard_svc.get_curator_dashboard(session, world.analyst)
        assert idle == empty_curator_dashboard()
        assert analyst == empty_curator_dashboard()


class TestAdminDashboard:
    async def test_totals(self, db, world, contact_svc, interaction_svc, dashboard_svc):
        await _seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            data = await dashboard_svc.get_admin_dashboard(session)
        assert data["total_contacts"] == 3
        assert data["total_interactions"] == 3
        assert data["total_blocks"] == 2
        assert data["total_users"] == 5
        assert data["new_contacts_last_month"] == 3
        assert data["interactions_last_month"] == 2
        assert data["interactions_delta"]["previous"] == 1
        assert data["contacts_by_block"] == {"GOV": 2, "BIZ": 1}
        assert data["interactions_by_block"] == {"GOV": 1, "BIZ": 1}
        assert data["top_curators_by_activity"] == {"other": 1, "curator": 1}

    async def test_blocks_sharing_a_name_stay_apart(
        self, db, world, contact_svc, block_svc, dashboard_svc,
    ):
        async with db.get_session() as session:
            twin = await block_svc.create_block(
                session, world.admin.user_id, "Government", "GOV2",
            )
        async with db.get_session() as session:
            await contact_svc.create_contact(session, world.admin, world.gov_id, "First")
            await contact_svc.create_contact(session, world.admin, twin.id, "Second")
            await contact_svc.create_contact(session, world.admin, twin.id, "Third")
        async with db.get_session() as session:
            data = await dashboard_svc.get_admin_dashboard(session)
        assert data["contacts_by_block"] == {"GOV2": 2, "GOV": 1}

    async def test_status_dynamics(self, db, world, contact_svc, interaction_svc, dashboard_svc):
        await _seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            data = await dashboard_svc.get_admin_dashboard(session)
        key = f"{world.status['C']}→{world.status['B']}"
        assert data["status_change_dynamics"] == {key: 1}
        assert data["contacts_by_influence_status"] == {
            str(world.status["A"]): 2, str(world.status["B"]): 1,
        }

    async def test_recent_audit_logs(self, db, world, contact_svc, interaction_svc, dashboard_svc):
        await _seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            data = await dashboard_svc.get_admin_dashboard(session)
        logs = data["recent_audit_logs"]
        assert logs
        assert {"id", "user_login", "action", "entity_type", "entity_id", "timestamp"} <= set(
            logs[0]
        )


class TestInteractionStatistics:
    async def test_window(self, db, world, contact_svc, interaction_svc, dashboard_svc):
        await _seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            stats = await dashboard_svc.get_interaction_statistics(session, world.admin)
            wide = await dashboard_svc.get_interaction_statistics(
                session, world.admin, from_date=utcnow() - timedelta(days=60),
            )
        assert stats["total_interactions"] == 2
        assert stats["unique_contacts"] == 2
        assert stats["by_type"] == {str(world.meeting_id): 1, str(world.call_id): 1}
        assert stats["by_result"] == {str(world.agreed_id): 1}
        assert wide["total_interactions"] == 3
        assert wide["unique_contacts"] == 2

    async def test_scoped_and_filtered(
        self, db, world, contact_svc, interaction_svc, dashboard_svc,
    ):
        await _seed(db, world, contact_svc, interaction_svc)
        async with db.get_session() as session:
            curator = await dashboard_svc.get_interaction_statistics(session, world.curator)
            biz_only = await dashboard_svc.get_interaction_statistics(
                session, world.admin, block_id=world.biz_id,
            )
            analyst = await dashboard_svc.get_interaction_statistics(session, world.analyst)
        assert curator["total_interactions"] == 1
        assert biz_only["total_interactions"] == 1
        assert analyst["total_interactions"] == 0
        assert analyst["by_type"] == {}
