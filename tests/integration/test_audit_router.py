"""Integration tests for the audit log API endpoints."""


class TestAuditRouter:
    async def _setup(self, client, admin_headers, curator_headers, gov_block, biz_block):
        """One GOV contact with an interaction, one BIZ contact."""
        gov = (await client.post("/contacts", json={
            "block_id": gov_block, "full_name": "Pavel Kim",
        }, headers=curator_headers)).json()
        interaction = (await client.post("/interactions", json={
            "contact_id": gov["id"],
        }, headers=curator_headers)).json()
        biz = (await client.post("/contacts", json={
            "block_id": biz_block, "full_name": "Irina Belova",
        }, headers=admin_headers)).json()
        return gov, interaction, biz

    async def test_admin_only(self, client, curator_headers, analyst_headers):
        assert (await client.get("/audit-log", headers=curator_headers)).status_code == 403
        assert (await client.get("/audit-log/recent", headers=analyst_headers)).status_code == 403

    async def test_list_filters(
        self, client, admin_headers, curator_headers, curator_user, gov_block, biz_block,
    ):
        gov, interaction, _ = await self._setup(
            client, admin_headers, curator_headers, gov_block, biz_block,
        )

        contacts = await client.get(
            "/audit-log", params={"entity_type": "Contact"}, headers=admin_headers,
        )
        assert contacts.status_code == 200
        assert contacts.json()["total"] == 2

        by_curator = await client.get(
            "/audit-log", params={"user_id": curator_user}, headers=admin_headers,
        )
        assert by_curator.json()["total"] == 2
        assert {e["user_login"] for e in by_curator.json()["items"]} == {"curator"}

        by_block = await client.get(
            "/audit-log", params={"block_id": gov_block}, headers=admin_headers,
        )
        pairs = {(e["entity_type"], e["entity_id"]) for e in by_block.json()["items"]}
        assert pairs == {("Contact", str(gov["id"])), ("Interaction", str(interaction["id"]))}

    async def test_pagination(self, client, admin_headers, curator_headers, gov_block, biz_block):
        await self._setup(client, admin_headers, curator_headers, gov_block, biz_block)
        resp = await client.get(
            "/audit-log", params={"entity_type": "Contact", "page_size": 1},
            headers=admin_headers,
        )
        data = resp.json()
        assert data["total"] == 2
        assert data["pages"] == 2
        assert len(data["items"]) == 1

    async def test_snapshots_are_parsed(
        self, client, admin_headers, curator_headers, gov_block, biz_block,
    ):
        gov, _, _ = await self._setup(client, admin_headers, curator_headers, gov_block, biz_block)
        resp = await client.get(f"/audit-log/entity/Contact/{gov['id']}", headers=admin_headers)
        entries = resp.json()
        assert entries[-1]["action"] == "Create"
        assert entries[-1]["old_values"] is None
        assert isinstance(entries[-1]["new_values"], dict)
        assert "Pavel Kim" not in resp.text

    async def test_recent_and_user_activity(
        self, client, admin_headers, curator_headers, curator_user, gov_block, biz_block,
    ):
        await self._setup(client, admin_headers, curator_headers, gov_block, biz_block)
        recent = await client.get(
            "/audit-log/recent", params={"count": 2}, headers=admin_headers,
        )
        assert len(recent.json()) == 2

        activity = await client.get(
            f"/audit-log/user/{curator_user}", params={"limit": 1}, headers=admin_headers,
        )
        assert activity.status_code == 200
        assert len(activity.json()) == 1
        assert activity.json()[0]["entity_type"] == "Interaction"

    async def test_statistics(self, client, admin_headers, curator_headers, gov_block, biz_block):
        await self._setup(client, admin_headers, curator_headers, gov_block, biz_block)
        resp = await client.get("/audit-log/statistics", headers=admin_headers)
        assert resp.status_code == 200
        stats = resp.json()
        assert stats["by_entity_type"]["Contact"] == 2
        assert stats["by_entity_type"]["Interaction"] == 1
        assert stats["by_user"]["curator"] == 2
        assert stats["total"] >= 3
