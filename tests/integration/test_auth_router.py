"""Integration tests for health, login and user management endpoints."""


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["service"] == "kurator"


class TestAuth:
    async def _create_user(self, client, admin_headers, login="newbie", role="Curator"):
        resp = await client.post("/users", json={
            "login": login, "password": "long-enough-pw", "role": role,
        }, headers=admin_headers)
        assert resp.status_code == 201
        return resp.json()

    async def test_login_and_me(self, client, admin_headers):
        user = await self._create_user(client, admin_headers)
        resp = await client.post("/auth/login", json={
            "login": "newbie", "password": "long-enough-pw",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["token_type"] == "bearer"
        assert data["role"] == "Curator"
        assert data["is_first_login"] is True

        me = await client.get("/auth/me", headers={
            "Authorization": f"Bearer {data['access_token']}",
        })
        assert me.status_code == 200
        assert me.json()["id"] == user["id"]
        assert me.json()["last_login_at"] is not None

    async def test_login_wrong_password(self, client, admin_headers):
        await self._create_user(client, admin_headers)
        resp = await client.post("/auth/login", json={
            "login": "newbie", "password": "not-the-password",
        })
        assert resp.status_code == 401

    async def test_login_unknown_user(self, client):
        resp = await client.post("/auth/login", json={"login": "ghost", "password": "x"})
        assert resp.status_code == 401

    async def test_missing_token(self, client):
        resp = await client.get("/auth/me")
        assert resp.status_code == 401

    async def test_invalid_token(self, client):
        resp = await client.get("/auth/me", headers={"Authorization": "Bearer nonsense"})
        assert resp.status_code == 401

    async def test_wrong_scheme(self, client):
        resp = await client.get("/auth/me", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401


class TestUsers:
    async def test_admin_only(self, client, curator_headers, analyst_headers):
        assert (await client.get("/users", headers=curator_headers)).status_code == 403
        assert (await client.get("/users", headers=analyst_headers)).status_code == 403

    async def test_list_and_filter(self, client, admin_headers, curator_user, analyst_user):
        resp = await client.get("/users", headers=admin_headers)
        assert resp.status_code == 200
        assert {u["login"] for u in resp.json()} == {"admin", "curator", "analyst"}

        curators = await client.get("/users/curators", headers=admin_headers)
        assert [u["login"] for u in curators.json()] == ["curator"]

        analysts = await client.get(
            "/users", params={"role": "ThreatAnalyst"}, headers=admin_headers,
        )
        assert [u["login"] for u in analysts.json()] == ["analyst"]

    async def test_response_has_no_secrets(self, client, admin_headers, curator_user):
        resp = await client.get(f"/users/{curator_user}", headers=admin_headers)
        assert resp.status_code == 200
        assert "password_hash" not in resp.json()
        assert "mfa_secret" not in resp.json()

    async def test_duplicate_login(self, client, admin_headers, curator_user):
        resp = await client.post("/users", json={
            "login": "curator", "password": "long-enough-pw", "role": "Curator",
        }, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json()["code"] == "CONFLICT"

    async def test_short_password_rejected(self, client, admin_headers):
        resp = await client.post("/users", json={
            "login": "newbie", "password": "short", "role": "Curator",
        }, headers=admin_headers)
        assert resp.status_code == 422

    async def test_missing_user_error_shape(self, client, admin_headers):
        resp = await client.get("/users/9999", headers=admin_headers)
        assert resp.status_code == 404
        body = resp.json()
        assert body["code"] == "NOT_FOUND"
        assert "9999" in body["error"]

    async def test_update_and_change_password(self, client, admin_headers, curator_user):
        resp = await client.put(f"/users/{curator_user}", json={
            "role": "ThreatAnalyst",
        }, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["role"] == "ThreatAnalyst"

        resp = await client.post(f"/users/{curator_user}/change-password", json={
            "new_password": "brand-new-password",
        }, headers=admin_headers)
        assert resp.status_code == 204

        login = await client.post("/auth/login", json={
            "login": "curator", "password": "brand-new-password",
        })
        assert login.status_code == 200
        assert login.json()["is_first_login"] is False

    async def test_cannot_deactivate_self(self, client, admin_headers, admin_user):
        resp = await client.delete(f"/users/{admin_user}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_ARGUMENT"

    async def test_deactivate(self, client, admin_headers, analyst_user):
        resp = await client.delete(f"/users/{analyst_user}", headers=admin_headers)
        assert resp.status_code == 204
        active = await client.get(
            "/users", params={"active_only": "true"}, headers=admin_headers,
        )
        assert analyst_user not in [u["id"] for u in active.json()]

    async def test_assigned_curator_cannot_be_deactivated(
        self, client, admin_headers, curator_user, gov_block,
    ):
        resp = await client.delete(f"/users/{curator_user}", headers=admin_headers)
        assert resp.status_code == 409
