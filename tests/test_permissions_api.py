"""
API tests for permission introspection and the service endpoints.
"""


class TestMyPermissions:
    """GET /permissions/me."""

    async def test_manager(self, client, headers, sales_org):
        response = await client.get("/permissions/me", headers=headers(sales_org.manager))

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == sales_org.manager.id
        assert body["organization_id"] == sales_org.org.id
        assert body["role"]["name"] == "Manager"
        assert body["team_ids"] == sorted([
            sales_org.manager.id, sales_org.rep1.id, sales_org.intern.id, sales_org.rep2.id,
        ])
        assert body["permissions"]["leads"]["viewTeam"] is True
        assert body["permissions"]["leads"]["viewAll"] is False
        assert "viewOwn" not in body["permissions"]["users"]

    async def test_member_team_is_self(self, client, headers, sales_org):
        response = await client.get("/permissions/me", headers=headers(sales_org.rep2))

        assert response.json()["team_ids"] == [sales_org.rep2.id]

    async def test_user_without_role(self, client, headers, factory, sales_org):
        roleless = await factory.user(sales_org.org)

        response = await client.get("/permissions/me", headers=headers(roleless))

        assert response.status_code == 200
        body = response.json()
        assert body["role"] is None
        assert not any(
            granted for flags in body["permissions"].values() for granted in flags.values()
        )

    async def test_requires_authentication(self, client):
        response = await client.get("/permissions/me")

        assert response.status_code in (401, 403)


class TestServiceEndpoints:
    """Unauthenticated endpoints."""

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "online"
