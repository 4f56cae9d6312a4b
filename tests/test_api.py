"""Tests for the HTTP control API."""

import httpx
import pytest

from api.gateway import APIGateway

from conftest import KUMA_URL


@pytest.fixture
async def client(supervisor, controller, seeded):
    gateway = APIGateway(supervisor, controller)
    transport = httpx.ASGITransport(app=gateway.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://kiosk.test") as client:
        yield client


class TestKioskRoutes:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_status_lists_targets(self, client, services):
        services.states["kiosk-kibana.service"] = "active"

        body = (await client.get("/api/v1/kiosk/status")).json()

        assert body["active_target"] == "kibana"
        targets = {t["id"]: t for t in body["targets"]}
        assert set(targets) == {"grafana", "kibana", "kuma"}
        assert targets["kuma"]["url"] == KUMA_URL
        assert targets["kuma"]["preferred_orientation"] == "270"
        assert targets["kuma"]["state"] == "stopped"
        assert targets["kibana"]["state"] == "running"

    async def test_activate(self, client, services, tool):
        response = await client.post("/api/v1/kiosk/kuma/activate")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["target_id"] == "kuma"
        assert services.active_units() == ["kiosk-kuma.service"]
        assert tool.transforms["HDMI-A-1"] == "270"

    async def test_activate_unknown_target(self, client, services):
        response = await client.post("/api/v1/kiosk/jenkins/activate")

        assert response.status_code == 404
        assert "jenkins" in response.json()["detail"]
        assert services.calls == []

    async def test_activate_unconfigured_target(self, client):
        response = await client.post("/api/v1/kiosk/grafana/activate")
        assert response.status_code == 409

    async def test_deactivate_all(self, client, services):
        services.states["kiosk-kuma.service"] = "active"

        response = await client.post("/api/v1/kiosk/deactivate-all")

        assert response.status_code == 200
        assert services.active_units() == []

    async def test_restart_without_active_kiosk(self, client):
        body = (await client.post("/api/v1/kiosk/restart")).json()
        assert body["success"] is False

    async def test_target_orientation(self, client, seeded):
        response = await client.put("/api/v1/kiosk/kibana/orientation", json={"orientation": 90})

        assert response.status_code == 200
        assert response.json()["data"]["applied"] is None
        assert (await seeded.load_target("kibana")).preferred_orientation.canonical == "90"

    async def test_target_orientation_unknown_value(self, client):
        response = await client.put("/api/v1/kiosk/kibana/orientation", json={"orientation": "sideways"})
        assert response.status_code == 422


class TestDisplayRoutes:

    async def test_get_orientation(self, client):
        body = (await client.get("/api/v1/display/orientation")).json()

        assert body["output"] == "HDMI-A-1"
        assert body["saved_orientation"] == "270"
        assert body["current_orientation"] == "0"
        assert body["error"] is None

    async def test_put_orientation(self, client, tool, seeded):
        response = await client.put("/api/v1/display/orientation", json={"orientation": "portrait-left"})

        assert response.status_code == 200
        assert tool.transforms["HDMI-A-1"] == "90"
        assert (await seeded.load_display_state()).saved_orientation.canonical == "90"

    async def test_tool_unavailable(self, client, tool):
        tool.ready = False

        response = await client.put("/api/v1/display/orientation", json={"orientation": 0})

        assert response.status_code == 503
