import httpx
import pytest

from ciudades.common.enums import CityMode
from ciudades.core.board.schemas import PipelineConfig
from ciudades.integrations.trello import TrelloClient


@pytest.mark.asyncio
async def test_dashboard_snapshot(auth_client):
    response = await auth_client.get("/api/v1/dashboard")
    assert response.status_code == 200
    data = response.json()

    assert data["board_id"] == "board123"
    assert data["city_mode_resolved"] == "customField"
    assert [c["city"] for c in data["cities"]] == ["Barcelona", "Madrid", "Sin ciudad"]
    assert data["totals"]["total"] == 5
    assert data["totals"] == {
        key: sum(c["stats"][key] for c in data["cities"]) for key in data["totals"]
    }
    assert response.headers["x-request-duration-ms"]


@pytest.mark.asyncio
async def test_dashboard_view_quick_filter(auth_client):
    response = await auth_client.get("/api/v1/dashboard/view", params={"filter": "noDue"})
    assert response.status_code == 200
    data = response.json()

    assert [c["city"] for c in data["cities"]] == ["Barcelona"]
    assert [d["name"] for d in data["cities"][0]["designs"]] == ["Logo"]
    assert data["visible_stats"]["total"] == 1
    assert len(data["board_label_counters"]) == 2


@pytest.mark.asyncio
async def test_dashboard_view_undefined_filter(auth_client):
    response = await auth_client.get("/api/v1/dashboard/view", params={"filter": "undefined"})
    data = response.json()
    assert [d["name"] for c in data["cities"] for d in c["designs"]] == ["Banner web"]
    assert [lc["name"] for lc in data["visible_label_counters"]] == ["Indefinido", "Urgente"]


@pytest.mark.asyncio
async def test_dashboard_view_search(auth_client):
    by_city = await auth_client.get("/api/v1/dashboard/view", params={"q": "  MADRID "})
    assert [c["city"] for c in by_city.json()["cities"]] == ["Madrid"]

    by_designer = await auth_client.get("/api/v1/dashboard/view", params={"designer": "marta"})
    assert [d["name"] for c in by_designer.json()["cities"] for d in c["designs"]] == ["Cartel feria"]

    nothing = await auth_client.get("/api/v1/dashboard/view", params={"q": "zzz"})
    assert nothing.json()["cities"] == []
    assert nothing.json()["visible_stats"]["total"] == 0


@pytest.mark.asyncio
async def test_dashboard_view_rejects_unknown_filter(auth_client):
    response = await auth_client.get("/api/v1/dashboard/view", params={"filter": "later"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_gallery_defaults_to_first_city(auth_client):
    response = await auth_client.get("/api/v1/gallery")
    assert response.status_code == 200
    data = response.json()
    assert data["city_options"] == ["Barcelona", "Madrid", "Sin ciudad"]
    assert data["selected"]["city"] == "Barcelona"


@pytest.mark.asyncio
async def test_gallery_selected_city(auth_client):
    response = await auth_client.get("/api/v1/gallery", params={"city": "Madrid"})
    assert [d["name"] for d in response.json()["selected"]["designs"]] == ["Cartel feria", "Banner web"]

    missing = await auth_client.get("/api/v1/gallery", params={"city": "Lima"})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_refresh_refetches_board(auth_client, request_log):
    await auth_client.get("/api/v1/dashboard")
    await auth_client.get("/api/v1/dashboard")
    assert len(request_log) == 3

    response = await auth_client.post("/api/v1/refresh")
    assert response.status_code == 200
    assert response.json()["ok"] is True

    await auth_client.get("/api/v1/dashboard")
    assert len(request_log) == 6


@pytest.mark.asyncio
async def test_trello_failure_maps_to_bad_gateway(auth_client, dashboard_service, fake_sleep):
    dashboard_service.client = TrelloClient(
        "k",
        "t",
        transport=httpx.MockTransport(lambda request: httpx.Response(401, text="invalid token")),
        sleep=fake_sleep,
    )

    response = await auth_client.get("/api/v1/dashboard")
    assert response.status_code == 502
    assert "invalid token" in response.json()["detail"]


@pytest.mark.asyncio
async def test_city_configuration_error(auth_client, dashboard_service, board_payload):
    for card in board_payload["cards"]:
        card["labels"] = []
    dashboard_service.config = PipelineConfig(board_id="board123", city_mode=CityMode.LABEL)

    response = await auth_client.get("/api/v1/dashboard")
    assert response.status_code == 500
    assert "label" in response.json()["detail"]


@pytest.mark.asyncio
async def test_stale_snapshot_served_when_refresh_fails(auth_client, dashboard_service, fake_sleep):
    first = await auth_client.get("/api/v1/dashboard")
    assert first.status_code == 200

    dashboard_service.client = TrelloClient(
        "k",
        "t",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        sleep=fake_sleep,
    )
    await auth_client.post("/api/v1/refresh")

    second = await auth_client.get("/api/v1/dashboard")
    assert second.status_code == 200
    assert second.json()["fetched_at"] == first.json()["fetched_at"]
