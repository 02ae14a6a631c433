from datetime import datetime, timezone
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from ciudades.common.security import SESSION_COOKIE_NAME, create_session_token
from ciudades.config import Settings
from ciudades.core.board.cache import SnapshotCache
from ciudades.core.board.schemas import PipelineConfig
from ciudades.core.board.service import DashboardService
from ciudades.integrations.trello import TrelloClient

BOARD_ID = "board123"
NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        TRELLO_KEY="test-key",
        TRELLO_TOKEN="test-token",
        TRELLO_BOARD_ID=BOARD_ID,
        AUTH_USER="admin",
        AUTH_PASS="s3cret-pass",
        AUTH_SECRET="x" * 40,
        APP_ENV="test",
    )


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(board_id=BOARD_ID)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def board_payload() -> dict[str, list[dict[str, Any]]]:
    """A board whose lists are all workflow stages and whose city lives in a
    list-type custom field."""
    lists = [
        {"id": "l1", "name": "Backlog", "closed": False, "pos": 1},
        {"id": "l2", "name": "Doing", "closed": False, "pos": 2},
        {"id": "l3", "name": "Done", "closed": False, "pos": 3},
    ]
    custom_fields = [
        {
            "id": "cf_city",
            "name": "Ciudad",
            "type": "list",
            "options": [
                {"id": "opt_mad", "value": {"text": "Madrid"}},
                {"id": "opt_bcn", "value": {"text": "Barcelona"}},
            ],
        },
        {"id": "cf_designer", "name": "Diseñador", "type": "text"},
    ]
    urgent = {"id": "lb1", "name": "Urgente", "color": "red"}
    undefined = {"id": "lb2", "name": "Indefinido", "color": "sky"}

    def card(card_id, name, *, due=None, due_complete=False, city=None, labels=(), **extra):
        items = []
        if city:
            items.append({"idCustomField": "cf_city", "idValue": city})
        items.extend(extra.pop("extra_items", []))
        return {
            "id": card_id,
            "name": name,
            "desc": f"{name} description",
            "shortUrl": f"https://trello.com/c/{card_id[-6:]}",
            "url": f"https://trello.com/c/{card_id[-6:]}/{name.lower()}",
            "idList": "l2",
            "idAttachmentCover": None,
            "labels": list(labels),
            "idMembers": [],
            "members": [],
            "due": due,
            "dueComplete": due_complete,
            "attachments": [],
            "checklists": [],
            "customFieldItems": items,
            "dateLastActivity": "2024-05-20T10:00:00.000Z",
            **extra,
        }

    cards = [
        card(
            "65f1a2b3aaaaaaaaaaaaaaaa",
            "Cartel feria",
            due="2024-05-30T00:00:00.000Z",
            city="opt_mad",
            labels=[urgent],
            idMembers=["m1"],
            members=[{"id": "m1", "fullName": "Ana Ruiz", "username": "anaruiz"}],
            extra_items=[{"idCustomField": "cf_designer", "value": {"text": "Luis Gomez; Marta Diaz"}}],
        ),
        card(
            "65f1a2b3bbbbbbbbbbbbbbbb",
            "Banner web",
            due="2024-06-05T00:00:00.000Z",
            city="opt_mad",
            labels=[urgent, undefined],
        ),
        card("65f1a2b3cccccccccccccccc", "Folleto", due="2024-07-01T00:00:00.000Z", city="opt_bcn"),
        card("65f1a2b3dddddddddddddddd", "Logo", city="opt_bcn"),
        card("65f1a2b3eeeeeeeeeeeeeeee", "Poster", due="2024-05-30T00:00:00.000Z", due_complete=True),
    ]
    return {"lists": lists, "customFields": custom_fields, "cards": cards}


@pytest.fixture
def request_log() -> list[httpx.Request]:
    return []


@pytest.fixture
def trello_transport(board_payload, request_log) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        request_log.append(request)
        resource = request.url.path.rsplit("/", 1)[-1]
        if request.url.path.startswith(f"/1/boards/{BOARD_ID}/") and resource in board_payload:
            return httpx.Response(200, json=board_payload[resource])
        return httpx.Response(404, text="not found")

    return httpx.MockTransport(handler)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def trello_client(trello_transport, fake_sleep) -> TrelloClient:
    return TrelloClient("test-key", "test-token", transport=trello_transport, sleep=fake_sleep)


@pytest.fixture
def dashboard_service(trello_client, config) -> DashboardService:
    return DashboardService(trello_client, config, cache=SnapshotCache(), revalidate_seconds=60)


@pytest.fixture
async def client(settings, dashboard_service):
    from ciudades.api.deps import get_app_settings, get_dashboard_service
    from ciudades.main import app

    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_dashboard_service] = lambda: dashboard_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def session_token(settings) -> str:
    return create_session_token(settings.AUTH_USER, settings.AUTH_SECRET)


@pytest.fixture
def auth_client(client, session_token):
    client.cookies.set(SESSION_COOKIE_NAME, session_token)
    return client
