"""Trello integration client.

Read-only access to a single board over the Trello REST API.  Every request
carries the ``key``/``token`` query parameters; rate limits (429) and server
errors (5xx) are retried with exponential backoff.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from ciudades.core.board.schemas import RawCard, RawCustomField, RawList
from ciudades.integrations.base import BaseIntegration

T = TypeVar("T")

MAX_ATTEMPTS = 3
INITIAL_BACKOFF_SECONDS = 0.4
ERROR_BODY_LIMIT = 500

CARD_FIELDS = (
    "id,name,desc,shortUrl,url,idList,idAttachmentCover,labels,idMembers,due,dueComplete,dateLastActivity"
)

_lists_adapter = TypeAdapter(list[RawList])
_custom_fields_adapter = TypeAdapter(list[RawCustomField])
_cards_adapter = TypeAdapter(list[RawCard])


class TrelloApiError(Exception):
    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.message = message
        self.status = status


def _retry_after_seconds(response: httpx.Response) -> float | None:
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        seconds = float(raw)
    except ValueError:
        return None
    return seconds if math.isfinite(seconds) and seconds > 0 else None


class TrelloClient(BaseIntegration):
    """Async Trello REST client with retry/backoff."""

    API_URL = "https://api.trello.com/1"

    def __init__(
        self,
        api_key: str,
        token: str,
        api_url: str = API_URL,
        *,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        super().__init__("trello")
        self.api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._sleep = sleep

    def _params(self) -> dict[str, str]:
        return {"key": self._api_key, "token": self._token}

    async def fetch(self, path: str, params: dict[str, str] | None = None) -> Any:
        query = {**self._params(), **(params or {})}
        url = f"{self.api_url}{path}"
        backoff = INITIAL_BACKOFF_SECONDS

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for attempt in range(MAX_ATTEMPTS):
                last_attempt = attempt == MAX_ATTEMPTS - 1
                try:
                    resp = await client.get(
                        url,
                        params=query,
                        headers={"Accept": "application/json", "Cache-Control": "no-store"},
                    )
                except httpx.TransportError as e:
                    raise TrelloApiError(f"Trello is unreachable: {e}", 503) from e

                if resp.status_code == 429:
                    if last_attempt:
                        raise TrelloApiError(
                            f"Trello rate limit (429) persisted after {MAX_ATTEMPTS} attempts", 429
                        )
                    delay = _retry_after_seconds(resp) or backoff
                    self.logger.warning(
                        "Trello rate limited on %s (attempt %d), retrying in %.1fs",
                        path, attempt + 1, delay,
                    )
                    await self._sleep(delay)
                    backoff *= 2
                    continue

                if resp.status_code >= 500 and not last_attempt:
                    self.logger.warning(
                        "Trello returned %d on %s (attempt %d), retrying in %.1fs",
                        resp.status_code, path, attempt + 1, backoff,
                    )
                    await self._sleep(backoff)
                    backoff *= 2
                    continue

                if not resp.is_success:
                    excerpt = resp.text[:ERROR_BODY_LIMIT]
                    raise TrelloApiError(
                        f"Trello request failed ({resp.status_code}). {excerpt}".strip(),
                        resp.status_code,
                    )

                return resp.json()

        raise TrelloApiError("Unexpected error querying Trello", 500)

    async def _fetch_as(self, adapter: TypeAdapter[T], path: str, params: dict[str, str]) -> T:
        payload = await self.fetch(path, params)
        try:
            return adapter.validate_python(payload)
        except ValidationError as e:
            self.logger.error("Unexpected Trello payload for %s: %s", path, e)
            raise TrelloApiError(f"Unexpected Trello payload for {path}", 502) from e

    async def health_check(self) -> bool:
        try:
            await self.fetch("/members/me", {"fields": "id"})
            return True
        except TrelloApiError as e:
            self.logger.error("Trello health check failed: %s", e)
            return False

    # ------------------------------------------------------------------
    # Board reads
    # ------------------------------------------------------------------

    async def get_lists(self, board_id: str) -> list[RawList]:
        return await self._fetch_as(
            _lists_adapter,
            f"/boards/{board_id}/lists",
            {"fields": "id,name,closed,pos", "filter": "open"},
        )

    async def get_custom_fields(self, board_id: str) -> list[RawCustomField]:
        return await self._fetch_as(
            _custom_fields_adapter,
            f"/boards/{board_id}/customFields",
            {"fields": "id,name,type,options"},
        )

    async def get_cards(self, board_id: str) -> list[RawCard]:
        return await self._fetch_as(
            _cards_adapter,
            f"/boards/{board_id}/cards",
            {
                "filter": "open",
                "fields": CARD_FIELDS,
                "members": "true",
                "member_fields": "fullName,username",
                "attachments": "true",
                "attachment_fields": "id,name,url,mimeType",
                "checklists": "all",
                "checklist_fields": "id,name",
                "checkItem_fields": "id,name,state,due,dueComplete,pos,idMember",
                "customFieldItems": "true",
            },
        )
