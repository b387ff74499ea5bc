from __future__ import annotations

from urllib.parse import quote

import httpx

from pacs_presence.application.dto.payloads import (
    decode_directory,
    decode_history,
    decode_presence_snapshot,
)
from pacs_presence.domain.entities.message import Message
from pacs_presence.domain.entities.peer import PeerUser
from pacs_presence.infrastructure.http.client import get_content


class HttpDirectoryService:
    """Implements application.ports.directory.DirectoryService."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def list_peers(self) -> list[PeerUser]:
        return decode_directory(await get_content(self._client, "/api/users"))

    async def list_online_peers(self) -> dict[str, str]:
        return decode_presence_snapshot(await get_content(self._client, "/api/chat/online-users"))


class HttpHistoryService:
    """Implements application.ports.directory.HistoryService."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def get_history(self, self_id: str, peer_id: str) -> list[Message]:
        path = f"/api/chat/history/{quote(self_id, safe='')}/{quote(peer_id, safe='')}"
        return decode_history(await get_content(self._client, path))
