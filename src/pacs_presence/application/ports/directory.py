from __future__ import annotations

from typing import Protocol

from pacs_presence.domain.entities.message import Message
from pacs_presence.domain.entities.peer import PeerUser


class DirectoryService(Protocol):
    async def list_peers(self) -> list[PeerUser]: ...
    async def list_online_peers(self) -> dict[str, str]: ...


class HistoryService(Protocol):
    async def get_history(self, self_id: str, peer_id: str) -> list[Message]: ...
