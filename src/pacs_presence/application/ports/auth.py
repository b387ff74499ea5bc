from __future__ import annotations

from typing import Protocol

from pacs_presence.domain.entities.session import Session


class TokenDecoder(Protocol):
    async def decode(self, token: str) -> Session: ...
