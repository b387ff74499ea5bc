from __future__ import annotations

from typing import Protocol


class CredentialStore(Protocol):
    """Persistent slot holding the raw access token between runs."""

    def load(self) -> str | None: ...
    def save(self, token: str) -> None: ...
    def clear(self) -> None: ...
