from __future__ import annotations

from typing import Protocol


class Navigator(Protocol):
    def navigate(self, route: str, *, notice: str | None = None) -> None: ...
