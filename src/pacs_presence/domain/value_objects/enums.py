from __future__ import annotations

from enum import StrEnum


class Route(StrEnum):
    LOGIN = "/login"
    MAIN = "/main"
    ADMIN = "/admin"
