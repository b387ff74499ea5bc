from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PeerUser:
    peer_id: str
    display_name: str
    role: str
