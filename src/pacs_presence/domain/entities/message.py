from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Message:
    body: str
    sender_id: str
    sender_name: str
    recipient_id: str
    created_at: datetime

    def counterpart_of(self, subject_id: str) -> str:
        """Return the other side of the conversation from *subject_id*'s view."""
        if self.sender_id == subject_id:
            return self.recipient_id
        return self.sender_id
