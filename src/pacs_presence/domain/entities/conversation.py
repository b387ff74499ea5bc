from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ConversationAggregate:
    """Per-peer unread counter and last activity instant."""

    unread_count: int = 0
    last_message_at: datetime | None = None

    def touched(self, ts: datetime) -> ConversationAggregate:
        if self.last_message_at is not None and self.last_message_at >= ts:
            return self
        return replace(self, last_message_at=ts)

    def with_unread(self) -> ConversationAggregate:
        return replace(self, unread_count=self.unread_count + 1)

    def read(self) -> ConversationAggregate:
        return replace(self, unread_count=0)
