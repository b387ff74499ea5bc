from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Session:
    """Authenticated identity decoded from the stored bearer token."""

    subject_id: str
    role: str
    display_name: str
    expires_at: datetime

    def has_role(self, role: str) -> bool:
        # The "auth" claim is a comma separated authority list.
        return role in self.role
