from __future__ import annotations

import jwt

from pacs_presence.application.exceptions import InvalidCredentialError
from pacs_presence.application.ports.clock import Clock, UtcClock
from pacs_presence.domain.entities.session import Session
from pacs_presence.infrastructure.auth.claims import session_from_claims


class ClaimsDecoder:
    """Read JWT claims without checking the signature.

    The server verifies the token on every request; the client only needs
    identity, role and expiry.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or UtcClock()

    async def decode(self, token: str) -> Session:
        try:
            payload = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidCredentialError(str(exc)) from exc
        return session_from_claims(payload, self._clock.now())
