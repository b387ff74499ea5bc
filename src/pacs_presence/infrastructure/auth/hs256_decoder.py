from __future__ import annotations

import jwt

from pacs_presence.application.exceptions import InvalidCredentialError
from pacs_presence.application.ports.clock import Clock, UtcClock
from pacs_presence.domain.entities.session import Session
from pacs_presence.infrastructure.auth.claims import session_from_claims


class HS256Decoder:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", clock: Clock | None = None) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock or UtcClock()

    async def decode(self, token: str) -> Session:
        try:
            # Expiry is checked strictly by session_from_claims.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidCredentialError(str(exc)) from exc
        return session_from_claims(payload, self._clock.now())
