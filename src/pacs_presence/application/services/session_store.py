from __future__ import annotations

import logging
from typing import Awaitable, Callable

from pacs_presence.application.exceptions import InvalidCredentialError
from pacs_presence.application.ports.auth import TokenDecoder
from pacs_presence.application.ports.navigation import Navigator
from pacs_presence.application.ports.storage import CredentialStore
from pacs_presence.domain.entities.session import Session
from pacs_presence.domain.value_objects.enums import Route

logger = logging.getLogger(__name__)

SessionListener = Callable[[Session | None, Session | None], Awaitable[None]]


class SessionStore:
    """Owns the authenticated session and its persisted credential.

    The session is only ever replaced or cleared as a whole. Listeners are
    awaited on every null/non-null transition, in registration order.
    """

    def __init__(
        self,
        decoder: TokenDecoder,
        credentials: CredentialStore,
        navigator: Navigator,
        *,
        admin_role: str = "ROLE_ADMIN",
    ) -> None:
        self._decoder = decoder
        self._credentials = credentials
        self._navigator = navigator
        self._admin_role = admin_role
        self._session: Session | None = None
        self._authenticated: bool | None = None
        self._listeners: list[SessionListener] = []

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_authenticated(self) -> bool | None:
        """None until ``restore`` has run."""
        return self._authenticated

    def is_admin(self, session: Session | None = None) -> bool:
        session = session or self._session
        return session is not None and session.has_role(self._admin_role)

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    async def decode(self, token: str) -> Session:
        return await self._decoder.decode(token)

    async def restore(self) -> Session | None:
        """Pick up the credential persisted by a previous run."""
        token = self._credentials.load()
        if token is None:
            self._authenticated = False
            return None
        try:
            session = await self._decoder.decode(token)
        except InvalidCredentialError as exc:
            logger.info("Stored credential rejected: %s", exc.detail)
            self._credentials.clear()
            self._authenticated = False
            return None
        self._authenticated = True
        await self._replace(session)
        return session

    async def login(self, token: str) -> Session:
        # Decode failures propagate: the caller stays unauthenticated.
        session = await self._decoder.decode(token)
        self._credentials.save(token)
        self._authenticated = True
        await self._replace(session)
        logger.info("Logged in as %s", session.subject_id)
        self._navigator.navigate(Route.ADMIN if self.is_admin(session) else Route.MAIN)
        return session

    async def logout(self, *, notice: str | None = None) -> None:
        self._credentials.clear()
        self._authenticated = False
        await self._replace(None)
        logger.info("Logged out")
        self._navigator.navigate(Route.LOGIN, notice=notice)

    async def _replace(self, session: Session | None) -> None:
        previous, self._session = self._session, session
        if previous is None and session is None:
            return
        for listener in list(self._listeners):
            await listener(previous, session)
