from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from pacs_presence.application.ports.auth import TokenDecoder
from pacs_presence.application.ports.clock import Clock, UtcClock
from pacs_presence.application.ports.navigation import Navigator
from pacs_presence.application.ports.storage import CredentialStore
from pacs_presence.application.ports.transport import TransportFactory
from pacs_presence.application.services.chat_context import ChatContext
from pacs_presence.application.services.conversation_state import ConversationState
from pacs_presence.application.services.presence_channel import PresenceChannel
from pacs_presence.application.services.session_store import SessionStore
from pacs_presence.config import Settings, settings as default_settings
from pacs_presence.infrastructure.auth.claims_decoder import ClaimsDecoder
from pacs_presence.infrastructure.auth.hs256_decoder import HS256Decoder
from pacs_presence.infrastructure.http.client import create_http_client
from pacs_presence.infrastructure.http.services import HttpDirectoryService, HttpHistoryService
from pacs_presence.infrastructure.navigation.logging_navigator import LoggingNavigator
from pacs_presence.infrastructure.stomp.client import StompClient
from pacs_presence.infrastructure.storage.file_store import FileCredentialStore

logger = logging.getLogger(__name__)


@dataclass
class PresenceApp:
    settings: Settings
    sessions: SessionStore
    channel: PresenceChannel
    state: ConversationState
    chat: ChatContext
    http: httpx.AsyncClient

    @asynccontextmanager
    async def running(self) -> AsyncIterator[PresenceApp]:
        """Restore the persisted session on entry, release everything on exit."""
        await self.sessions.restore()
        try:
            yield self
        finally:
            await self.channel.close()
            await self.http.aclose()
            logger.info("Presence app stopped")


def _get_decoder(cfg: Settings, clock: Clock) -> TokenDecoder:
    if cfg.JWT_VERIFY_MODE == "hs256":
        assert cfg.JWT_SECRET, "JWT_SECRET must be set when JWT_VERIFY_MODE=hs256"
        return HS256Decoder(cfg.JWT_SECRET, cfg.JWT_ALGORITHM, clock=clock)
    return ClaimsDecoder(clock=clock)


def _stomp_factory(cfg: Settings) -> TransportFactory:
    def factory() -> StompClient:
        return StompClient(
            cfg.WS_URL,
            reconnect_delay=cfg.RECONNECT_DELAY_SECONDS,
            heartbeat_ms=cfg.STOMP_HEARTBEAT_MS,
            connect_timeout=cfg.STOMP_CONNECT_TIMEOUT_SECONDS,
        )

    return factory


def create_app(
    cfg: Settings | None = None,
    *,
    credentials: CredentialStore | None = None,
    navigator: Navigator | None = None,
    transport_factory: TransportFactory | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
    clock: Clock | None = None,
) -> PresenceApp:
    cfg = cfg or default_settings
    clock = clock or UtcClock()
    credentials = credentials or FileCredentialStore(cfg.CREDENTIAL_PATH)

    http = create_http_client(
        cfg.API_BASE_URL,
        credentials,
        timeout=cfg.HTTP_TIMEOUT_SECONDS,
        transport=http_transport,
    )
    state = ConversationState(HttpHistoryService(http))
    channel = PresenceChannel(
        transport_factory or _stomp_factory(cfg),
        state,
        join_destination=cfg.JOIN_DESTINATION,
        send_destination=cfg.SEND_DESTINATION,
        private_destination_template=cfg.PRIVATE_DESTINATION_TEMPLATE,
        presence_destination=cfg.PRESENCE_DESTINATION,
        clock=clock,
    )
    sessions = SessionStore(
        _get_decoder(cfg, clock),
        credentials,
        navigator or LoggingNavigator(),
        admin_role=cfg.ADMIN_ROLE,
    )
    sessions.add_listener(channel.on_session_changed)

    return PresenceApp(
        settings=cfg,
        sessions=sessions,
        channel=channel,
        state=state,
        chat=ChatContext(state, channel, HttpDirectoryService(http)),
        http=http,
    )
