from __future__ import annotations

import logging

from pacs_presence.application.dto.payloads import (
    JoinPayload,
    OutboundChatMessage,
    decode_presence_snapshot,
    decode_private_message,
)
from pacs_presence.application.exceptions import (
    NotAuthenticatedError,
    ProtocolError,
    ValidationError,
)
from pacs_presence.application.ports.clock import Clock, UtcClock
from pacs_presence.application.ports.transport import Transport, TransportFactory
from pacs_presence.application.services.conversation_state import ConversationState
from pacs_presence.domain.entities.message import Message
from pacs_presence.domain.entities.session import Session

logger = logging.getLogger(__name__)


class PresenceChannel:
    """The single process-wide presence connection.

    Opened when a session starts and closed when it ends; page views never
    open or close it. Every (re)connect announces the user on the join
    destination and re-creates both subscriptions.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        state: ConversationState,
        *,
        join_destination: str,
        send_destination: str,
        private_destination_template: str,
        presence_destination: str,
        clock: Clock | None = None,
    ) -> None:
        self._transport_factory = transport_factory
        self._state = state
        self._join_destination = join_destination
        self._send_destination = send_destination
        self._private_destination_template = private_destination_template
        self._presence_destination = presence_destination
        self._clock = clock or UtcClock()
        self._transport: Transport | None = None
        self._session: Session | None = None

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_open(self) -> bool:
        return self._transport is not None

    @property
    def connected(self) -> bool:
        return self._transport is not None and self._transport.connected

    async def on_session_changed(self, previous: Session | None, current: Session | None) -> None:
        """SessionStore transition listener."""
        if current is None:
            await self.close()
        else:
            await self.open(current)

    async def open(self, session: Session) -> None:
        if self._transport is not None:
            if self._session == session:
                return
            logger.info("Session replaced for %s; reopening presence channel", session.subject_id)
            await self.close()

        self._session = session
        self._state.bind(session.subject_id)
        transport = self._transport_factory()
        transport.on_connect = self._on_connect
        self._transport = transport
        await transport.activate()
        logger.info("Presence channel opened for %s", session.subject_id)

    async def close(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        subject_id = self._session.subject_id if self._session else None
        self._session = None
        await transport.deactivate()
        self._state.reset()
        logger.info("Presence channel closed for %s", subject_id)

    def send(self, body: str, recipient_id: str) -> None:
        """Fire-and-forget private message.

        Delivery is at-most-once with no acknowledgement; the local echo is
        never rolled back.
        """
        session = self._session
        if session is None or self._transport is None:
            raise NotAuthenticatedError("Presence channel is not open")
        if not body:
            raise ValidationError("Message body is empty")

        message = Message(
            body=body,
            sender_id=session.subject_id,
            sender_name=session.display_name,
            recipient_id=recipient_id,
            created_at=self._clock.now(),
        )
        self._state.record_outbound(message)
        self._transport.publish(
            self._send_destination,
            OutboundChatMessage.from_message(message).model_dump_json(by_alias=True),
        )

    async def _on_connect(self) -> None:
        transport, session = self._transport, self._session
        if transport is None or session is None:
            return
        transport.publish(
            self._join_destination,
            JoinPayload.from_session(session).model_dump_json(by_alias=True),
        )
        transport.subscribe(
            self._private_destination_template.format(subject_id=session.subject_id),
            self._on_private,
        )
        transport.subscribe(self._presence_destination, self._on_presence)
        logger.info("Presence announced for %s", session.subject_id)

    def _on_private(self, raw: str) -> None:
        try:
            message = decode_private_message(raw)
        except ProtocolError as exc:
            logger.warning("Dropping private delivery: %s", exc.detail)
            return
        self._state.receive(message)

    def _on_presence(self, raw: str) -> None:
        try:
            snapshot = decode_presence_snapshot(raw)
        except ProtocolError as exc:
            logger.warning("Dropping presence snapshot: %s", exc.detail)
            return
        self._state.replace_online(snapshot)
