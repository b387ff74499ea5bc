from __future__ import annotations

import logging
from typing import Mapping

from pacs_presence.application.exceptions import NotAuthenticatedError, ValidationError
from pacs_presence.application.ports.directory import DirectoryService
from pacs_presence.application.services.conversation_state import ConversationState, OrderedPeers
from pacs_presence.application.services.presence_channel import PresenceChannel
from pacs_presence.domain.entities.conversation import ConversationAggregate
from pacs_presence.domain.entities.message import Message

logger = logging.getLogger(__name__)


class ChatContext:
    """What page views see: observed state plus three actions.

    Views may be activated any number of times; none of this touches the
    presence connection's lifetime.
    """

    def __init__(
        self,
        state: ConversationState,
        channel: PresenceChannel,
        directory: DirectoryService,
    ) -> None:
        self._state = state
        self._channel = channel
        self._directory = directory

    @property
    def online_set(self) -> Mapping[str, str]:
        return self._state.online_set

    @property
    def peer_aggregates(self) -> Mapping[str, ConversationAggregate]:
        return self._state.peer_aggregates

    @property
    def active_peer_id(self) -> str | None:
        return self._state.active_peer_id

    @property
    def active_peer_log(self) -> list[Message]:
        return self._state.active_peer_log

    def ordered_peers(self) -> OrderedPeers:
        return self._state.ordered_peers()

    async def activate_view(self) -> None:
        """Load the peer directory and the initial online snapshot."""
        if self._channel.session is None:
            raise NotAuthenticatedError("Chat requires an authenticated session")
        peers = await self._directory.list_peers()
        online = await self._directory.list_online_peers()
        self._state.set_peers(peers)
        self._state.replace_online(online)
        logger.debug("Chat view activated with %d peers, %d online", len(peers), len(online))

    async def select_peer(self, peer_id: str) -> None:
        await self._state.select_peer(peer_id)

    def deselect_peer(self) -> None:
        self._state.deselect_peer()

    def send(self, body: str, recipient_id: str | None = None) -> None:
        """Send to *recipient_id*, or to the active peer when omitted."""
        target = recipient_id or self._state.active_peer_id
        if target is None:
            raise ValidationError("No recipient selected")
        self._channel.send(body, target)
