from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Iterator, Mapping

from pacs_presence.application.ports.directory import HistoryService
from pacs_presence.domain.entities.conversation import ConversationAggregate
from pacs_presence.domain.entities.message import Message
from pacs_presence.domain.entities.peer import PeerUser

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


class OrderedPeers:
    """Restartable view of the peer list, most recent conversation first.

    Peers without any message keep their directory order after the rest.
    The ordering is computed afresh on every iteration.
    """

    def __init__(self, state: ConversationState) -> None:
        self._state = state

    def _sort_key(self, peer: PeerUser) -> tuple[bool, float]:
        aggregate = self._state._aggregates.get(peer.peer_id)
        ts = aggregate.last_message_at if aggregate is not None else None
        if ts is None:
            return (True, 0.0)
        return (False, -ts.timestamp())

    def __iter__(self) -> Iterator[PeerUser]:
        yield from sorted(self._state._peers, key=self._sort_key)


class ConversationState:
    """In-memory conversation view folded from the presence channel stream.

    All mutation happens on the event loop thread: channel delivery
    handlers, the user's own sends and the history fetch continuation.
    """

    def __init__(self, history: HistoryService) -> None:
        self._history = history
        self._self_id: str | None = None
        self._peers: list[PeerUser] = []
        self._online: dict[str, str] = {}
        self._aggregates: dict[str, ConversationAggregate] = {}
        self._active_peer_id: str | None = None
        self._log: list[Message] = []
        self._fetch_seq = 0
        self._listeners: list[ChangeListener] = []

    # ---- observed state ----------------------------------------------------

    @property
    def self_id(self) -> str | None:
        return self._self_id

    @property
    def online_set(self) -> Mapping[str, str]:
        return dict(self._online)

    @property
    def peer_aggregates(self) -> Mapping[str, ConversationAggregate]:
        return dict(self._aggregates)

    @property
    def active_peer_id(self) -> str | None:
        return self._active_peer_id

    @property
    def active_peer_log(self) -> list[Message]:
        # Stable: equal timestamps keep arrival order.
        return sorted(self._log, key=lambda m: m.created_at)

    def unread_count(self, peer_id: str) -> int:
        aggregate = self._aggregates.get(peer_id)
        return aggregate.unread_count if aggregate is not None else 0

    def last_message_at(self, peer_id: str) -> datetime | None:
        aggregate = self._aggregates.get(peer_id)
        return aggregate.last_message_at if aggregate is not None else None

    def ordered_peers(self) -> OrderedPeers:
        return OrderedPeers(self)

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    # ---- lifecycle ---------------------------------------------------------

    def bind(self, self_id: str) -> None:
        if self._self_id != self_id:
            self._clear()
        self._self_id = self_id

    def reset(self) -> None:
        """Drop everything; nothing is flushed anywhere."""
        self._clear()
        self._self_id = None
        self._notify()

    def _clear(self) -> None:
        self._peers = []
        self._online = {}
        self._aggregates = {}
        self._active_peer_id = None
        self._log = []
        self._fetch_seq += 1

    # ---- inbound -----------------------------------------------------------

    def set_peers(self, peers: Iterable[PeerUser]) -> None:
        self._peers = [p for p in peers if p.peer_id != self._self_id]
        self._notify()

    def replace_online(self, snapshot: Mapping[str, str]) -> None:
        self._online = dict(snapshot)
        self._notify()

    def receive(self, message: Message) -> None:
        """Fold one private-mailbox delivery."""
        peer_id = message.counterpart_of(self._self_id or "")
        aggregate = self._aggregates.get(peer_id, ConversationAggregate())
        # Own echoes were already appended by record_outbound.
        if message.sender_id != self._self_id:
            if message.sender_id == self._active_peer_id:
                self._log.append(message)
            else:
                aggregate = aggregate.with_unread()
        self._aggregates[peer_id] = aggregate.touched(message.created_at)
        self._notify()

    def record_outbound(self, message: Message) -> None:
        peer_id = message.recipient_id
        if peer_id == self._active_peer_id:
            self._log.append(message)
        aggregate = self._aggregates.get(peer_id, ConversationAggregate())
        self._aggregates[peer_id] = aggregate.touched(message.created_at)
        self._notify()

    # ---- selection ---------------------------------------------------------

    async def select_peer(self, peer_id: str) -> None:
        """Make *peer_id* active and load its history.

        The unread counter is cleared before the fetch suspends. A fetch
        that resolves after another selection has been made is discarded.
        """
        self._active_peer_id = peer_id
        self._log = []
        self._aggregates[peer_id] = self._aggregates.get(peer_id, ConversationAggregate()).read()
        self._fetch_seq += 1
        seq = self._fetch_seq
        self._notify()

        if self._self_id is None:
            return
        history = await self._history.get_history(self._self_id, peer_id)

        if seq != self._fetch_seq:
            logger.debug("Discarding stale history for peer %s", peer_id)
            return
        # Entries appended since the selection began stay on top of the history.
        pending = [m for m in self._log if m not in history]
        self._log = list(history) + pending
        aggregate = self._aggregates.get(peer_id, ConversationAggregate())
        for message in history:
            aggregate = aggregate.touched(message.created_at)
        self._aggregates[peer_id] = aggregate
        self._notify()

    def deselect_peer(self) -> None:
        self._active_peer_id = None
        self._log = []
        self._fetch_seq += 1
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Conversation listener failed")
