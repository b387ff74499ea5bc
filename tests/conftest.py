"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from pacs_presence.application.ports.transport import OnConnect, OnDelivery
from pacs_presence.application.services.chat_context import ChatContext
from pacs_presence.application.services.conversation_state import ConversationState
from pacs_presence.application.services.presence_channel import PresenceChannel
from pacs_presence.application.services.session_store import SessionStore
from pacs_presence.domain.entities.message import Message
from pacs_presence.domain.entities.peer import PeerUser
from pacs_presence.domain.entities.session import Session
from pacs_presence.infrastructure.auth.claims_decoder import ClaimsDecoder

TEST_SECRET = "pacs-presence-test-secret-0123456789abcdef"
T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

JOIN = "/app/chat.addUser"
SEND = "/app/chat.privateMessage"
PRIVATE = "/user/{subject_id}/queue/private"
PRESENCE = "/topic/onlineUsers"


def make_token(
    *,
    sub: str = "staff01",
    auth: str = "ROLE_STAFF",
    username: str = "Kim",
    exp: datetime | None = None,
    secret: str = TEST_SECRET,
) -> str:
    claims = {
        "sub": sub,
        "auth": auth,
        "username": username,
        "exp": int((exp or T0 + timedelta(hours=1)).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def make_session(subject_id: str = "staff01", role: str = "ROLE_STAFF", name: str = "Kim") -> Session:
    return Session(
        subject_id=subject_id,
        role=role,
        display_name=name,
        expires_at=T0 + timedelta(hours=1),
    )


def make_message(
    *,
    sender_id: str = "rad02",
    recipient_id: str = "staff01",
    body: str = "hello",
    at: datetime | None = None,
    sender_name: str | None = None,
) -> Message:
    return Message(
        body=body,
        sender_id=sender_id,
        sender_name=sender_name or sender_id,
        recipient_id=recipient_id,
        created_at=at or T0,
    )


def peer(peer_id: str, name: str | None = None, role: str = "ROLE_STAFF") -> PeerUser:
    return PeerUser(peer_id=peer_id, display_name=name or peer_id, role=role)


@dataclass
class FixedClock:
    current: datetime = T0

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


@dataclass
class MemoryCredentialStore:
    token: str | None = None
    saves: int = 0

    def load(self) -> str | None:
        return self.token

    def save(self, token: str) -> None:
        self.token = token
        self.saves += 1

    def clear(self) -> None:
        self.token = None


@dataclass
class RecordingNavigator:
    routes: list[str] = field(default_factory=list)
    notices: list[str | None] = field(default_factory=list)

    def navigate(self, route: str, *, notice: str | None = None) -> None:
        self.routes.append(str(route))
        self.notices.append(notice)


@dataclass
class FakeTransport:
    """In-memory transport; connects immediately on activate."""

    on_connect: OnConnect | None = None
    auto_connect: bool = True
    published: list[tuple[str, str]] = field(default_factory=list)
    subscriptions: dict[str, tuple[str, OnDelivery]] = field(default_factory=dict)
    activations: int = 0
    deactivations: int = 0
    connects: int = 0
    _connected: bool = False
    _next_id: int = 0

    @property
    def connected(self) -> bool:
        return self._connected

    async def activate(self) -> None:
        self.activations += 1
        if self.auto_connect:
            await self.connect()

    async def deactivate(self) -> None:
        self.deactivations += 1
        self.drop()

    async def connect(self) -> None:
        self._connected = True
        self.connects += 1
        if self.on_connect is not None:
            await self.on_connect()

    def drop(self) -> None:
        self._connected = False
        self.subscriptions.clear()

    def publish(self, destination: str, body: str) -> None:
        if self._connected:
            self.published.append((destination, body))

    def subscribe(self, destination: str, callback: OnDelivery) -> str:
        self._next_id += 1
        sub_id = f"sub-{self._next_id}"
        self.subscriptions[sub_id] = (destination, callback)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> None:
        self.subscriptions.pop(subscription_id, None)

    def deliver(self, destination: str, body: str) -> None:
        for dest, callback in list(self.subscriptions.values()):
            if dest == destination:
                callback(body)

    def published_to(self, destination: str) -> list[str]:
        return [body for dest, body in self.published if dest == destination]


@dataclass
class FakeTransportFactory:
    created: list[FakeTransport] = field(default_factory=list)

    def __call__(self) -> FakeTransport:
        transport = FakeTransport()
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


@dataclass
class FakeHistoryService:
    """History lookups that stay pending until the test resolves them."""

    manual: bool = False
    histories: dict[str, list[Message]] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    _pending: dict[str, asyncio.Future[list[Message]]] = field(default_factory=dict)

    async def get_history(self, self_id: str, peer_id: str) -> list[Message]:
        self.calls.append((self_id, peer_id))
        if not self.manual:
            return list(self.histories.get(peer_id, []))
        future: asyncio.Future[list[Message]] = asyncio.get_running_loop().create_future()
        self._pending[peer_id] = future
        return await future

    def resolve(self, peer_id: str, messages: list[Message]) -> None:
        self._pending.pop(peer_id).set_result(messages)


@dataclass
class FakeDirectoryService:
    peers: list[PeerUser] = field(default_factory=list)
    online: dict[str, str] = field(default_factory=dict)
    calls: int = 0

    async def list_peers(self) -> list[PeerUser]:
        self.calls += 1
        return list(self.peers)

    async def list_online_peers(self) -> dict[str, str]:
        return dict(self.online)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def credentials() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def transports() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def history() -> FakeHistoryService:
    return FakeHistoryService()


@pytest.fixture
def directory() -> FakeDirectoryService:
    return FakeDirectoryService(
        peers=[peer("staff01", "Kim"), peer("rad02", "Lee", "ROLE_DOCTOR"), peer("admin", "Park", "ROLE_ADMIN")],
        online={"rad02": "Lee"},
    )


@pytest.fixture
def state(history) -> ConversationState:
    return ConversationState(history)


@pytest.fixture
def channel(transports, state, clock) -> PresenceChannel:
    return PresenceChannel(
        transports,
        state,
        join_destination=JOIN,
        send_destination=SEND,
        private_destination_template=PRIVATE,
        presence_destination=PRESENCE,
        clock=clock,
    )


@pytest.fixture
def sessions(credentials, navigator, channel, clock) -> SessionStore:
    store = SessionStore(ClaimsDecoder(clock=clock), credentials, navigator)
    store.add_listener(channel.on_session_changed)
    return store


@pytest.fixture
def chat(state, channel, directory) -> ChatContext:
    return ChatContext(state, channel, directory)
