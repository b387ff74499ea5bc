from __future__ import annotations

from typing import Awaitable, Callable, Protocol

OnConnect = Callable[[], Awaitable[None]]
OnDelivery = Callable[[str], None]


class Transport(Protocol):
    """Bidirectional message connection with named destinations.

    ``activate`` starts connecting in the background and keeps reconnecting
    with a fixed delay until ``deactivate``. ``on_connect`` runs after every
    successful (re)connect; subscriptions do not survive a dropped
    connection. ``publish`` never reports delivery failure.
    """

    on_connect: OnConnect | None

    @property
    def connected(self) -> bool: ...

    async def activate(self) -> None: ...
    async def deactivate(self) -> None: ...
    def publish(self, destination: str, body: str) -> None: ...
    def subscribe(self, destination: str, callback: OnDelivery) -> str: ...
    def unsubscribe(self, subscription_id: str) -> None: ...


TransportFactory = Callable[[], Transport]
