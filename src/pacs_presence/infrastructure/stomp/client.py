"""STOMP-over-WebSocket client with fixed-delay reconnect."""
from __future__ import annotations

import asyncio
import itertools
import logging
from contextlib import suppress

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from pacs_presence.application.exceptions import ProtocolError
from pacs_presence.application.ports.transport import OnConnect, OnDelivery
from pacs_presence.infrastructure.stomp.frames import Frame, decode_frame, encode_frame

logger = logging.getLogger(__name__)

_HEARTBEAT_EOL = "\n"


class StompClient:
    """Implements application.ports.transport.Transport.

    One background task owns the socket. Outgoing frames go through an
    outbox queue drained by a sender task, so ``publish`` and ``subscribe``
    never block the caller. Subscriptions belong to a single connection and
    are forgotten when it drops; ``on_connect`` re-creates them.
    """

    def __init__(
        self,
        url: str,
        *,
        reconnect_delay: float = 5.0,
        heartbeat_ms: int = 10_000,
        connect_timeout: float = 10.0,
        connect_headers: dict[str, str] | None = None,
    ) -> None:
        self._url = url
        self._reconnect_delay = reconnect_delay
        self._heartbeat_ms = heartbeat_ms
        self._connect_timeout = connect_timeout
        self._connect_headers = dict(connect_headers or {})
        self.on_connect: OnConnect | None = None

        self._task: asyncio.Task[None] | None = None
        self._stopping = False
        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._connected = False
        self._subscriptions: dict[str, OnDelivery] = {}
        self._sub_ids = itertools.count()

    @property
    def connected(self) -> bool:
        return self._connected

    async def activate(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stopping = False
        self._task = asyncio.create_task(self._run(), name="stomp-client")
        logger.info("STOMP client activated url=%s", self._url)

    async def deactivate(self) -> None:
        self._stopping = True
        task, self._task = self._task, None
        if task is None:
            return
        ws = self._ws
        if ws is not None and self._connected:
            with suppress(ConnectionClosed):
                await ws.send(encode_frame(Frame("DISCONNECT", {"receipt": "close"})))
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("STOMP client deactivated")

    def publish(self, destination: str, body: str) -> None:
        if not self._connected:
            logger.warning("Dropping frame for %s: not connected", destination)
            return
        self._enqueue(
            Frame(
                "SEND",
                {"destination": destination, "content-type": "application/json"},
                body,
            )
        )

    def subscribe(self, destination: str, callback: OnDelivery) -> str:
        if not self._connected:
            raise ConnectionError(f"Cannot subscribe to {destination}: not connected")
        sub_id = f"sub-{next(self._sub_ids)}"
        self._subscriptions[sub_id] = callback
        self._enqueue(Frame("SUBSCRIBE", {"id": sub_id, "destination": destination, "ack": "auto"}))
        logger.debug("Subscribed %s -> %s", sub_id, destination)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> None:
        if self._subscriptions.pop(subscription_id, None) is None:
            return
        if self._connected:
            self._enqueue(Frame("UNSUBSCRIBE", {"id": subscription_id}))

    def _enqueue(self, frame: Frame) -> None:
        if self._outbox is not None:
            self._outbox.put_nowait(encode_frame(frame))

    async def _run(self) -> None:
        while not self._stopping:
            try:
                async with connect(self._url, open_timeout=self._connect_timeout) as ws:
                    await self._serve(ws)
                logger.info("STOMP connection closed; retrying in %.1fs", self._reconnect_delay)
            except (OSError, TimeoutError, WebSocketException, ProtocolError) as exc:
                msg = str(exc) or exc.__class__.__name__
                logger.info("STOMP connection failed (%s); retrying in %.1fs", msg, self._reconnect_delay)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("STOMP client error")
            finally:
                self._reset_connection()
            if self._stopping:
                break
            await asyncio.sleep(self._reconnect_delay)

    async def _serve(self, ws: ClientConnection) -> None:
        headers = {
            "accept-version": "1.2,1.1,1.0",
            "heart-beat": f"{self._heartbeat_ms},{self._heartbeat_ms}",
            **self._connect_headers,
        }
        await ws.send(encode_frame(Frame("CONNECT", headers)))
        connected = await asyncio.wait_for(self._await_connected(ws), self._connect_timeout)

        self._ws = ws
        self._outbox = asyncio.Queue()
        self._connected = True
        logger.info("STOMP connected (version=%s)", connected.headers.get("version", "1.0"))

        tasks = [asyncio.create_task(self._send_loop(ws, self._outbox), name="stomp-sender")]
        interval = self._outgoing_heartbeat(connected)
        if interval > 0:
            tasks.append(asyncio.create_task(self._heartbeat_loop(ws, interval), name="stomp-heartbeat"))
        try:
            if self.on_connect is not None:
                try:
                    await self.on_connect()
                except Exception:
                    logger.exception("on_connect callback failed")
            async for raw in ws:
                self._dispatch(raw)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _await_connected(self, ws: ClientConnection) -> Frame:
        while True:
            frame = decode_frame(await ws.recv())
            if frame is None:
                continue
            if frame.command == "CONNECTED":
                return frame
            if frame.command == "ERROR":
                raise ProtocolError(f"Broker refused connection: {frame.headers.get('message', frame.body)}")
            logger.debug("Ignoring %s before CONNECTED", frame.command)

    def _outgoing_heartbeat(self, connected: Frame) -> float:
        """Seconds between client heart-beats, 0 when disabled."""
        try:
            _, server_wants = (int(v) for v in connected.headers.get("heart-beat", "0,0").split(","))
        except ValueError:
            return 0.0
        if self._heartbeat_ms <= 0 or server_wants <= 0:
            return 0.0
        return max(self._heartbeat_ms, server_wants) / 1000

    async def _send_loop(self, ws: ClientConnection, outbox: asyncio.Queue[str]) -> None:
        while True:
            raw = await outbox.get()
            await ws.send(raw)

    async def _heartbeat_loop(self, ws: ClientConnection, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await ws.send(_HEARTBEAT_EOL)

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            frame = decode_frame(raw)
        except ProtocolError:
            logger.warning("Dropping undecodable frame", exc_info=True)
            return
        if frame is None:
            return

        if frame.command == "MESSAGE":
            sub_id = frame.headers.get("subscription", "")
            callback = self._subscriptions.get(sub_id)
            if callback is None:
                logger.debug("No subscription %s for message on %s", sub_id, frame.headers.get("destination"))
                return
            try:
                callback(frame.body)
            except Exception:
                logger.exception("Error processing message on %s", frame.headers.get("destination"))
        elif frame.command == "ERROR":
            raise ProtocolError(f"Broker error: {frame.headers.get('message', frame.body)}")
        else:
            logger.debug("Ignoring %s frame", frame.command)

    def _reset_connection(self) -> None:
        self._connected = False
        self._ws = None
        self._outbox = None
        self._subscriptions.clear()
