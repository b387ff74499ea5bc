from __future__ import annotations

import logging
from typing import Generator

import httpx

from pacs_presence.application.exceptions import UpstreamError
from pacs_presence.application.ports.storage import CredentialStore

logger = logging.getLogger(__name__)


class StoredBearerAuth(httpx.Auth):
    """Attach the persisted access token to every outgoing request."""

    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._store.load()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request


def create_http_client(
    base_url: str,
    store: CredentialStore,
    *,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        auth=StoredBearerAuth(store),
        headers={"Content-Type": "application/json"},
        timeout=timeout,
        transport=transport,
    )


async def get_content(client: httpx.AsyncClient, path: str) -> bytes:
    """GET *path* and return the body, mapping failures to UpstreamError."""
    try:
        response = await client.get(path)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise UpstreamError(f"GET {path} returned {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        logger.debug("GET %s failed", path, exc_info=True)
        raise UpstreamError(f"GET {path} failed: {exc}") from exc
    return response.content
