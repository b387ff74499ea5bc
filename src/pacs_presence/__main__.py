"""Entrypoint: python -m pacs_presence [TOKEN]"""
from __future__ import annotations

import asyncio
import logging
import sys

from pacs_presence.app import PresenceApp, create_app
from pacs_presence.application.exceptions import AppError
from pacs_presence.config import settings

logger = logging.getLogger("pacs_presence")


def _log_state(app: PresenceApp) -> None:
    state = app.state
    unread = {peer: agg.unread_count for peer, agg in state.peer_aggregates.items() if agg.unread_count}
    logger.info("online=%s unread=%s", sorted(state.online_set), unread)


async def _run(token: str | None) -> int:
    app = create_app()
    async with app.running():
        if token:
            try:
                await app.sessions.login(token)
            except AppError as exc:
                logger.error("Login failed: %s", exc.detail)
                return 1
        if app.sessions.session is None:
            logger.error("Not authenticated; pass an access token")
            return 1
        app.state.add_listener(lambda: _log_state(app))
        await app.chat.activate_view()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            pass
    return 0


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    token = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        sys.exit(asyncio.run(_run(token)))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
