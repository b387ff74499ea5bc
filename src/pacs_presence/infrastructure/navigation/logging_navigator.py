from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LoggingNavigator:
    """Headless navigator: records the current route and logs transitions."""

    def __init__(self, initial: str = "/") -> None:
        self.current = initial
        self.notice: str | None = None

    def navigate(self, route: str, *, notice: str | None = None) -> None:
        logger.info("Navigate %s -> %s", self.current, route)
        if notice:
            logger.warning("%s", notice)
        self.current = route
        self.notice = notice
