from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def success(self, title: str, message: str = "") -> None: ...

    def error(self, title: str, message: str = "") -> None: ...


class LogNotifier:
    def success(self, title: str, message: str = "") -> None:
        logger.info("%s %s", title, message)

    def error(self, title: str, message: str = "") -> None:
        logger.error("%s %s", title, message)
