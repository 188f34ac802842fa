from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from boardsync.config import PROJECT_ROOT, SETTINGS, Settings

FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# SQL echo stays off unless the root level asks for it.
QUIET_LOGGERS = ("sqlalchemy.engine", "alembic")


def parse_logger_levels(spec: str) -> dict[str, str]:
    """Parse ``name=LEVEL`` pairs, e.g. ``boardsync.services.reconciler=DEBUG``."""
    levels: dict[str, str] = {}
    for chunk in spec.split(","):
        name, sep, level = chunk.partition("=")
        name, level = name.strip(), level.strip().upper()
        if not sep or not name or level not in logging.getLevelNamesMapping():
            continue
        levels[name] = level
    return levels


def setup_logging(settings: Settings = SETTINGS, to_file: bool = True) -> None:
    formatter = logging.Formatter(FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = []

    if to_file:
        log_dir = PROJECT_ROOT / settings.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_dir / "boardsync.log", maxBytes=2_000_000, backupCount=3)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(level=settings.log_level.upper(), handlers=handlers)
    apply_logger_levels(settings.log_level, settings.logger_levels)


def apply_logger_levels(root_level: str, spec: str = "") -> None:
    debug = root_level.upper() == "DEBUG"
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if debug else logging.WARNING)
    for name, level in parse_logger_levels(spec).items():
        logging.getLogger(name).setLevel(level)
