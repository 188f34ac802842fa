from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> Path | None:
    """Load ``.env`` then ``.env.<BOARDSYNC_ENV>`` from the cwd or project root.

    ``BOARDSYNC_ENV_FILE`` points at one explicit file and skips the search.
    Returns the last file loaded.
    """
    explicit = os.getenv("BOARDSYNC_ENV_FILE", "").strip()
    if explicit:
        path = Path(explicit).expanduser()
        if not path.exists():
            raise RuntimeError(f"BOARDSYNC_ENV_FILE points at a missing file: {path}")
        load_dotenv(path, override=True)
        return path

    env_name = os.getenv("BOARDSYNC_ENV", "development")
    loaded = None
    for filename, override in ((".env", False), (f".env.{env_name}", True)):
        for base in (Path.cwd(), PROJECT_ROOT):
            candidate = base / filename
            if candidate.exists():
                load_dotenv(candidate, override=override)
                loaded = candidate
                break
    return loaded


def _optional(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    logger_levels: str = ""
    drop_zone_prefix: str = "status-"
    workspace_id: str | None = None
    space_id: str | None = None
    project_id: str | None = None
    sprint_id: str | None = None
    actor_id: str | None = None
    external_tracker: bool = False


def load_settings() -> Settings:
    return Settings(
        database_url=_optional("DATABASE_URL") or f"sqlite:///{PROJECT_ROOT / 'boardsync.db'}",
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=os.getenv("LOG_DIR", "logs"),
        logger_levels=os.getenv("LOG_LEVELS", ""),
        drop_zone_prefix=os.getenv("DROP_ZONE_PREFIX", "status-"),
        workspace_id=_optional("BOARD_WORKSPACE_ID"),
        space_id=_optional("BOARD_SPACE_ID"),
        project_id=_optional("BOARD_PROJECT_ID"),
        sprint_id=_optional("BOARD_SPRINT_ID"),
        actor_id=_optional("BOARD_ACTOR_ID"),
        external_tracker=_flag("BOARD_EXTERNAL_TRACKER"),
    )


load_env()

SETTINGS = load_settings()
