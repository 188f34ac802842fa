from __future__ import annotations

import sys

from PySide6 import QtAsyncio
from PySide6.QtWidgets import QApplication, QMessageBox, QStyleFactory

from boardsync.config import SETTINGS, Settings
from boardsync.domain.entities import BoardScope
from boardsync.infra.activity_log import SqlActivitySink
from boardsync.infra.change_feed import ChangeFeed, install_change_publisher
from boardsync.infra.db import SessionLocal, init_db
from boardsync.infra.logging import setup_logging
from boardsync.infra.repository import SqlBoardGateway
from boardsync.ui.board import BoardWindow


def scope_from_settings(settings: Settings) -> BoardScope:
    if not settings.workspace_id or not settings.space_id:
        raise RuntimeError("BOARD_WORKSPACE_ID and BOARD_SPACE_ID must be set.")
    if not settings.project_id and not settings.sprint_id:
        raise RuntimeError("Set BOARD_PROJECT_ID or BOARD_SPRINT_ID to choose a board.")
    return BoardScope(
        workspace_id=settings.workspace_id,
        space_id=settings.space_id,
        project_id=settings.project_id,
        sprint_id=settings.sprint_id,
        external_tracker=settings.external_tracker,
    )


def main() -> None:
    setup_logging()
    app = QApplication(sys.argv)
    try:
        init_db()
        scope = scope_from_settings(SETTINGS)
    except Exception as exc:  # noqa: BLE001
        QMessageBox.critical(None, "Startup error", str(exc))
        return

    app.setStyle(QStyleFactory.create("Fusion"))

    feed = ChangeFeed()
    install_change_publisher(SessionLocal, feed)
    window = BoardWindow(
        scope,
        SqlBoardGateway(SessionLocal),
        feed,
        SqlActivitySink(SessionLocal),
        SETTINGS.actor_id,
        SETTINGS.drop_zone_prefix,
    )
    window.show()
    QtAsyncio.run(window.open(), keep_running=True, quit_qapp=True)


if __name__ == "__main__":
    main()
