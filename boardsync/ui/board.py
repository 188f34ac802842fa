from __future__ import annotations

import asyncio
import logging

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QHBoxLayout, QLabel, QListWidgetItem, QVBoxLayout, QWidget

from boardsync.domain.drag import resolve_drop_target
from boardsync.domain.entities import BoardScope
from boardsync.services.board import BoardSession
from boardsync.services.gateway import ActivitySink, ChangeSubscription, PersistenceGateway
from boardsync.services.store import BoardSnapshot

from .widgets import StatusColumnWidget, StatusHeader, TaskCardWidget

logger = logging.getLogger(__name__)


class StatusLineNotifier:
    def __init__(self, label: QLabel) -> None:
        self._label = label

    def success(self, title: str, message: str = "") -> None:
        self._label.setStyleSheet("color: #16A34A;")
        self._label.setText(f"{title} {message}".strip())

    def error(self, title: str, message: str = "") -> None:
        logger.error("%s %s", title, message)
        self._label.setStyleSheet("color: #DC2626;")
        self._label.setText(f"{title} {message}".strip())


class BoardWindow(QWidget):
    def __init__(
        self,
        scope: BoardScope,
        gateway: PersistenceGateway,
        feed: ChangeSubscription,
        sink: ActivitySink,
        actor_id: str | None,
        drop_zone_prefix: str,
        parent=None,
    ):
        super().__init__(parent)
        self.drop_zone_prefix = drop_zone_prefix
        self.setWindowTitle(scope.project_name or "Board")
        self.resize(1200, 700)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)

        self.columns_host = QWidget()
        self.columns_layout = QHBoxLayout(self.columns_host)
        self.columns_layout.setSpacing(12)
        layout.addWidget(self.columns_host, 1)

        self.status_line = QLabel("")
        layout.addWidget(self.status_line)

        self.session = BoardSession(
            scope,
            gateway,
            feed,
            sink,
            actor_id,
            notifier=StatusLineNotifier(self.status_line),
        )
        self._unsubscribe = self.session.store.subscribe(self.render)

    async def open(self) -> None:
        self.status_line.setText("Loading...")
        loaded = await self.session.open()
        self.status_line.setText("" if loaded else "Board could not be loaded")
        self.render(self.session.store.snapshot)

    def render(self, snapshot: BoardSnapshot) -> None:
        while self.columns_layout.count():
            child = self.columns_layout.takeAt(0)
            if child.widget():
                child.widget().deleteLater()

        columns = self.session.store.columns()
        for status in snapshot.statuses:
            tasks = columns.get(status.id, [])
            column = QWidget()
            column_layout = QVBoxLayout(column)
            column_layout.setContentsMargins(0, 0, 0, 0)
            column_layout.addWidget(
                StatusHeader(status, len(tasks), self.on_drag_start, self.on_drag_cancel)
            )
            list_widget = StatusColumnWidget(
                status,
                f"{self.drop_zone_prefix}{status.id}",
                self.on_drag_start,
                self.on_drag_cancel,
                self.on_drop,
            )
            for task in tasks:
                item = QListWidgetItem()
                item.setData(Qt.UserRole, task.id)
                card = TaskCardWidget(task, len(snapshot.subtasks.for_parent(task.id)))
                item.setSizeHint(card.sizeHint())
                list_widget.addItem(item)
                list_widget.setItemWidget(item, card)
            column_layout.addWidget(list_widget, 1)
            self.columns_layout.addWidget(column, 1)

    def on_drag_start(self, entity_id: str) -> None:
        self.session.engine.begin_drag(entity_id)

    def on_drag_cancel(self) -> None:
        self.session.engine.cancel_drag()

    def on_drop(self, payload: tuple[str, str], raw_id: str | None) -> None:
        logger.debug("Dropped %s on %s", payload, raw_id)
        snapshot = self.session.store.snapshot
        target = resolve_drop_target(raw_id, snapshot.statuses, snapshot.tasks, self.drop_zone_prefix)
        asyncio.ensure_future(self.session.engine.drop(target))

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._unsubscribe()
        asyncio.ensure_future(self.session.close())
        super().closeEvent(event)
