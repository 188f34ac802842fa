from __future__ import annotations

from PySide6.QtCore import QMimeData, QPoint, Qt
from PySide6.QtGui import QDrag
from PySide6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from boardsync.domain.drag import STATUS_PAYLOAD, TASK_PAYLOAD, drag_payload, parse_drag_payload
from boardsync.domain.entities import StatusEntity, TaskEntity

PRIORITY_COLORS = {
    "critical": "#DC2626",
    "high": "#CA8A04",
    "medium": "#2563EB",
    "low": "#16A34A",
}

STATUS_COLORS = {
    "red": "#EF4444",
    "blue": "#3B82F6",
    "green": "#22C55E",
    "yellow": "#EAB308",
    "purple": "#A855F7",
    "pink": "#EC4899",
    "indigo": "#6366F1",
    "orange": "#F97316",
    "teal": "#14B8A6",
    "cyan": "#06B6D4",
    "gray": "#6B7280",
}


def _start_drag(source: QWidget, kind: str, entity_id: str) -> bool:
    mime = QMimeData()
    mime.setText(drag_payload(kind, entity_id))
    drag = QDrag(source)
    drag.setMimeData(mime)
    return drag.exec(Qt.MoveAction) != Qt.IgnoreAction


class TaskCardWidget(QWidget):
    def __init__(self, task: TaskEntity, subtask_count: int = 0, parent=None):
        super().__init__(parent)
        self.task = task
        self.setObjectName("TaskCard")
        self.setAttribute(Qt.WA_StyledBackground, True)
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 6, 10, 6)
        layout.setSpacing(2)

        header = QHBoxLayout()
        title = QLabel(f"{task.code}  {task.name}")
        title.setWordWrap(True)
        header.addWidget(title, 1)
        if task.priority.value in PRIORITY_COLORS:
            priority = QLabel(task.priority.value)
            priority.setStyleSheet(f"color: {PRIORITY_COLORS[task.priority.value]};")
            header.addWidget(priority, 0, Qt.AlignTop)
        layout.addLayout(header)

        meta_parts = []
        if task.due_date:
            meta_parts.append(f"Due {task.due_date.isoformat()}")
        if task.sprint_points is not None:
            meta_parts.append(f"{task.sprint_points:g} pts")
        if subtask_count:
            meta_parts.append(f"{subtask_count} subtasks")
        if task.pending_sync:
            meta_parts.append("sync pending")
        if meta_parts:
            meta = QLabel(" | ".join(meta_parts))
            meta.setProperty("class", "task-meta")
            layout.addWidget(meta)


class StatusHeader(QLabel):
    def __init__(self, status: StatusEntity, task_count: int, on_drag_start, on_drag_cancel, parent=None):
        super().__init__(f"{status.name}  ({task_count})", parent)
        self.status = status
        self._on_drag_start = on_drag_start
        self._on_drag_cancel = on_drag_cancel
        self._press_pos: QPoint | None = None
        self.setProperty("class", "panel-title")
        self.setStyleSheet(f"border-bottom: 3px solid {STATUS_COLORS.get(status.color.value, '#6B7280')};")
        self.setCursor(Qt.OpenHandCursor)

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        if event.button() == Qt.LeftButton:
            self._press_pos = event.position().toPoint()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        if self._press_pos is None:
            return
        distance = (event.position().toPoint() - self._press_pos).manhattanLength()
        if distance < QApplication.startDragDistance():
            return
        self._press_pos = None
        self._on_drag_start(self.status.id)
        if not _start_drag(self, STATUS_PAYLOAD, self.status.id):
            self._on_drag_cancel()


class StatusColumnWidget(QListWidget):
    """One board column. Drops are reported as (payload, raw drop id)."""

    def __init__(self, status: StatusEntity, drop_zone_id: str, on_drag_start, on_drag_cancel, on_drop, parent=None):
        super().__init__(parent)
        self.status = status
        self._drop_zone_id = drop_zone_id
        self._on_drag_start = on_drag_start
        self._on_drag_cancel = on_drag_cancel
        self._on_drop = on_drop
        self.setAcceptDrops(True)
        self.setDragEnabled(True)
        self.setDropIndicatorShown(True)
        self.setDragDropMode(QAbstractItemView.DragDrop)
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)

    def startDrag(self, supportedActions) -> None:  # type: ignore[override]
        item = self.currentItem()
        if not item:
            return
        task_id = item.data(Qt.UserRole)
        if not task_id:
            return
        self._on_drag_start(task_id)
        if not _start_drag(self, TASK_PAYLOAD, task_id):
            self._on_drag_cancel()

    def dragEnterEvent(self, event) -> None:  # type: ignore[override]
        if parse_drag_payload(event.mimeData().text()) is not None:
            event.acceptProposedAction()

    def dragMoveEvent(self, event) -> None:  # type: ignore[override]
        if parse_drag_payload(event.mimeData().text()) is not None:
            event.acceptProposedAction()

    def dropEvent(self, event) -> None:  # type: ignore[override]
        payload = parse_drag_payload(event.mimeData().text())
        if payload is None:
            return
        pos = event.position().toPoint() if hasattr(event, "position") else event.pos()
        item = self.itemAt(pos)
        raw_id = item.data(Qt.UserRole) if item and payload[0] == TASK_PAYLOAD else self._drop_zone_id
        self._on_drop(payload, raw_id)
        event.acceptProposedAction()
