from __future__ import annotations

from collections import defaultdict


class WriteSequencer:
    """Per-key ordering tokens for in-flight writes and refetches.

    A completion whose token is older than one that has already landed for
    the same key is stale and must be discarded by the caller.
    """

    def __init__(self) -> None:
        self._issued: defaultdict[str, int] = defaultdict(int)
        self._landed: defaultdict[str, int] = defaultdict(int)

    def issue(self, key: str) -> int:
        self._issued[key] += 1
        return self._issued[key]

    def land(self, key: str, token: int) -> bool:
        if token <= self._landed[key]:
            return False
        self._landed[key] = token
        return True

    def is_latest(self, key: str, token: int) -> bool:
        return token == self._issued[key]


def task_key(task_id: str) -> str:
    return f"task:{task_id}"


def status_order_key(workspace_id: str) -> str:
    return f"status-order:{workspace_id}"


def status_key(status_id: str) -> str:
    return f"status:{status_id}"
