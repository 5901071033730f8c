"""
Undo history

A bounded stack of full-collection snapshots, kept in process memory. A
snapshot of the collections as they were is pushed after every successful write and
popped on undo; the oldest snapshot drops off once the limit is reached.
"""
from collections import deque
from typing import Deque, List, NamedTuple, Optional


class Snapshot(NamedTuple):
    rolls: List[dict]
    work_orders: List[dict]


class SnapshotHistory:
    def __init__(self, limit: int = 50):
        self.limit = limit
        self._stack: Deque[Snapshot] = deque(maxlen=limit)

    def __len__(self) -> int:
        return len(self._stack)

    def push(self, rolls: List[dict], work_orders: List[dict]) -> None:
        self._stack.append(Snapshot(list(rolls), list(work_orders)))

    def pop(self) -> Optional[Snapshot]:
        if not self._stack:
            return None
        return self._stack.pop()

    def clear(self) -> None:
        self._stack.clear()
