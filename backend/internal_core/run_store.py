from __future__ import annotations

from collections import deque
from threading import RLock
from typing import Deque, Optional

from .contracts import Role, RunLogEntry


class InMemoryRunStore:
    def __init__(self, max_entries: int):
        self._lock = RLock()
        self._runs: Deque[RunLogEntry] = deque(maxlen=max(1, int(max_entries)))

    def append(self, entry: RunLogEntry) -> None:
        with self._lock:
            self._runs.append(entry)

    def list_runs(self, role: Optional[Role] = None) -> list[RunLogEntry]:
        with self._lock:
            runs = list(self._runs)
        if role is None:
            return runs
        return [entry for entry in runs if entry.role == role]

    def clear(self, role: Optional[Role] = None) -> int:
        with self._lock:
            if role is None:
                count = len(self._runs)
                self._runs.clear()
                return count
            kept = [entry for entry in self._runs if entry.role != role]
            count = len(self._runs) - len(kept)
            self._runs.clear()
            self._runs.extend(kept)
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)
