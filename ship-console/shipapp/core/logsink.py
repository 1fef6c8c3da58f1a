from __future__ import annotations
import time
from collections import deque
from typing import Callable, Deque, List, Optional

from ..models import LogEntry


def _clock_stamp() -> str:
    return time.strftime("%H:%M:%S")


class LogSink:
    """Append-only operator log, capped; oldest entries fall off first."""

    def __init__(self, capacity: int = 200, clock: Optional[Callable[[], str]] = None) -> None:
        if capacity <= 0:
            raise ValueError("log capacity must be positive")
        self.capacity = capacity
        self._clock = clock or _clock_stamp
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)

    def append(self, message: str) -> LogEntry:
        entry = LogEntry(timestamp=self._clock(), message=message)
        self._entries.append(entry)
        return entry

    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def lines(self) -> List[str]:
        return [e.render() for e in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
