"""
Streaming log entries and consumer-side retention.

The event bus only emits StreamingLogEntry objects; keeping them is the
subscriber's job. LogStore is the stock subscriber used by the bridge.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Deque

from constants import LOG_STORE_MAX_ENTRIES_DEFAULT


@dataclass(frozen=True)
class StreamingLogEntry:
    """
    One audit record of something the client sent, received or decided.

    message:
        Free text or a structured (JSON-like) payload.

    count:
        Repeat counter, set by LogStore when identical entries are coalesced.
    """
    date: datetime
    type: str
    message: Any
    count: int | None = None
    data: Any = None

    @staticmethod
    def create(type_: str, message: Any, data: Any = None) -> StreamingLogEntry:
        return StreamingLogEntry(
            date=datetime.now(timezone.utc),
            type=type_,
            message=message,
            data=data,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "date": self.date.isoformat(),
            "type": self.type,
            "message": self.message,
        }
        if self.count is not None:
            out["count"] = self.count
        if self.data is not None:
            out["data"] = self.data
        return out


class LogStore:
    """
    Bounded in-memory retention of streaming log entries.

    Rules:
    - Oldest entries are dropped beyond max_entries
    - A run of entries with identical (type, message) collapses into one
      entry whose count is the run length
    """

    def __init__(self, *, max_entries: int = LOG_STORE_MAX_ENTRIES_DEFAULT) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self._entries: Deque[StreamingLogEntry] = deque(maxlen=max_entries)

    def append(self, entry: StreamingLogEntry) -> None:
        """Bus subscriber entry point."""
        if self._entries:
            last = self._entries[-1]
            if last.type == entry.type and last.message == entry.message:
                self._entries[-1] = replace(
                    last,
                    date=entry.date,
                    count=(last.count or 1) + 1,
                )
                return
        self._entries.append(entry)

    def entries(self) -> tuple[StreamingLogEntry, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def export(self) -> list[dict[str, Any]]:
        """JSON-serializable snapshot, oldest first."""
        return [entry.to_dict() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
