# Persistence Layer - JSON history log of Snapshots

from .history_log import (
    HistoryLog,
    HistoryLogCorruptError,
    HistoryLogError,
    HistoryLogIOError,
    append_snapshot,
)

__all__ = [
    "HistoryLog",
    "HistoryLogError",
    "HistoryLogIOError",
    "HistoryLogCorruptError",
    "append_snapshot",
]
