"""Durable JSON history of Snapshots.

The log is a single JSON array of Snapshot objects in append order. Every
append reads the whole document, appends one record in memory and rewrites
the full array. The rewrite goes to a temporary file in the same directory
which is fsynced and renamed over the log, so the file always holds exactly
one complete document: either the previous one or the new one.

Appends to the same path are serialized by a per-path lock held across the
whole read-modify-write, regardless of how many HistoryLog instances or
event loops point at the file.
"""

import asyncio
import json
import os
import stat
import tempfile
import threading
from pathlib import Path

import structlog

from ..capabilities.observe import Snapshot

logger = structlog.get_logger(__name__)

_locks_guard = threading.Lock()
_path_locks: dict[Path, threading.Lock] = {}


class HistoryLogError(Exception):
    """Base class for history log failures."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{message} ({path})")


class HistoryLogIOError(HistoryLogError):
    """The log file could not be opened, read or written; nothing was appended."""


class HistoryLogCorruptError(HistoryLogError):
    """The existing log is not a JSON array of snapshot records.

    The append is aborted and the file is left as it was.
    """


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = _path_locks[key] = threading.Lock()
        return lock


def parse_history(text: str, path: Path) -> list[Snapshot]:
    """Decode log file contents.

    Empty or whitespace-only text is an empty history.

    Raises:
        HistoryLogCorruptError: If the text is not a JSON array of valid
            snapshot objects.
    """
    if not text.strip():
        return []
    try:
        records = json.loads(text)
    except json.JSONDecodeError as e:
        raise HistoryLogCorruptError(path, f"history log is not valid JSON: {e}") from e
    if not isinstance(records, list):
        raise HistoryLogCorruptError(path, f"history log must hold a JSON array, found {type(records).__name__}")

    snapshots = []
    for index, record in enumerate(records):
        try:
            snapshots.append(Snapshot.from_dict(record))
        except ValueError as e:
            raise HistoryLogCorruptError(path, f"invalid record at index {index}: {e}") from e
    return snapshots


def serialize_history(snapshots: list[Snapshot]) -> str:
    return json.dumps([snapshot.to_dict() for snapshot in snapshots], ensure_ascii=False)


class HistoryLog:
    """Append-only history of Snapshots persisted at ``path``."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def append(self, snapshot: Snapshot) -> None:
        """Durably append one Snapshot.

        Raises:
            HistoryLogIOError: On open/read/write failure (nothing appended)
            HistoryLogCorruptError: If the existing log cannot be parsed
        """
        count = await asyncio.to_thread(self._append_sync, snapshot)
        logger.debug("history_appended", path=str(self.path), records=count)

    async def load(self) -> list[Snapshot]:
        """Return every persisted Snapshot in append order."""
        return await asyncio.to_thread(self._load_sync)

    def _load_sync(self) -> list[Snapshot]:
        with _lock_for(self.path):
            return self._read()

    def _append_sync(self, snapshot: Snapshot) -> int:
        with _lock_for(self.path):
            snapshots = self._read()
            snapshots.append(snapshot)
            self._write(serialize_history(snapshots))
            return len(snapshots)

    def _read(self) -> list[Snapshot]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except UnicodeDecodeError as e:
            raise HistoryLogCorruptError(self.path, f"history log is not valid UTF-8: {e}") from e
        except OSError as e:
            raise HistoryLogIOError(self.path, f"cannot read history log: {e}") from e
        return parse_history(text, self.path)

    def _target_mode(self) -> int:
        """Permission bits for the rewritten log: the existing file's, else 0666 minus umask."""
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def _write(self, document: str) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(document)
                tmp.flush()
                os.fsync(tmp.fileno())
            # NamedTemporaryFile is created 0600
            os.chmod(tmp_name, self._target_mode())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise HistoryLogIOError(self.path, f"cannot write history log: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("history_tmp_cleanup_failed", tmp_file=tmp_name)


async def append_snapshot(snapshot: Snapshot, path: str | Path) -> None:
    """Append ``snapshot`` to the history log at ``path``."""
    await HistoryLog(path).append(snapshot)
