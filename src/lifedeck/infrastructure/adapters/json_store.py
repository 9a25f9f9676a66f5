"""Snapshot persistence: whole-file JSON replacement."""

import copy
import logging
import os
import tempfile
import time
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from lifedeck.domain.constants import SAVE_RETRY_ATTEMPTS, SAVE_RETRY_DELAY
from lifedeck.domain.models import DeckSnapshot
from lifedeck.domain.ports import PersistenceStore

logger = logging.getLogger(__name__)

_SNAPSHOT_ADAPTER = TypeAdapter(DeckSnapshot)


def dump_snapshot(snapshot: DeckSnapshot) -> bytes:
    return _SNAPSHOT_ADAPTER.dump_json(snapshot, indent=2)


def parse_snapshot(data: str | bytes) -> DeckSnapshot:
    return _SNAPSHOT_ADAPTER.validate_json(data)


class JsonSnapshotStore(PersistenceStore):
    """
    Stores the session snapshot as a single JSON file.

    Each save writes a temporary file next to the target and atomically
    replaces it, so readers see either the old or the new snapshot, never
    a mix. Transient OS errors are retried a bounded number of times.
    """

    def __init__(
        self,
        path: Path,
        retries: int = SAVE_RETRY_ATTEMPTS,
        retry_delay: float = SAVE_RETRY_DELAY,
    ):
        self.path = path
        self._retries = max(1, retries)
        self._retry_delay = retry_delay

    def load(self) -> DeckSnapshot | None:
        if not self.path.exists():
            return None

        raw = self.path.read_bytes()
        try:
            return parse_snapshot(raw)
        except ValidationError as e:
            # Keep the unreadable file for inspection instead of overwriting it on next save
            quarantine = self.path.with_suffix(self.path.suffix + ".corrupt")
            os.replace(self.path, quarantine)
            logger.error(f"Snapshot {self.path} is invalid, moved to {quarantine}: {e}")
            return None

    def save(self, snapshot: DeckSnapshot) -> None:
        payload = dump_snapshot(snapshot)

        for attempt in range(1, self._retries + 1):
            try:
                self._write_atomic(payload)
                return
            except OSError as e:
                logger.warning(f"Snapshot save attempt {attempt}/{self._retries} failed: {e}")
                if attempt == self._retries:
                    raise
                time.sleep(self._retry_delay)

    def _write_atomic(self, payload: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".snapshot-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise


class MemorySnapshotStore(PersistenceStore):
    """In-process store; keeps a private copy of the last saved snapshot."""

    def __init__(self, snapshot: DeckSnapshot | None = None):
        self._snapshot = copy.deepcopy(snapshot)
        self.saves = 0

    def load(self) -> DeckSnapshot | None:
        return copy.deepcopy(self._snapshot)

    def save(self, snapshot: DeckSnapshot) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.saves += 1
