"""
Record store backed by a JSON Lines file.

The first line is a header pinning the embedding dimension; every
following line is one memory record. Records are only ever appended.
"""

import json
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..errors import (
    DimensionMismatchError,
    StoreCorruptError,
    StoreIOError,
    ValidationError,
)
from .locks import FileLock, lock_for
from .types import MemoryRecord, StoreHeader


logger = logging.getLogger(__name__)


@dataclass
class _Snapshot:
    """Parsed contents of the store file at one point in time."""

    header: Optional[StoreHeader] = None
    records: List[MemoryRecord] = field(default_factory=list)
    # Bytes up to and including the last newline; anything after is a torn write.
    valid_size: int = 0
    file_size: int = 0

    @property
    def last_id(self) -> int:
        return self.records[-1].id if self.records else 0


class RecordStore:
    """
    Durable, append-only collection of memory records.

    Reads need no lock: a half-written final line is never parsed as a
    record. Appends take an exclusive lock file, re-read the store so that
    records added by other processes are not overwritten, and fsync before
    returning.

    Example usage:
        with RecordStore("~/.mem/store.jsonl") as store:
            record = store.append("ls -la", "list all files", embedding)
            for record in store.all():
                ...
    """

    DEFAULT_FILE_NAME = "store.jsonl"

    def __init__(
        self,
        path: Any,
        lock_timeout: float = 10.0,
        auto_load: bool = True,
    ):
        """
        Initialize the record store.

        Args:
            path: Path to the store file. Created on first append.
            lock_timeout: Seconds to wait for the write lock.
            auto_load: Whether to load the store immediately.
        """
        self.path = Path(path).expanduser()
        self._lock: FileLock = lock_for(self.path, timeout=lock_timeout)
        self._snapshot = _Snapshot()

        if auto_load:
            self.load()

    @property
    def dimension(self) -> Optional[int]:
        """Embedding dimension of the store, or None before the first record."""
        if self._snapshot.header is None:
            return None
        return self._snapshot.header.dimension

    def __len__(self) -> int:
        return len(self._snapshot.records)

    def all(self) -> List[MemoryRecord]:
        """Return every record in insertion order."""
        return list(self._snapshot.records)

    def load(self) -> None:
        """
        Reload the store from disk.

        Raises:
            StoreCorruptError: If any complete line cannot be trusted
            StoreIOError: If the file exists but cannot be read
        """
        self._snapshot = self._read()
        logger.debug(f"Loaded {len(self)} memories from {self.path}")

    def append(
        self,
        command: str,
        description: str,
        embedding: Sequence[float],
    ) -> MemoryRecord:
        """
        Append a new record and persist it.

        Args:
            command: The payload to store verbatim
            description: The text the embedding was computed from
            embedding: Embedding vector of the description

        Returns:
            The stored record with its assigned id

        Raises:
            ValidationError: If the embedding is empty or not finite
            DimensionMismatchError: If the embedding does not match the store
            StoreIOError: If the write fails; the file is left as it was
        """
        vector = [float(v) for v in embedding]
        if not vector:
            raise ValidationError("Embedding must not be empty")
        if not all(math.isfinite(v) for v in vector):
            raise ValidationError("Embedding contains non-finite values")

        with self._lock:
            snapshot = self._read()

            header = snapshot.header
            if header is not None and not snapshot.records and len(vector) != header.dimension:
                # A header without records was left by a torn first write.
                logger.warning(
                    f"Discarding header of empty store {self.path} "
                    f"(dimension {header.dimension}, new dimension {len(vector)})"
                )
                header = None
                snapshot.valid_size = 0

            if header is not None and len(vector) != header.dimension:
                raise DimensionMismatchError(
                    header.dimension, len(vector), path=str(self.path)
                )

            record = MemoryRecord(
                id=snapshot.last_id + 1,
                command=command,
                description=description,
                embedding=vector,
            )

            payload = b""
            if header is None:
                header = StoreHeader(dimension=len(vector))
                payload += self._encode(header.to_dict())
            payload += self._encode(record.to_dict())

            self._write(payload, snapshot)

            snapshot.header = header
            snapshot.records.append(record)
            self._snapshot = snapshot

        logger.debug(f"Stored memory {record.id} in {self.path}")
        return record

    def close(self) -> None:
        """Release the write lock if it is still held."""
        self._lock.release()

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ========== Encoding ==========

    @staticmethod
    def _encode(obj: Dict[str, Any]) -> bytes:
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":")).encode("utf-8") + b"\n"

    def _read(self) -> _Snapshot:
        """Parse the store file."""
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return _Snapshot()
        except OSError as e:
            raise StoreIOError(f"Failed to read store {self.path}: {e}") from e

        snapshot = _Snapshot(
            valid_size=data.rfind(b"\n") + 1,
            file_size=len(data),
        )
        if snapshot.valid_size < snapshot.file_size:
            logger.warning(
                f"Ignoring {snapshot.file_size - snapshot.valid_size} bytes of "
                f"incomplete write at the end of {self.path}"
            )

        lines = data[:snapshot.valid_size].split(b"\n")[:-1]
        for line_number, raw in enumerate(lines, 1):
            if not raw.strip():
                continue

            obj = self._decode_line(raw, line_number)

            if snapshot.header is None:
                try:
                    snapshot.header = StoreHeader.from_dict(obj)
                except ValueError as e:
                    raise StoreCorruptError(
                        f"Invalid store header: {e}", str(self.path), line_number
                    ) from e
                continue

            record = self._decode_record(obj, line_number)
            if record.dimension != snapshot.header.dimension:
                raise DimensionMismatchError(
                    snapshot.header.dimension,
                    record.dimension,
                    path=str(self.path),
                    line_number=line_number,
                )
            if record.id <= snapshot.last_id:
                raise StoreCorruptError(
                    f"Record id {record.id} does not follow id {snapshot.last_id}",
                    str(self.path),
                    line_number,
                )
            snapshot.records.append(record)

        return snapshot

    def _decode_line(self, raw: bytes, line_number: int) -> Dict[str, Any]:
        try:
            obj = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StoreCorruptError(
                f"Unparseable line: {e}", str(self.path), line_number
            ) from e
        if not isinstance(obj, dict):
            raise StoreCorruptError(
                "Expected a JSON object", str(self.path), line_number
            )
        return obj

    def _decode_record(self, obj: Dict[str, Any], line_number: int) -> MemoryRecord:
        try:
            return MemoryRecord.from_dict(obj)
        except KeyError as e:
            raise StoreCorruptError(
                f"Record is missing field {e}", str(self.path), line_number
            ) from e
        except (TypeError, ValueError, OverflowError) as e:
            raise StoreCorruptError(
                f"Invalid record: {e}", str(self.path), line_number
            ) from e

    # ========== Writing ==========

    def _write(self, payload: bytes, snapshot: _Snapshot) -> None:
        """Append ``payload`` in full or leave the file at ``snapshot.valid_size``."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(self.path), os.O_RDWR | os.O_CREAT | os.O_APPEND, 0o644)
        except OSError as e:
            raise StoreIOError(
                f"Failed to open store {self.path}. Make sure you have write permissions: {e}"
            ) from e

        try:
            if snapshot.file_size != snapshot.valid_size:
                logger.warning(f"Truncating {self.path} to {snapshot.valid_size} bytes")
                try:
                    os.ftruncate(fd, snapshot.valid_size)
                except OSError as e:
                    raise StoreIOError(f"Failed to repair store {self.path}: {e}") from e

            try:
                view = memoryview(payload)
                while view:
                    written = os.write(fd, view)
                    view = view[written:]
                os.fsync(fd)
            except OSError as e:
                self._rollback(fd, snapshot.valid_size)
                raise StoreIOError(f"Failed to write store {self.path}: {e}") from e
        finally:
            os.close(fd)

    def _rollback(self, fd: int, size: int) -> None:
        try:
            os.ftruncate(fd, size)
        except OSError as e:
            logger.error(f"Failed to roll back {self.path} to {size} bytes: {e}")
