"""
Exclusive lock guarding writes to the record store.

Each CLI invocation is its own short-lived process, so the lock has to
live on disk. ``<store>.lock`` is a persistent file and holding the lock
means holding an flock() on it. The kernel drops the lock when the holder
exits, so a crashed process never leaves the store locked.
"""

import fcntl
import logging
import os
import time
from pathlib import Path
from typing import Optional

from ..errors import StoreIOError


logger = logging.getLogger(__name__)


class FileLock:
    """
    Exclusive lock backed by flock() on a ``<target>.lock`` file.

    The lock file itself is never removed: unlinking it would let two
    processes lock two different inodes under the same name.

    Usage:
        with FileLock(Path("store.jsonl.lock")):
            ...
    """

    def __init__(
        self,
        lock_path: Path,
        timeout: float = 10.0,
        poll_interval: float = 0.05,
    ):
        self.lock_path = Path(lock_path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._fd: Optional[int] = None

    @property
    def acquired(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        """
        Acquire the lock, waiting up to ``timeout`` seconds.

        Raises:
            StoreIOError: If the lock cannot be acquired in time
        """
        if self._fd is not None:
            return

        deadline = time.monotonic() + self.timeout
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(self.lock_path), os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise StoreIOError(f"Failed to open lock {self.lock_path}: {e}") from e

        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    raise StoreIOError(
                        f"Timed out after {self.timeout}s waiting for lock {self.lock_path} "
                        f"(holder: {self._holder()})"
                    )
                time.sleep(self.poll_interval)
            except OSError as e:
                os.close(fd)
                raise StoreIOError(f"Failed to lock {self.lock_path}: {e}") from e

        self._fd = fd
        try:
            os.ftruncate(fd, 0)
            os.write(fd, f"pid={os.getpid()}\n".encode())
        except OSError as e:
            self.release()
            raise StoreIOError(f"Failed to write lock {self.lock_path}: {e}") from e
        logger.debug(f"Acquired lock {self.lock_path}")

    def release(self) -> None:
        """Release the lock if held."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug(f"Released lock {self.lock_path}")

    def _holder(self) -> str:
        try:
            return self.lock_path.read_text().strip() or "unknown"
        except OSError:
            return "unknown"

    def __enter__(self) -> "FileLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def lock_for(target: Path, timeout: float = 10.0) -> FileLock:
    """Get a lock for ``target`` (uses ``<target>.lock``)."""
    target = Path(target)
    return FileLock(
        lock_path=target.with_name(target.name + ".lock"),
        timeout=timeout,
    )
