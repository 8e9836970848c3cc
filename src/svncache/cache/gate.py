"""Host-wide mutual exclusion for cache mutations."""

import logging
import os
import socket
from pathlib import Path
from typing import Union

from filelock import FileLock

logger = logging.getLogger(__name__)


class CacheGate:
    """A single named lock serializing every mutating cache operation.

    Backed by an OS advisory file lock, which the operating system releases
    when the holding process exits. While held, an owner marker file sits
    next to the lock; finding a leftover marker on acquire means the previous
    holder died without releasing, which is logged and then ignored.

    Gates created for the same lock path exclude each other across threads
    and processes.
    """

    def __init__(self, lock_path: Union[str, Path]):
        self.lock_path = Path(lock_path)
        self.owner_path = self.lock_path.with_name(self.lock_path.name + ".owner")
        self._lock = FileLock(str(self.lock_path), timeout=-1)
        self.last_acquire_abandoned = False

    @property
    def is_locked(self) -> bool:
        return self._lock.is_locked

    def acquire(self) -> bool:
        """Block until the gate is held.

        Returns:
            True if the previous holder abandoned the gate
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock.acquire()

        abandoned = False
        try:
            if self.owner_path.exists():
                abandoned = True
                previous = self.owner_path.read_text(encoding="utf-8").strip()
                logger.warning(
                    f"Abandoned cache gate detected at {self.lock_path} "
                    f"(previous holder: {previous or 'unknown'})"
                )
            self.owner_path.write_text(
                f"{os.getpid()}@{socket.gethostname()}", encoding="utf-8"
            )
        except OSError:
            self._lock.release()
            raise

        self.last_acquire_abandoned = abandoned
        return abandoned

    def release(self) -> None:
        """Release the gate acquired by :meth:`acquire`."""
        try:
            self.owner_path.unlink()
        except FileNotFoundError:
            pass
        finally:
            self._lock.release()

    def __enter__(self) -> "CacheGate":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"CacheGate({str(self.lock_path)!r})"
