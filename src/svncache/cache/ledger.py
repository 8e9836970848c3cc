"""Access ledger persistence."""

import json
import os
import stat
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from svncache.cache.errors import LedgerCorruptError
from svncache.cache.expiry import format_timestamp, parse_timestamp, utcnow


@dataclass
class AccessRecord:
    """Last access time of a single cache entry.

    Attributes:
        path: Absolute path of the cache entry directory
        last_access_time: Timezone-aware time of the last successful access
    """

    path: str
    last_access_time: datetime

    def to_dict(self) -> Dict[str, str]:
        return {
            "path": self.path,
            "lastAccessTime": format_timestamp(self.last_access_time),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessRecord":
        return cls(
            path=str(data["path"]),
            last_access_time=parse_timestamp(data["lastAccessTime"]),
        )


class AccessLedger:
    """Maps cache entry paths to their last access time.

    The ledger file (a JSON array of ``{"path", "lastAccessTime"}`` objects)
    is re-read with :meth:`load` at the start of every mutating operation,
    changed in memory and written back whole with :meth:`save`. Nothing is
    cached between operations.
    """

    def __init__(self, ledger_path: Union[str, Path]):
        """Initialize ledger.

        Args:
            ledger_path: Location of the JSON ledger file
        """
        self.ledger_path = Path(ledger_path)
        self._records: Dict[str, AccessRecord] = {}

    @staticmethod
    def _key(path: Union[str, Path]) -> str:
        return str(path)

    def load(self) -> Dict[str, AccessRecord]:
        """Load records from the ledger file.

        A missing file yields an empty ledger.

        Returns:
            Mapping of path to record

        Raises:
            LedgerCorruptError: If the file exists but cannot be parsed
        """
        self._records = {}
        if not self.ledger_path.exists():
            return self.records

        try:
            with open(self.ledger_path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise LedgerCorruptError(
                f"Cannot read access ledger: {e}", self.ledger_path
            ) from e

        if not text.strip():
            return self.records

        try:
            data = json.loads(text)
            if not isinstance(data, list):
                raise ValueError(
                    f"expected a JSON array, got {type(data).__name__}"
                )
            for entry in data:
                record = AccessRecord.from_dict(entry)
                self._records[record.path] = record
        except (ValueError, KeyError, TypeError) as e:
            self._records = {}
            raise LedgerCorruptError(
                f"Cannot parse access ledger: {e}", self.ledger_path
            ) from e

        return self.records

    def save(self, records: Optional[Dict[str, AccessRecord]] = None) -> None:
        """Overwrite the ledger file with the full set of records.

        The records are written to a temporary file next to the ledger and
        renamed over it, so readers never observe a truncated file.

        Args:
            records: Records to write. Defaults to the in-memory records.
        """
        if records is not None:
            self._records = dict(records)

        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
        payload = [record.to_dict() for record in self._records.values()]

        fd, temp_name = tempfile.mkstemp(
            prefix=self.ledger_path.name + ".",
            suffix=".tmp",
            dir=self.ledger_path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_name, self._file_mode())
            os.replace(temp_name, self.ledger_path)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

    def _file_mode(self) -> int:
        """Mode for a saved ledger: the current file's, or 0o666 minus the umask."""
        try:
            return stat.S_IMODE(os.stat(self.ledger_path).st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def touch(
        self, path: Union[str, Path], now: Optional[datetime] = None
    ) -> AccessRecord:
        """Insert or refresh the record for a path.

        Access times never go backwards: if the clock has not advanced past
        the stored value, the stored value plus one microsecond is used.

        Args:
            path: Cache entry path
            now: Access time, defaults to the current time

        Returns:
            The updated record
        """
        key = self._key(path)
        access_time = parse_timestamp(now) if now is not None else utcnow()

        existing = self._records.get(key)
        if existing is not None and access_time <= existing.last_access_time:
            access_time = existing.last_access_time + timedelta(microseconds=1)

        record = AccessRecord(path=key, last_access_time=access_time)
        self._records[key] = record
        return record

    def remove(self, path: Union[str, Path]) -> Optional[AccessRecord]:
        """Drop the record for a path, if any."""
        return self._records.pop(self._key(path), None)

    def get(self, path: Union[str, Path]) -> Optional[AccessRecord]:
        return self._records.get(self._key(path))

    def paths(self) -> List[str]:
        return list(self._records)

    def prune_missing(self) -> List[str]:
        """Drop every record whose path no longer exists on disk.

        Returns:
            Paths of the dropped records
        """
        missing = [path for path in self._records if not os.path.exists(path)]
        for path in missing:
            del self._records[path]
        return missing

    @property
    def records(self) -> Dict[str, AccessRecord]:
        """Copy of the in-memory records."""
        return dict(self._records)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self._key(path) in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AccessRecord]:
        return iter(list(self._records.values()))
