"""Cache manager for Subversion working copies and pinned exports."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path, PurePath
from typing import Iterator, List, Optional, Tuple

from svncache.cache.config import CacheConfig
from svncache.cache.errors import (
    CacheCleanError,
    CacheClosedError,
    CacheDeleteError,
    CacheError,
    VcsOperationError,
)
from svncache.cache.expiry import get_age, get_ttl_remaining, is_expired, utcnow
from svncache.cache.gate import CacheGate
from svncache.cache.ledger import AccessLedger
from svncache.cache.reaper import reap_directory
from svncache.vcs.base import VcsClient

logger = logging.getLogger(__name__)

TAGS = "tags"
BRANCHES = "branches"
SECONDARY_ROOTS = (TAGS, BRANCHES)


@dataclass
class CleanReport:
    """Outcome of an eviction sweep."""

    removed: List[Path] = field(default_factory=list)
    kept: List[Path] = field(default_factory=list)
    pruned: List[str] = field(default_factory=list)


@dataclass
class EntryStatus:
    """Ledger view of a single cache entry."""

    path: Path
    last_access_time: datetime
    age: timedelta
    ttl_class: str
    expires_in: Optional[timedelta]
    exists: bool


class CacheManager:
    """Maintains the working copy cache under ``config.export_root``.

    Every operation takes the host-wide gate, re-reads the access ledger,
    does its filesystem and repository work, and writes the ledger back
    before releasing the gate, whether or not the work succeeded.
    """

    def __init__(
        self,
        config: CacheConfig,
        client: Optional[VcsClient] = None,
        gate: Optional[CacheGate] = None,
    ):
        """Initialize cache manager.

        Args:
            config: Cache configuration
            client: Repository client used to populate entries. If None, an
                ``svn`` command line client is built from config on first use.
            gate: Gate to serialize on. Defaults to one on config.lock_path.
        """
        self.config = config
        self._client = client
        self.gate = gate or CacheGate(config.lock_path)
        self._closed = False

    @classmethod
    def from_config(cls, config: CacheConfig) -> "CacheManager":
        """Create a manager backed by the ``svn`` command line client."""
        return cls(config)

    @property
    def client(self) -> VcsClient:
        """Repository client, created on first use.

        Raises:
            ValueError: If no client was given and config has no repository_url
        """
        if self._client is None:
            from svncache.vcs.subversion import SubversionClient

            self._client = SubversionClient(
                self.config.repository_url,
                username=self.config.username,
                password=self.config.password,
            )
        return self._client

    @property
    def export_root(self) -> Path:
        return self.config.export_root

    def _check_open(self) -> None:
        if self._closed:
            raise CacheClosedError("Cache manager is closed")

    def _resolve(self, relative_path: str) -> Path:
        """Map a repository-relative path onto the export root.

        Raises:
            ValueError: If the path is empty, absolute or leaves the export root
        """
        relative = PurePath(relative_path.replace("\\", "/"))
        if relative.is_absolute() or relative.anchor:
            raise ValueError(f"Expected a relative repository path: {relative_path!r}")
        if not relative.parts or relative.parts == (".",):
            raise ValueError("Repository path must not be empty")
        if ".." in relative.parts:
            raise ValueError(f"Repository path leaves the export root: {relative_path!r}")
        return self.export_root / relative

    def working_copy_path(self, relative_path: str) -> Path:
        """Get the destination of a checkout: ``root/relative_path``."""
        return self._resolve(relative_path)

    def export_path(self, relative_path: str, revision: int) -> Path:
        """Get the destination of a pinned export: ``root/relative_path_revision``."""
        base = self._resolve(relative_path)
        return base.with_name(f"{base.name}_{revision}")

    @contextmanager
    def _ledger_session(self) -> Iterator[AccessLedger]:
        """Hold the gate and a freshly loaded ledger, saving it on the way out."""
        with self.gate:
            ledger = AccessLedger(self.config.ledger_path)
            ledger.load()
            try:
                yield ledger
            finally:
                ledger.save()

    def update(self, relative_path: str) -> Optional[Path]:
        """Check out a repository path, or update it if already cached.

        If the repository operation fails on a destination that exists, the
        working copy is considered broken: it is deleted and forgotten, the
        failure is logged, and the next call checks it out again.

        Args:
            relative_path: Path inside the repository, e.g. 'tags/1.0'

        Returns:
            The working copy path, or None if a broken copy was removed

        Raises:
            VcsOperationError: If a fresh checkout fails
            CacheDeleteError: If a broken working copy cannot be removed
            LedgerCorruptError: If the access ledger cannot be parsed
        """
        self._check_open()
        destination = self.working_copy_path(relative_path)
        client = self.client

        with self._ledger_session() as ledger:
            try:
                if not destination.exists():
                    logger.debug(f"Checking out {relative_path} to {destination}")
                    client.checkout(relative_path, destination)
                else:
                    logger.debug(f"Updating {destination}")
                    client.update(destination)
            except Exception as e:
                if not destination.exists():
                    raise VcsOperationError(
                        f"Cannot check out {relative_path}: {e}",
                        relative_path=relative_path,
                        destination=destination,
                    ) from e

                logger.error(
                    f"Working copy {destination} is inconsistent, deleting it",
                    exc_info=True,
                )
                ledger.remove(destination)
                try:
                    reap_directory(destination)
                except CacheDeleteError as delete_error:
                    raise delete_error from e
                return None

            ledger.touch(destination)

        return destination

    def export_to_revision(self, relative_path: str, revision: int) -> Path:
        """Export a repository path at a fixed revision.

        An existing export is never fetched again, only its access time is
        refreshed. Failures are not repaired automatically.

        Args:
            relative_path: Path inside the repository, e.g. 'trunk'
            revision: Revision number to export

        Returns:
            Path of the exported snapshot

        Raises:
            VcsOperationError: If the export fails
            LedgerCorruptError: If the access ledger cannot be parsed
        """
        self._check_open()
        destination = self.export_path(relative_path, revision)
        client = self.client

        with self._ledger_session() as ledger:
            if destination.exists():
                logger.debug(f"Export {destination} already cached")
            else:
                try:
                    logger.debug(
                        f"Exporting {relative_path}@{revision} to {destination}"
                    )
                    client.export(
                        relative_path, revision, destination, overwrite=True
                    )
                except Exception as e:
                    raise VcsOperationError(
                        f"Cannot export {relative_path}@{revision}: {e}",
                        relative_path=relative_path,
                        destination=destination,
                        revision=revision,
                    ) from e

            ledger.touch(destination)

        return destination

    def _sweep_roots(self) -> List[Tuple[Path, float, Tuple[str, ...]]]:
        roots = [(self.export_root, self.config.mainline_ttl_days, SECONDARY_ROOTS)]
        for name in SECONDARY_ROOTS:
            roots.append((self.export_root / name, self.config.branch_ttl_days, ()))
        return roots

    def _sweep(
        self,
        root: Path,
        ttl_days: float,
        skip: Tuple[str, ...],
        ledger: AccessLedger,
        now: datetime,
        report: CleanReport,
        errors: List[CacheError],
    ) -> None:
        if not root.is_dir():
            return

        children = sorted(
            child for child in root.iterdir() if child.is_dir() and child.name not in skip
        )
        for child in children:
            record = ledger.get(child)
            if record is not None and not is_expired(
                record.last_access_time, ttl_days, now
            ):
                report.kept.append(child)
                continue

            reason = "untracked" if record is None else "expired"
            try:
                reap_directory(child)
            except CacheDeleteError as e:
                errors.append(e)
                continue

            logger.debug(f"Clearing {child} ({reason})")
            ledger.remove(child)
            report.removed.append(child)

    def clean(self) -> CleanReport:
        """Evict idle and untracked entries.

        Sweeps the immediate subdirectories of the export root (mainline TTL)
        and of its tags/ and branches/ directories (secondary TTL). After
        each directory, records of paths missing on disk are dropped.
        Deletion failures do not stop the sweep; they are raised together
        once the ledger has been saved.

        Returns:
            Report of removed, kept and pruned entries

        Raises:
            CacheCleanError: If any directory could not be removed
            LedgerCorruptError: If the access ledger cannot be parsed
        """
        self._check_open()
        report = CleanReport()
        errors: List[CacheError] = []

        with self._ledger_session() as ledger:
            now = utcnow()
            for root, ttl_days, skip in self._sweep_roots():
                self._sweep(root, ttl_days, skip, ledger, now, report, errors)
                report.pruned.extend(ledger.prune_missing())

        if errors:
            raise CacheCleanError(errors, report=report)

        logger.info(
            f"Clean removed {len(report.removed)} entries, "
            f"kept {len(report.kept)}, pruned {len(report.pruned)} records"
        )
        return report

    def ttl_class(self, path: Path) -> str:
        """Get which TTL applies to a cache entry: 'mainline' or 'tags/branches'."""
        try:
            parts = Path(path).relative_to(self.export_root).parts
        except ValueError:
            return "mainline"
        if len(parts) > 1 and parts[0] in SECONDARY_ROOTS:
            return "tags/branches"
        return "mainline"

    def status(self) -> List[EntryStatus]:
        """Get the ledger view of every tracked entry.

        Returns:
            Entry statuses sorted by path
        """
        self._check_open()
        with self.gate:
            ledger = AccessLedger(self.config.ledger_path)
            ledger.load()

        now = utcnow()
        entries = []
        for record in sorted(ledger, key=lambda r: r.path):
            path = Path(record.path)
            ttl_class = self.ttl_class(path)
            ttl_days = (
                self.config.branch_ttl_days
                if ttl_class == "tags/branches"
                else self.config.mainline_ttl_days
            )
            entries.append(
                EntryStatus(
                    path=path,
                    last_access_time=record.last_access_time,
                    age=get_age(record.last_access_time, now),
                    ttl_class=ttl_class,
                    expires_in=get_ttl_remaining(record.last_access_time, ttl_days, now),
                    exists=path.is_dir(),
                )
            )
        return entries

    def close(self) -> None:
        """Close the repository client. The manager cannot be used afterwards."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self._client, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "CacheManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
