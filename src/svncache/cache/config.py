"""Cache configuration management."""

import json
import os
import tempfile
from dataclasses import dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Optional

DEFAULT_LEDGER_NAME = ".access_times.json"
DEFAULT_LOCK_NAME = "svncache-sync.lock"


def _default_lock_path() -> Path:
    return Path(tempfile.gettempdir()) / DEFAULT_LOCK_NAME


@dataclass
class CacheConfig:
    """Configuration for the working copy cache.

    Attributes:
        export_root: Directory holding working copies and pinned exports
        ledger_path: JSON file tracking last access times. Defaults to
            .access_times.json inside export_root.
        mainline_ttl_days: Idle days before an entry directly under
            export_root is evicted
        branch_ttl_days: Idle days before an entry under tags/ or branches/
            is evicted
        repository_url: Root URL of the Subversion repository
        username: Repository user name
        password: Repository password (never written by save())
        lock_path: Lock file of the host-wide gate. All caches on a host
            share the default so that every mutation is serialized.
    """

    export_root: Path
    ledger_path: Optional[Path] = None
    mainline_ttl_days: float = 7
    branch_ttl_days: float = 30
    repository_url: str = ""
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    lock_path: Optional[Path] = None

    def __post_init__(self):
        """Normalize paths to absolute Path objects and fill in defaults."""
        self.export_root = Path(self.export_root).expanduser().absolute()

        if self.ledger_path is None:
            self.ledger_path = self.export_root / DEFAULT_LEDGER_NAME
        else:
            self.ledger_path = Path(self.ledger_path).expanduser().absolute()

        if self.lock_path is None:
            self.lock_path = _default_lock_path()
        else:
            self.lock_path = Path(self.lock_path).expanduser().absolute()

        if self.mainline_ttl_days < 0 or self.branch_ttl_days < 0:
            raise ValueError("TTL values must not be negative")

    @property
    def mainline_ttl(self) -> timedelta:
        return timedelta(days=self.mainline_ttl_days)

    @property
    def branch_ttl(self) -> timedelta:
        return timedelta(days=self.branch_ttl_days)

    @classmethod
    def load(cls, config_path: Path) -> "CacheConfig":
        """Load configuration from file.

        Args:
            config_path: Path to a JSON config file

        Returns:
            CacheConfig instance

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file contains unknown or missing keys
        """
        config_path = Path(config_path)
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a JSON object")

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(
                f"Unknown config keys in {config_path}: {', '.join(sorted(unknown))}"
            )
        if "export_root" not in data:
            raise ValueError(f"Config file {config_path} is missing 'export_root'")

        return cls(**data)

    def save(self, config_path: Path) -> None:
        """Save configuration to file.

        Args:
            config_path: Destination JSON file
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "export_root": str(self.export_root),
            "ledger_path": str(self.ledger_path),
            "mainline_ttl_days": self.mainline_ttl_days,
            "branch_ttl_days": self.branch_ttl_days,
            "repository_url": self.repository_url,
            "username": self.username,
            "lock_path": str(self.lock_path),
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Create configuration from environment variables.

        Environment variables:
            SVNCACHE_EXPORT_ROOT: Cache root directory (required)
            SVNCACHE_LEDGER_PATH: Access ledger file
            SVNCACHE_MAINLINE_TTL_DAYS: Mainline TTL in days
            SVNCACHE_BRANCH_TTL_DAYS: tags/branches TTL in days
            SVNCACHE_REPOSITORY_URL: Repository root URL
            SVNCACHE_USERNAME: Repository user name
            SVNCACHE_PASSWORD: Repository password
            SVNCACHE_LOCK_PATH: Gate lock file

        Returns:
            CacheConfig instance

        Raises:
            ValueError: If SVNCACHE_EXPORT_ROOT is not set
        """
        export_root = os.getenv("SVNCACHE_EXPORT_ROOT")
        if not export_root:
            raise ValueError("SVNCACHE_EXPORT_ROOT is not set")

        config = cls(
            export_root=Path(export_root),
            ledger_path=os.getenv("SVNCACHE_LEDGER_PATH") or None,
            repository_url=os.getenv("SVNCACHE_REPOSITORY_URL", ""),
            username=os.getenv("SVNCACHE_USERNAME") or None,
            password=os.getenv("SVNCACHE_PASSWORD") or None,
            lock_path=os.getenv("SVNCACHE_LOCK_PATH") or None,
        )

        if os.getenv("SVNCACHE_MAINLINE_TTL_DAYS"):
            config.mainline_ttl_days = float(os.getenv("SVNCACHE_MAINLINE_TTL_DAYS"))

        if os.getenv("SVNCACHE_BRANCH_TTL_DAYS"):
            config.branch_ttl_days = float(os.getenv("SVNCACHE_BRANCH_TTL_DAYS"))

        return config
