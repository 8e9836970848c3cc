"""Exceptions raised by the svncache cache layer."""

from pathlib import Path
from typing import Any, List, Optional


class CacheError(Exception):
    """Base exception for cache-related errors.

    Keyword arguments are kept in ``context`` and appended to the message so
    that the paths involved in a failure are visible in logs and tracebacks.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class LedgerCorruptError(CacheError):
    """Raised when the access ledger exists but cannot be parsed."""

    def __init__(self, message: str, ledger_path: Path):
        self.ledger_path = Path(ledger_path)
        super().__init__(message, ledger_path=self.ledger_path)


class CacheDeleteError(CacheError):
    """Raised when a cache directory cannot be removed."""

    def __init__(self, message: str, path: Path):
        self.path = Path(path)
        super().__init__(message, path=self.path)


class VcsOperationError(CacheError):
    """Raised when a checkout, update or export could not be completed."""

    def __init__(
        self,
        message: str,
        relative_path: str,
        destination: Path,
        revision: Optional[int] = None,
    ):
        self.relative_path = relative_path
        self.destination = Path(destination)
        self.revision = revision
        context = {"relative_path": relative_path, "destination": self.destination}
        if revision is not None:
            context["revision"] = revision
        super().__init__(message, **context)


class CacheCleanError(CacheError):
    """Raised after a sweep in which one or more directories could not be removed."""

    def __init__(self, errors: List[CacheError], report: Any = None):
        self.errors = list(errors)
        self.report = report
        super().__init__(
            f"Errors occurred during cleaning: {len(self.errors)} failure(s)",
            paths=[str(getattr(e, "path", "?")) for e in self.errors],
        )


class CacheClosedError(CacheError):
    """Raised when a closed cache manager is used."""

    pass
