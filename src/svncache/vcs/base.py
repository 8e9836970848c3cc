"""VCS client interface."""

from pathlib import Path
from typing import Optional, Protocol, Sequence


class VcsError(Exception):
    """Base exception for version control failures."""

    pass


class VcsCommandError(VcsError):
    """Raised when a version control command exits with an error."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stderr: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"{' '.join(self.command)} exited with status {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


class VcsClient(Protocol):
    """Port for the repository operations used by the cache."""

    def checkout(self, relative_path: str, destination: Path) -> None:
        """Check out a repository path into a new working copy."""
        ...

    def update(self, destination: Path) -> None:
        """Bring an existing working copy up to date."""
        ...

    def export(
        self,
        relative_path: str,
        revision: int,
        destination: Path,
        overwrite: bool = True,
    ) -> None:
        """Export a repository path at a fixed revision, without metadata."""
        ...
