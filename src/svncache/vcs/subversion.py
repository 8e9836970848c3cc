"""Subversion client driving the ``svn`` command line."""

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from svncache.vcs.base import VcsCommandError, VcsError

logger = logging.getLogger(__name__)

# Certificate failures accepted when untrusted servers are allowed
TRUST_FAILURES = "unknown-ca,cn-mismatch,expired,not-yet-valid,other"


class SubversionClient:
    """Runs checkout, update and export through the ``svn`` executable.

    Every command is non-interactive and never stores credentials. The
    password is fed on stdin so it never shows up in the process list. Server
    certificate failures are accepted only when ``trust_server_cert`` is
    set, which defaults to the SVN_ALLOW_UNTRUSTED_SSL environment variable
    being "1".
    """

    def __init__(
        self,
        repository_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        svn_binary: str = "svn",
        trust_server_cert: Optional[bool] = None,
        timeout: Optional[float] = None,
    ):
        if not repository_url:
            raise ValueError("repository_url is required")
        self.repository_url = repository_url.rstrip("/")
        self.username = username
        self.password = password
        self.svn_binary = svn_binary
        if trust_server_cert is None:
            trust_server_cert = os.getenv("SVN_ALLOW_UNTRUSTED_SSL") == "1"
        self.trust_server_cert = trust_server_cert
        self.timeout = timeout
        self._closed = False

    def remote_url(self, relative_path: str) -> str:
        """Build the repository URL for a relative path."""
        relative = relative_path.replace("\\", "/").strip("/")
        if not relative:
            return self.repository_url
        return f"{self.repository_url}/{quote(relative, safe='/')}"

    def _global_options(self) -> List[str]:
        options = ["--non-interactive", "--no-auth-cache"]
        if self.username:
            options += ["--username", self.username]
        if self.password:
            options.append("--password-from-stdin")
        if self.trust_server_cert:
            options.append(f"--trust-server-cert-failures={TRUST_FAILURES}")
        return options

    def _run(self, *args: str) -> str:
        if self._closed:
            raise VcsError("Subversion client is closed")

        command = [self.svn_binary, *args, *self._global_options()]
        logger.debug(f"Running {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                errors="replace",
                input=self.password if self.password else None,
                timeout=self.timeout,
                check=True,
            )
        except FileNotFoundError as e:
            raise VcsError(f"Subversion executable not found: {self.svn_binary}") from e
        except subprocess.CalledProcessError as e:
            raise VcsCommandError(command, e.returncode, e.stderr) from e
        except subprocess.TimeoutExpired as e:
            raise VcsError(
                f"{' '.join(command)} timed out after {self.timeout} seconds"
            ) from e
        return result.stdout

    def checkout(self, relative_path: str, destination: Path) -> None:
        self._run("checkout", self.remote_url(relative_path), str(destination))

    def update(self, destination: Path) -> None:
        self._run("update", str(destination))

    def export(
        self,
        relative_path: str,
        revision: int,
        destination: Path,
        overwrite: bool = True,
    ) -> None:
        args = [
            "export",
            "-r",
            str(revision),
            f"{self.remote_url(relative_path)}@{revision}",
            str(destination),
        ]
        if overwrite:
            args.append("--force")
        self._run(*args)

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "SubversionClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
