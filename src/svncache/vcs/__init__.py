"""Version control clients used to populate the cache."""

from svncache.vcs.base import VcsClient, VcsCommandError, VcsError
from svncache.vcs.subversion import SubversionClient

__all__ = [
    "VcsClient",
    "VcsError",
    "VcsCommandError",
    "SubversionClient",
]
