"""Working copy cache with access-time based eviction.

Key components:
- CacheManager: update, export_to_revision and clean operations
- CacheConfig: Configuration management
- AccessLedger: JSON ledger of last access times
- CacheGate: Host-wide lock serializing cache mutations
- reap_directory: Forced removal of cache entries
"""

from svncache.cache.config import CacheConfig
from svncache.cache.errors import (
    CacheCleanError,
    CacheClosedError,
    CacheDeleteError,
    CacheError,
    LedgerCorruptError,
    VcsOperationError,
)
from svncache.cache.gate import CacheGate
from svncache.cache.ledger import AccessLedger, AccessRecord
from svncache.cache.manager import CacheManager, CleanReport, EntryStatus
from svncache.cache.reaper import reap_directory

__all__ = [
    "CacheManager",
    "CacheConfig",
    "CleanReport",
    "EntryStatus",
    "AccessLedger",
    "AccessRecord",
    "CacheGate",
    "reap_directory",
    "CacheError",
    "CacheCleanError",
    "CacheClosedError",
    "CacheDeleteError",
    "LedgerCorruptError",
    "VcsOperationError",
]
