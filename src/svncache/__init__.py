"""Disk cache of Subversion working copies and pinned exports."""

from svncache.cache import CacheConfig, CacheManager

__version__ = "0.1.0"

__all__ = ["CacheConfig", "CacheManager", "__version__"]
