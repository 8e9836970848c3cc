"""Shared fixtures for svncache tests."""

from datetime import timedelta

import pytest

from fakes import FakeSvnClient
from svncache.cache.config import CacheConfig
from svncache.cache.expiry import utcnow
from svncache.cache.ledger import AccessLedger
from svncache.cache.manager import CacheManager


@pytest.fixture
def export_root(tmp_path):
    """Create empty export root."""
    root = tmp_path / "export"
    root.mkdir()
    return root


@pytest.fixture
def cache_config(tmp_path, export_root):
    """Create test cache configuration with a private gate."""
    return CacheConfig(
        export_root=export_root,
        ledger_path=tmp_path / "access_times.json",
        mainline_ttl_days=7,
        branch_ttl_days=30,
        repository_url="https://svn.example.com/repo",
        lock_path=tmp_path / "gate.lock",
    )


@pytest.fixture
def fake_client():
    return FakeSvnClient()


@pytest.fixture
def cache_manager(cache_config, fake_client):
    """Create test cache manager backed by the fake client."""
    return CacheManager(cache_config, fake_client)


@pytest.fixture
def write_access():
    """Record an access time in a ledger file, `days_ago` days in the past."""

    def _write(ledger_path, path, days_ago):
        ledger = AccessLedger(ledger_path)
        ledger.load()
        ledger.remove(path)
        ledger.touch(path, now=utcnow() - timedelta(days=days_ago))
        ledger.save()

    return _write
