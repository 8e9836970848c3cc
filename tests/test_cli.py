"""Tests for the svncache command line."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from fakes import FakeSvnClient
from svncache.cache.manager import CacheManager
from svncache.cli.main import cli


@pytest.fixture
def config_file(tmp_path, cache_config):
    path = tmp_path / "config.json"
    cache_config.save(path)
    return path


@pytest.fixture
def fake_svn():
    """Route CLI managers to an in-process fake client."""
    client = FakeSvnClient()
    with patch.object(
        CacheManager,
        "from_config",
        side_effect=lambda config: CacheManager(config, client),
    ):
        yield client


def invoke(config_file, *args, input=None):
    runner = CliRunner()
    return runner.invoke(cli, ["--config", str(config_file), *args], input=input)


class TestUpdateCommand:
    """Test update command."""

    def test_update_paths(self, config_file, fake_svn, export_root):
        result = invoke(config_file, "update", "tags/a", "branches/b")

        assert result.exit_code == 0, result.output
        assert "tags/a" in result.output
        assert (export_root / "tags" / "a").is_dir()
        assert (export_root / "branches" / "b").is_dir()
        assert len(fake_svn.calls_of("checkout")) == 2

    def test_update_failure(self, config_file, fake_svn):
        fake_svn.fail_on.add("checkout")

        result = invoke(config_file, "update", "tags/a")

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_update_requires_path(self, config_file, fake_svn):
        result = invoke(config_file, "update")
        assert result.exit_code != 0


class TestExportCommand:
    """Test export command."""

    def test_export(self, config_file, fake_svn, export_root):
        result = invoke(config_file, "export", "trunk", "-r", "100")

        assert result.exit_code == 0, result.output
        assert (export_root / "trunk_100").is_dir()
        assert "trunk@100" in result.output

    def test_export_requires_revision(self, config_file, fake_svn):
        result = invoke(config_file, "export", "trunk")
        assert result.exit_code != 0


class TestCleanCommand:
    """Test clean command."""

    def test_clean_removes_orphans(self, config_file, fake_svn, export_root):
        (export_root / "orphan").mkdir()

        result = invoke(config_file, "clean", "--yes")

        assert result.exit_code == 0, result.output
        assert not (export_root / "orphan").exists()
        assert "Removed entries (1)" in result.output

    def test_clean_nothing_to_do(self, config_file, fake_svn):
        result = invoke(config_file, "clean", "-y")
        assert result.exit_code == 0
        assert "Nothing to clean" in result.output

    def test_clean_cancelled(self, config_file, fake_svn, export_root):
        (export_root / "orphan").mkdir()

        result = invoke(config_file, "clean", input="n\n")

        assert "Cancelled" in result.output
        assert (export_root / "orphan").exists()


class TestStatusCommand:
    """Test status command."""

    def test_status_empty(self, config_file, fake_svn):
        result = invoke(config_file, "status")
        assert result.exit_code == 0
        assert "No cached entries" in result.output

    def test_status_lists_entries(self, config_file, fake_svn, cache_config):
        invoke(config_file, "update", "trunk")

        result = invoke(config_file, "status")

        assert result.exit_code == 0, result.output
        assert "Cache entries (1)" in result.output


class TestConfigResolution:
    """Test how the CLI finds its configuration."""

    def test_missing_config_file(self, tmp_path):
        result = CliRunner().invoke(
            cli, ["--config", str(tmp_path / "missing.json"), "status"]
        )
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_env_config_file(self, config_file, fake_svn, monkeypatch):
        monkeypatch.setenv("SVNCACHE_CONFIG", str(config_file))
        result = CliRunner().invoke(cli, ["status"])
        assert result.exit_code == 0, result.output

    def test_no_config(self, monkeypatch):
        monkeypatch.delenv("SVNCACHE_CONFIG", raising=False)
        monkeypatch.delenv("SVNCACHE_EXPORT_ROOT", raising=False)
        result = CliRunner().invoke(cli, ["status"])
        assert result.exit_code == 1
        assert "No configuration given" in result.output

    def test_invalid_config_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"bogus": 1}))
        result = CliRunner().invoke(cli, ["--config", str(path), "status"])
        assert result.exit_code == 1
