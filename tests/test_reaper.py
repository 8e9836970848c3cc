"""Unit tests for forced directory removal."""

import os
import stat
from unittest.mock import patch

import pytest

from svncache.cache.errors import CacheDeleteError
from svncache.cache.reaper import clear_read_only, reap_directory


def make_read_only_tree(root):
    """Build a tree with read-only files and nested read-only directories."""
    nested = root / "a" / "b" / "c"
    nested.mkdir(parents=True)
    for directory in (root, root / "a", root / "a" / "b", nested):
        target = directory / "file.txt"
        target.write_text("data")
        os.chmod(target, stat.S_IRUSR | stat.S_IRGRP)
    (root / ".svn").mkdir()
    (root / ".svn" / "wc.db").write_text("db")
    os.chmod(root / ".svn" / "wc.db", stat.S_IRUSR)
    # Directories readable and traversable but not writable
    for directory in (nested, root / "a" / "b", root / "a", root / ".svn"):
        os.chmod(directory, stat.S_IRUSR | stat.S_IXUSR)


class TestReapDirectory:
    """Test reap_directory."""

    def test_removes_tree(self, tmp_path):
        target = tmp_path / "entry"
        (target / "sub").mkdir(parents=True)
        (target / "sub" / "f.txt").write_text("x")

        assert reap_directory(target) is True
        assert not target.exists()

    def test_removes_read_only_tree(self, tmp_path):
        """Test that read-only files and directories do not block removal."""
        target = tmp_path / "entry"
        target.mkdir()
        make_read_only_tree(target)

        reap_directory(target)

        assert not target.exists()
        assert list(tmp_path.iterdir()) == []

    def test_missing_directory_is_noop(self, tmp_path):
        assert reap_directory(tmp_path / "missing") is False

    def test_accepts_string_path(self, tmp_path):
        target = tmp_path / "entry"
        target.mkdir()
        reap_directory(str(target))
        assert not target.exists()

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_target_untouched(self, tmp_path):
        """Test that files reached through symlinks keep their permissions."""
        outside = tmp_path / "outside.txt"
        outside.write_text("keep")
        os.chmod(outside, stat.S_IRUSR)
        target = tmp_path / "entry"
        target.mkdir()
        try:
            os.symlink(outside, target / "link.txt")
        except OSError:
            pytest.skip("cannot create symlinks")

        reap_directory(target)

        assert not target.exists()
        assert outside.read_text() == "keep"
        assert stat.S_IMODE(outside.stat().st_mode) == stat.S_IRUSR
        os.chmod(outside, stat.S_IRUSR | stat.S_IWUSR)

    def test_failure_raises_delete_error(self, tmp_path):
        """Test that removal failures surface as CacheDeleteError."""
        target = tmp_path / "entry"
        target.mkdir()

        with patch(
            "svncache.cache.reaper.shutil.rmtree",
            side_effect=PermissionError("file in use"),
        ):
            with pytest.raises(CacheDeleteError) as exc_info:
                reap_directory(target)

        assert exc_info.value.path == target
        assert isinstance(exc_info.value.__cause__, PermissionError)


class TestClearReadOnly:
    """Test clear_read_only."""

    def test_makes_everything_writable(self, tmp_path):
        target = tmp_path / "entry"
        target.mkdir()
        make_read_only_tree(target)

        clear_read_only(target)

        for dirpath, dirnames, filenames in os.walk(target):
            assert os.stat(dirpath).st_mode & stat.S_IWUSR
            for name in filenames:
                assert os.stat(os.path.join(dirpath, name)).st_mode & stat.S_IWUSR
