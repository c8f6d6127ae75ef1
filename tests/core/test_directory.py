"""
Unit tests for the cache directory module.
"""

import tempfile
from pathlib import Path

import pytest

from crosskit.core.directory import (
    CACHE_DIR_ENV,
    DirectoryError,
    ensure_cache_dir,
    get_cache_dir,
)


class TestGetCacheDir:
    """Test cache root resolution."""

    def test_default(self):
        """Test the default lives in the system temp directory."""
        assert get_cache_dir({}) == Path(tempfile.gettempdir()) / "rust-cross-compiler"

    def test_environment_override(self, tmp_path):
        """Test CROSS_COMPILER_DIR moves the cache."""
        assert get_cache_dir({CACHE_DIR_ENV: str(tmp_path)}) == tmp_path.absolute()

    def test_empty_override_ignored(self):
        """Test an empty override falls back to the default."""
        assert get_cache_dir({CACHE_DIR_ENV: ""}).name == "rust-cross-compiler"

    def test_reads_os_environ(self, monkeypatch, tmp_path):
        """Test os.environ is used when no mapping is given."""
        monkeypatch.setenv(CACHE_DIR_ENV, str(tmp_path / "cache"))
        assert get_cache_dir() == (tmp_path / "cache").absolute()


class TestEnsureCacheDir:
    """Test cache root creation."""

    def test_creates_directory(self, tmp_path):
        """Test missing directories are created."""
        path = tmp_path / "a" / "b"
        assert ensure_cache_dir(path) == path
        assert path.is_dir()

    def test_file_in_the_way(self, tmp_path):
        """Test a file at the cache path is reported."""
        path = tmp_path / "cache"
        path.write_text("not a directory")
        with pytest.raises(DirectoryError):
            ensure_cache_dir(path)
