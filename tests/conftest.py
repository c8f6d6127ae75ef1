"""
Pytest configuration and shared fixtures for crosskit tests.
"""

import pytest
from pathlib import Path

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.archives import (
    tar_gz_bytes,
    zip_bytes,
)
from tests.fixtures.hosts import (
    linux_host,
    linux_arm_host,
    darwin_host,
    darwin_intel_host,
    windows_host,
)

from crosskit.config.parser import CrossConfig


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Empty toolchain cache root."""
    path = tmp_path / "rust-cross-compiler"
    path.mkdir()
    return path


@pytest.fixture
def make_config(cache_dir: Path):
    """Factory for CrossConfig objects rooted at the test cache directory."""

    def factory(**kwargs) -> CrossConfig:
        kwargs.setdefault("cross_compiler_dir", cache_dir)
        return CrossConfig(**kwargs)

    return factory


@pytest.fixture
def clean_env(monkeypatch):
    """Remove compiler and flag variables the host may have set."""
    for name in (
        "CC",
        "CXX",
        "AR",
        "LINKER",
        "RUNNER",
        "RUSTFLAGS",
        "CFLAGS",
        "CXXFLAGS",
        "LDFLAGS",
        "RUSTC_WRAPPER",
        "CROSS_COMPILER_DIR",
        "GITHUB_OUTPUT",
        "TARGETS",
        "COMMAND",
        "VERBOSE_LEVEL",
        "SCCACHE_DIR",
        "SCCACHE_CACHE_SIZE",
        "CARGO_TRIM_PATHS",
        "RUSTC_BOOTSTRAP",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
