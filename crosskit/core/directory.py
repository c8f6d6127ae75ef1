"""
Toolchain cache directory location.

Toolchains, emulators and SDK bundles are cached under one root directory,
one sub-directory per toolchain identity. The root defaults to
``<system temp>/rust-cross-compiler`` and can be moved with the
``CROSS_COMPILER_DIR`` environment variable.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from crosskit.core.exceptions import CrossKitError

logger = logging.getLogger(__name__)

CACHE_DIR_ENV = "CROSS_COMPILER_DIR"
CACHE_DIR_NAME = "rust-cross-compiler"


class DirectoryError(CrossKitError):
    """Exception raised when the cache directory cannot be used."""

    pass


def default_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / CACHE_DIR_NAME


def get_cache_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Resolve the toolchain cache root.

    Args:
        environ: Environment to read ``CROSS_COMPILER_DIR`` from;
            defaults to os.environ

    Returns:
        Absolute cache root path (not created)
    """
    if environ is None:
        environ = os.environ
    override = environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override).expanduser().absolute()
    return default_cache_dir()


def ensure_cache_dir(path: Path) -> Path:
    """
    Create the cache root if needed and check that it is writable.

    Raises:
        DirectoryError: If the directory cannot be created or written
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryError(f"Cannot create cache directory {path}: {e}") from e

    if not os.access(path, os.W_OK):
        raise DirectoryError(f"Cache directory is not writable: {path}")

    logger.debug(f"Using toolchain cache directory: {path}")
    return path


__all__ = [
    "CACHE_DIR_ENV",
    "DirectoryError",
    "default_cache_dir",
    "get_cache_dir",
    "ensure_cache_dir",
]
