"""
Core functionality for crosskit.

This package contains the foundational modules the toolchain strategies
depend on: errors, the cache directory, downloads, archive extraction and
host detection.
"""

from .exceptions import (
    CrossKitError,
    ConfigurationError,
    NetworkError,
    DownloadError,
    ArchiveExtractionError,
    ResolutionError,
    ExecutionError,
)

from .directory import (
    get_cache_dir,
    ensure_cache_dir,
    DirectoryError,
)

from .download import (
    Downloader,
    RetryPolicy,
)

from .filesystem import (
    ArchiveFormat,
    extract_archive,
    atomic_write,
    find_executable,
)

from .platform import (
    HostPlatform,
    detect_host,
    clear_host_cache,
)

__all__ = [
    # Exceptions
    "CrossKitError",
    "ConfigurationError",
    "NetworkError",
    "DownloadError",
    "ArchiveExtractionError",
    "ResolutionError",
    "ExecutionError",
    # Directory
    "get_cache_dir",
    "ensure_cache_dir",
    "DirectoryError",
    # Download
    "Downloader",
    "RetryPolicy",
    # Filesystem
    "ArchiveFormat",
    "extract_archive",
    "atomic_write",
    "find_executable",
    # Platform
    "HostPlatform",
    "detect_host",
    "clear_host_cache",
]
