"""
File system utilities for crosskit.

This module provides:
- Archive extraction (.tar.gz streamed, .zip from disk) with symlink and
  permission handling
- All-or-nothing destination finalization through a scratch directory
- Safe file operations (atomic writes, forced tree removal)
- Path utilities and executable lookup
"""

import logging
import os
import shutil
import stat
import sys
import tarfile
import tempfile
import zipfile
from enum import Enum
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple, Union

from crosskit.core.exceptions import (
    ArchiveExtractionError,
    CrossKitError,
    InsecureArchiveError,
    UnsupportedArchiveFormat,
)
from crosskit.core.progress import ProgressFactory, ProgressReporter

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = os.name == "nt"
IS_UNIX = not IS_WINDOWS

SCRATCH_SUFFIX = ".tmp"


class FilesystemError(CrossKitError):
    """Base exception for filesystem operations."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/project/file.txt"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def find_executable(
    name: str, search_paths: Optional[List[Path]] = None
) -> Optional[Path]:
    """
    Find an executable in the system PATH or provided search paths.

    Args:
        name: Executable name (e.g., 'docker', 'wine')
        search_paths: Optional list of directories to search

    Returns:
        Path to executable if found, None otherwise
    """
    extensions = [""] if not IS_WINDOWS else ["", ".exe", ".bat", ".cmd"]

    if search_paths is None:
        path_env = os.environ.get("PATH", "")
        search_paths = [Path(p) for p in path_env.split(os.pathsep) if p]

    for directory in search_paths:
        for ext in extensions:
            exe_path = directory / f"{name}{ext}"
            if exe_path.is_file() and os.access(exe_path, os.X_OK):
                return exe_path

    return None


def dir_exists_and_not_empty(path: Union[str, Path]) -> bool:
    """Check that a directory exists and holds at least one entry."""
    path = Path(path)
    if not path.is_dir():
        return False
    return any(path.iterdir())


def make_writable_dir_all(path: Union[str, Path]) -> None:
    """
    Create a directory (and parents) and make sure its owner can write to it.

    Archives sometimes ship read-only directory entries; forcing owner rwx
    lets later entries be created inside them.
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    if IS_UNIX:
        mode = path.stat().st_mode
        os.chmod(path, stat.S_IMODE(mode) | stat.S_IRWXU)


# ============================================================================
# Archive Extraction
# ============================================================================


class ArchiveFormat(Enum):
    """Supported archive formats."""

    TAR_GZ = "tar.gz"
    ZIP = "zip"

    @classmethod
    def from_url(cls, url: str) -> Optional["ArchiveFormat"]:
        """
        Infer the archive format from a URL or file name suffix.

        Example:
            >>> ArchiveFormat.from_url("https://host/x86_64-linux-musl-cross.tgz")
            <ArchiveFormat.TAR_GZ: 'tar.gz'>
        """
        name = url.split("?", 1)[0].lower()
        if name.endswith((".tar.gz", ".tgz")):
            return cls.TAR_GZ
        if name.endswith(".zip"):
            return cls.ZIP
        return None


def _validate_archive_path(name: str, destination: Path) -> Path:
    """
    Validate that an archive member path stays inside the destination.

    Prevents directory traversal attacks (e.g., paths containing '../').

    Returns:
        Absolute output path for the member

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    if os.path.isabs(name) or name.startswith(("/", "\\")):
        raise InsecureArchiveError(f"Archive member '{name}' has an absolute path")

    member_path = Path(os.path.normpath(os.path.join(destination, name)))
    if not is_relative_to(member_path, destination):
        raise InsecureArchiveError(
            f"Archive member '{name}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )
    return member_path


def _apply_permissions(pending: List[Tuple[Path, int]]) -> None:
    """Apply recorded modes, deepest paths first."""
    for path, mode in sorted(pending, key=lambda item: str(item[0]), reverse=True):
        if path.is_symlink():
            continue
        os.chmod(path, mode)


def _extract_tar_gz_stream(
    stream: BinaryIO, destination: Path, progress: ProgressReporter
) -> None:
    """Unpack a gzip compressed tar stream entry by entry."""
    # Member paths go through _validate_archive_path; header modes are kept as is
    filter_kwargs = {}
    if hasattr(tarfile, "fully_trusted_filter"):
        filter_kwargs["filter"] = "fully_trusted"

    pending_dirs: List[Tuple[Path, int]] = []
    with tarfile.open(fileobj=stream, mode="r|gz") as tar:
        for member in tar:
            out_path = _validate_archive_path(member.name, destination)
            if member.isdir():
                tar.extract(member, destination, set_attrs=False, **filter_kwargs)
                make_writable_dir_all(out_path)
                pending_dirs.append((out_path, member.mode & 0o7777))
            else:
                if out_path.parent != destination:
                    make_writable_dir_all(out_path.parent)
                tar.extract(member, destination, **filter_kwargs)
            progress.advance(1)

    if IS_UNIX:
        _apply_permissions(pending_dirs)


def _zip_unix_mode(info: zipfile.ZipInfo) -> int:
    return (info.external_attr >> 16) & 0xFFFF


def _extract_zip(
    archive_path: Path, destination: Path, progress: ProgressReporter
) -> None:
    """
    Extract a ZIP archive by index.

    Directories are created writable, symlinks are recreated from their
    stored target text, and Unix modes are applied after every entry has
    been written.
    """
    pending: List[Tuple[Path, int]] = []

    with zipfile.ZipFile(archive_path, "r") as zf:
        entries = zf.infolist()
        progress.set_total(len(entries))

        for info in entries:
            out_path = _validate_archive_path(info.filename, destination)
            unix_mode = _zip_unix_mode(info)

            if info.is_dir():
                make_writable_dir_all(out_path)
                if stat.S_IMODE(unix_mode):
                    pending.append((out_path, stat.S_IMODE(unix_mode)))
                progress.advance(1)
                continue

            make_writable_dir_all(out_path.parent)

            if stat.S_ISLNK(unix_mode):
                with zf.open(info) as src:
                    target = src.read()
                if os.path.lexists(out_path):
                    out_path.unlink()
                if IS_UNIX:
                    os.symlink(target.decode("utf-8"), out_path)
                else:
                    out_path.write_bytes(target)
            else:
                with zf.open(info) as src, open(out_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                if unix_mode:
                    pending.append((out_path, stat.S_IMODE(unix_mode)))

            progress.advance(1)

    if IS_UNIX:
        _apply_permissions(pending)


def scratch_dir_for(destination: Path) -> Path:
    """Scratch directory used while extracting into ``destination``."""
    return destination.with_name(destination.name + SCRATCH_SUFFIX)


def finalize_extraction(scratch: Path, destination: Path) -> None:
    """
    Move an extracted scratch directory into place.

    A single top-level directory is unwrapped so its contents become the
    destination. Any existing destination is removed first.

    Raises:
        FilesystemError: If the scratch directory cannot be moved into place
    """
    try:
        if destination.is_symlink() or destination.is_file():
            destination.unlink()
        elif destination.exists():
            force_rmtree(destination)

        entries = list(scratch.iterdir())
        if len(entries) == 1 and entries[0].is_dir() and not entries[0].is_symlink():
            root = entries[0]
            # Moving a directory to a new parent needs write access to it
            mode = stat.S_IMODE(root.stat().st_mode)
            if IS_UNIX and not mode & stat.S_IWUSR:
                os.chmod(root, mode | stat.S_IWUSR)
            os.rename(root, destination)
            if IS_UNIX:
                os.chmod(destination, mode)
            force_rmtree(scratch)
        else:
            os.rename(scratch, destination)
    except OSError as e:
        raise FilesystemError(
            f"Failed to move '{scratch}' into '{destination}': {e}"
        ) from e


def extract_archive(
    source: Union[str, Path, BinaryIO],
    archive_format: ArchiveFormat,
    destination: Union[str, Path],
    progress_factory: ProgressFactory = ProgressReporter,
) -> Path:
    """
    Extract an archive into a destination directory, all or nothing.

    Entries are unpacked into ``<destination>.tmp`` and only moved into
    place on success. On failure the scratch directory is removed and the
    destination is left untouched.

    Args:
        source: Archive path, or a readable binary stream for tar.gz
        archive_format: Format of the archive
        destination: Directory to create
        progress_factory: Creates the per-entry progress reporter

    Returns:
        The destination path

    Raises:
        UnsupportedArchiveFormat: If the format cannot be handled
        InsecureArchiveError: If an entry escapes the destination
        ArchiveExtractionError: If extraction fails
        FilesystemError: If the scratch directory cannot be prepared or moved
    """
    destination = Path(destination).absolute()
    scratch = scratch_dir_for(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        if scratch.exists():
            force_rmtree(scratch)
        scratch.mkdir()
    except OSError as e:
        raise FilesystemError(f"Cannot prepare '{scratch}': {e}") from e

    progress = progress_factory(destination.name, total=None, unit="files")
    try:
        if archive_format is ArchiveFormat.TAR_GZ:
            if isinstance(source, (str, Path)):
                with open(source, "rb") as f:
                    _extract_tar_gz_stream(f, scratch, progress)
            else:
                _extract_tar_gz_stream(source, scratch, progress)
        elif archive_format is ArchiveFormat.ZIP:
            if not isinstance(source, (str, Path)):
                raise UnsupportedArchiveFormat("zip extraction requires a file path")
            _extract_zip(Path(source), scratch, progress)
        else:
            raise UnsupportedArchiveFormat(f"Unsupported archive format: {archive_format}")

        progress.finish(f"Extracted {progress.position} entries into {destination}")
        finalize_extraction(scratch, destination)
    except CrossKitError:
        force_rmtree(scratch)
        raise
    except Exception as e:
        force_rmtree(scratch)
        raise ArchiveExtractionError(f"Failed to extract into {destination}: {e}") from e

    return destination


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path],
    content: Union[str, bytes],
    encoding: str = "utf-8",
    mode: Optional[int] = None,
) -> None:
    """
    Write file atomically using temp file + rename.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
        mode: Optional permission bits for the written file

    Raises:
        FilesystemError: If the file cannot be written
    """
    file_path = Path(file_path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path_str = tempfile.mkstemp(
            dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise FilesystemError(f"Failed to write '{file_path}': {e}") from e
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        if mode is not None:
            os.chmod(temp_path, mode)
        temp_path.replace(file_path)

    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise FilesystemError(f"Failed to write '{file_path}': {e}") from e
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def force_rmtree(path: Union[str, Path]) -> None:
    """
    Remove a directory tree, including read-only entries.

    Raises:
        FilesystemError: If deletion fails
    """
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return

    def handle_remove_readonly(func, failed_path, exc):
        parent = os.path.dirname(failed_path)
        os.chmod(parent, stat.S_IRWXU)
        if os.path.isdir(failed_path) and not os.path.islink(failed_path):
            os.chmod(failed_path, stat.S_IRWXU)
        func(failed_path)

    try:
        if sys.version_info >= (3, 12):
            shutil.rmtree(path, onexc=handle_remove_readonly)
        else:
            shutil.rmtree(path, onerror=handle_remove_readonly)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


__all__ = [
    "IS_WINDOWS",
    "FilesystemError",
    "ArchiveFormat",
    "extract_archive",
    "finalize_extraction",
    "scratch_dir_for",
    "make_writable_dir_all",
    "dir_exists_and_not_empty",
    "atomic_write",
    "force_rmtree",
    "find_executable",
    "is_relative_to",
]
