"""
Toolchain installer for crosskit.

Fetches a toolchain archive and unpacks it into the cache directory:

- .tar.gz archives are streamed straight from the HTTP response into the
  extractor, so no archive file ever lands on disk
- .zip archives need random access; they are fetched to ``<dest>.zip``
  (resumable through ``<dest>.zip.tmp``), extracted, then deleted
- the destination only appears once extraction has fully succeeded

Example:
    >>> installer = ToolchainInstaller()
    >>> result = installer.ensure(
    ...     Path("/tmp/rust-cross-compiler/x86_64-linux-musl-cross-v0.7.4"),
    ...     "https://github.com/zijiren233/cross-make/releases/download/"
    ...     "v0.7.4-linux-x86_64/x86_64-linux-musl-cross.tgz",
    ... )
    >>> result.was_cached
    False
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from crosskit.core.download import Downloader
from crosskit.core.exceptions import UnsupportedArchiveFormat
from crosskit.core.filesystem import (
    ArchiveFormat,
    FilesystemError,
    dir_exists_and_not_empty,
    extract_archive,
)
from crosskit.core.progress import ProgressFactory, ProgressReporter

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of installing (or finding) a toolchain."""

    path: Path
    url: str
    elapsed: float
    was_cached: bool


class ToolchainInstaller:
    """
    Downloads and extracts toolchain archives.

    Args:
        downloader: Downloader used for every request; carries the GitHub
            proxy setting
        progress_factory: Creates progress reporters for extraction
    """

    def __init__(
        self,
        downloader: Optional[Downloader] = None,
        progress_factory: ProgressFactory = ProgressReporter,
    ):
        self.downloader = downloader or Downloader(progress_factory=progress_factory)
        self.progress_factory = progress_factory

    def download_and_extract(
        self,
        url: str,
        dest: Union[str, Path],
        archive_format: Optional[ArchiveFormat] = None,
    ) -> InstallResult:
        """
        Download an archive and extract it into ``dest``.

        Args:
            url: Archive URL
            dest: Destination directory (replaced if it exists)
            archive_format: Archive format; inferred from the URL if omitted

        Returns:
            InstallResult for the new installation

        Raises:
            UnsupportedArchiveFormat: If the format cannot be determined
            DownloadError: If the download fails
            ArchiveExtractionError: If extraction fails
            FilesystemError: If the cache directory cannot be written
        """
        archive_format = archive_format or ArchiveFormat.from_url(url)
        if archive_format is None:
            raise UnsupportedArchiveFormat(f"Unsupported archive format: {url}")

        dest = Path(dest).absolute()
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create '{dest.parent}': {e}") from e

        logger.info(
            f'Downloading "{self.downloader.resolve_url(url)}" to "{dest}"'
        )
        start_time = time.time()

        if archive_format is ArchiveFormat.TAR_GZ:
            with self.downloader.open(url) as stream:
                extract_archive(
                    stream, archive_format, dest, progress_factory=self.progress_factory
                )
        else:
            archive_path = dest.with_name(dest.name + ".zip")
            self.downloader.fetch(url, archive_path)
            try:
                extract_archive(
                    archive_path,
                    archive_format,
                    dest,
                    progress_factory=self.progress_factory,
                )
            finally:
                try:
                    archive_path.unlink(missing_ok=True)
                except OSError as e:
                    logger.warning(f"Failed to remove {archive_path}: {e}")

        elapsed = time.time() - start_time
        logger.info(f"Installed {dest.name} in {elapsed:.2f}s")
        return InstallResult(path=dest, url=url, elapsed=elapsed, was_cached=False)

    def ensure(
        self,
        dest: Union[str, Path],
        url: str,
        archive_format: Optional[ArchiveFormat] = None,
    ) -> InstallResult:
        """
        Install a toolchain unless ``dest`` already holds one.

        A missing or empty destination triggers a download; anything else is
        treated as a cache hit.
        """
        dest = Path(dest)
        if dir_exists_and_not_empty(dest):
            logger.debug(f"Toolchain already cached: {dest}")
            return InstallResult(path=dest, url=url, elapsed=0.0, was_cached=True)
        return self.download_and_extract(url, dest, archive_format)


__all__ = ["InstallResult", "ToolchainInstaller"]
