"""
Resumable HTTP downloads with retry and progress reporting.

This module provides:
- Streaming GET with a bounded retry loop and exponential backoff
- Retryable vs fatal failure classification (configurable status policy)
- Resume from a ``<dest>.tmp`` partial file using Range headers
- Resume after mid-stream breaks, not only at connect time
- Byte progress (bar when Content-Length is known, spinner otherwise)
- Atomic rename of the finished file into place

Example:
    >>> from crosskit.core.download import Downloader
    >>> downloader = Downloader()
    >>> downloader.fetch("https://example.com/toolchain.zip", Path("toolchain.zip"))
"""

import io
import logging
import os
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, FrozenSet, Optional, Union

import requests
from requests.exceptions import (
    ChunkedEncodingError,
    ConnectionError,
    InvalidSchema,
    InvalidURL,
    MissingSchema,
    RequestException,
    Timeout,
)

from crosskit.core.exceptions import DownloadError
from crosskit.core.progress import ProgressFactory, ProgressReporter

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
INITIAL_BACKOFF = 1.0
CHUNK_SIZE = 8192
USER_AGENT = "crosskit"
PARTIAL_SUFFIX = ".tmp"

STREAM_ERRORS = (ConnectionError, Timeout, ChunkedEncodingError)
URL_ERRORS = (MissingSchema, InvalidSchema, InvalidURL)


@dataclass
class RetryPolicy:
    """
    Retry settings for a download.

    Attributes:
        max_attempts: Failed attempts allowed before giving up
        initial_backoff: Delay in seconds after the first failure; doubles
            after each further failure
        retry_statuses: HTTP statuses treated as retryable. None means
            every 5xx status
    """

    max_attempts: int = MAX_RETRIES
    initial_backoff: float = INITIAL_BACKOFF
    retry_statuses: Optional[FrozenSet[int]] = None

    def is_retryable_status(self, status: int) -> bool:
        if self.retry_statuses is not None:
            return status in self.retry_statuses
        return 500 <= status <= 599

    def backoff(self, failures: int) -> float:
        """Delay before the next attempt after ``failures`` failed attempts."""
        return self.initial_backoff * 2 ** (failures - 1)


@dataclass
class DownloadTask:
    """A single file download and its resume checkpoint."""

    url: str
    destination: Path
    already_downloaded: int = 0
    total_size: Optional[int] = None

    @property
    def partial_path(self) -> Path:
        return partial_path(self.destination)


class _RetryableFailure(Exception):
    """Internal marker for failures that consume a retry attempt."""

    pass


def partial_path(destination: Path) -> Path:
    """Path of the in-progress file for a destination."""
    return destination.with_name(destination.name + PARTIAL_SUFFIX)


def apply_github_proxy(url: str, proxy: Optional[str]) -> str:
    """
    Prefix GitHub URLs with a mirror proxy.

    Example:
        >>> apply_github_proxy("https://github.com/a/b.tgz", "https://ghproxy.example/")
        'https://ghproxy.example/https://github.com/a/b.tgz'
    """
    if proxy and url.startswith("https://github.com"):
        return f"{proxy}{url}"
    return url


def _parse_content_range(value: Optional[str]):
    """Parse 'bytes start-end/total' into (start, total); total may be None."""
    if not value or not value.startswith("bytes "):
        return None, None
    span, _, total = value[len("bytes ") :].partition("/")
    start = span.split("-", 1)[0]
    try:
        start_value = int(start) if start and start != "*" else None
    except ValueError:
        start_value = None
    try:
        total_value = int(total) if total and total != "*" else None
    except ValueError:
        total_value = None
    return start_value, total_value


class RemoteStream(io.RawIOBase):
    """
    Readable byte stream over an HTTP resource that survives network breaks.

    Connect failures, retryable statuses and mid-stream errors all consume
    one attempt from the same budget. After a break the stream re-requests
    the resource from the byte offset already received, so the consumer
    sees one continuous body.

    Attributes:
        url: Resource URL
        start_offset: Offset the body actually starts at; 0 when the server
            ignored the requested Range
        total_size: Full resource size when known
    """

    def __init__(
        self,
        session: requests.Session,
        url: str,
        offset: int = 0,
        policy: Optional[RetryPolicy] = None,
        timeout: int = 30,
        progress_factory: ProgressFactory = ProgressReporter,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__()
        self.url = url
        self.start_offset = offset
        self.total_size: Optional[int] = None
        self.failures = 0
        self._session = session
        self._policy = policy or RetryPolicy()
        self._timeout = timeout
        self._progress_factory = progress_factory
        self._sleep = sleep
        self._received = offset
        self._skip = 0
        self._buffer = b""
        self._response = None
        self._chunks = None
        self._exhausted = False
        self._connected_once = False
        self._progress: Optional[ProgressReporter] = None

        self._open_response()

    # ------------------------------------------------------------------
    # io.RawIOBase interface
    # ------------------------------------------------------------------

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._buffer:
            if self._exhausted:
                return 0
            self._fill()

        size = min(len(buffer), len(self._buffer))
        buffer[:size] = self._buffer[:size]
        self._buffer = self._buffer[size:]
        if self._progress:
            self._progress.advance(size)
        return size

    def close(self) -> None:
        self._close_response()
        if self._progress and self._exhausted:
            self._progress.finish()
        super().close()

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    def _close_response(self) -> None:
        if self._response is not None:
            self._response.close()
            self._response = None
            self._chunks = None

    def _fail(self, reason: str) -> None:
        self.failures += 1
        if self.failures >= self._policy.max_attempts:
            raise DownloadError(
                self.url, f"giving up after {self.failures} attempts: {reason}"
            )
        delay = self._policy.backoff(self.failures)
        logger.warning(
            f"Download attempt {self.failures} failed: {reason}. "
            f"Retrying in {delay:g}s..."
        )
        self._sleep(delay)

    def _open_response(self) -> None:
        while True:
            try:
                self._request()
                return
            except _RetryableFailure as e:
                self._close_response()
                self._fail(str(e))

    def _request(self) -> None:
        offset = self._received
        headers = {}
        if offset > 0:
            headers["Range"] = f"bytes={offset}-"
            logger.debug(f"Requesting {self.url} from byte {offset}")
        else:
            logger.info(f"Downloading from {self.url}")

        try:
            response = self._session.get(
                self.url,
                headers=headers,
                stream=True,
                timeout=self._timeout,
                allow_redirects=True,
            )
        except URL_ERRORS as e:
            raise DownloadError(self.url, f"invalid URL: {e}") from e
        except (ConnectionError, Timeout) as e:
            raise _RetryableFailure(f"connection error: {e}") from e
        except RequestException as e:
            raise DownloadError(self.url, f"request failed: {e}") from e

        status = response.status_code

        if status == 416 and offset > 0 and not self._connected_once:
            # Stale partial file; start over without a Range header
            logger.warning(f"Server rejected resume at byte {offset}, restarting")
            response.close()
            self._received = 0
            self.start_offset = 0
            self._request()
            return

        if not 200 <= status < 300:
            response.close()
            if self._policy.is_retryable_status(status):
                raise _RetryableFailure(f"HTTP {status}")
            raise DownloadError(self.url, f"HTTP {status}", status_code=status)

        if status == 206:
            start, total = _parse_content_range(response.headers.get("Content-Range"))
            if start is not None and start != offset:
                response.close()
                raise _RetryableFailure(
                    f"server resumed at byte {start}, expected {offset}"
                )
            if total is None:
                total = self._length_from_headers(response, offset)
        else:
            total = self._length_from_headers(response, 0)
            if offset > 0:
                if self._connected_once:
                    # Mid-stream reconnect got the full body: drop what we have
                    self._skip = offset
                else:
                    logger.info("Server does not support resume, restarting download")
                    self.start_offset = 0
                self._received = 0

        if total is not None:
            self.total_size = total

        self._response = response
        self._chunks = response.iter_content(chunk_size=CHUNK_SIZE)

        if self._progress is None:
            label = self.url.rsplit("/", 1)[-1] or self.url
            self._progress = self._progress_factory(label, total=self.total_size)
            self._progress.position = self.start_offset
        elif self.total_size is not None and not self._progress.bounded:
            self._progress.set_total(self.total_size)
        self._connected_once = True

    @staticmethod
    def _length_from_headers(response, offset: int) -> Optional[int]:
        encoding = response.headers.get("Content-Encoding", "identity")
        length = response.headers.get("Content-Length")
        if not length or encoding not in ("", "identity"):
            return None
        try:
            return int(length) + offset
        except ValueError:
            return None

    def _fill(self) -> None:
        try:
            chunk = next(self._chunks)
        except StopIteration:
            if self.total_size is not None and self._received < self.total_size:
                self._recover(
                    f"connection closed at byte {self._received} of {self.total_size}"
                )
                return
            self._exhausted = True
            self._close_response()
            return
        except STREAM_ERRORS as e:
            self._recover(f"stream interrupted: {e}")
            return
        except RequestException as e:
            self._close_response()
            raise DownloadError(self.url, f"stream failed: {e}") from e

        if not chunk:
            return
        if self._skip:
            dropped = min(self._skip, len(chunk))
            self._skip -= dropped
            self._received += dropped
            chunk = chunk[dropped:]
            if not chunk:
                return
        self._received += len(chunk)
        self._buffer = chunk

    def _recover(self, reason: str) -> None:
        self._close_response()
        self._fail(reason)
        self._open_response()


class Downloader:
    """
    HTTP downloader with retry, resume and progress reporting.

    Args:
        session: requests session; a new one with the crosskit User-Agent
            is created when omitted
        policy: Retry policy
        timeout: Per-request timeout in seconds
        progress_factory: Creates a ProgressReporter per download
        sleep: Backoff sleep function
        github_proxy: Optional proxy prefix for GitHub URLs
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        policy: Optional[RetryPolicy] = None,
        timeout: int = 30,
        progress_factory: ProgressFactory = ProgressReporter,
        sleep: Callable[[float], None] = time.sleep,
        github_proxy: Optional[str] = None,
    ):
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = USER_AGENT
        self.session = session
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self.progress_factory = progress_factory
        self.sleep = sleep
        self.github_proxy = github_proxy

    def resolve_url(self, url: str) -> str:
        return apply_github_proxy(url, self.github_proxy)

    def open(self, url: str, offset: int = 0) -> RemoteStream:
        """
        Open a streaming, self-resuming reader for a URL.

        Args:
            url: Resource URL
            offset: Byte offset to start at

        Returns:
            RemoteStream positioned at ``offset`` (or 0 if the server
            ignored the Range request; check ``start_offset``)

        Raises:
            DownloadError: On a fatal error or when retries run out
        """
        if not url:
            raise ValueError("URL cannot be empty")
        return RemoteStream(
            self.session,
            self.resolve_url(url),
            offset=offset,
            policy=self.policy,
            timeout=self.timeout,
            progress_factory=self.progress_factory,
            sleep=self.sleep,
        )

    def fetch(self, url: str, destination: Union[str, Path]) -> Path:
        """
        Download a URL to a file, resuming any earlier partial download.

        Bytes are written to ``<destination>.tmp``; the partial file is kept
        on failure so the next call resumes from it. The destination only
        appears once the download is complete.

        Args:
            url: URL to download from
            destination: Local path to save the file

        Returns:
            Path to the downloaded file

        Raises:
            DownloadError: On a fatal error or when retries run out
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        task = DownloadTask(url=url, destination=destination)
        partial = task.partial_path
        if partial.exists():
            task.already_downloaded = partial.stat().st_size
            if task.already_downloaded:
                logger.info(
                    f"Resuming download of {destination.name} "
                    f"from byte {task.already_downloaded}"
                )

        start_time = time.time()
        with self.open(url, task.already_downloaded) as stream:
            task.total_size = stream.total_size
            mode = "ab" if stream.start_offset > 0 else "wb"
            try:
                with open(partial, mode) as f:
                    shutil.copyfileobj(stream, f, CHUNK_SIZE)
            except OSError as e:
                raise DownloadError(url, f"cannot write {partial}: {e}") from e

        try:
            os.replace(partial, destination)
        except OSError as e:
            raise DownloadError(url, f"cannot move {partial} into place: {e}") from e
        elapsed = time.time() - start_time
        logger.info(f"Download complete: {destination} ({elapsed:.2f}s)")
        return destination


__all__ = [
    "MAX_RETRIES",
    "RetryPolicy",
    "DownloadTask",
    "RemoteStream",
    "Downloader",
    "apply_github_proxy",
    "partial_path",
]
