"""Test fixtures for crosskit tests.

This package provides reusable pytest fixtures. Fixtures are organized by
type:

- archives: In-memory .tar.gz and .zip archive builders
- hosts: HostPlatform values for Linux, macOS and Windows build machines

Import fixtures in your tests using:
    from tests.fixtures.archives import tar_gz_bytes
    from tests.fixtures.hosts import linux_host
"""

__all__ = [
    "archives",
    "hosts",
]
