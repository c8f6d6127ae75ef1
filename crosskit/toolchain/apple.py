"""
Apple SDK discovery.

Locates macOS and iOS SDKs on a macOS host. Sources are tried in order:

1. ``xcrun --sdk <name> --show-sdk-path``
2. The active developer directory from ``xcode-select -p``
3. Every ``/Applications/Xcode*.app`` bundle
"""

import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import List, Optional

from crosskit.core.exceptions import SdkPathNotExistError

logger = logging.getLogger(__name__)

APPLICATIONS_DIR = Path("/Applications")


class AppleSdkType(Enum):
    """Apple SDK flavour."""

    MACOSX = "macosx"
    IPHONEOS = "iphoneos"
    IPHONESIMULATOR = "iphonesimulator"

    @property
    def platform_name(self) -> str:
        """Name of the Xcode platform directory (e.g., 'iPhoneOS')."""
        return {
            AppleSdkType.MACOSX: "MacOSX",
            AppleSdkType.IPHONEOS: "iPhoneOS",
            AppleSdkType.IPHONESIMULATOR: "iPhoneSimulator",
        }[self]

    def sdk_name(self, version: str) -> str:
        """Name understood by ``xcrun --sdk`` (e.g., 'macosx26.2')."""
        return f"{self.value}{version}"


def _run(argv: List[str]) -> Optional[str]:
    """Run a lookup command and return its stripped stdout, or None."""
    try:
        result = subprocess.run(
            argv, capture_output=True, text=True, timeout=10, check=False
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"{argv[0]} unavailable: {e}")
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def _sdk_relative_path(sdk_type: AppleSdkType, version: str) -> Path:
    platform = sdk_type.platform_name
    return (
        Path("Platforms")
        / f"{platform}.platform"
        / "Developer"
        / "SDKs"
        / f"{platform}{version}.sdk"
    )


def _xcrun_sdk(sdk_type: AppleSdkType, version: str) -> Optional[Path]:
    output = _run(["xcrun", "--sdk", sdk_type.sdk_name(version), "--show-sdk-path"])
    if output and Path(output).exists():
        return Path(output)
    return None


def _xcode_select_sdk(sdk_type: AppleSdkType, version: str) -> Optional[Path]:
    output = _run(["xcode-select", "-p"])
    if not output:
        return None
    sdk_path = Path(output) / _sdk_relative_path(sdk_type, version)
    return sdk_path if sdk_path.exists() else None


def _search_xcode_apps(
    sdk_type: AppleSdkType, version: str, applications_dir: Path
) -> Optional[Path]:
    if not applications_dir.is_dir():
        return None
    for app in sorted(applications_dir.iterdir()):
        if not (app.name.startswith("Xcode") and app.name.endswith(".app")):
            continue
        sdk_path = app / "Contents" / "Developer" / _sdk_relative_path(sdk_type, version)
        if sdk_path.exists():
            return sdk_path
    return None


def find_apple_sdk(
    sdk_type: AppleSdkType,
    version: str,
    applications_dir: Path = APPLICATIONS_DIR,
) -> Optional[Path]:
    """
    Find an installed Apple SDK by type and version.

    Args:
        sdk_type: SDK flavour
        version: SDK version (e.g., '26.2')
        applications_dir: Directory searched for Xcode bundles

    Returns:
        Path to the SDK, or None when no source has it

    Example:
        >>> find_apple_sdk(AppleSdkType.MACOSX, "26.2")
        PosixPath('/Applications/Xcode.app/Contents/Developer/Platforms/...')
    """
    return (
        _xcrun_sdk(sdk_type, version)
        or _xcode_select_sdk(sdk_type, version)
        or _search_xcode_apps(sdk_type, version, applications_dir)
    )


def resolve_sdk(
    explicit_path: Optional[Path], sdk_type: AppleSdkType, version: str
) -> Optional[Path]:
    """
    Pick the SDK to use: an explicit path wins over discovery.

    Raises:
        SdkPathNotExistError: If ``explicit_path`` is given but missing
    """
    if explicit_path is not None:
        if not explicit_path.exists():
            raise SdkPathNotExistError(explicit_path)
        return explicit_path

    sdk = find_apple_sdk(sdk_type, version)
    if sdk is None:
        logger.warning(
            f"{sdk_type.platform_name} SDK {version} not found, "
            f"using the toolchain default"
        )
    return sdk


__all__ = ["AppleSdkType", "find_apple_sdk", "resolve_sdk"]
