"""Run configuration for crosskit.

The configuration object is what the command-line layer hands to the
orchestrator: the target list, version pins, user overrides and the cargo
command to run. It can be populated from an optional YAML file and from
environment variables (the GitHub Action interface); environment values
win over the file.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from packaging.version import InvalidVersion, Version

from crosskit.core.directory import get_cache_dir
from crosskit.core.exceptions import ConfigurationError, UnsupportedVersionError
from crosskit.cross.env import UserOverrides
from crosskit.cross.targets import (
    DEFAULT_CROSS_DEPS_VERSION,
    DEFAULT_FREEBSD_VERSION,
    DEFAULT_GLIBC_VERSION,
    DEFAULT_IPHONE_SDK_VERSION,
    DEFAULT_MACOS_SDK_VERSION,
    DEFAULT_NDK_VERSION,
    DEFAULT_QEMU_VERSION,
    SUPPORTED_FREEBSD_VERSIONS,
    SUPPORTED_GLIBC_VERSIONS,
    SUPPORTED_IPHONE_SDK_VERSIONS,
    SUPPORTED_MACOS_SDK_VERSIONS,
)

logger = logging.getLogger(__name__)


class CommandKind(Enum):
    """Cargo sub-command to run for every target."""

    BUILD = "build"
    CHECK = "check"
    RUN = "run"
    TEST = "test"
    BENCH = "bench"

    @classmethod
    def parse(cls, value: str) -> "CommandKind":
        aliases = {"b": "build", "c": "check", "r": "run", "t": "test"}
        value = aliases.get(value, value)
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(f"Unknown command: {value}")

    @property
    def needs_runner(self) -> bool:
        """True for commands that execute the compiled binaries."""
        return self in (CommandKind.RUN, CommandKind.TEST, CommandKind.BENCH)


@dataclass
class CrossConfig:
    """Validated configuration for one crosskit run."""

    targets: List[str] = field(default_factory=list)
    command: CommandKind = CommandKind.BUILD
    cross_compiler_dir: Path = field(default_factory=get_cache_dir)
    toolchain: Optional[str] = None
    profile: str = "release"

    glibc_version: str = DEFAULT_GLIBC_VERSION
    iphone_sdk_version: str = DEFAULT_IPHONE_SDK_VERSION
    macos_sdk_version: str = DEFAULT_MACOS_SDK_VERSION
    freebsd_version: str = DEFAULT_FREEBSD_VERSION
    ndk_version: str = DEFAULT_NDK_VERSION
    qemu_version: str = DEFAULT_QEMU_VERSION
    cross_deps_version: str = DEFAULT_CROSS_DEPS_VERSION

    macos_sdk_path: Optional[Path] = None
    iphone_sdk_path: Optional[Path] = None
    iphone_simulator_sdk_path: Optional[Path] = None

    github_proxy: Optional[str] = None
    cmake_generator: Optional[str] = None
    no_toolchain_setup: bool = False
    use_default_linker: bool = False
    no_cargo_target: bool = False

    build_std: Optional[str] = None
    crt_static: Optional[bool] = None
    verbose_level: int = 0
    rustflags: List[str] = field(default_factory=list)
    cflags: Optional[str] = None
    cxxflags: Optional[str] = None
    ldflags: Optional[str] = None
    cxxstdlib: Optional[str] = None
    linker: Optional[str] = None
    rustc_wrapper: Optional[str] = None
    enable_sccache: bool = False
    sccache_dir: Optional[Path] = None
    sccache_cache_size: Optional[str] = None
    sccache_idle_timeout: Optional[str] = None
    sccache_log: Optional[str] = None
    sccache_no_daemon: bool = False
    sccache_direct: bool = False
    cargo_trim_paths: Optional[str] = None
    rustc_bootstrap: Optional[str] = None
    cargo_args: List[str] = field(default_factory=list)

    @property
    def verbose(self) -> bool:
        return self.verbose_level > 0

    def overrides(self) -> UserOverrides:
        """User overrides handed to the environment composer."""
        wrapper = "sccache" if self.enable_sccache else self.rustc_wrapper
        return UserOverrides(
            linker=self.linker,
            cflags=self.cflags,
            cxxflags=self.cxxflags,
            ldflags=self.ldflags,
            cxxstdlib=self.cxxstdlib,
            rustflags=list(self.rustflags),
            crt_static=self.crt_static,
            rustc_wrapper=wrapper,
            cc_debug_output=self.verbose,
            host_config=not self.no_cargo_target,
            extra_env=self.extra_env(),
        )

    def extra_env(self) -> Dict[str, str]:
        """Explicit sccache and cargo settings exported to cargo."""
        env: Dict[str, str] = {}
        if self.sccache_dir:
            env["SCCACHE_DIR"] = str(self.sccache_dir)
        if self.sccache_cache_size:
            env["SCCACHE_CACHE_SIZE"] = self.sccache_cache_size
        if self.sccache_idle_timeout:
            env["SCCACHE_IDLE_TIMEOUT"] = self.sccache_idle_timeout
        if self.sccache_log:
            env["SCCACHE_LOG"] = self.sccache_log
        if self.sccache_no_daemon:
            env["SCCACHE_NO_DAEMON"] = "1"
        if self.sccache_direct:
            env["SCCACHE_DIRECT"] = "true"
        if self.cargo_trim_paths:
            env["CARGO_TRIM_PATHS"] = self.cargo_trim_paths
        if self.rustc_bootstrap:
            env["RUSTC_BOOTSTRAP"] = self.rustc_bootstrap
        return env

    def validate(self) -> "CrossConfig":
        """
        Check version pins against the supported catalogues.

        Raises:
            UnsupportedVersionError: If a pin is not supported
        """
        _check_version("glibc", self.glibc_version, SUPPORTED_GLIBC_VERSIONS)
        _check_version("iPhone SDK", self.iphone_sdk_version, SUPPORTED_IPHONE_SDK_VERSIONS)
        _check_version("macOS SDK", self.macos_sdk_version, SUPPORTED_MACOS_SDK_VERSIONS)
        _check_version("FreeBSD", self.freebsd_version, SUPPORTED_FREEBSD_VERSIONS)
        return self


def _sorted_versions(versions) -> List[str]:
    return sorted(versions, key=Version)


def _check_version(kind: str, version: str, supported) -> None:
    try:
        Version(version)
    except InvalidVersion:
        raise UnsupportedVersionError(kind, version, _sorted_versions(supported))
    if version not in supported:
        raise UnsupportedVersionError(kind, version, _sorted_versions(supported))


# ============================================================================
# Loading
# ============================================================================

_PATH_FIELDS = {
    "cross_compiler_dir",
    "macos_sdk_path",
    "iphone_sdk_path",
    "iphone_simulator_sdk_path",
    "sccache_dir",
}
_BOOL_FIELDS = {
    "no_toolchain_setup",
    "use_default_linker",
    "no_cargo_target",
    "enable_sccache",
    "sccache_no_daemon",
    "sccache_direct",
}
_STR_FIELDS = {
    "toolchain",
    "profile",
    "glibc_version",
    "iphone_sdk_version",
    "macos_sdk_version",
    "freebsd_version",
    "ndk_version",
    "qemu_version",
    "cross_deps_version",
    "github_proxy",
    "cmake_generator",
    "cflags",
    "cxxflags",
    "ldflags",
    "cxxstdlib",
    "linker",
    "rustc_wrapper",
    "sccache_cache_size",
    "sccache_idle_timeout",
    "sccache_log",
    "cargo_trim_paths",
    "rustc_bootstrap",
}

# Environment variable -> field name
ENV_VARS = {
    "CROSS_COMPILER_DIR": "cross_compiler_dir",
    "TOOLCHAIN": "toolchain",
    "PROFILE": "profile",
    "GLIBC_VERSION": "glibc_version",
    "IPHONE_SDK_VERSION": "iphone_sdk_version",
    "MACOS_SDK_VERSION": "macos_sdk_version",
    "FREEBSD_VERSION": "freebsd_version",
    "NDK_VERSION": "ndk_version",
    "QEMU_VERSION": "qemu_version",
    "CROSS_DEPS_VERSION": "cross_deps_version",
    "MACOS_SDK_PATH": "macos_sdk_path",
    "IPHONE_SDK_PATH": "iphone_sdk_path",
    "IPHONE_SIMULATOR_SDK_PATH": "iphone_simulator_sdk_path",
    "GH_PROXY": "github_proxy",
    "CMAKE_GENERATOR": "cmake_generator",
    "NO_TOOLCHAIN_SETUP": "no_toolchain_setup",
    "USE_DEFAULT_LINKER": "use_default_linker",
    "ENABLE_SCCACHE": "enable_sccache",
    "CFLAGS": "cflags",
    "CXXFLAGS": "cxxflags",
    "LDFLAGS": "ldflags",
    "CXXSTDLIB": "cxxstdlib",
    "LINKER": "linker",
    "RUSTC_WRAPPER": "rustc_wrapper",
    "SCCACHE_DIR": "sccache_dir",
    "SCCACHE_CACHE_SIZE": "sccache_cache_size",
    "SCCACHE_IDLE_TIMEOUT": "sccache_idle_timeout",
    "SCCACHE_LOG": "sccache_log",
    "SCCACHE_NO_DAEMON": "sccache_no_daemon",
    "SCCACHE_DIRECT": "sccache_direct",
    "CARGO_TRIM_PATHS": "cargo_trim_paths",
    "RUSTC_BOOTSTRAP": "rustc_bootstrap",
}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1")


def _parse_targets(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        items = str(value).replace("\n", ",").split(",")
    return [item.strip() for item in items if item.strip()]


def _parse_verbose(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    text = str(value).strip()
    if text == "true":
        return 1
    try:
        return int(text)
    except ValueError:
        return 0


def _parse_build_std(value: Any) -> Optional[str]:
    if value is True:
        return "true"
    if value in (None, False, "false", ""):
        return None
    return str(value)


def _parse_crt_static(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    return {"true": True, "false": False}.get(str(value).strip())


def _apply(values: Dict[str, Any], key: str, raw: Any) -> None:
    """Convert one raw setting into its field value."""
    if key in _PATH_FIELDS:
        values[key] = Path(str(raw)).expanduser()
    elif key in _BOOL_FIELDS:
        values[key] = _parse_bool(raw)
    elif key in _STR_FIELDS:
        values[key] = str(raw)
    elif key == "targets":
        values[key] = _parse_targets(raw)
    elif key == "command":
        values[key] = CommandKind.parse(str(raw))
    elif key == "verbose_level":
        values[key] = _parse_verbose(raw)
    elif key == "build_std":
        values[key] = _parse_build_std(raw)
    elif key == "crt_static":
        values[key] = _parse_crt_static(raw)
    elif key == "rustflags":
        values[key] = [str(v) for v in raw] if isinstance(raw, list) else [str(raw)]
    elif key == "cargo_args":
        values[key] = [str(v) for v in raw] if isinstance(raw, list) else str(raw).split()
    else:
        raise ConfigurationError(f"Unknown configuration key: {key}")


def values_from_mapping(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a YAML mapping into CrossConfig keyword arguments."""
    known = {f.name for f in fields(CrossConfig)}
    values: Dict[str, Any] = {}
    for key, raw in data.items():
        key = str(key).replace("-", "_")
        if key not in known:
            raise ConfigurationError(f"Unknown configuration key: {key}")
        if raw is None:
            continue
        _apply(values, key, raw)
    return values


def values_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Convert environment variables into CrossConfig keyword arguments."""
    values: Dict[str, Any] = {}
    for var, key in ENV_VARS.items():
        raw = environ.get(var)
        if raw:
            _apply(values, key, raw)

    if environ.get("TARGETS"):
        values["targets"] = _parse_targets(environ["TARGETS"])
    if environ.get("COMMAND"):
        values["command"] = CommandKind.parse(environ["COMMAND"])
    if environ.get("VERBOSE_LEVEL"):
        values["verbose_level"] = _parse_verbose(environ["VERBOSE_LEVEL"])
    if environ.get("BUILD_STD"):
        values["build_std"] = _parse_build_std(environ["BUILD_STD"])
    if environ.get("CRT_STATIC"):
        values["crt_static"] = _parse_crt_static(environ["CRT_STATIC"])
    if environ.get("ADDITIONAL_RUSTFLAGS"):
        values["rustflags"] = [environ["ADDITIONAL_RUSTFLAGS"]]
    if environ.get("CARGO_PASSTHROUGH_ARGS"):
        args = environ["CARGO_PASSTHROUGH_ARGS"].strip()
        if args.startswith("--"):
            args = args[2:]
        values["cargo_args"] = args.split()
    return values


def parse_config(config_path: Path) -> Dict[str, Any]:
    """
    Parse a crosskit YAML configuration file.

    Args:
        config_path: Path to the YAML file

    Returns:
        CrossConfig keyword arguments

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    return values_from_mapping(data)


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CrossConfig:
    """
    Build and validate the run configuration.

    Values come from built-in defaults, then the YAML file (if given), then
    environment variables.

    Raises:
        ConfigurationError: If any value is invalid
    """
    if environ is None:
        environ = os.environ

    values: Dict[str, Any] = {}
    if config_path is not None:
        values.update(parse_config(Path(config_path)))
        logger.debug(f"Loaded configuration from {config_path}")
    values.update(values_from_env(environ))

    if "cross_compiler_dir" not in values:
        values["cross_compiler_dir"] = get_cache_dir(environ)

    return CrossConfig(**values).validate()


__all__ = [
    "CommandKind",
    "CrossConfig",
    "ENV_VARS",
    "load_config",
    "parse_config",
    "values_from_env",
    "values_from_mapping",
]
