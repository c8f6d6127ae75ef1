"""
Cross-compilation environment assembly.

Provisioners accumulate toolchain facts in a CrossEnv (compilers, PATH
entries, flags, SDK root, extra variables). The composer then turns a
CrossEnv plus user overrides and a small set of ambient variables into the
flat environment map handed to cargo.

Compiler and flag values are emitted twice: once under the generic name
(``CC``) and once under the target-suffixed name (``CC_<target>``), because
build scripts may read either.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

BUILD_STD_CRATES = "std,core,alloc,proc_macro,test,panic_abort,panic_unwind"

# Ambient variables copied into the composed environment when non-empty
PASSTHROUGH_VARS = (
    "CC_FORCE_DISABLE",
    "CC_KNOWN_WRAPPER_CUSTOM",
    "RUSTC_WRAPPER",
)
PASSTHROUGH_PREFIXES = ("SCCACHE_",)


def target_lower(target: str) -> str:
    """'aarch64-unknown-linux-gnu' -> 'aarch64_unknown_linux_gnu'."""
    return target.replace("-", "_")


def target_upper(target: str) -> str:
    """'aarch64-unknown-linux-gnu' -> 'AARCH64_UNKNOWN_LINUX_GNU'."""
    return target.upper().replace("-", "_").replace(".", "_")


def build_std_config() -> str:
    """Crates rebuilt when build-std is enabled without an explicit list."""
    return BUILD_STD_CRATES


@dataclass
class CrossEnv:
    """
    Toolchain facts gathered for one target.

    Values are only ever added: setters fill empty slots or replace a
    value the same provisioner set earlier, and list fields only grow.
    """

    cc: Optional[str] = None
    cxx: Optional[str] = None
    ar: Optional[str] = None
    linker: Optional[str] = None
    runner: Optional[str] = None
    path: List[Path] = field(default_factory=list)
    rustflags: List[str] = field(default_factory=list)
    sdkroot: Optional[Path] = None
    library_path: List[Path] = field(default_factory=list)
    cflags: List[str] = field(default_factory=list)
    cxxflags: List[str] = field(default_factory=list)
    ldflags: List[str] = field(default_factory=list)
    build_std: Optional[str] = None
    extra_env: Dict[str, str] = field(default_factory=dict)

    def set_cc(self, cc: str) -> None:
        self.cc = cc

    def set_cxx(self, cxx: str) -> None:
        self.cxx = cxx

    def set_ar(self, ar: str) -> None:
        self.ar = ar

    def set_linker(self, linker: str) -> None:
        self.linker = linker

    def set_runner(self, runner: str) -> None:
        self.runner = runner

    def add_path(self, path) -> None:
        self.path.append(Path(path))

    def add_rustflag(self, flag: str) -> None:
        self.rustflags.append(flag)

    def set_sdkroot(self, path) -> None:
        self.sdkroot = Path(path)

    def add_library_path(self, path) -> None:
        self.library_path.append(Path(path))

    def add_cflag(self, flag: str) -> None:
        self.cflags.append(flag)

    def add_cxxflag(self, flag: str) -> None:
        self.cxxflags.append(flag)

    def add_ldflag(self, flag: str) -> None:
        self.ldflags.append(flag)

    def set_build_std(self, crates: str) -> None:
        self.build_std = crates

    def set_env(self, key: str, value: str) -> None:
        self.extra_env[key] = value

    def rustflags_string(self) -> Optional[str]:
        return " ".join(self.rustflags) if self.rustflags else None

    def build_env(
        self, target: str, host, environ: Optional[Mapping[str, str]] = None
    ) -> Dict[str, str]:
        """
        Render the toolchain facts as environment variables.

        Args:
            target: Rust target triple
            host: HostPlatform, for the path separator and library variable
            environ: Current environment; defaults to os.environ

        Returns:
            Environment map for this target
        """
        if environ is None:
            environ = os.environ

        lower = target_lower(target)
        upper = target_upper(target)
        sep = host.path_separator
        env: Dict[str, str] = {}

        for name, value in (("CC", self.cc), ("CXX", self.cxx), ("AR", self.ar)):
            if value:
                env[f"{name}_{lower}"] = value
                env[name] = value

        if self.linker:
            env[f"CARGO_TARGET_{upper}_LINKER"] = self.linker
        if self.runner:
            env[f"CARGO_TARGET_{upper}_RUNNER"] = self.runner

        if self.path:
            new_path = sep.join(str(p) for p in self.path)
            env["PATH"] = f"{new_path}{sep}{environ.get('PATH', '')}"

        if self.sdkroot:
            env["SDKROOT"] = str(self.sdkroot)

        if self.library_path:
            lib_var = "DYLD_LIBRARY_PATH" if host.is_darwin else "LD_LIBRARY_PATH"
            lib_path = sep.join(str(p) for p in self.library_path)
            current = environ.get(lib_var, "")
            env[lib_var] = f"{lib_path}{sep}{current}" if current else lib_path

        for name, flags in (
            ("CFLAGS", self.cflags),
            ("CXXFLAGS", self.cxxflags),
            ("LDFLAGS", self.ldflags),
        ):
            if flags:
                joined = " ".join(flags)
                env[f"{name}_{lower}"] = joined
                env[name] = joined

        env.update(self.extra_env)
        return env


@dataclass
class UserOverrides:
    """
    User-supplied settings layered on top of a provisioned CrossEnv.

    Flag strings are appended after toolchain flags. ``linker`` is
    exclusive: it replaces the toolchain's linker.
    ``extra_env`` holds explicit variables (sccache settings and the like)
    that win over values passed through from the environment.
    """

    linker: Optional[str] = None
    cflags: Optional[str] = None
    cxxflags: Optional[str] = None
    ldflags: Optional[str] = None
    cxxstdlib: Optional[str] = None
    rustflags: List[str] = field(default_factory=list)
    crt_static: Optional[bool] = None
    rustc_wrapper: Optional[str] = None
    cc_debug_output: bool = False
    host_config: bool = True
    extra_env: Dict[str, str] = field(default_factory=dict)


def _append_flags(existing: Optional[str], extra: str) -> str:
    return f"{existing} {extra}" if existing else extra


def build_rustflags(
    cross_env: CrossEnv,
    overrides: UserOverrides,
    environ: Mapping[str, str],
) -> str:
    """
    Combine ambient, toolchain and user rustflags, in that order.
    """
    rustflags = environ.get("RUSTFLAGS", "")

    toolchain_flags = cross_env.rustflags_string()
    if toolchain_flags:
        rustflags = _append_flags(rustflags, toolchain_flags)

    if overrides.crt_static is not None:
        sign = "+" if overrides.crt_static else "-"
        rustflags = _append_flags(rustflags, f"-C target-feature={sign}crt-static")

    for flag in overrides.rustflags:
        rustflags = _append_flags(rustflags, flag)

    return rustflags


def compose(
    cross_env: CrossEnv,
    target: str,
    host,
    overrides: Optional[UserOverrides] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Build the final environment for running cargo on one target.

    Args:
        cross_env: Provisioned toolchain facts
        target: Rust target triple
        host: HostPlatform
        overrides: User flag and linker overrides
        environ: Current environment; defaults to os.environ

    Returns:
        Flat environment map

    Example:
        >>> env = compose(CrossEnv(cc="aarch64-linux-gnu-gcc"),
        ...               "aarch64-unknown-linux-gnu", host)
        >>> env["CC_aarch64_unknown_linux_gnu"]
        'aarch64-linux-gnu-gcc'
    """
    if environ is None:
        environ = os.environ
    if overrides is None:
        overrides = UserOverrides()

    lower = target_lower(target)
    env = cross_env.build_env(target, host, environ)

    if overrides.host_config and target == host.triple:
        env["CARGO_UNSTABLE_HOST_CONFIG"] = "true"
        env["CARGO_UNSTABLE_TARGET_APPLIES_TO_HOST"] = "true"
        env["CARGO_TARGET_APPLIES_TO_HOST"] = "false"

    rustflags = build_rustflags(cross_env, overrides, environ)
    if rustflags:
        env["RUSTFLAGS"] = rustflags

    for key, value in environ.items():
        if not value:
            continue
        if key in PASSTHROUGH_VARS or key.startswith(PASSTHROUGH_PREFIXES):
            env.setdefault(key, value)

    env.update(overrides.extra_env)
    if overrides.rustc_wrapper:
        env["RUSTC_WRAPPER"] = overrides.rustc_wrapper
    if overrides.cc_debug_output:
        env["CC_ENABLE_DEBUG_OUTPUT"] = "1"

    for name, extra in (
        ("CFLAGS", overrides.cflags),
        ("CXXFLAGS", overrides.cxxflags),
        ("LDFLAGS", overrides.ldflags),
    ):
        if extra:
            combined = _append_flags(env.get(f"{name}_{lower}"), extra)
            env[f"{name}_{lower}"] = combined
            env[name] = combined

    if overrides.cxxstdlib:
        env[f"CXXSTDLIB_{lower}"] = overrides.cxxstdlib
        env["CXXSTDLIB"] = overrides.cxxstdlib

    if overrides.linker:
        env[f"CARGO_TARGET_{target_upper(target)}_LINKER"] = overrides.linker

    return env


def preconfigured_env(
    target: str, environ: Optional[Mapping[str, str]] = None
) -> Optional[CrossEnv]:
    """
    Build a CrossEnv from compilers the caller already configured.

    A target-specific ``CC_<target>`` (upper or lower case suffix) wins;
    its CXX/AR/LINKER/RUNNER companions are picked up when present.
    Otherwise a generic ``CC`` and ``CXX`` pair is used, with AR derived
    from CC and the linker defaulting to CC.

    Returns:
        CrossEnv, or None when nothing is preconfigured
    """
    if environ is None:
        environ = os.environ

    upper = target_upper(target)
    lower = target_lower(target)

    def lookup(name: str) -> Optional[str]:
        return environ.get(f"{name}_{upper}") or environ.get(f"{name}_{lower}")

    cc = lookup("CC")
    if cc:
        logger.info(f"Using pre-configured CC for {target}: {cc}")
        env = CrossEnv(cc=cc, cxx=lookup("CXX"), ar=lookup("AR"))
        linker = environ.get(f"CARGO_TARGET_{upper}_LINKER")
        if linker:
            env.set_linker(linker)
        runner = environ.get(f"CARGO_TARGET_{upper}_RUNNER")
        if runner:
            env.set_runner(runner)
        return env

    cc = environ.get("CC")
    cxx = environ.get("CXX")
    if cc and cxx:
        logger.info(f"Using pre-configured CC/CXX for {target}: {cc}, {cxx}")
        ar = environ.get("AR")
        if not ar:
            ar = f"{cc[: -len('-gcc')]}-ar" if cc.endswith("-gcc") else f"{cc}-ar"
        env = CrossEnv(cc=cc, cxx=cxx, ar=ar, linker=environ.get("LINKER") or cc)
        runner = environ.get("RUNNER")
        if runner:
            env.set_runner(runner)
        return env

    return None


def set_gcc_lib_paths(env: CrossEnv, compiler_dir: Path, target_prefix: str) -> None:
    """Add the gcc toolchain's target and libgcc directories to rustflags."""
    target_lib = compiler_dir / target_prefix / "lib"
    if target_lib.exists():
        env.add_rustflag(f"-L {target_lib}")

    gcc_lib_base = compiler_dir / "lib" / "gcc" / target_prefix
    if gcc_lib_base.is_dir():
        for entry in sorted(gcc_lib_base.iterdir()):
            if entry.is_dir():
                env.add_rustflag(f"-L {entry}")
                break


def setup_sysroot_env(
    env: CrossEnv, compiler_dir: Path, bin_prefix: str, rust_target: str
) -> None:
    """
    Point bindgen's clang at the toolchain sysroot.

    Sets ``BINDGEN_EXTRA_CLANG_ARGS_<target>`` with --sysroot, the gcc
    builtin include directory and the sysroot include directory.
    """
    sysroot = compiler_dir / bin_prefix
    if not sysroot.exists():
        return

    clang_args = [f"--sysroot={sysroot}"]

    gcc_include_base = compiler_dir / "lib" / "gcc" / bin_prefix
    if gcc_include_base.is_dir():
        for entry in sorted(gcc_include_base.iterdir()):
            include_dir = entry / "include"
            if include_dir.exists():
                clang_args.append(f"-I{include_dir}")
                break

    usr_include = sysroot / "usr" / "include"
    include = sysroot / "include"
    if usr_include.exists():
        clang_args.append(f"-I{usr_include}")
    elif include.exists():
        clang_args.append(f"-I{include}")

    env.set_env(f"BINDGEN_EXTRA_CLANG_ARGS_{target_lower(rust_target)}", " ".join(clang_args))


__all__ = [
    "BUILD_STD_CRATES",
    "CrossEnv",
    "UserOverrides",
    "build_rustflags",
    "build_std_config",
    "compose",
    "preconfigured_env",
    "set_gcc_lib_paths",
    "setup_sysroot_env",
    "target_lower",
    "target_upper",
]
