"""
Tests for cross-compilation environment assembly.
"""

from pathlib import Path

from crosskit.cross.env import (
    BUILD_STD_CRATES,
    CrossEnv,
    UserOverrides,
    build_rustflags,
    build_std_config,
    compose,
    preconfigured_env,
    set_gcc_lib_paths,
    setup_sysroot_env,
    target_lower,
    target_upper,
)

TARGET = "aarch64-unknown-linux-musl"
LOWER = "aarch64_unknown_linux_musl"
UPPER = "AARCH64_UNKNOWN_LINUX_MUSL"


class TestTargetNames:
    """Test target name transforms."""

    def test_lower(self):
        """Test dashes become underscores."""
        assert target_lower(TARGET) == LOWER

    def test_upper(self):
        """Test upper-case form used by CARGO_TARGET_* keys."""
        assert target_upper(TARGET) == UPPER

    def test_build_std_default(self):
        """Test the default build-std crate list."""
        assert build_std_config() == BUILD_STD_CRATES
        assert "panic_abort" in build_std_config().split(",")


class TestBuildEnv:
    """Test CrossEnv.build_env."""

    def test_compilers_emitted_twice(self, linux_host):
        """Test generic and target-suffixed compiler keys."""
        env = CrossEnv(cc="aarch64-linux-musl-gcc", cxx="aarch64-linux-musl-g++")
        result = env.build_env(TARGET, linux_host, {})
        assert result["CC"] == result[f"CC_{LOWER}"] == "aarch64-linux-musl-gcc"
        assert result["CXX"] == result[f"CXX_{LOWER}"] == "aarch64-linux-musl-g++"
        assert "AR" not in result

    def test_linker_and_runner(self, linux_host):
        """Test cargo target keys for linker and runner."""
        env = CrossEnv(linker="gcc", runner="qemu-aarch64")
        result = env.build_env(TARGET, linux_host, {})
        assert result[f"CARGO_TARGET_{UPPER}_LINKER"] == "gcc"
        assert result[f"CARGO_TARGET_{UPPER}_RUNNER"] == "qemu-aarch64"

    def test_path_prepended(self, linux_host):
        """Test toolchain directories go before the existing PATH."""
        env = CrossEnv()
        env.add_path("/opt/a/bin")
        env.add_path("/opt/b/bin")
        result = env.build_env(TARGET, linux_host, {"PATH": "/usr/bin"})
        assert result["PATH"] == "/opt/a/bin:/opt/b/bin:/usr/bin"

    def test_windows_path_separator(self, windows_host):
        """Test Windows hosts join PATH with ';'."""
        env = CrossEnv()
        env.add_path(Path("C:/tools/bin"))
        result = env.build_env(TARGET, windows_host, {"PATH": "C:/Windows"})
        assert result["PATH"].endswith(";C:/Windows")

    def test_library_path_linux(self, linux_host):
        """Test LD_LIBRARY_PATH is extended on Linux."""
        env = CrossEnv()
        env.add_library_path("/opt/osxcross/lib")
        result = env.build_env(TARGET, linux_host, {"LD_LIBRARY_PATH": "/usr/lib"})
        assert result["LD_LIBRARY_PATH"] == "/opt/osxcross/lib:/usr/lib"

    def test_library_path_darwin(self, darwin_host):
        """Test DYLD_LIBRARY_PATH is used on macOS."""
        env = CrossEnv()
        env.add_library_path("/opt/cctools/lib")
        result = env.build_env(TARGET, darwin_host, {})
        assert result["DYLD_LIBRARY_PATH"] == "/opt/cctools/lib"

    def test_flags_and_sdkroot(self, linux_host):
        """Test flag lists and SDKROOT."""
        env = CrossEnv()
        env.add_cflag("-O2")
        env.add_cflag("-g")
        env.add_ldflag("-fuse-ld=lld")
        env.set_sdkroot("/sdk")
        result = env.build_env(TARGET, linux_host, {})
        assert result["CFLAGS"] == result[f"CFLAGS_{LOWER}"] == "-O2 -g"
        assert result["LDFLAGS"] == "-fuse-ld=lld"
        assert result["SDKROOT"] == str(Path("/sdk"))

    def test_extra_env(self, linux_host):
        """Test arbitrary variables are passed through."""
        env = CrossEnv()
        env.set_env("CROSS_COMPILE", "x86_64-w64-mingw32-")
        assert env.build_env(TARGET, linux_host, {})["CROSS_COMPILE"] == (
            "x86_64-w64-mingw32-"
        )


class TestRustflags:
    """Test rustflag layering."""

    def test_order(self):
        """Test ambient, toolchain, crt-static then user flags."""
        env = CrossEnv(rustflags=["-L /opt/lib"])
        overrides = UserOverrides(crt_static=True, rustflags=["-C opt-level=3"])
        result = build_rustflags(env, overrides, {"RUSTFLAGS": "-D warnings"})
        assert result == (
            "-D warnings -L /opt/lib -C target-feature=+crt-static -C opt-level=3"
        )

    def test_crt_static_disabled(self):
        """Test crt-static=false adds the negative feature."""
        result = build_rustflags(CrossEnv(), UserOverrides(crt_static=False), {})
        assert result == "-C target-feature=-crt-static"

    def test_empty(self):
        """Test no flags produce an empty string."""
        assert build_rustflags(CrossEnv(), UserOverrides(), {}) == ""


class TestCompose:
    """Test compose."""

    def test_user_flags_appended(self, linux_host):
        """Test user CFLAGS come after toolchain flags."""
        env = CrossEnv(cflags=["-I/sysroot/include"])
        result = compose(env, TARGET, linux_host, UserOverrides(cflags="-O3"), {})
        assert result["CFLAGS"] == "-I/sysroot/include -O3"
        assert result[f"CFLAGS_{LOWER}"] == "-I/sysroot/include -O3"

    def test_user_linker_wins(self, linux_host):
        """Test the user linker replaces the toolchain linker."""
        env = CrossEnv(linker="aarch64-linux-musl-gcc")
        result = compose(env, TARGET, linux_host, UserOverrides(linker="mold"), {})
        assert result[f"CARGO_TARGET_{UPPER}_LINKER"] == "mold"

    def test_cxxstdlib(self, linux_host):
        """Test CXXSTDLIB is emitted twice."""
        result = compose(CrossEnv(), TARGET, linux_host, UserOverrides(cxxstdlib="c++"), {})
        assert result["CXXSTDLIB"] == result[f"CXXSTDLIB_{LOWER}"] == "c++"

    def test_host_target_config(self, linux_host):
        """Test host-config keys are set when building for the host triple."""
        result = compose(CrossEnv(), linux_host.triple, linux_host, UserOverrides(), {})
        assert result["CARGO_UNSTABLE_HOST_CONFIG"] == "true"
        assert result["CARGO_TARGET_APPLIES_TO_HOST"] == "false"

    def test_no_host_config_without_target_flag(self, linux_host):
        """Test host-config keys are skipped when --target is not passed."""
        overrides = UserOverrides(host_config=False)
        result = compose(CrossEnv(), linux_host.triple, linux_host, overrides, {})
        assert "CARGO_UNSTABLE_HOST_CONFIG" not in result

    def test_passthrough(self, linux_host):
        """Test sccache and cc-rs variables are carried over."""
        environ = {
            "SCCACHE_DIR": "/cache",
            "CC_FORCE_DISABLE": "1",
            "SCCACHE_EMPTY": "",
            "UNRELATED": "x",
        }
        result = compose(CrossEnv(), TARGET, linux_host, UserOverrides(), environ)
        assert result["SCCACHE_DIR"] == "/cache"
        assert result["CC_FORCE_DISABLE"] == "1"
        assert "SCCACHE_EMPTY" not in result
        assert "UNRELATED" not in result

    def test_explicit_settings_win_over_passthrough(self, linux_host):
        """Test configured sccache and cargo variables replace ambient ones."""
        overrides = UserOverrides(
            extra_env={"SCCACHE_DIR": "/configured", "CARGO_TRIM_PATHS": "all"}
        )
        environ = {"SCCACHE_DIR": "/ambient", "SCCACHE_LOG": "debug"}
        result = compose(CrossEnv(), TARGET, linux_host, overrides, environ)
        assert result["SCCACHE_DIR"] == "/configured"
        assert result["SCCACHE_LOG"] == "debug"
        assert result["CARGO_TRIM_PATHS"] == "all"

    def test_rustc_wrapper_and_debug_output(self, linux_host):
        """Test the wrapper and cc-rs debug switches."""
        overrides = UserOverrides(rustc_wrapper="sccache", cc_debug_output=True)
        result = compose(CrossEnv(), TARGET, linux_host, overrides, {})
        assert result["RUSTC_WRAPPER"] == "sccache"
        assert result["CC_ENABLE_DEBUG_OUTPUT"] == "1"

    def test_rustflags_omitted_when_empty(self, linux_host):
        """Test RUSTFLAGS is absent when nothing contributes."""
        assert "RUSTFLAGS" not in compose(CrossEnv(), TARGET, linux_host, None, {})


class TestPreconfiguredEnv:
    """Test detection of caller-provided compilers."""

    def test_target_specific_cc(self):
        """Test CC_<target> and its companions."""
        environ = {
            f"CC_{UPPER}": "my-gcc",
            f"CXX_{LOWER}": "my-g++",
            f"CARGO_TARGET_{UPPER}_LINKER": "my-ld",
            f"CARGO_TARGET_{UPPER}_RUNNER": "my-runner",
        }
        env = preconfigured_env(TARGET, environ)
        assert env.cc == "my-gcc"
        assert env.cxx == "my-g++"
        assert env.linker == "my-ld"
        assert env.runner == "my-runner"

    def test_generic_cc_cxx(self):
        """Test a generic CC/CXX pair derives AR and the linker."""
        env = preconfigured_env(TARGET, {"CC": "x-gcc", "CXX": "x-g++"})
        assert env.ar == "x-ar"
        assert env.linker == "x-gcc"

    def test_generic_cc_without_gcc_suffix(self):
        """Test AR derivation for non-gcc compilers."""
        env = preconfigured_env(TARGET, {"CC": "clang", "CXX": "clang++"})
        assert env.ar == "clang-ar"

    def test_generic_requires_both(self):
        """Test CC alone is not treated as preconfigured."""
        assert preconfigured_env(TARGET, {"CC": "gcc"}) is None

    def test_nothing_configured(self):
        """Test None when no compiler variables are set."""
        assert preconfigured_env(TARGET, {}) is None


class TestGccHelpers:
    """Test gcc toolchain helpers."""

    def make_toolchain(self, root: Path, prefix: str) -> Path:
        (root / prefix / "lib").mkdir(parents=True)
        (root / prefix / "usr" / "include").mkdir(parents=True)
        (root / "lib" / "gcc" / prefix / "13.2.0" / "include").mkdir(parents=True)
        return root

    def test_lib_paths(self, tmp_path):
        """Test target and libgcc directories become -L flags."""
        root = self.make_toolchain(tmp_path, "aarch64-linux-musl")
        env = CrossEnv()
        set_gcc_lib_paths(env, root, "aarch64-linux-musl")
        assert env.rustflags == [
            f"-L {root / 'aarch64-linux-musl' / 'lib'}",
            f"-L {root / 'lib' / 'gcc' / 'aarch64-linux-musl' / '13.2.0'}",
        ]

    def test_sysroot_env(self, tmp_path):
        """Test bindgen clang args point at the sysroot."""
        root = self.make_toolchain(tmp_path, "aarch64-linux-musl")
        env = CrossEnv()
        setup_sysroot_env(env, root, "aarch64-linux-musl", TARGET)
        args = env.extra_env[f"BINDGEN_EXTRA_CLANG_ARGS_{LOWER}"].split(" ")
        sysroot = root / "aarch64-linux-musl"
        assert args[0] == f"--sysroot={sysroot}"
        assert args[-1] == f"-I{sysroot / 'usr' / 'include'}"

    def test_sysroot_missing(self, tmp_path):
        """Test nothing is set without a sysroot directory."""
        env = CrossEnv()
        setup_sysroot_env(env, tmp_path, "aarch64-linux-musl", TARGET)
        assert env.extra_env == {}
