"""
Tests for the Android provisioning strategy.
"""

from unittest.mock import patch

from crosskit.core.exceptions import CompilerNotFoundError
from crosskit.core.filesystem import ArchiveFormat
from crosskit.cross.targets import TARGETS
from crosskit.toolchain.naming import to_cmake_path
from crosskit.toolchain.strategies.android import AndroidProvisioner
from tests.mocks.toolchains import FakeInstaller, touch

NDK_DIR = "android-ndk-linux-r27d"


def ndk_layout(prebuilt, libclang_dir="lib"):
    def populate(dest):
        llvm = dest / "toolchains" / "llvm" / "prebuilt" / prebuilt
        touch(llvm / "bin" / "clang")
        touch(llvm / libclang_dir / "libclang.so")
        touch(dest / "build" / "cmake" / "android.toolchain.cmake")

    return populate


class TestAndroidProvisioner:
    """Test AndroidProvisioner.provision."""

    def test_linux_host(self, make_config, linux_host):
        """Test the NDK is fetched as a ZIP and its clang wrappers wired."""
        config = make_config()
        installer = FakeInstaller({NDK_DIR: ndk_layout("linux-x86_64")})

        result = AndroidProvisioner(installer).provision(
            TARGETS["aarch64-linux-android"], config, linux_host
        )

        assert result.ok
        env = result.env
        ndk = config.cross_compiler_dir / NDK_DIR
        llvm = ndk / "toolchains" / "llvm" / "prebuilt" / "linux-x86_64"
        assert installer.calls[0]["format"] is ArchiveFormat.ZIP
        assert installer.urls == [
            "https://dl.google.com/android/repository/android-ndk-r27d-linux.zip"
        ]
        assert env.cc == "aarch64-linux-android24-clang"
        assert env.cxx == "aarch64-linux-android24-clang++"
        assert env.ar == "llvm-ar"
        assert env.path == [llvm / "bin"]
        assert env.extra_env["LIBCLANG_PATH"] == str(llvm / "lib")

        wrapper = ndk / "build" / "cmake" / "wrappers" / "android-arm64-v8a.cmake"
        assert env.extra_env["CMAKE_TOOLCHAIN_FILE"] == to_cmake_path(wrapper)
        content = wrapper.read_text()
        assert 'set(ANDROID_ABI "arm64-v8a")' in content
        assert 'set(ANDROID_PLATFORM "android-24")' in content

    def test_armv7_abi(self, make_config, linux_host):
        """Test 32-bit ARM uses the armv7a clang prefix."""
        installer = FakeInstaller({NDK_DIR: ndk_layout("linux-x86_64", "lib64")})

        result = AndroidProvisioner(installer).provision(
            TARGETS["armv7-linux-androideabi"], make_config(), linux_host
        )

        assert result.env.cc == "armv7a-linux-androideabi24-clang"
        assert result.env.extra_env["LIBCLANG_PATH"].endswith("lib64")

    def test_cached_ndk(self, make_config, linux_host):
        """Test an unpacked NDK is reused and an existing wrapper kept."""
        config = make_config()
        ndk = config.cross_compiler_dir / NDK_DIR
        ndk_layout("linux-x86_64")(ndk)
        wrapper = touch(
            ndk / "build" / "cmake" / "wrappers" / "android-x86_64.cmake", "# custom\n"
        )
        installer = FakeInstaller()

        AndroidProvisioner(installer).provision(
            TARGETS["x86_64-linux-android"], config, linux_host
        )

        assert installer.calls == []
        assert wrapper.read_text() == "# custom\n"

    def test_macos_fallback_prebuilt(self, make_config, darwin_host):
        """Test Apple Silicon hosts fall back to the darwin-x86_64 prebuilt."""
        installer = FakeInstaller(
            {"android-ndk-darwin-r27d": ndk_layout("darwin-x86_64")}
        )

        result = AndroidProvisioner(installer).provision(
            TARGETS["aarch64-linux-android"], make_config(), darwin_host
        )

        assert result.ok
        assert result.env.path[0].parent.name == "darwin-x86_64"

    def test_windows_host(self, make_config, windows_host):
        """Test Windows hosts use the .cmd wrappers."""
        installer = FakeInstaller(
            {"android-ndk-windows-r27d": ndk_layout("windows-x86_64")}
        )
        with patch("crosskit.toolchain.naming.find_executable", return_value=None):
            result = AndroidProvisioner(installer).provision(
                TARGETS["i686-linux-android"], make_config(), windows_host
            )

        assert result.env.cc == "i686-linux-android24-clang.cmd"
        assert result.env.ar == "llvm-ar.exe"
        assert "LIBCLANG_PATH" not in result.env.extra_env

    def test_missing_prebuilt(self, make_config, linux_host):
        """Test an NDK without prebuilt clang is a resolution error."""
        result = AndroidProvisioner(FakeInstaller()).provision(
            TARGETS["aarch64-linux-android"], make_config(), linux_host
        )
        assert isinstance(result.error, CompilerNotFoundError)
