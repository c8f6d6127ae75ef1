"""
Centralized exception hierarchy for crosskit.

Errors are grouped by the stage that raises them: configuration validation,
network retrieval, archive extraction, toolchain resolution and command
execution. Every error carries a human-readable message; the orchestrator
turns any of them into a failed target and a non-zero exit code.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class CrossKitError(Exception):
    """Base exception for all crosskit errors."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigurationError(CrossKitError):
    """Raised when the run configuration is invalid."""

    pass


class UnsupportedVersionError(ConfigurationError):
    """Raised when a version pin is not in the supported catalogue."""

    def __init__(self, kind: str, version: str, supported: list):
        self.kind = kind
        self.version = version
        self.supported = list(supported)
        super().__init__(
            f"Unsupported {kind} version '{version}'. "
            f"Supported versions: {', '.join(self.supported)}"
        )


class NoMatchingTargetsError(ConfigurationError):
    """Raised when a target pattern expands to nothing."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(f"No matching targets found for pattern: {pattern}")


class InvalidTargetTripleError(ConfigurationError):
    """Raised when a target triple is malformed."""

    def __init__(self, triple: str):
        self.triple = triple
        super().__init__(f"Invalid target triple: {triple}")


# ============================================================================
# Network Exceptions
# ============================================================================


class NetworkError(CrossKitError):
    """Base exception for network retrieval errors."""

    pass


class DownloadError(NetworkError):
    """Raised when a download fails fatally or exhausts its retries."""

    def __init__(self, url: str, reason: str, status_code=None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to download {url}: {reason}")


# ============================================================================
# Archive Exceptions
# ============================================================================


class ArchiveExtractionError(CrossKitError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not .tar.gz or .zip."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive member would be written outside the destination."""

    pass


# ============================================================================
# Toolchain Resolution Exceptions
# ============================================================================


class ResolutionError(CrossKitError):
    """Base exception for toolchain resolution errors."""

    pass


class CompilerNotFoundError(ResolutionError):
    """Raised when an expected compiler is missing after provisioning."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Compiler not found: {path}")


class UnsupportedArchitectureError(ResolutionError):
    """Raised when an OS strategy cannot handle the requested architecture."""

    def __init__(self, arch: str, os_name: str):
        self.arch = arch
        self.os_name = os_name
        super().__init__(f"Unsupported architecture '{arch}' for {os_name}")


class CrossCompilationNotSupportedError(ResolutionError):
    """Raised when the host cannot cross-compile for the target at all."""

    def __init__(self, target_os: str, host_os: str, reason: str = ""):
        self.target_os = target_os
        self.host_os = host_os
        message = f"Cross-compilation to {target_os} is not supported on {host_os}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SdkPathNotExistError(ResolutionError):
    """Raised when an explicitly configured SDK path does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"SDK path does not exist: {path}")


# ============================================================================
# Execution Exceptions
# ============================================================================


class ExecutionError(CrossKitError):
    """Base exception for errors while running external programs."""

    pass


class ProgramNotFoundError(ExecutionError):
    """Raised when an external program is not on PATH."""

    def __init__(self, program: str):
        self.program = program
        super().__init__(f"Program not found: {program}")


class CommandFailedError(ExecutionError):
    """Raised when an external command exits with a non-zero code."""

    def __init__(self, command: str, exit_code: int):
        self.command = command
        self.exit_code = exit_code
        super().__init__(f"Command '{command}' failed with exit code {exit_code}")


class TargetInstallError(ExecutionError):
    """Raised when rustup fails to add a target."""

    def __init__(self, target: str, detail: str = ""):
        self.target = target
        message = f"Failed to install target {target}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class BuildStdRequiredError(ExecutionError):
    """Raised when a target has no prebuilt std and build-std is unavailable."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(
            f"Target {target} is not available through rustup and is not "
            f"known to rustc; it cannot be built"
        )


__all__ = [
    "CrossKitError",
    "ConfigurationError",
    "UnsupportedVersionError",
    "NoMatchingTargetsError",
    "InvalidTargetTripleError",
    "NetworkError",
    "DownloadError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "ResolutionError",
    "CompilerNotFoundError",
    "UnsupportedArchitectureError",
    "CrossCompilationNotSupportedError",
    "SdkPathNotExistError",
    "ExecutionError",
    "ProgramNotFoundError",
    "CommandFailedError",
    "TargetInstallError",
    "BuildStdRequiredError",
]
