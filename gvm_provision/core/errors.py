"""
Provisioning errors — one exception type per failure kind.

Every failure that aborts a run is a ``ProvisionError``. Components
raise; only the orchestrator catches, logs the failing step and
turns the error into a process exit status.

Tolerated failures (optional packages, ownership drift) never raise:
they are logged as warnings where they happen.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for every fatal provisioning failure.

    Attributes:
        message: Human-readable description of what failed.
        command: The external command that failed, if any (already redacted).
        status: That command's exit status, if any.
    """

    kind = "provision"

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        status: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.command = command
        self.status = status

    @classmethod
    def wrap(cls, exc: ProvisionError, message: str) -> ProvisionError:
        """Re-label a lower-level failure, keeping its command and status."""
        return cls(message, command=exc.command, status=exc.status)

    @property
    def exit_code(self) -> int:
        """Process exit status for this failure (never 0)."""
        if self.status is None or self.status == 0:
            return 1
        if self.status < 0:
            # Killed by signal N
            return 128 - self.status
        return self.status if self.status < 256 else 1


class CommandError(ProvisionError):
    """An external command exited non-zero and was not tolerated."""

    kind = "command"

    def __init__(self, command: str, status: int, stderr: str = ""):
        super().__init__(
            f"Command '{command}' failed with status {status}.",
            command=command,
            status=status,
        )
        self.stderr = stderr


class ConnectivityError(ProvisionError):
    kind = "connectivity"


class VersionResolutionError(ProvisionError):
    kind = "version-resolution"


class DownloadError(ProvisionError):
    kind = "download"


class SignatureVerificationError(ProvisionError):
    """Detached signature did not verify. Never bypassable."""

    kind = "signature-verification"


class ExtractionError(ProvisionError):
    kind = "extraction"


class BuildError(ProvisionError):
    kind = "build"


class PackageManagerFailure(ProvisionError):
    kind = "package-manager"


class PermissionFailure(ProvisionError):
    kind = "permission"


class ServiceValidationError(ProvisionError):
    kind = "service-validation"


class CredentialExtractionError(ProvisionError):
    kind = "credential-extraction"
