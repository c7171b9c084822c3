"""Clean scaffold exception classes.

Every fatal condition the pipeline can hit derives from ``ScaffoldError`` so
the CLI entry point can map the whole family to exit code 1.
``VerificationWarning`` is the single non-fatal member: the driver catches it
and downgrades it to a printed warning.
"""

from __future__ import annotations

__all__ = [
    "InvalidEnumValue",
    "InvalidOptionValue",
    "MissingRequiredOption",
    "OperationOrderError",
    "OverwriteDeclined",
    "PackageMatrixGap",
    "PrerequisiteMissing",
    "ScaffoldError",
    "StructuralOperationFailure",
    "UnknownOption",
    "ValidationError",
    "VerificationWarning",
]


class ScaffoldError(Exception):
    """Base exception for scaffolding errors."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ValidationError(ScaffoldError):
    """Raised when CLI input is missing or malformed.

    Always raised before any filesystem mutation.
    """


class MissingRequiredOption(ValidationError):
    """Raised when a required option was not supplied."""

    def __init__(self, option: str) -> None:
        self.option = option
        super().__init__(f"{option} is required")


class InvalidEnumValue(ValidationError):
    """Raised when an option value is outside its closed set."""

    def __init__(self, option: str, value: str, allowed: list[str]) -> None:
        self.option = option
        self.value = value
        self.allowed = allowed
        super().__init__(
            f"Invalid value {value!r} for {option}. Use: {', '.join(allowed)}"
        )


class InvalidOptionValue(ValidationError):
    """Raised when an option value is syntactically unusable."""

    def __init__(self, option: str, value: str, reason: str) -> None:
        self.option = option
        self.value = value
        super().__init__(f"Invalid value {value!r} for {option}: {reason}")


class UnknownOption(ValidationError):
    """Raised when the command line contains an unrecognised flag."""

    def __init__(self, option: str) -> None:
        self.option = option
        super().__init__(f"Unknown option: {option}")


# ---------------------------------------------------------------------------
# Environment / orchestration
# ---------------------------------------------------------------------------


class PrerequisiteMissing(ScaffoldError):
    """Raised when the external project tool is not installed."""

    def __init__(self, executable: str, hint: str = "") -> None:
        self.executable = executable
        message = f"Executable {executable!r} not found."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


class StructuralOperationFailure(ScaffoldError):
    """Raised when an external create/register/reference/package call fails.

    Components created before the failure are left on disk.
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        return_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        self.command = command
        self.return_code = return_code
        self.stderr = stderr
        detail = message
        if return_code is not None:
            detail = f"{detail} (exit {return_code})"
        if stderr:
            detail = f"{detail}\nStderr: {stderr}"
        super().__init__(detail)


class OperationOrderError(ScaffoldError):
    """Raised when an operation is issued before the ones it depends on."""


class OverwriteDeclined(ScaffoldError):
    """Raised when the user aborts at the overwrite confirmation prompt."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Operation cancelled: {path!r} already exists.")


class PackageMatrixGap(ScaffoldError):
    """Raised when no package is defined for a (component, option) tuple."""


class VerificationWarning(ScaffoldError):
    """Raised when the final verification build reports errors.

    Non-fatal: the driver reports it and still finishes successfully.
    """

    def __init__(self, message: str, output: str = "") -> None:
        self.output = output
        super().__init__(message)
