"""Error taxonomy for sandboxed command execution.

Provides:
- SandboxError: Base error carrying a machine-readable code
- ErrorCode: Standard error codes
- Input, policy, resource, and execution error families

Consent-pending is not an error; see ConsentRequest in models.
"""

from typing import Any


class ErrorCode:
    """Standard error codes for sandbox failures."""

    # Input errors
    INVALID_INPUT = "INVALID_INPUT"

    # Policy errors
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Resource errors
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    TIMEOUT = "TIMEOUT"

    # Execution errors
    EXECUTION_FAILED = "EXECUTION_FAILED"
    NOT_FOUND = "NOT_FOUND"


class SandboxError(Exception):
    """Base error for sandbox failures.

    Provides structured error information that callers (and agents) can use
    to decide whether and how to retry.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        recoverable: Whether retrying after a change might succeed
        details: Additional error details
    """

    error_code: str = ErrorCode.EXECUTION_FAILED

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        recoverable: bool = False,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.recoverable = recoverable
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": False,
            "error": self.message,
            "error_code": self.error_code,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class InputError(SandboxError):
    """Malformed command or arguments, rejected before policy evaluation."""

    error_code = ErrorCode.INVALID_INPUT


class PolicyError(SandboxError):
    """Command or argument not permitted under the active policy."""

    error_code = ErrorCode.PERMISSION_DENIED


class CommandNotAllowedError(PolicyError):
    """Command is in no active category and has not been learned."""

    def __init__(self, command: str, available_categories: list[str]):
        super().__init__(
            f"Command '{command}' is not allowed. "
            f"Available categories: {', '.join(available_categories)}",
            recoverable=True,
            details={"command": command, "available_categories": available_categories},
        )
        self.command = command


class ArgumentNotAllowedError(PolicyError):
    """Argument is outside the command's allowed token list."""

    def __init__(self, command: str, argument: str, allowed: list[str]):
        super().__init__(
            f"Argument '{argument}' is not allowed for command '{command}'. "
            f"Allowed: {', '.join(allowed)}",
            recoverable=True,
            details={"command": command, "argument": argument, "allowed": allowed},
        )
        self.command = command
        self.argument = argument


class ResourceLimitError(SandboxError):
    """A resource limit was hit and the process was terminated."""

    error_code = ErrorCode.QUOTA_EXCEEDED


class OutputLimitExceededError(ResourceLimitError):
    """Cumulative stdout exceeded the configured cap."""

    def __init__(self, max_output_bytes: int):
        super().__init__(
            f"Output size limit exceeded ({max_output_bytes} bytes)",
            details={"max_output_bytes": max_output_bytes},
        )
        self.max_output_bytes = max_output_bytes


class ExecutionTimeoutError(ResourceLimitError):
    """Wall-clock timeout fired before the process exited."""

    error_code = ErrorCode.TIMEOUT

    def __init__(self, timeout_ms: int):
        super().__init__(
            f"Command execution timeout ({timeout_ms}ms)",
            details={"timeout_ms": timeout_ms},
        )
        self.timeout_ms = timeout_ms


class ExecutionError(SandboxError):
    """The process could not be run or exited unsuccessfully."""

    error_code = ErrorCode.EXECUTION_FAILED


class CommandFailedError(ExecutionError):
    """Process exited with a non-zero code."""

    def __init__(self, return_code: int, stderr: str):
        super().__init__(
            f"Command failed with code {return_code}: {stderr or 'No error output'}",
            recoverable=True,
            details={"return_code": return_code},
        )
        self.return_code = return_code
        self.stderr = stderr


class SpawnError(ExecutionError):
    """Process could not be started (binary missing, permission denied)."""

    def __init__(self, command: str, reason: str, not_found: bool = False):
        super().__init__(
            f"Command execution error: {reason}",
            error_code=ErrorCode.NOT_FOUND if not_found else None,
            details={"command": command},
        )
        self.command = command
