"""Secure command tool.

Runs a single command through a Sandbox rooted at the working directory and
returns a JSON-friendly result dict. Consent-gated commands come back as
pending_approval until the caller repeats the call with confirmed=True.
"""

from typing import Any

from adaptive_sandbox.config import SandboxOptions
from adaptive_sandbox.errors import SandboxError
from adaptive_sandbox.logging import Loggers
from adaptive_sandbox.models import ConsentRequest, ExecutionResult, SecurityLevel
from adaptive_sandbox.sandbox import Sandbox

logger = Loggers.tools()

MIN_TIMEOUT_MS = 1000
MAX_TIMEOUT_MS = 120000
DEFAULT_DISPLAY_LENGTH = 50000


def clamp_timeout(timeout_ms: int) -> int:
    """Clamp a requested timeout to the supported range."""
    return max(MIN_TIMEOUT_MS, min(MAX_TIMEOUT_MS, int(timeout_ms)))


def truncate_output(output: str, max_length: int = DEFAULT_DISPLAY_LENGTH) -> str:
    """Truncate output if it exceeds maximum length.

    Args:
        output: The output string to potentially truncate.
        max_length: Maximum allowed length.

    Returns:
        Original or truncated output with indicator.
    """
    if len(output) <= max_length:
        return output

    truncated = output[:max_length]
    return f"{truncated}\n... [OUTPUT TRUNCATED - exceeded {max_length} characters]"


def consent_response(request: ConsentRequest) -> dict[str, Any]:
    """Result dict for an invocation awaiting approval."""
    return {
        "success": False,
        "pending_approval": True,
        "operation": request.operation,
        "message": request.message,
        "security_level": request.security_level,
        "command_category": request.command_category,
        "is_learned": request.is_learned,
    }


async def execute_with_consent(
    sandbox: Sandbox,
    command: str,
    args: list[str],
    confirmed: bool,
) -> ExecutionResult | ConsentRequest:
    """Execute, granting consent and retrying once if the caller confirmed.

    Raises:
        SandboxError: Propagated from the sandbox.
    """
    result = await sandbox.execute(command, args)
    if isinstance(result, ConsentRequest) and confirmed:
        logger.info("consent_confirmed", command=command, args=args)
        sandbox.grant_consent(command, args)
        result = await sandbox.execute(command, args)
    return result


async def handle_secure_bash(
    command: str,
    args: list[str] | None = None,
    working_directory: str = ".",
    security_level: str = "DEVELOPMENT",
    confirmed: bool = False,
    timeout_ms: int = 60000,
    enable_learning: bool = True,
    keep_private: bool = True,
) -> dict[str, Any]:
    """Execute a development command under the adaptive sandbox.

    Args:
        command: Command name (e.g. "bun", "git", "ls").
        args: Command arguments, validated and learned over time.
        working_directory: Workspace root the command runs in.
        security_level: STRICT, BALANCED, DEVELOPMENT or PERMISSIVE.
        confirmed: Explicit approval for new or sensitive operations.
        timeout_ms: Timeout, clamped to 1000..120000 ms.
        enable_learning: Learn unknown commands once approved.
        keep_private: Redact sensitive data from the output.

    Returns:
        A dictionary containing:
            - success: bool - True if the command ran and exited zero
            - output: str - Sanitized stdout (display-truncated)
            - command, args, paths, security_level, command_category
            - content_filtered, output_sanitized, timestamp

        If approval is required:
            - pending_approval: True
            - operation, message, command_category, is_learned

        On failure:
            - error, error_code, recoverable, details
    """
    args = list(args or [])
    options = SandboxOptions(
        security_level=SecurityLevel.parse(security_level),
        enable_learning=enable_learning,
        enable_content_filtering=keep_private,
        timeout_ms=clamp_timeout(timeout_ms),
    )

    try:
        sandbox = Sandbox(working_directory, options)
        result = await execute_with_consent(sandbox, command, args, confirmed)
    except SandboxError as e:
        logger.info("secure_bash_failed", command=command, error_code=e.error_code)
        return e.to_dict()

    if isinstance(result, ConsentRequest):
        return consent_response(result)

    response = result.to_dict()
    response["output"] = truncate_output(result.output)
    response["output_size"] = len(result.output)
    return response
