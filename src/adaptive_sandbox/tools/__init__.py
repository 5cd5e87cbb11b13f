"""Tool surfaces over the sandbox.

Each handler takes plain keyword arguments and returns a JSON-friendly dict;
sandbox errors are converted with SandboxError.to_dict().

Usage:
    from adaptive_sandbox.tools import handle_secure_bash

    result = await handle_secure_bash("bun", ["test"], working_directory="/project")
    if result.get("pending_approval"):
        result = await handle_secure_bash(
            "bun", ["test"], working_directory="/project", confirmed=True
        )
"""

from adaptive_sandbox.tools.secure_bash import handle_secure_bash
from adaptive_sandbox.tools.secure_grep import (
    build_grep_arguments,
    handle_secure_grep,
    parse_grep_output,
    validate_search_pattern,
)

__all__ = [
    "handle_secure_bash",
    "handle_secure_grep",
    "validate_search_pattern",
    "build_grep_arguments",
    "parse_grep_output",
]
