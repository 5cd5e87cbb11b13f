"""Data models for the command sandbox.

Provides dataclasses for security levels, consent records, audit entries,
and the two result shapes returned by Sandbox.execute.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SecurityLevel(Enum):
    """Named bundle of policy defaults."""

    STRICT = "STRICT"  # Filesystem inspection only
    BALANCED = "BALANCED"  # Filesystem + utilities, no consent prompts
    DEVELOPMENT = "DEVELOPMENT"  # Full dev tooling, unknown commands are learnable
    PERMISSIVE = "PERMISSIVE"  # Every category, no filtering

    @classmethod
    def parse(cls, value: "SecurityLevel | str | None") -> "SecurityLevel":
        """Parse a level name, falling back to DEVELOPMENT."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        return cls.DEVELOPMENT


@dataclass(frozen=True)
class SecurityConfig:
    """Concrete policy derived from a SecurityLevel.

    Attributes:
        level: Level this config was resolved from.
        require_consent: Catalog commands flagged requires_consent prompt
            before first use.
        consent_for_unlisted: Unknown commands produce a consent request
            (and become learnable) instead of a policy rejection.
        active_categories: Enabled catalog categories (None = all).
        content_filtering: Redact sensitive data patterns from output.
        path_restrictions: Paths are confined to the workspace.
        allowed_extensions: Permitted file extensions (None = unrestricted).
        output_sanitization: Rewrite output at all (workspace path collapse).
    """

    level: SecurityLevel
    require_consent: bool
    consent_for_unlisted: bool
    active_categories: frozenset[str] | None
    content_filtering: bool
    path_restrictions: bool
    allowed_extensions: frozenset[str] | None
    output_sanitization: bool


@dataclass(frozen=True)
class ConsentRecord:
    """Time-boxed approval for one exact command+argument signature."""

    signature: str
    granted: bool
    timestamp: float  # epoch seconds


@dataclass(frozen=True)
class AuditLogEntry:
    """A single audit trail entry.

    Attributes:
        timestamp: ISO timestamp of completion.
        command: Command name.
        args_string: Arguments joined by spaces.
        relative_paths: Path-like arguments, relative to the workspace.
        success: Whether execution succeeded.
        output_size: Length of sanitized output (0 on failure).
        error_message: Error message on failure.
        security_level: Active level name.
        category: Catalog category, LEARNED, or UNKNOWN.
        is_learned: Whether the command was learned at record time.
        hash: 8-hex correlation fingerprint (not a security control).
    """

    timestamp: str
    command: str
    args_string: str
    relative_paths: tuple[str, ...]
    success: bool
    output_size: int
    error_message: str
    security_level: str
    category: str
    is_learned: bool
    hash: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "command": self.command,
            "args": self.args_string,
            "paths": list(self.relative_paths),
            "success": self.success,
            "output_size": self.output_size,
            "error_message": self.error_message,
            "security_level": self.security_level,
            "command_category": self.category,
            "is_learned": self.is_learned,
            "hash": self.hash,
        }


@dataclass
class ConsentRequest:
    """Returned instead of running a command that needs human approval."""

    operation: str
    message: str
    security_level: str
    command_category: str
    is_learned: bool
    requires_consent: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "requires_consent": self.requires_consent,
            "operation": self.operation,
            "message": self.message,
            "security_level": self.security_level,
            "command_category": self.command_category,
            "is_learned": self.is_learned,
        }


@dataclass
class ExecutionResult:
    """Result of a successful sandboxed execution."""

    output: str
    command: str
    args: list[str]
    paths: list[str]
    security_level: str
    content_filtered: bool
    output_sanitized: bool
    timestamp: str
    command_category: str = "UNKNOWN"
    success: bool = True
    requires_consent: bool = field(default=False, init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "output": self.output,
            "command": self.command,
            "args": self.args,
            "paths": self.paths,
            "security_level": self.security_level,
            "command_category": self.command_category,
            "content_filtered": self.content_filtered,
            "output_sanitized": self.output_sanitized,
            "timestamp": self.timestamp,
        }
