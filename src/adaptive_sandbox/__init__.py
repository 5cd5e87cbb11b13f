"""Adaptive Sandbox - policy-gated execution of developer commands.

Sits between an untrusted command requester (typically an AI coding agent)
and the operating system's process spawner:

- Security levels bundling command categories, consent and filtering rules
- Per-command argument whitelists
- Time-boxed consent and per-workspace learned commands
- Output caps, timeouts, and sensitive-data redaction
- Bounded audit trail

Usage:
    from adaptive_sandbox import Sandbox, SandboxOptions, SecurityLevel

    sandbox = Sandbox("/project", SandboxOptions(security_level=SecurityLevel.BALANCED))
    result = await sandbox.execute("ls", ["-la"])
"""

from adaptive_sandbox.audit import AuditConfig, AuditTrail
from adaptive_sandbox.catalog import COMMAND_CATEGORIES, CommandPolicy, PolicyCatalog
from adaptive_sandbox.config import SandboxOptions, SandboxSettings
from adaptive_sandbox.errors import (
    ArgumentNotAllowedError,
    CommandFailedError,
    CommandNotAllowedError,
    ErrorCode,
    ExecutionError,
    ExecutionTimeoutError,
    InputError,
    OutputLimitExceededError,
    PolicyError,
    ResourceLimitError,
    SandboxError,
    SpawnError,
)
from adaptive_sandbox.levels import SECURITY_CONFIGS, resolve
from adaptive_sandbox.logging import configure_logging, get_logger
from adaptive_sandbox.models import (
    AuditLogEntry,
    ConsentRecord,
    ConsentRequest,
    ExecutionResult,
    SecurityConfig,
    SecurityLevel,
)
from adaptive_sandbox.runner import ExecutionLimits, ProcessRunner
from adaptive_sandbox.sandbox import Sandbox, extract_paths
from adaptive_sandbox.sanitizer import (
    DEFAULT_SENSITIVE_PATTERNS,
    OutputSanitizer,
    SensitiveDataPattern,
)
from adaptive_sandbox.trust import TrustStore

__all__ = [
    # Sandbox
    "Sandbox",
    "extract_paths",
    # Configuration
    "SandboxOptions",
    "SandboxSettings",
    "SecurityLevel",
    "SecurityConfig",
    "SECURITY_CONFIGS",
    "resolve",
    # Policy
    "COMMAND_CATEGORIES",
    "CommandPolicy",
    "PolicyCatalog",
    # Components
    "TrustStore",
    "ProcessRunner",
    "ExecutionLimits",
    "OutputSanitizer",
    "SensitiveDataPattern",
    "DEFAULT_SENSITIVE_PATTERNS",
    "AuditTrail",
    "AuditConfig",
    # Results
    "ExecutionResult",
    "ConsentRequest",
    "ConsentRecord",
    "AuditLogEntry",
    # Errors
    "ErrorCode",
    "SandboxError",
    "InputError",
    "PolicyError",
    "CommandNotAllowedError",
    "ArgumentNotAllowedError",
    "ResourceLimitError",
    "OutputLimitExceededError",
    "ExecutionTimeoutError",
    "ExecutionError",
    "CommandFailedError",
    "SpawnError",
    # Logging
    "configure_logging",
    "get_logger",
]
