"""Configuration for the command sandbox.

Two layers:
- SandboxOptions: explicit constructor options for a Sandbox instance
- SandboxSettings: environment-driven settings (SANDBOX_* prefix) that
  callers may turn into options; the sandbox never reads them on its own
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from adaptive_sandbox.audit import DEFAULT_AUDIT_CAPACITY, AuditConfig
from adaptive_sandbox.models import SecurityLevel
from adaptive_sandbox.runner import ExecutionLimits

DEFAULT_MAX_OUTPUT_SIZE = 10 * 1024 * 1024
DEFAULT_TIMEOUT_MS = 60000


def _default_env() -> dict[str, str]:
    return {"NODE_ENV": "development"}


@dataclass
class SandboxOptions:
    """Options for a Sandbox instance.

    Attributes:
        security_level: Policy bundle to enforce.
        enable_learning: Persist consented unknown commands as learned.
        enable_auditing: Record executions in the audit trail.
        enable_content_filtering: Allow sensitive-data redaction (the level
            must also enable it).
        max_output_size: Stdout cap in bytes before the process is killed.
        timeout_ms: Wall-clock timeout per execution.
        audit_capacity: Audit ring buffer size.
        env: Extra environment variables for spawned processes.
    """

    security_level: SecurityLevel = SecurityLevel.DEVELOPMENT
    enable_learning: bool = True
    enable_auditing: bool = True
    enable_content_filtering: bool = True
    max_output_size: int = DEFAULT_MAX_OUTPUT_SIZE
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    audit_capacity: int = DEFAULT_AUDIT_CAPACITY
    env: dict[str, str] = field(default_factory=_default_env)

    def __post_init__(self) -> None:
        self.security_level = SecurityLevel.parse(self.security_level)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SandboxOptions":
        """Create options from dictionary.

        Args:
            data: Options dictionary.

        Returns:
            SandboxOptions instance.
        """
        return cls(
            security_level=SecurityLevel.parse(data.get("security_level")),
            enable_learning=data.get("enable_learning", True),
            enable_auditing=data.get("enable_auditing", True),
            enable_content_filtering=data.get("enable_content_filtering", True),
            max_output_size=data.get("max_output_size", DEFAULT_MAX_OUTPUT_SIZE),
            timeout_ms=data.get("timeout_ms", DEFAULT_TIMEOUT_MS),
            audit_capacity=data.get("audit_capacity", DEFAULT_AUDIT_CAPACITY),
            env=data.get("env", _default_env()),
        )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "SandboxOptions":
        """Load options from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            SandboxOptions instance (defaults if the file does not exist).
        """
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert options to dictionary."""
        return {
            "security_level": self.security_level.value,
            "enable_learning": self.enable_learning,
            "enable_auditing": self.enable_auditing,
            "enable_content_filtering": self.enable_content_filtering,
            "max_output_size": self.max_output_size,
            "timeout_ms": self.timeout_ms,
            "audit_capacity": self.audit_capacity,
            "env": dict(self.env),
        }

    def limits(self) -> ExecutionLimits:
        """Execution limits for the process runner."""
        return ExecutionLimits(
            timeout_ms=self.timeout_ms,
            max_output_bytes=self.max_output_size,
            env=dict(self.env),
        )

    def audit_config(self) -> AuditConfig:
        """Configuration for the audit trail."""
        return AuditConfig(enabled=self.enable_auditing, capacity=self.audit_capacity)


class SandboxSettings(BaseSettings):
    """Environment-driven sandbox settings.

    Loaded from SANDBOX_* environment variables and an optional .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SANDBOX_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    security_level: str = Field(
        default="DEVELOPMENT",
        description="STRICT, BALANCED, DEVELOPMENT or PERMISSIVE",
    )
    enable_learning: bool = Field(default=True, description="Learn consented commands")
    enable_auditing: bool = Field(default=True, description="Record executions")
    enable_content_filtering: bool = Field(default=True, description="Redact sensitive output")
    max_output_size: int = Field(default=DEFAULT_MAX_OUTPUT_SIZE, gt=0)
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)

    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="warning",
        description="Logging verbosity level",
    )
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log output format (console for dev, json for production)",
    )

    @field_validator("security_level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Normalize level names; unknown names become DEVELOPMENT."""
        return SecurityLevel.parse(v).value

    def to_options(self) -> SandboxOptions:
        """Build explicit sandbox options from these settings."""
        return SandboxOptions(
            security_level=SecurityLevel.parse(self.security_level),
            enable_learning=self.enable_learning,
            enable_auditing=self.enable_auditing,
            enable_content_filtering=self.enable_content_filtering,
            max_output_size=self.max_output_size,
            timeout_ms=self.timeout_ms,
        )
