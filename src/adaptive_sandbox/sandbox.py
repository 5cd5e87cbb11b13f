"""Adaptive command execution sandbox.

Main entry point for policy-gated command execution. One instance per
workspace root and session:

    sandbox = Sandbox("/repo", SandboxOptions(security_level=SecurityLevel.DEVELOPMENT))

    result = await sandbox.execute("bun", ["test"])
    if result.requires_consent:
        # Ask the human, then:
        sandbox.grant_consent("bun", ["test"])
        result = await sandbox.execute("bun", ["test"])

Pipeline: input check -> consent check -> policy validation -> path
extraction -> process runner -> output sanitizer -> audit trail.
"""

import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from adaptive_sandbox.audit import AuditTrail
from adaptive_sandbox.catalog import PolicyCatalog
from adaptive_sandbox.config import SandboxOptions
from adaptive_sandbox.errors import InputError
from adaptive_sandbox.levels import resolve, with_content_filtering
from adaptive_sandbox.logging import Loggers, bind_context, unbind_context
from adaptive_sandbox.models import ConsentRequest, ExecutionResult, SecurityConfig
from adaptive_sandbox.runner import ProcessRunner
from adaptive_sandbox.sanitizer import (
    DEFAULT_SENSITIVE_PATTERNS,
    OutputSanitizer,
    SensitiveDataPattern,
)
from adaptive_sandbox.trust import TrustStore
from adaptive_sandbox.validator import CommandValidator

logger = Loggers.sandbox()

# Flags whose next argument is a value, not a path
_VALUE_FLAGS = frozenset({"-n", "--include", "--exclude", "--config", "--ext"})


def extract_paths(args: list[str]) -> list[str]:
    """Pick out path-like positional arguments.

    Flags are skipped, along with the value following flags in _VALUE_FLAGS.
    An argument counts as a path if it contains a separator or a dot.
    """
    paths: list[str] = []
    skip_next = False
    for arg in args:
        if skip_next:
            skip_next = False
            continue
        if arg.startswith("-"):
            skip_next = arg in _VALUE_FLAGS
            continue
        if "/" in arg or "\\" in arg or "." in arg:
            paths.append(arg)
    return paths


class Sandbox:
    """Policy-gated executor for one workspace.

    Holds the consent cache, learned commands, and audit trail for its
    lifetime; learned commands are also persisted under the workspace root.
    """

    def __init__(
        self,
        workspace_root: Path | str,
        options: SandboxOptions | None = None,
        *,
        clock: Callable[[], float] = time.time,
        runner: ProcessRunner | None = None,
        extra_patterns: list[SensitiveDataPattern] | None = None,
    ):
        """Initialize the sandbox.

        Args:
            workspace_root: Directory commands run in.
            options: Sandbox options (defaults to DEVELOPMENT settings).
            clock: Time source for consent expiry.
            runner: Process runner override.
            extra_patterns: Redaction rules appended to the default table.
        """
        self.workspace_root = Path(workspace_root).resolve()
        self.options = options or SandboxOptions()

        self.config: SecurityConfig = with_content_filtering(
            resolve(self.options.security_level),
            self.options.enable_content_filtering,
        )

        self._catalog = PolicyCatalog()
        self._policies = self._catalog.active_policies(self.config.active_categories)
        self._trust = TrustStore(
            self.workspace_root,
            enable_learning=self.options.enable_learning,
            clock=clock,
        )
        self._validator = CommandValidator(
            self.config,
            self._policies,
            self._trust,
            self._catalog.category_names(),
        )
        self._runner = runner or ProcessRunner(self.workspace_root, self.options.limits())
        self._sanitizer = OutputSanitizer(
            str(self.workspace_root),
            self.config,
            DEFAULT_SENSITIVE_PATTERNS + tuple(extra_patterns or ()),
        )
        self._audit = AuditTrail(self.options.audit_config())

        logger.debug(
            "sandbox_initialized",
            workspace=str(self.workspace_root),
            security_level=self.level_name,
            learned=len(self._trust.learned_commands),
        )

    @property
    def level_name(self) -> str:
        """Active security level name."""
        return self.config.level.value

    @property
    def audit_trail(self) -> AuditTrail:
        """The instance's audit trail."""
        return self._audit

    @property
    def trust_store(self) -> TrustStore:
        """The instance's trust store."""
        return self._trust

    async def execute(
        self,
        command: str,
        args: list[str] | None = None,
    ) -> ExecutionResult | ConsentRequest:
        """Execute a command through every policy layer.

        Args:
            command: Command name.
            args: Arguments, passed verbatim to the process.

        Returns:
            ConsentRequest if human approval is needed (nothing is spawned),
            otherwise an ExecutionResult with sanitized output.

        Raises:
            InputError: Malformed command or arguments.
            PolicyError: Command or argument not permitted.
            ResourceLimitError: Output cap or timeout hit.
            ExecutionError: Spawn failure or non-zero exit.
        """
        args = self._check_input(command, args)
        bind_context(workspace=str(self.workspace_root), security_level=self.level_name)
        try:
            return await self._execute(command, args)
        finally:
            unbind_context("workspace", "security_level")

    async def _execute(
        self,
        command: str,
        args: list[str],
    ) -> ExecutionResult | ConsentRequest:
        paths: list[str] = []

        try:
            if self._validator.needs_consent(command, args):
                logger.info("consent_required", command=command, args=args)
                return ConsentRequest(
                    operation=f"{command} {' '.join(args)}",
                    message=(
                        f"Command '{command}' requires user consent. This helps maintain "
                        "security while allowing development flexibility."
                    ),
                    security_level=self.level_name,
                    command_category=self.command_category(command),
                    is_learned=self._trust.is_learned(command),
                )

            self._validator.validate(command, args)
            paths = extract_paths(args)

            output = await self._runner.run(command, args)
            sanitized = self._sanitizer.sanitize(output)
        except Exception as e:
            self._record(command, args, paths, False, "", str(e))
            logger.warning("execution_failed", command=command, error=str(e))
            raise

        self._record(command, args, paths, True, sanitized)
        return ExecutionResult(
            output=sanitized,
            command=command,
            args=list(args),
            paths=self._relative_paths(paths),
            security_level=self.level_name,
            content_filtered=self.config.content_filtering,
            output_sanitized=self.config.output_sanitization,
            timestamp=datetime.now().isoformat(),
            command_category=self.command_category(command),
        )

    def grant_consent(self, command: str, args: list[str] | None = None) -> None:
        """Approve an exact invocation for 24 hours.

        Commands outside the active categories are also learned, which
        whitelists all their arguments for this workspace.
        """
        args = self._check_input(command, args)
        self._trust.grant_consent(
            command,
            args,
            learn=not self._validator.is_listed(command),
        )

    def reset_learning(self) -> None:
        """Forget learned commands and consent records."""
        self._trust.reset_learning()

    def is_learned(self, command: str) -> bool:
        """Check whether a command has been learned."""
        return self._trust.is_learned(command)

    def command_category(self, command: str) -> str:
        """Catalog category of a command, or LEARNED / UNKNOWN."""
        return self._catalog.category_of(command, learned=self._trust.is_learned(command))

    def get_learned_commands_stats(self) -> dict[str, Any]:
        """Learned command names grouped by category."""
        commands = self._trust.learned_commands
        categories: dict[str, int] = {}
        for command in commands:
            category = self.command_category(command)
            categories[category] = categories.get(category, 0) + 1
        return {
            "total": len(commands),
            "commands": commands,
            "categories": categories,
        }

    def get_audit_log(self, limit: int | None = None) -> dict[str, Any]:
        """Audit entries and statistics, including learned-command stats."""
        snapshot = self._audit.snapshot(limit)
        snapshot["stats"]["learned_command_stats"] = self.get_learned_commands_stats()
        return snapshot

    @staticmethod
    def _check_input(command: Any, args: Any) -> list[str]:
        if not command or not isinstance(command, str):
            raise InputError("Command must be a non-empty string")
        if "\0" in command:
            raise InputError("Command must not contain NUL bytes")
        if args is None:
            return []
        if not isinstance(args, (list, tuple)):
            raise InputError("Args must be a list of strings")
        if not all(isinstance(a, str) for a in args):
            raise InputError("Every argument must be a string")
        if any("\0" in a for a in args):
            raise InputError("Arguments must not contain NUL bytes")
        return list(args)

    def _relative_paths(self, paths: list[str]) -> list[str]:
        relative = []
        for p in paths:
            try:
                relative.append(os.path.relpath(self.workspace_root / p, self.workspace_root))
            except ValueError:
                # Different drive on Windows
                relative.append(p)
        return relative

    def _record(
        self,
        command: str,
        args: list[str],
        paths: list[str],
        success: bool,
        output: str,
        error: str = "",
    ) -> None:
        entry = self._audit.build_entry(
            command=command,
            args=args,
            relative_paths=self._relative_paths(paths),
            success=success,
            output_size=len(output),
            error_message=error,
            security_level=self.level_name,
            category=self.command_category(command),
            is_learned=self._trust.is_learned(command),
        )
        self._audit.record(entry)
