"""Consent and argument validation.

Decides, for a command and its arguments:
- whether human consent is still required before running it
- whether the arguments are within policy once consent is satisfied
"""

from adaptive_sandbox.catalog import CommandPolicy
from adaptive_sandbox.errors import ArgumentNotAllowedError, CommandNotAllowedError
from adaptive_sandbox.models import SecurityConfig
from adaptive_sandbox.trust import TrustStore, consent_signature

# Irreversible or outward-facing operations. Matched as prefixes of the
# full invocation, whitelisted or not.
SENSITIVE_OPERATIONS: tuple[str, ...] = (
    # Package installs
    "npm install",
    "bun install",
    "yarn install",
    "pnpm install",
    # Deletion
    "rm",
    "rmdir",
    "del",
    # Git history / remote
    "git push",
    "git commit",
)


class CommandValidator:
    """Consent and policy checks against one active policy table.

    Args:
        config: Resolved security config.
        policies: Active command policies (merged categories).
        trust: Trust store for consent and learned state.
        category_names: Catalog categories, listed in rejection messages.
    """

    def __init__(
        self,
        config: SecurityConfig,
        policies: dict[str, CommandPolicy],
        trust: TrustStore,
        category_names: list[str],
    ):
        self._config = config
        self._policies = policies
        self._trust = trust
        self._category_names = category_names

    def is_listed(self, command: str) -> bool:
        """Check whether the command is in an active category."""
        return command in self._policies

    def needs_consent(self, command: str, args: list[str]) -> bool:
        """Check whether this invocation needs human consent first."""
        record = self._trust.get_consent(command, args)
        if record is not None:
            return not record.granted

        learned = self._trust.is_learned(command)
        policy = self._policies.get(command)

        if self._config.consent_for_unlisted and policy is None and not learned:
            return True

        if (
            self._config.require_consent
            and policy is not None
            and policy.requires_consent
            and not learned
        ):
            return True

        signature = consent_signature(command, args)
        return any(signature.startswith(op) for op in SENSITIVE_OPERATIONS)

    def validate(self, command: str, args: list[str]) -> None:
        """Check the command and its arguments against policy.

        Raises:
            CommandNotAllowedError: Command is unlisted and not learned.
            ArgumentNotAllowedError: A checked argument is not allowed.
        """
        if self._trust.is_learned(command):
            return

        policy = self._policies.get(command)
        if policy is None:
            raise CommandNotAllowedError(command, self._category_names)

        allowed = policy.allowed_arguments
        if not allowed:
            return

        for arg in args:
            should_check = policy.check_all_arguments or arg.startswith("-")
            if should_check and arg not in allowed:
                raise ArgumentNotAllowedError(command, arg, list(allowed))
