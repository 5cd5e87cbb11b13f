"""Output sanitization for captured process output.

Two passes, in order:
1. Absolute workspace-root paths collapse to "."
2. Sensitive data patterns are replaced with [REDACTED]

Sanitization is lossy: sanitized output cannot be mapped back to the
original.
"""

import os
import re
from dataclasses import dataclass

from adaptive_sandbox.models import SecurityConfig

REDACTED = "[REDACTED]"


@dataclass(frozen=True)
class SensitiveDataPattern:
    """A single redaction rule.

    Attributes:
        name: Identifier reported by OutputSanitizer.redactions.
        category: Grouping tag (credential, personal, token, path, ...).
        pattern: Compiled expression; every match is redacted.
    """

    name: str
    category: str
    pattern: re.Pattern[str]


def _rule(name: str, category: str, expression: str, flags: int = 0) -> SensitiveDataPattern:
    return SensitiveDataPattern(name, category, re.compile(expression, flags))


_QUOTE = "['\"]?"

DEFAULT_SENSITIVE_PATTERNS: tuple[SensitiveDataPattern, ...] = (
    # API keys and tokens in assignments
    _rule("api_key", "credential", rf"api[_-]?key[_-]?[=:]\s*{_QUOTE}([a-zA-Z0-9]{{20,}}){_QUOTE}", re.I),
    _rule("access_token", "credential", rf"access[_-]?token[_-]?[=:]\s*{_QUOTE}([a-zA-Z0-9]{{20,}}){_QUOTE}", re.I),
    _rule("secret_key", "credential", rf"secret[_-]?key[_-]?[=:]\s*{_QUOTE}([a-zA-Z0-9]{{20,}}){_QUOTE}", re.I),
    # Passwords
    _rule("password", "credential", rf"password[_-]?[=:]\s*{_QUOTE}([^'\"\s]{{6,}}){_QUOTE}", re.I),
    _rule("passwd", "credential", rf"passwd[_-]?[=:]\s*{_QUOTE}([^'\"\s]{{6,}}){_QUOTE}", re.I),
    # Database URLs
    _rule("mongodb_url", "database_url", r"mongodb(?:\+srv)?://\S+", re.I),
    _rule("postgres_url", "database_url", r"postgres(?:ql)?://\S+", re.I),
    _rule("mysql_url", "database_url", r"mysql://\S+", re.I),
    # Personal data
    _rule("email", "personal", r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
    _rule("credit_card", "personal", r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b"),
    _rule("ssn", "personal", r"\b\d{3}-\d{2}-\d{4}\b"),
    # Tokens
    _rule("jwt", "token", r"eyJ[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.?[A-Za-z0-9\-_.+/=]*"),
    _rule("private_key", "token", r"-----BEGIN [A-Z ]+-----[\s\S]*?-----END [A-Z ]+-----", re.I),
    _rule("aws_access_key", "token", r"AKIA[0-9A-Z]{16}"),
    _rule("github_token", "token", r"gh[pou]_[a-zA-Z0-9]{36}"),
    # Private directories
    _rule("macos_home", "path", r"/Users/[^\s/]+"),
    _rule("linux_home", "path", r"/home/[^\s/]+"),
    _rule("windows_home", "path", r"C:\\Users\\[^\s\\]+"),
)


class OutputSanitizer:
    """Applies path collapse and sensitive-data redaction.

    Example:
        sanitizer = OutputSanitizer("/repo", config)
        sanitizer.sanitize("/repo/src/app.py: AKIA1234567890ABCDEF")
        # './src/app.py: [REDACTED]'
    """

    def __init__(
        self,
        workspace_root: str,
        config: SecurityConfig,
        patterns: tuple[SensitiveDataPattern, ...] | list[SensitiveDataPattern] | None = None,
    ):
        """Initialize the sanitizer.

        Args:
            workspace_root: Absolute workspace path collapsed to ".".
            config: Security config; decides which passes run.
            patterns: Redaction table (defaults to DEFAULT_SENSITIVE_PATTERNS).
        """
        self.workspace_root = str(workspace_root)
        self.config = config
        self.patterns = tuple(patterns) if patterns is not None else DEFAULT_SENSITIVE_PATTERNS

    def sanitize(self, text: str) -> str:
        """Sanitize captured output according to the active config."""
        if not self.config.output_sanitization:
            return text

        sanitized = self._collapse_workspace(text)

        if self.config.content_filtering:
            for rule in self.patterns:
                sanitized = rule.pattern.sub(REDACTED, sanitized)

        return sanitized

    def redactions(self, text: str) -> list[str]:
        """Names of the rules that would redact something in text."""
        collapsed = self._collapse_workspace(text)
        return [rule.name for rule in self.patterns if rule.pattern.search(collapsed)]

    def _collapse_workspace(self, text: str) -> str:
        # A filesystem-root workspace would turn every separator into "."
        if not self.workspace_root or self.workspace_root == os.sep:
            return text
        return text.replace(self.workspace_root, ".")
