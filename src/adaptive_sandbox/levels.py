"""Security level resolution.

Maps a SecurityLevel to the concrete SecurityConfig the validator and
sanitizer work from.
"""

from dataclasses import replace

from adaptive_sandbox.logging import Loggers
from adaptive_sandbox.models import SecurityConfig, SecurityLevel

logger = Loggers.sandbox()

_DEVELOPMENT_CATEGORIES = frozenset({
    "FILESYSTEM",
    "UTILITIES",
    "PACKAGE_MANAGERS",
    "RUNTIMES",
    "TESTING",
    "LINTING",
    "BUILD_TOOLS",
    "GIT",
    "DOCKER",
    "RUST",
    "CARGO",
})

SECURITY_CONFIGS: dict[SecurityLevel, SecurityConfig] = {
    SecurityLevel.STRICT: SecurityConfig(
        level=SecurityLevel.STRICT,
        require_consent=True,
        consent_for_unlisted=False,
        active_categories=frozenset({"FILESYSTEM"}),
        content_filtering=True,
        path_restrictions=True,
        allowed_extensions=frozenset({".js", ".ts", ".json", ".md", ".txt"}),
        output_sanitization=True,
    ),
    SecurityLevel.BALANCED: SecurityConfig(
        level=SecurityLevel.BALANCED,
        require_consent=False,
        consent_for_unlisted=False,
        active_categories=frozenset({"FILESYSTEM", "UTILITIES"}),
        content_filtering=True,
        path_restrictions=True,
        allowed_extensions=frozenset({
            ".js", ".ts", ".jsx", ".tsx", ".json", ".md", ".txt", ".css", ".html",
        }),
        output_sanitization=True,
    ),
    SecurityLevel.DEVELOPMENT: SecurityConfig(
        level=SecurityLevel.DEVELOPMENT,
        require_consent=True,
        consent_for_unlisted=True,
        active_categories=_DEVELOPMENT_CATEGORIES,
        content_filtering=True,
        path_restrictions=True,
        allowed_extensions=None,
        output_sanitization=True,
    ),
    SecurityLevel.PERMISSIVE: SecurityConfig(
        level=SecurityLevel.PERMISSIVE,
        require_consent=False,
        consent_for_unlisted=False,
        active_categories=None,
        content_filtering=False,
        path_restrictions=False,
        allowed_extensions=None,
        output_sanitization=False,
    ),
}


def resolve(level: SecurityLevel | str | None) -> SecurityConfig:
    """Resolve a security level to its policy.

    Unrecognized names fall back to DEVELOPMENT rather than raising.

    Args:
        level: Level enum or name (case-insensitive).

    Returns:
        The SecurityConfig for that level.
    """
    parsed = SecurityLevel.parse(level)
    if not isinstance(level, SecurityLevel) and (
        not isinstance(level, str) or level.strip().upper() != parsed.value
    ):
        logger.debug("security_level_defaulted", requested=str(level), resolved=parsed.value)
    return SECURITY_CONFIGS[parsed]


def with_content_filtering(config: SecurityConfig, enabled: bool) -> SecurityConfig:
    """Derive a config with content filtering switched off if requested.

    Filtering can only be narrowed: a level without filtering stays without.
    """
    if enabled or not config.content_filtering:
        return config
    return replace(config, content_filtering=False)
