"""Secure content search tool (grep).

Validates the search pattern, builds a grep invocation, runs it through a
Sandbox and parses the output into structured matches.
"""

import re
from typing import Any

from adaptive_sandbox.config import SandboxOptions
from adaptive_sandbox.errors import CommandFailedError, InputError, SandboxError
from adaptive_sandbox.logging import Loggers
from adaptive_sandbox.models import ConsentRequest, SecurityLevel
from adaptive_sandbox.sandbox import Sandbox
from adaptive_sandbox.tools.secure_bash import consent_response, execute_with_consent

logger = Loggers.tools()

GREP_TIMEOUT_MS = 30000
MAX_PATTERN_LENGTH = 500
DEFAULT_EXCLUDE_PATTERNS = ("node_modules/*", ".git/*", "*.log")

# Shell-execution lookalikes rejected in search patterns
DANGEROUS_PATTERNS = (
    re.compile(r"system\s*\(", re.I),
    re.compile(r"exec\s*\(", re.I),
    re.compile(r"eval\s*\(", re.I),
    re.compile(r"\$\([^)]*\)"),
    re.compile(r"`[^`]*`"),
    re.compile(r"\|\s*(rm|del|format|dd)\s", re.I),
)

_LINE_NUMBER = re.compile(r"^\d+$")


def validate_search_pattern(pattern: str) -> None:
    """Reject unsafe or malformed search patterns.

    Raises:
        InputError: Pattern is empty, too long, dangerous, or an invalid regex.
    """
    if not pattern or not isinstance(pattern, str):
        raise InputError("Search pattern must be a non-empty string")

    for dangerous in DANGEROUS_PATTERNS:
        if dangerous.search(pattern):
            raise InputError(
                f"Pattern contains potentially dangerous syntax: {pattern}",
                details={"pattern": pattern},
            )

    if len(pattern) > MAX_PATTERN_LENGTH:
        raise InputError(f"Search pattern is too long (max {MAX_PATTERN_LENGTH} characters)")

    # Only regex-looking patterns are compiled
    if any(c in pattern for c in "[({"):
        try:
            re.compile(pattern)
        except re.error as e:
            raise InputError(f"Invalid regular expression pattern: {e}") from e


def build_grep_arguments(
    pattern: str,
    paths: list[str],
    recursive: bool = True,
    case_insensitive: bool = False,
    show_line_numbers: bool = True,
    show_filenames_only: bool = False,
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    context_lines: int = 0,
) -> list[str]:
    """Build the grep argument list: flags, filters, pattern, then paths."""
    args: list[str] = []

    if recursive:
        args.append("-r")
    if case_insensitive:
        args.append("-i")
    if show_line_numbers:
        args.append("-n")
    if show_filenames_only:
        args.append("-l")

    if context_lines > 0:
        args.extend(["-C", str(context_lines)])

    for include in include_patterns or []:
        args.extend(["--include", include])
    for exclude in exclude_patterns or []:
        args.extend(["--exclude", exclude])

    args.append(pattern)
    args.extend(paths)
    return args


def parse_grep_output(output: str, show_line_numbers: bool = True) -> list[dict[str, Any]]:
    """Parse "file:line:content" (or "file:content") lines into matches.

    Lines without a colon (context separators, bare filenames) are skipped.
    """
    matches: list[dict[str, Any]] = []

    for line in output.splitlines():
        if not line.strip():
            continue

        filename, sep, remainder = line.partition(":")
        if not sep:
            continue

        line_number = None
        content = remainder
        if show_line_numbers:
            candidate, sep, rest = remainder.partition(":")
            if sep and _LINE_NUMBER.match(candidate):
                line_number = int(candidate)
                content = rest

        matches.append({
            "file": filename,
            "line_number": line_number,
            "content": content.strip(),
        })

    return matches


def group_by_file(matches: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Group matches by filename, keeping first-seen order."""
    groups: dict[str, list[dict[str, Any]]] = {}
    for match in matches:
        groups.setdefault(match["file"], []).append(match)
    return groups


async def handle_secure_grep(
    pattern: str,
    paths: list[str] | None = None,
    recursive: bool = True,
    case_insensitive: bool = False,
    show_line_numbers: bool = True,
    show_filenames_only: bool = False,
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    max_matches: int = 100,
    context_lines: int = 0,
    security_level: str = "BALANCED",
    confirmed: bool = False,
    working_directory: str = ".",
) -> dict[str, Any]:
    """Search text patterns in workspace files through the sandbox.

    Args:
        pattern: Search pattern or regular expression.
        paths: Files or directories to search (default ["."]).
        recursive: Search directories recursively.
        case_insensitive: Case-insensitive search.
        show_line_numbers: Include line numbers in matches.
        show_filenames_only: Report matching filenames only.
        include_patterns: File globs to include (e.g. "*.py").
        exclude_patterns: File globs to exclude (defaults skip node_modules,
            .git and log files).
        max_matches: Maximum matches returned (1..1000).
        context_lines: Context lines around matches (0..10).
        security_level: Sandbox security level.
        confirmed: Explicit approval if the search needs consent.
        working_directory: Workspace root for the search.

    Returns:
        dict with:
        - success: True if the search completed (including no matches)
        - matches: List of {"file", "line_number", "content"}
        - files: Matches grouped by filename
        - total_matches / files_with_matches: Counts after truncation
        - truncated: True if more than max_matches were found
        - security_level, content_filtered, timestamp
    """
    paths = list(paths or ["."])
    if exclude_patterns is None:
        exclude_patterns = list(DEFAULT_EXCLUDE_PATTERNS)
    max_matches = max(1, min(1000, int(max_matches)))
    context_lines = max(0, min(10, int(context_lines)))

    try:
        validate_search_pattern(pattern)
        grep_args = build_grep_arguments(
            pattern,
            paths,
            recursive=recursive,
            case_insensitive=case_insensitive,
            show_line_numbers=show_line_numbers,
            show_filenames_only=show_filenames_only,
            include_patterns=include_patterns,
            exclude_patterns=exclude_patterns,
            context_lines=context_lines,
        )

        sandbox = Sandbox(
            working_directory,
            SandboxOptions(
                security_level=SecurityLevel.parse(security_level),
                timeout_ms=GREP_TIMEOUT_MS,
            ),
        )
        try:
            result = await execute_with_consent(sandbox, "grep", grep_args, confirmed)
        except CommandFailedError as e:
            # grep exits 1 when nothing matched
            if e.return_code != 1 or e.stderr.strip():
                raise
            return _search_response(
                [], pattern, paths, sandbox.level_name,
                sandbox.config.content_filtering, truncated=False,
            )
    except SandboxError as e:
        logger.info("secure_grep_failed", pattern=pattern, error_code=e.error_code)
        return e.to_dict()

    if isinstance(result, ConsentRequest):
        return consent_response(result)

    if show_filenames_only:
        matches = [
            {"file": line.strip(), "line_number": None, "content": ""}
            for line in result.output.splitlines()
            if line.strip()
        ]
    else:
        matches = parse_grep_output(result.output, show_line_numbers)

    response = _search_response(
        matches[:max_matches],
        pattern,
        paths,
        result.security_level,
        result.content_filtered,
        truncated=len(matches) > max_matches,
    )
    response["timestamp"] = result.timestamp
    return response


def _search_response(
    matches: list[dict[str, Any]],
    pattern: str,
    paths: list[str],
    security_level: str,
    content_filtered: bool,
    truncated: bool,
) -> dict[str, Any]:
    files = group_by_file(matches)
    return {
        "success": True,
        "pattern": pattern,
        "paths": paths,
        "matches": matches,
        "files": files,
        "total_matches": len(matches),
        "files_with_matches": len(files),
        "truncated": truncated,
        "security_level": security_level,
        "content_filtered": content_filtered,
    }
