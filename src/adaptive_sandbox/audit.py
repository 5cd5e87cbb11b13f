"""Bounded audit trail for sandboxed executions.

- Ring buffer of immutable entries, oldest evicted first
- Every entry also emitted on the structured logger
- Query and summary interface for review
"""

import hashlib
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from adaptive_sandbox.logging import Loggers
from adaptive_sandbox.models import AuditLogEntry

logger = Loggers.audit()

DEFAULT_AUDIT_CAPACITY = 2000


@dataclass
class AuditConfig:
    """Configuration for the audit trail.

    Attributes:
        enabled: Whether entries are recorded.
        capacity: Maximum retained entries before FIFO eviction.
    """

    enabled: bool = True
    capacity: int = DEFAULT_AUDIT_CAPACITY


def fingerprint(command: str, args: list[str], epoch_ms: int) -> str:
    """Short correlation hash for an execution (not a security control)."""
    digest = hashlib.sha256(f"{command}{''.join(args)}{epoch_ms}".encode("utf-8"))
    return digest.hexdigest()[:8]


class AuditTrail:
    """Append-only, bounded record of execution attempts.

    Entries are recorded in completion order. Past capacity, exactly one
    entry (the oldest) is evicted per insert.
    """

    def __init__(self, config: AuditConfig | None = None):
        """Initialize the audit trail.

        Args:
            config: Audit configuration.
        """
        self.config = config or AuditConfig()
        self._entries: deque[AuditLogEntry] = deque(maxlen=self.config.capacity)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[AuditLogEntry, ...]:
        """All retained entries, oldest first."""
        return tuple(self._entries)

    def build_entry(
        self,
        command: str,
        args: list[str],
        relative_paths: list[str],
        success: bool,
        output_size: int,
        error_message: str,
        security_level: str,
        category: str,
        is_learned: bool,
    ) -> AuditLogEntry:
        """Create an entry stamped with the current time and fingerprint."""
        now = time.time()
        return AuditLogEntry(
            timestamp=datetime.fromtimestamp(now).isoformat(),
            command=command,
            args_string=" ".join(args),
            relative_paths=tuple(relative_paths),
            success=success,
            output_size=output_size,
            error_message=error_message,
            security_level=security_level,
            category=category,
            is_learned=is_learned,
            hash=fingerprint(command, args, int(now * 1000)),
        )

    def record(self, entry: AuditLogEntry) -> None:
        """Append an entry.

        Never raises: audit problems must not change execution outcomes.
        """
        if not self.config.enabled:
            return

        try:
            self._entries.append(entry)
            fields = entry.to_dict()
            # TimeStamper owns the "timestamp" key
            fields["entry_timestamp"] = fields.pop("timestamp")
            logger.info("sandbox_audit", **fields)
        except Exception as e:
            logger.warning("audit_record_failed", command=entry.command, error=str(e))

    def query(
        self,
        command_pattern: str | None = None,
        success: bool | None = None,
        category: str | None = None,
        limit: int = 100,
    ) -> list[AuditLogEntry]:
        """Query retained entries.

        Args:
            command_pattern: Substring to match in "command args".
            success: Filter by outcome.
            category: Filter by command category.
            limit: Maximum entries to return (the most recent matches).

        Returns:
            Matching AuditLogEntry objects, most recent last.
        """
        matches: list[AuditLogEntry] = []
        for entry in reversed(self.entries):
            if len(matches) >= limit:
                break
            if command_pattern and command_pattern not in f"{entry.command} {entry.args_string}":
                continue
            if success is not None and entry.success != success:
                continue
            if category and entry.category != category:
                continue
            matches.append(entry)
        matches.reverse()
        return matches

    def snapshot(self, limit: int | None = None) -> dict[str, Any]:
        """Most recent entries plus aggregate statistics.

        Args:
            limit: Number of most recent entries to include (None = all).

        Returns:
            Dictionary with "entries" (oldest first) and "stats".
        """
        entries = self.entries
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else ()

        total = len(self._entries)
        succeeded = sum(1 for e in self._entries if e.success)
        learned = sum(1 for e in self._entries if e.is_learned)

        return {
            "entries": [e.to_dict() for e in entries],
            "stats": {
                "total_commands": total,
                "success_rate": f"{succeeded / total * 100:.1f}%" if total else "N/A",
                "learned_commands": learned,
                "policy_commands": total - learned,
            },
        }
