"""Consent cache and learned-command store.

Two overlapping trust structures:
- Consent cache: in-memory, per exact command+args signature, 24h validity
- Learned commands: per-workspace set persisted as JSON, never expires

Persistence is best-effort. A missing or corrupt file means no learned
commands, and write failures are logged rather than raised.
"""

import json
import os
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from adaptive_sandbox.logging import Loggers
from adaptive_sandbox.models import ConsentRecord

logger = Loggers.trust()

LEARNED_COMMANDS_FILENAME = ".sandbox-learned-commands.json"
LEARNED_COMMANDS_VERSION = "1.0.0"
CONSENT_TTL_SECONDS = 24 * 60 * 60


def consent_signature(command: str, args: list[str]) -> str:
    """Key a consent record by the exact invocation."""
    return f"{command} {' '.join(args)}"


def atomic_write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON data to a file atomically.

    Writes to a per-process temporary file first, then renames onto the
    target path, so concurrent writers never leave a torn file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
    try:
        tmp_path.write_text(json.dumps(data, indent=indent))
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


class TrustStore:
    """Consent records plus the persisted learned-command set.

    Example:
        >>> store = TrustStore(Path("/repo"))
        >>> store.grant_consent("make", ["build"], learn=True)
        >>> store.is_learned("make")
        True
    """

    def __init__(
        self,
        workspace_root: Path,
        enable_learning: bool = True,
        clock: Callable[[], float] = time.time,
        storage_path: Path | None = None,
    ) -> None:
        self._workspace_root = Path(workspace_root)
        self._enable_learning = enable_learning
        self._clock = clock
        self._storage_path = storage_path or self._workspace_root / LEARNED_COMMANDS_FILENAME
        self._lock = threading.Lock()
        self._consents: dict[str, ConsentRecord] = {}
        self._learned: set[str] = set()
        self._load()

    @property
    def storage_path(self) -> Path:
        """Location of the learned-commands file."""
        return self._storage_path

    def _load(self) -> None:
        if not self._storage_path.exists():
            return
        try:
            with open(self._storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            commands = data.get("commands", [])
            if not isinstance(commands, list):
                raise TypeError(f"commands must be a list, got {type(commands).__name__}")
            self._learned = {c for c in commands if isinstance(c, str) and c}
            logger.debug("learned_commands_loaded", count=len(self._learned))
        except (OSError, ValueError, AttributeError, TypeError) as e:
            logger.warning(
                "learned_commands_load_failed",
                path=str(self._storage_path),
                error=str(e),
            )
            self._learned = set()

    def _save(self) -> None:
        data = {
            "version": LEARNED_COMMANDS_VERSION,
            "timestamp": datetime.now().isoformat(),
            "commands": sorted(self._learned),
        }
        try:
            atomic_write_json(self._storage_path, data)
        except OSError as e:
            # Learning is an optimization; the in-memory set still applies.
            logger.warning(
                "learned_commands_save_failed",
                path=str(self._storage_path),
                error=str(e),
            )

    def get_consent(self, command: str, args: list[str]) -> ConsentRecord | None:
        """Return the consent record for an invocation if still valid."""
        record = self._consents.get(consent_signature(command, args))
        if record is None:
            return None
        if self._clock() - record.timestamp >= CONSENT_TTL_SECONDS:
            return None
        return record

    def is_consent_valid(self, command: str, args: list[str]) -> bool:
        """Check for an unexpired consent record for this exact invocation."""
        return self.get_consent(command, args) is not None

    def grant_consent(self, command: str, args: list[str], learn: bool = False) -> None:
        """Record consent and optionally learn the command.

        Args:
            command: Command name.
            args: Exact arguments approved.
            learn: Add the command to the learned set (ignored when learning
                is disabled).
        """
        signature = consent_signature(command, args)
        with self._lock:
            self._consents[signature] = ConsentRecord(
                signature=signature,
                granted=True,
                timestamp=self._clock(),
            )
            logger.info("consent_granted", signature=signature)

            if learn and self._enable_learning and command not in self._learned:
                self._learned.add(command)
                logger.info("command_learned", command=command)
                self._save()

    def is_learned(self, command: str) -> bool:
        """Check whether a command has been learned."""
        return command in self._learned

    @property
    def learned_commands(self) -> list[str]:
        """Learned command names, sorted."""
        return sorted(self._learned)

    def reset_learning(self) -> None:
        """Forget every learned command and consent record."""
        with self._lock:
            self._learned.clear()
            self._consents.clear()
            logger.info("learning_reset")
            self._save()
