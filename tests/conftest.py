"""Shared test fixtures for adaptive-sandbox tests.

Provides:
- Temporary workspace fixtures
- A controllable clock for consent expiry
- A mock process runner so policy tests never spawn anything
"""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from adaptive_sandbox import Sandbox, SandboxOptions, SecurityLevel
from adaptive_sandbox.runner import ProcessRunner


class FakeClock:
    """Manually advanced time source (epoch seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Empty workspace directory."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock."""
    return FakeClock()


@pytest.fixture
def mock_runner() -> AsyncMock:
    """Runner stand-in that records calls and returns fixed output."""
    runner = AsyncMock(spec=ProcessRunner)
    runner.run.return_value = "ok\n"
    return runner


@pytest.fixture
def make_sandbox(workspace: Path, clock: FakeClock, mock_runner: AsyncMock):
    """Factory for sandboxes sharing the workspace, clock and mock runner."""

    def _make(level: SecurityLevel = SecurityLevel.DEVELOPMENT, **options) -> Sandbox:
        return Sandbox(
            workspace,
            SandboxOptions(security_level=level, **options),
            clock=clock,
            runner=mock_runner,
        )

    return _make
