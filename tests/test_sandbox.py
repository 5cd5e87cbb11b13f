"""Tests for the Sandbox facade.

Policy behaviour is tested against a mock runner; a few tests at the end
spawn the running Python interpreter for end-to-end checks.
"""

import json
import sys

import pytest
import structlog

from adaptive_sandbox import (
    ArgumentNotAllowedError,
    CommandNotAllowedError,
    ConsentRequest,
    ExecutionResult,
    InputError,
    OutputLimitExceededError,
    Sandbox,
    SandboxOptions,
    SecurityLevel,
    extract_paths,
)
from adaptive_sandbox.trust import CONSENT_TTL_SECONDS, LEARNED_COMMANDS_FILENAME


class TestConsentFlow:
    """Tests for consent requests, grants and expiry."""

    @pytest.mark.asyncio
    async def test_first_bun_test_requests_consent(self, make_sandbox, mock_runner):
        """Test a package manager prompts without spawning."""
        sandbox = make_sandbox()

        result = await sandbox.execute("bun", ["test"])

        assert isinstance(result, ConsentRequest)
        assert result.requires_consent
        assert result.operation == "bun test"
        assert result.command_category == "PACKAGE_MANAGERS"
        assert result.security_level == "DEVELOPMENT"
        assert "requires user consent" in result.message
        mock_runner.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_consent_request_not_audited(self, make_sandbox):
        """Test a pending consent leaves no audit entry."""
        sandbox = make_sandbox()

        await sandbox.execute("bun", ["test"])

        assert len(sandbox.audit_trail) == 0

    @pytest.mark.asyncio
    async def test_grant_then_execute(self, make_sandbox, mock_runner):
        """Test consent allows the exact invocation to run."""
        sandbox = make_sandbox()
        sandbox.grant_consent("bun", ["test"])

        result = await sandbox.execute("bun", ["test"])

        assert isinstance(result, ExecutionResult)
        assert result.success
        assert result.output == "ok\n"
        mock_runner.run.assert_awaited_once_with("bun", ["test"])

    @pytest.mark.asyncio
    async def test_consent_expires_after_24_hours(self, make_sandbox, clock):
        """Test consent is required again once the window passes."""
        sandbox = make_sandbox()
        sandbox.grant_consent("bun", ["test"])

        clock.advance(CONSENT_TTL_SECONDS - 60)
        assert isinstance(await sandbox.execute("bun", ["test"]), ExecutionResult)

        clock.advance(120)
        assert isinstance(await sandbox.execute("bun", ["test"]), ConsentRequest)

    @pytest.mark.asyncio
    async def test_listed_command_consent_does_not_learn(self, make_sandbox):
        """Test consenting to a catalog command does not learn it."""
        sandbox = make_sandbox()
        sandbox.grant_consent("bun", ["test"])

        assert not sandbox.is_learned("bun")

    @pytest.mark.asyncio
    async def test_sensitive_operation_prompts_in_permissive(self, make_sandbox, mock_runner):
        """Test rm prompts regardless of level."""
        sandbox = make_sandbox(SecurityLevel.PERMISSIVE)

        result = await sandbox.execute("rm", ["-rf", "build"])

        assert isinstance(result, ConsentRequest)
        mock_runner.run.assert_not_called()


class TestLearning:
    """Tests for learning unknown commands."""

    @pytest.mark.asyncio
    async def test_unknown_command_learned_after_consent(self, make_sandbox, workspace):
        """Test consent to an unknown command learns it for all arguments."""
        sandbox = make_sandbox()
        assert isinstance(await sandbox.execute("make", ["build"]), ConsentRequest)

        sandbox.grant_consent("make", ["build"])

        assert sandbox.is_learned("make")
        result = await sandbox.execute("make", ["--jobs", "4", "test"])
        assert isinstance(result, ExecutionResult)
        assert result.command_category == "LEARNED"
        data = json.loads((workspace / LEARNED_COMMANDS_FILENAME).read_text())
        assert data["commands"] == ["make"]

    @pytest.mark.asyncio
    async def test_learned_commands_shared_across_instances(self, make_sandbox):
        """Test a new sandbox on the same workspace trusts learned commands."""
        make_sandbox().grant_consent("make", [])

        result = await make_sandbox().execute("make", ["all"])

        assert isinstance(result, ExecutionResult)

    @pytest.mark.asyncio
    async def test_learned_commands_run_in_strict(self, make_sandbox):
        """Test learned commands apply at every level."""
        make_sandbox().grant_consent("make", [])

        result = await make_sandbox(SecurityLevel.STRICT).execute("make", [])

        assert isinstance(result, ExecutionResult)

    @pytest.mark.asyncio
    async def test_reset_learning_requires_consent_again(self, make_sandbox):
        """Test reset makes a learned command prompt again."""
        sandbox = make_sandbox()
        sandbox.grant_consent("make", [])
        assert isinstance(await sandbox.execute("make", []), ExecutionResult)

        sandbox.reset_learning()

        assert not sandbox.is_learned("make")
        assert isinstance(await sandbox.execute("make", []), ConsentRequest)

    def test_undecodable_learned_file_does_not_break_construction(self, make_sandbox, workspace):
        """Test a non-UTF-8 learned file leaves the sandbox usable and empty."""
        (workspace / LEARNED_COMMANDS_FILENAME).write_bytes(b"\xff\xfe\x00garbage")

        sandbox = make_sandbox()

        assert sandbox.get_learned_commands_stats()["total"] == 0

    def test_learning_disabled(self, make_sandbox):
        """Test consent without learning when disabled."""
        sandbox = make_sandbox(enable_learning=False)
        sandbox.grant_consent("make", [])

        assert not sandbox.is_learned("make")

    def test_learned_stats(self, make_sandbox):
        """Test learned-command statistics."""
        sandbox = make_sandbox()
        sandbox.grant_consent("make", [])
        sandbox.grant_consent("just", [])

        assert sandbox.get_learned_commands_stats() == {
            "total": 2,
            "commands": ["just", "make"],
            "categories": {"LEARNED": 2},
        }


class TestPolicyEnforcement:
    """Tests for rejections before the runner."""

    @pytest.mark.asyncio
    async def test_unlisted_command_rejected_in_strict(self, make_sandbox, mock_runner):
        """Test STRICT rejects commands outside FILESYSTEM."""
        sandbox = make_sandbox(SecurityLevel.STRICT)

        with pytest.raises(CommandNotAllowedError):
            await sandbox.execute("echo", ["hi"])

        mock_runner.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_disallowed_argument_rejected(self, make_sandbox, mock_runner):
        """Test a bad flag is rejected and audited as a failure."""
        sandbox = make_sandbox(SecurityLevel.BALANCED)

        with pytest.raises(ArgumentNotAllowedError):
            await sandbox.execute("ls", ["--bogus"])

        mock_runner.run.assert_not_called()
        entry = sandbox.audit_trail.entries[-1]
        assert not entry.success
        assert "--bogus" in entry.error_message

    @pytest.mark.asyncio
    async def test_cargo_arguments_checked(self, make_sandbox):
        """Test cargo verbs are whitelisted while grep positionals are not."""
        sandbox = make_sandbox()

        assert isinstance(await sandbox.execute("cargo", ["build"]), ExecutionResult)
        assert isinstance(await sandbox.execute("grep", ["needle"]), ExecutionResult)
        with pytest.raises(ArgumentNotAllowedError):
            await sandbox.execute("cargo", ["nuke"])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("command,args", [
        ("", []),
        (None, []),
        ("ls", "-la"),
        ("ls", ["-la", 3]),
        ("l\0s", []),
        ("ls", ["a\0b"]),
    ])
    async def test_malformed_input(self, make_sandbox, command, args):
        """Test input errors are raised and not audited."""
        sandbox = make_sandbox()

        with pytest.raises(InputError):
            await sandbox.execute(command, args)

        assert len(sandbox.audit_trail) == 0


class TestResultsAndAudit:
    """Tests for result shape, sanitization and auditing."""

    @pytest.mark.asyncio
    async def test_result_fields(self, make_sandbox):
        """Test a successful result carries metadata and paths."""
        sandbox = make_sandbox(SecurityLevel.BALANCED)

        result = await sandbox.execute("grep", ["-n", "5", "needle", "src/app.py"])

        assert result.paths == ["src/app.py"]
        assert result.command_category == "FILESYSTEM"
        assert result.content_filtered
        assert result.output_sanitized
        assert result.to_dict()["success"] is True

    @pytest.mark.asyncio
    async def test_output_sanitized(self, make_sandbox, mock_runner, workspace):
        """Test workspace paths collapse and secrets are redacted."""
        mock_runner.run.return_value = f"{workspace.resolve()}/a.txt AKIA1234567890ABCDEF"
        sandbox = make_sandbox(SecurityLevel.BALANCED)

        result = await sandbox.execute("cat", ["a.txt"])

        assert result.output == "./a.txt [REDACTED]"

    @pytest.mark.asyncio
    async def test_content_filtering_option_off(self, make_sandbox, mock_runner):
        """Test enable_content_filtering=False keeps secrets."""
        mock_runner.run.return_value = "AKIA1234567890ABCDEF"
        sandbox = make_sandbox(SecurityLevel.BALANCED, enable_content_filtering=False)

        result = await sandbox.execute("cat", ["a.txt"])

        assert result.output == "AKIA1234567890ABCDEF"
        assert not result.content_filtered

    @pytest.mark.asyncio
    async def test_execution_failure_audited_and_raised(self, make_sandbox, mock_runner):
        """Test runner errors propagate with a failure entry."""
        mock_runner.run.side_effect = OutputLimitExceededError(1024)
        sandbox = make_sandbox(SecurityLevel.BALANCED)

        with pytest.raises(OutputLimitExceededError):
            await sandbox.execute("cat", ["big.log"])

        entry = sandbox.audit_trail.entries[-1]
        assert not entry.success
        assert entry.output_size == 0
        assert entry.relative_paths == ("big.log",)

    @pytest.mark.asyncio
    async def test_audit_log(self, make_sandbox):
        """Test the audit log includes learned-command stats."""
        sandbox = make_sandbox()
        sandbox.grant_consent("make", [])
        await sandbox.execute("make", [])
        await sandbox.execute("ls", ["-la"])

        log = sandbox.get_audit_log()

        assert [e["command"] for e in log["entries"]] == ["make", "ls"]
        assert log["entries"][0]["is_learned"]
        assert log["stats"]["total_commands"] == 2
        assert log["stats"]["learned_commands"] == 1
        assert log["stats"]["learned_command_stats"]["total"] == 1

    @pytest.mark.asyncio
    async def test_auditing_disabled(self, make_sandbox):
        """Test no entries when auditing is off."""
        sandbox = make_sandbox(enable_auditing=False)
        await sandbox.execute("ls", [])

        assert sandbox.get_audit_log()["stats"]["total_commands"] == 0


class TestExtractPaths:
    """Tests for path-like argument extraction."""

    def test_skips_flags_and_flag_values(self):
        """Test values after -n/--include/--exclude are not paths."""
        args = ["-r", "--include", "*.py", "-n", "10", "needle", "src/", "README.md"]

        assert extract_paths(args) == ["src/", "README.md"]

    def test_plain_words_are_not_paths(self):
        """Test words without separators or dots are skipped."""
        assert extract_paths(["status", "main"]) == []


class TestEndToEnd:
    """Tests that spawn the running interpreter through a sandbox."""

    @pytest.mark.asyncio
    async def test_learned_interpreter_runs(self, workspace):
        """Test a learned command really executes and is sanitized."""
        sandbox = Sandbox(workspace, SandboxOptions())
        python = sys.executable
        sandbox.grant_consent(python, [])

        result = await sandbox.execute(python, ["-c", "import os; print(os.getcwd())"])

        assert result.output.strip() == "."

    @pytest.mark.asyncio
    async def test_output_cap_through_sandbox(self, workspace):
        """Test the output cap surfaces as an error, never partial output."""
        sandbox = Sandbox(workspace, SandboxOptions(max_output_size=100))
        python = sys.executable
        sandbox.grant_consent(python, [])

        with pytest.raises(OutputLimitExceededError):
            await sandbox.execute(python, ["-c", "print('y' * 10000)"])


class TestLoggingContext:
    """Tests for per-execution logging context."""

    @pytest.mark.asyncio
    async def test_workspace_bound_during_execution(self, make_sandbox, mock_runner, workspace):
        """Test workspace and level are bound while running and removed after."""
        seen = {}

        async def capture(command, args):
            seen.update(structlog.contextvars.get_contextvars())
            return "ok\n"

        mock_runner.run.side_effect = capture
        sandbox = make_sandbox(SecurityLevel.BALANCED)

        await sandbox.execute("ls", [])

        assert seen["workspace"] == str(workspace.resolve())
        assert seen["security_level"] == "BALANCED"
        assert "workspace" not in structlog.contextvars.get_contextvars()
