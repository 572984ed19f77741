"""
Tests for the anchor CLI wrapper.

subprocess.Popen is mocked; no anchor installation is required.
"""
import signal
import subprocess
from unittest.mock import Mock, patch

import pytest

from app.services.anchor_service import AnchorCommandError, AnchorRunner, ToolchainResult
from tests.conftest import FAILING_OUTPUT, PASSING_OUTPUT


@pytest.fixture
def runner(tmp_path):
    return AnchorRunner(tmp_path, binary="anchor", build_timeout=60, test_timeout=120,
                        test_extra_args=["--skip-lint"])


def _process(returncode=0, stdout="", pid=4242):
    process = Mock(pid=pid, returncode=returncode)
    process.communicate.return_value = (stdout, None)
    return process


class TestAnchorRunner:
    """Tests for AnchorRunner command execution."""

    @patch("app.services.anchor_service.subprocess.Popen")
    def test_build_command(self, mock_popen, runner, tmp_path):
        """Test build invokes `anchor build -p <name>` in the workspace."""
        mock_popen.return_value = _process(stdout="Finished release")

        result = runner.build("counter")

        assert result == ToolchainResult(
            command=["anchor", "build", "-p", "counter"], returncode=0, output="Finished release"
        )
        args, kwargs = mock_popen.call_args
        assert args[0] == ["anchor", "build", "-p", "counter"]
        assert kwargs["cwd"] == tmp_path
        assert kwargs["stderr"] == subprocess.STDOUT
        assert kwargs["start_new_session"] is True
        assert kwargs["env"]["NO_COLOR"] == "1"
        mock_popen.return_value.communicate.assert_called_once_with(timeout=60)

    @patch("app.services.anchor_service.subprocess.Popen")
    def test_test_command_with_extra_args(self, mock_popen, runner):
        """Test `anchor test` gets the configured extra arguments and timeout."""
        mock_popen.return_value = _process(stdout=PASSING_OUTPUT)

        result = runner.test("counter")

        assert result.succeeded
        assert result.output == PASSING_OUTPUT
        args, _ = mock_popen.call_args
        assert args[0] == ["anchor", "test", "-p", "counter", "--skip-lint"]
        mock_popen.return_value.communicate.assert_called_once_with(timeout=120)

    @patch("app.services.anchor_service.subprocess.Popen")
    def test_non_zero_exit(self, mock_popen, runner):
        """Test failing command raises with its output attached."""
        mock_popen.return_value = _process(returncode=1, stdout=FAILING_OUTPUT)

        with pytest.raises(AnchorCommandError) as exc_info:
            runner.test("counter")

        assert str(exc_info.value) == "exit status 1"
        assert exc_info.value.output == FAILING_OUTPUT
        assert exc_info.value.result.returncode == 1

    @patch("app.services.anchor_service.os.killpg")
    @patch("app.services.anchor_service.subprocess.Popen")
    def test_timeout_kills_process_group(self, mock_popen, mock_killpg, runner):
        """Test timeout kills the whole group, validator included, and keeps partial output."""
        process = _process(pid=4242)
        process.communicate.side_effect = subprocess.TimeoutExpired(
            cmd=["anchor", "test"], timeout=120, output=b"  counter\n"
        )
        mock_popen.return_value = process

        with pytest.raises(AnchorCommandError) as exc_info:
            runner.test("counter")

        mock_killpg.assert_called_once_with(4242, signal.SIGKILL)
        process.wait.assert_called_once()
        assert exc_info.value.result.timed_out is True
        assert exc_info.value.output == "  counter\n"
        assert "timed out" in str(exc_info.value)

    @patch("app.services.anchor_service.os.killpg", side_effect=ProcessLookupError)
    @patch("app.services.anchor_service.subprocess.Popen")
    def test_timeout_after_group_exited(self, mock_popen, mock_killpg, runner):
        """Test a group that already exited still reports the timeout."""
        process = _process()
        process.communicate.side_effect = subprocess.TimeoutExpired(cmd=["anchor", "build"], timeout=60)
        mock_popen.return_value = process

        with pytest.raises(AnchorCommandError) as exc_info:
            runner.build("counter")

        assert exc_info.value.result.timed_out is True
        assert exc_info.value.output == ""

    @patch("app.services.anchor_service.subprocess.Popen")
    def test_missing_binary(self, mock_popen, runner):
        """Test missing executable is reported as exit code 127."""
        mock_popen.side_effect = FileNotFoundError("No such file or directory: 'anchor'")

        with pytest.raises(AnchorCommandError) as exc_info:
            runner.build("counter")

        assert exc_info.value.result.returncode == 127
        assert "not found" in str(exc_info.value)
