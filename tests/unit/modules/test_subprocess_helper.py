"""Unit tests for the subprocess helper module."""

import subprocess
from unittest.mock import Mock, patch

from remsh.modules.subprocess_helper import COMMAND_NOT_FOUND, ToolResult, run_tool


def _mock_process(returncode=0, stdout=b"", stderr=b""):
    process = Mock()
    process.returncode = returncode
    process.communicate.return_value = (stdout, stderr)
    return process


class TestRunTool:
    """Tests for run_tool."""

    def test_successful_command(self):
        """Test output is decoded and ok is True."""
        with patch("subprocess.Popen", return_value=_mock_process(0, b"hello\n")) as mock_popen:
            result = run_tool(["echo", "hello"])

        assert result.returncode == 0
        assert result.stdout == "hello\n"
        assert result.ok is True
        mock_popen.assert_called_once()
        assert mock_popen.call_args[0][0] == ["echo", "hello"]

    def test_non_zero_exit(self):
        """Test a failing command is reported, not raised."""
        with patch("subprocess.Popen", return_value=_mock_process(1, b"", b"boom")):
            result = run_tool(["false"])

        assert result.returncode == 1
        assert result.stderr == "boom"
        assert result.ok is False

    def test_command_not_found(self):
        """Test a missing executable yields exit code 127."""
        with patch("subprocess.Popen", side_effect=FileNotFoundError("nope")):
            result = run_tool(["missing-tool"])

        assert result.returncode == COMMAND_NOT_FOUND
        assert "missing-tool" in result.stderr
        assert result.ok is False

    def test_os_error(self):
        """Test other OS errors yield exit code 1."""
        with patch("subprocess.Popen", side_effect=PermissionError("denied")):
            result = run_tool(["/etc/passwd"])

        assert result.returncode == 1
        assert "denied" in result.stderr

    def test_timeout_kills_process(self):
        """Test a hung tool is killed and flagged as timed out."""
        process = _mock_process(-9)
        process.communicate.side_effect = [
            subprocess.TimeoutExpired(cmd="epmd", timeout=1),
            (b"partial", b""),
        ]
        with patch("subprocess.Popen", return_value=process):
            result = run_tool(["epmd", "-names"], timeout=1)

        process.kill.assert_called_once()
        assert result.timed_out is True
        assert result.stdout == "partial"
        assert result.ok is False

    def test_passes_timeout_to_communicate(self):
        """Test the timeout bounds the wait."""
        process = _mock_process(0)
        with patch("subprocess.Popen", return_value=process):
            run_tool(["hostname", "-f"], timeout=2.5)

        process.communicate.assert_called_once_with(timeout=2.5)


class TestToolResult:
    def test_timed_out_result_is_not_ok(self):
        assert ToolResult(returncode=0, stdout="", stderr="", timed_out=True).ok is False
