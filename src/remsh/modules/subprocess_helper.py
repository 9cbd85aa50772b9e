"""Run short-lived local tools with a bounded wait.

Philosophy:
- Single responsibility: Run a helper tool and capture its output
- Standard library only (no external dependencies)
- Never raises for routine failures: the caller inspects the result

Public API (the "studs"):
    ToolResult: Result dataclass
    run_tool: Main execution function
"""

import logging
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127
DEFAULT_TIMEOUT = 5.0


@dataclass
class ToolResult:
    """Result of a tool invocation."""

    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        """True when the tool ran to completion with exit code 0."""
        return self.returncode == 0 and not self.timed_out


def run_tool(cmd: list[str], timeout: float | None = DEFAULT_TIMEOUT) -> ToolResult:
    """
    Run a local tool and capture its output.

    Args:
        cmd: Command and arguments
        timeout: Seconds to wait before killing the tool (None = no limit)

    Returns:
        ToolResult with decoded output and exit code. A missing executable
        yields returncode 127, other OS errors yield returncode 1.

    Example:
        >>> result = run_tool(["epmd", "-names"])
        >>> if result.ok:
        ...     print(result.stdout)
    """
    try:
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError:
        logger.debug(f"Command not found: {cmd[0] if cmd else 'unknown'}")
        return ToolResult(
            returncode=COMMAND_NOT_FOUND,
            stdout="",
            stderr=f"Command not found: {cmd[0] if cmd else 'unknown'}",
        )
    except OSError as e:
        logger.debug(f"Error executing {cmd!r}: {e}")
        return ToolResult(returncode=1, stdout="", stderr=f"Error executing command: {e!s}")

    try:
        stdout, stderr = process.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.debug(f"Command timed out after {timeout}s: {cmd!r}")
        process.kill()
        stdout, stderr = process.communicate()
        return ToolResult(
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            timed_out=True,
        )

    return ToolResult(
        returncode=process.returncode,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
    )


def _decode(data: bytes | None) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


__all__ = ["COMMAND_NOT_FOUND", "DEFAULT_TIMEOUT", "ToolResult", "run_tool"]
