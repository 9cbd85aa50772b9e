"""Process launcher module.

Launches erl for a remote shell session and wraps the child process in a
handle the session manager owns.

Security:
- No shell=True for subprocess
- argv is passed as a list, never interpolated into a command string
"""

import logging
import subprocess
from typing import IO, Protocol

from remsh import RemshError

logger = logging.getLogger(__name__)


class SessionLaunchError(RemshError):
    """Raised when the session process cannot be started."""

    pass


class SessionProcess:
    """Handle to a launched session process.

    Exclusively owned by one Session. `stdin`/`stdout` form the session's
    byte stream; they are None when the process shares the terminal.
    """

    def __init__(self, process_id: str, buffer_id: str, popen: subprocess.Popen):
        self.process_id = process_id
        self.buffer_id = buffer_id
        self._popen = popen
        self.confirm_on_exit = True

    @property
    def pid(self) -> int:
        return self._popen.pid

    @property
    def stdin(self) -> IO[bytes] | None:
        return self._popen.stdin

    @property
    def stdout(self) -> IO[bytes] | None:
        return self._popen.stdout

    @property
    def returncode(self) -> int | None:
        return self._popen.returncode

    def disable_exit_confirmation(self) -> None:
        """Allow the process to be killed on exit without asking."""
        self.confirm_on_exit = False

    def poll(self) -> int | None:
        return self._popen.poll()

    def is_alive(self) -> bool:
        return self._popen.poll() is None

    def wait(self, timeout: float | None = None) -> int:
        return self._popen.wait(timeout=timeout)

    def terminate(self) -> None:
        """Ask the process to stop. Does not wait for it."""
        if self.is_alive():
            logger.debug(f"Terminating session process {self.process_id} (pid {self.pid})")
            self._popen.terminate()

    def kill(self) -> None:
        if self.is_alive():
            logger.debug(f"Killing session process {self.process_id} (pid {self.pid})")
            self._popen.kill()

    def __repr__(self) -> str:
        return f"SessionProcess({self.process_id!r}, pid={self.pid})"


class ProcessLauncher(Protocol):
    """Launch contract used by the session manager."""

    def launch(
        self, process_id: str, buffer_id: str, machine_command: str, argv: list[str]
    ) -> SessionProcess: ...


class SubprocessLauncher:
    """Launch session processes with subprocess.Popen.

    With `interactive=True` the child inherits the terminal, which is what a
    CLI attaching the user directly to the shell wants. Otherwise stdin and
    stdout are pipes owned by the session.
    """

    def __init__(self, interactive: bool = False):
        self.interactive = interactive

    def launch(
        self, process_id: str, buffer_id: str, machine_command: str, argv: list[str]
    ) -> SessionProcess:
        """Start `machine_command argv...` and return its handle.

        Raises:
            SessionLaunchError: If the executable is missing or cannot run
        """
        cmd = [machine_command, *argv]
        logger.debug(f"Launching {process_id}: {cmd!r}")

        if self.interactive:
            stdio = {}
        else:
            stdio = {
                "stdin": subprocess.PIPE,
                "stdout": subprocess.PIPE,
                "stderr": subprocess.STDOUT,
            }

        try:
            popen = subprocess.Popen(cmd, **stdio)
        except FileNotFoundError as e:
            raise SessionLaunchError(
                f"Cannot launch session '{process_id}': '{machine_command}' not found"
            ) from e
        except OSError as e:
            raise SessionLaunchError(f"Cannot launch session '{process_id}': {e}") from e

        return SessionProcess(process_id, buffer_id, popen)


__all__ = ["ProcessLauncher", "SessionLaunchError", "SessionProcess", "SubprocessLauncher"]
