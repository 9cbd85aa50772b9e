"""Session lifecycle manager for remsh.

This module owns the mapping from sessions to their erl processes and the
parameters each session was created with. It creates sessions, remembers the
most recent connection, and reconnects either from a session's own
parameters or from the last connection.

Lifecycle of one connection attempt:

    IDLE -> LAUNCHING -> ACTIVE -> (EXITED | SUPERSEDED)

Philosophy:
- State lives in an explicit ManagerState, not in module globals
- A reconnect creates a new Session; sessions are never mutated
- Invalid input fails fast, nothing is rewritten to make it fit
"""

import itertools
import logging
import os
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from remsh import RemshError
from remsh.buffer_namer import BufferNamer
from remsh.modules.args_builder import (
    DEFAULT_NODE_PREFIX,
    ConnectionArgs,
    ConnectionArgsBuilder,
    SequenceCounter,
)
from remsh.modules.domain_name import DomainNameProvider
from remsh.modules.option_splitter import ConnectionOption, join, split
from remsh.modules.process_launcher import ProcessLauncher, SessionProcess, SubprocessLauncher

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_BASE = "*remsh*"
DEFAULT_MACHINE_COMMAND = "erl"
# Seconds a superseded erl gets to unregister its node name before it is killed
DEFAULT_STOP_TIMEOUT = 2.0

# Session serials are unique across managers so state lookups never alias
_SERIALS = itertools.count(1)


class SessionManagerError(RemshError):
    """Raised when session operations fail."""

    pass


class NoTargetError(SessionManagerError):
    """Raised when connect is called without a target node."""

    pass


class NoPriorConnectionError(SessionManagerError):
    """Raised when there is nothing to reconnect to."""

    pass


class UnknownSessionError(SessionManagerError):
    """Raised when a session is not managed by this manager."""

    pass


class SessionState(Enum):
    IDLE = "idle"
    LAUNCHING = "launching"
    ACTIVE = "active"
    EXITED = "exited"
    SUPERSEDED = "superseded"


@dataclass(frozen=True)
class Session:
    """One live connection: its process and the parameters that created it.

    `last_connection_options` holds the resolved options (including any
    synthesized local node name), so rebuilding from `target` and these
    options reproduces `args` exactly. `requested_options` are the options
    as the caller gave them.
    """

    id: str
    target: str
    last_connection_options: tuple[ConnectionOption, ...]
    args: ConnectionArgs
    process: SessionProcess
    buffer_id: str
    reuse_existing_window: bool = False
    requested_options: tuple[ConnectionOption, ...] = ()
    serial: int = 0

    @property
    def argv(self) -> list[str]:
        return self.args.argv


@dataclass(frozen=True)
class LastConnection:
    """Target, options and session of the most recent connect.

    `options` are the requested options, before a local node name is
    synthesized, so repeating the connection picks a fresh name.
    """

    target: str
    options: tuple[ConnectionOption, ...]
    session_id: str | None = None
    session_serial: int | None = None

    @property
    def raw_options(self) -> list[str]:
        return join(self.options)


@dataclass
class ManagerState:
    """Mutable state shared by all operations of one SessionManager."""

    counter: SequenceCounter = field(default_factory=SequenceCounter)
    last_connection: LastConnection | None = None
    sessions: dict[str, Session] = field(default_factory=dict)
    # keyed by Session.serial; a reconnect may reuse the previous session id
    states: dict[int, SessionState] = field(default_factory=dict)
    # Session.serial of the compilation target; buffer ids are reused, serials are not
    compilation_target: int | None = None
    namer: BufferNamer = field(default_factory=BufferNamer)
    lock: threading.RLock = field(default_factory=threading.RLock)


SessionPresenter = Callable[[Session, bool], None]


class SessionManager:
    """Create, track and reconnect remote shell sessions.

    Example:
        >>> manager = SessionManager()
        >>> session = manager.connect("foo@host.example.com", ["-setcookie secret"])
        >>> again = manager.reconnect(session)
    """

    def __init__(
        self,
        launcher: ProcessLauncher | None = None,
        builder: ConnectionArgsBuilder | None = None,
        state: ManagerState | None = None,
        machine_command: str = DEFAULT_MACHINE_COMMAND,
        buffer_base: str = DEFAULT_BUFFER_BASE,
        presenter: SessionPresenter | None = None,
        pid: int | None = None,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ):
        self.launcher = launcher or SubprocessLauncher()
        self.builder = builder or ConnectionArgsBuilder(DomainNameProvider(), DEFAULT_NODE_PREFIX)
        self.state = state or ManagerState()
        self.machine_command = machine_command
        self.buffer_base = buffer_base
        self.presenter = presenter
        self.pid = os.getpid() if pid is None else pid
        self.stop_timeout = stop_timeout

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def sessions(self) -> list[Session]:
        """Sessions that are currently active."""
        return list(self.state.sessions.values())

    def get(self, session_id: str) -> Session | None:
        return self.state.sessions.get(session_id)

    def state_of(self, session: Session) -> SessionState:
        return self.state.states.get(session.serial, SessionState.IDLE)

    @property
    def last_connection(self) -> LastConnection | None:
        return self.state.last_connection

    @property
    def compilation_target(self) -> Session | None:
        """The active session code loading is directed at, if any."""
        serial = self.state.compilation_target
        if serial is None:
            return None
        for session in self.state.sessions.values():
            if session.serial == serial:
                return session
        return None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def connect(
        self, target: str, raw_options: Sequence[str] = (), reuse_existing_window: bool = False
    ) -> Session:
        """
        Launch a remote shell session to target.

        Args:
            target: Node to attach to, short or long name
            raw_options: Option tokens such as "-setcookie secret"
            reuse_existing_window: Present the session in the caller's
                current view instead of a new one

        Returns:
            The new, active Session

        Raises:
            NoTargetError: If target is blank
            AmbiguousOptionError: If an option token is ambiguous
            NamingConflictError: If long and short naming would be mixed
            SessionLaunchError: If erl cannot be started
        """
        with self.state.lock:
            options, resolved, args = self._prepare(target, raw_options)
            session = self._launch(target, options, resolved, args, reuse_existing_window)
        self._present(session)
        return session

    def reconnect(self, from_session: Session | None = None) -> Session:
        """
        Reconnect using a session's parameters or the last connection.

        With a session, its remembered target and options are reused, the old
        session is stopped and superseded, and the new one takes over its
        buffer id and node name. Without one, the last connection is repeated
        in a new view under a freshly synthesized node name.

        Args:
            from_session: Session to reconnect, or None

        Returns:
            The new, active Session

        Raises:
            NoPriorConnectionError: If there is no session and no last connection
        """
        with self.state.lock:
            if from_session is not None:
                target = from_session.target
                options = from_session.last_connection_options
                requested = from_session.requested_options
                origin_serial: int | None = from_session.serial
                reuse_existing_window = True
            elif self.state.last_connection is not None:
                target = self.state.last_connection.target
                options = requested = self.state.last_connection.options
                origin_serial = self.state.last_connection.session_serial
                reuse_existing_window = False
            else:
                raise NoPriorConnectionError(
                    "No previous connection to reconnect to; connect to a node first"
                )

            was_compilation_target = (
                origin_serial is not None and self.state.compilation_target == origin_serial
            )

            # Validate before tearing anything down
            _, resolved, args = self._prepare(target, join(options))

            if from_session is not None:
                self._supersede(from_session)

            logger.info(f"Reconnecting to {target}...")
            session = self._launch(target, requested, resolved, args, reuse_existing_window)

            if was_compilation_target:
                self.state.compilation_target = session.serial
                logger.debug(f"Compilation target moved to {session.id}")

        self._present(session)
        return session

    def set_compilation_target(self, session: Session) -> None:
        """Direct code loading at session.

        Raises:
            UnknownSessionError: If session is not active in this manager
        """
        with self.state.lock:
            if self.state.sessions.get(session.id) is not session:
                raise UnknownSessionError(f"Session '{session.id}' is not an active session")
            self.state.compilation_target = session.serial
        logger.info(f"Compilation target set to {session.id}")

    def remember(
        self, target: str, raw_options: Sequence[str] = (), session_id: str | None = None
    ) -> LastConnection:
        """Seed the last connection, e.g. from persisted history."""
        if not target or not target.strip():
            raise NoTargetError("A target node name is required")
        last = LastConnection(target, tuple(split(raw_options)), session_id)
        with self.state.lock:
            self.state.last_connection = last
        return last

    def reap(self) -> list[Session]:
        """Retire sessions whose process has exited.

        Returns:
            Sessions that were found to have exited
        """
        exited = []
        with self.state.lock:
            for session in list(self.state.sessions.values()):
                if not session.process.is_alive():
                    self._retire(session, SessionState.EXITED)
                    exited.append(session)
        for session in exited:
            logger.info(f"Session {session.id} exited (code {session.process.returncode})")
        return exited

    def close_all(self, confirm: Callable[[Session], bool] | None = None) -> list[Session]:
        """Terminate every active session.

        Sessions whose process still asks for confirmation on exit are only
        terminated if `confirm(session)` returns True.

        Returns:
            Sessions that were terminated
        """
        closed = []
        with self.state.lock:
            for session in list(self.state.sessions.values()):
                if session.process.confirm_on_exit and not (confirm and confirm(session)):
                    continue
                session.process.terminate()
                self._retire(session, SessionState.EXITED)
                closed.append(session)
        return closed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare(
        self, target: str, raw_options: Sequence[str]
    ) -> tuple[list[ConnectionOption], list[ConnectionOption], ConnectionArgs]:
        if not target or not target.strip():
            raise NoTargetError("A target node name is required")
        options = split(raw_options)
        resolved = self.builder.resolve_options(target, options, self.state.counter, self.pid)
        return options, resolved, self.builder.with_suffix(target, resolved)

    def _launch(
        self,
        target: str,
        requested: Sequence[ConnectionOption],
        resolved: list[ConnectionOption],
        args: ConnectionArgs,
        reuse_existing_window: bool,
    ) -> Session:
        buffer_id = self.state.namer.name(self.buffer_base, target)
        serial = next(_SERIALS)
        self.state.states[serial] = SessionState.LAUNCHING
        try:
            process = self.launcher.launch(buffer_id, buffer_id, self.machine_command, args.argv)
        except Exception:
            self.state.namer.release(buffer_id)
            del self.state.states[serial]
            raise

        process.disable_exit_confirmation()

        session = Session(
            id=buffer_id,
            target=target,
            last_connection_options=tuple(resolved),
            args=args,
            process=process,
            buffer_id=buffer_id,
            reuse_existing_window=reuse_existing_window,
            requested_options=tuple(requested),
            serial=serial,
        )
        self.state.sessions[session.id] = session
        self.state.states[serial] = SessionState.ACTIVE
        self.state.last_connection = LastConnection(
            target, tuple(requested), session.id, session.serial
        )
        logger.info(f"Session {session.id} attached to {target}")
        return session

    def _supersede(self, session: Session) -> None:
        if self.state_of(session) is not SessionState.ACTIVE:
            return
        # The replacement reuses the node name, so the old node must be gone first
        process = session.process
        process.terminate()
        try:
            process.wait(timeout=self.stop_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                f"Session {session.id} did not stop within {self.stop_timeout}s, killing it"
            )
            process.kill()
            process.wait()
        self._retire(session, SessionState.SUPERSEDED)
        logger.info(f"Session {session.id} superseded")

    def _retire(self, session: Session, final_state: SessionState) -> None:
        if self.state.sessions.get(session.id) is session:
            del self.state.sessions[session.id]
            self.state.namer.release(session.buffer_id)
        self.state.states[session.serial] = final_state

    def _present(self, session: Session) -> None:
        if self.presenter is not None:
            self.presenter(session, session.reuse_existing_window)


__all__ = [
    "DEFAULT_BUFFER_BASE",
    "DEFAULT_MACHINE_COMMAND",
    "DEFAULT_STOP_TIMEOUT",
    "LastConnection",
    "ManagerState",
    "NoPriorConnectionError",
    "NoTargetError",
    "Session",
    "SessionManager",
    "SessionManagerError",
    "SessionPresenter",
    "SessionState",
    "UnknownSessionError",
]
