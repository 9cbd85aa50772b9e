"""
Args Builder Module

Build the erl command line that attaches a remote shell to a node.

Naming rules:
- A long target (name@host.domain) needs a long local name. If none is
  given, one is synthesized as <prefix>-<pid>-<seq>@<domain>.
- A long-name flag and a short-name flag never appear together.
"""

import logging
import os
import random
import threading
from collections.abc import Sequence
from dataclasses import dataclass

from remsh.modules.domain_name import DomainNameProvider
from remsh.modules.option_splitter import (
    LONG_NAME,
    SHORT_NAME,
    ConnectionArgsError,
    ConnectionOption,
    FlagSpec,
)

logger = logging.getLogger(__name__)

REMSH = FlagSpec("remsh", ("-remsh",))
HIDDEN = FlagSpec("hidden", ("-hidden",), takes_value=False)
NEWSHELL = FlagSpec("newshell", ("-newshell",), takes_value=False)
TERM_ENV = FlagSpec("term_env", ("-env", "TERM"))

TERMINAL_TYPE = "vt100"
DEFAULT_NODE_PREFIX = "remsh"


class TargetRequiredError(ConnectionArgsError):
    """Raised when no target node is given."""

    pass


class NamingConflictError(ConnectionArgsError):
    """Raised when long and short node naming would be mixed."""

    pass


class SequenceCounter:
    """Process-wide sequence used in synthesized node names.

    Starts from a random non-zero seed so independent clients on one host are
    unlikely to pick the same name. Never reset.
    """

    def __init__(self, seed: int | None = None):
        self._value = seed if seed is not None else random.randint(1, 9999)
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        return self._value

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


@dataclass(frozen=True)
class ConnectionArgs:
    """Ordered options ready to launch erl."""

    options: tuple[ConnectionOption, ...]

    @property
    def argv(self) -> list[str]:
        """Flat argv tokens, in option order."""
        argv: list[str] = []
        for option in self.options:
            argv.extend(option.to_argv())
        return argv


def is_long_name(target: str) -> bool:
    """True if target has the form name@host with a dot in the host part.

    Example:
        >>> is_long_name("foo@bar.com")
        True
        >>> is_long_name("foo@bar")
        False
    """
    _, at, host = target.partition("@")
    return bool(at) and "." in host


def _has_flag(options: Sequence[ConnectionOption], flag: FlagSpec) -> bool:
    return any(option.flag == flag for option in options)


class ConnectionArgsBuilder:
    """Turn a target node and options into ConnectionArgs."""

    def __init__(
        self,
        domain_provider: DomainNameProvider | None = None,
        node_prefix: str = DEFAULT_NODE_PREFIX,
    ):
        self.domain_provider = domain_provider or DomainNameProvider()
        self.node_prefix = node_prefix

    def resolve_options(
        self,
        target: str,
        options: Sequence[ConnectionOption],
        counter: SequenceCounter,
        pid: int | None = None,
    ) -> list[ConnectionOption]:
        """
        Validate options and add a synthesized long name when needed.

        Args:
            target: Node to attach to
            options: User-supplied options
            counter: Sequence used for synthesized names
            pid: Local process id (defaults to os.getpid())

        Returns:
            The options, plus a long-name option if one was synthesized

        Raises:
            TargetRequiredError: If target is blank
            NamingConflictError: If long and short naming would be mixed
        """
        if not target or not target.strip():
            raise TargetRequiredError("A target node name is required")

        resolved = list(options)
        has_long = _has_flag(resolved, LONG_NAME)
        has_short = _has_flag(resolved, SHORT_NAME)

        if has_long and has_short:
            raise NamingConflictError(
                "Options contain both -name and -sname; use only one naming scheme"
            )

        if is_long_name(target):
            if has_short:
                raise NamingConflictError(
                    f"Target '{target}' is a long node name and cannot be reached "
                    "with -sname; use -name instead"
                )
            if not has_long:
                resolved.append(ConnectionOption(LONG_NAME, self._synthesize_name(counter, pid)))

        return resolved

    def _synthesize_name(self, counter: SequenceCounter, pid: int | None) -> str:
        seq = counter.next()
        pid = os.getpid() if pid is None else pid
        name = f"{self.node_prefix}-{pid}-{seq}@{self.domain_provider.domain()}"
        logger.debug(f"Synthesized local node name {name}")
        return name

    @staticmethod
    def with_suffix(target: str, options: Sequence[ConnectionOption]) -> ConnectionArgs:
        """Append the fixed remote shell flags to already resolved options."""
        suffix = (
            ConnectionOption(REMSH, target),
            ConnectionOption(HIDDEN),
            ConnectionOption(NEWSHELL),
            ConnectionOption(TERM_ENV, TERMINAL_TYPE),
        )
        return ConnectionArgs(tuple(options) + suffix)

    def build(
        self,
        target: str,
        options: Sequence[ConnectionOption],
        counter: SequenceCounter,
        pid: int | None = None,
    ) -> ConnectionArgs:
        """
        Build the full erl arguments for a remote shell.

        The argv always ends with
        `-remsh <target> -hidden -newshell -env TERM vt100`.

        Example:
            >>> builder = ConnectionArgsBuilder()
            >>> builder.build("foo", [], SequenceCounter()).argv
            ['-remsh', 'foo', '-hidden', '-newshell', '-env', 'TERM', 'vt100']
        """
        resolved = self.resolve_options(target, options, counter, pid)
        return self.with_suffix(target, resolved)


__all__ = [
    "ConnectionArgs",
    "ConnectionArgsBuilder",
    "HIDDEN",
    "NEWSHELL",
    "NamingConflictError",
    "REMSH",
    "SequenceCounter",
    "TERM_ENV",
    "TargetRequiredError",
    "is_long_name",
]
