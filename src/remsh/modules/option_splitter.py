"""Split free-form option tokens into (flag, value) pairs.

Philosophy:
- Single responsibility: Map option tokens onto the known flag vocabulary
- Standard library only
- Ambiguity is an error, unknown tokens are dropped

Public API:
    FlagSpec: A known erl flag
    ConnectionOption: A (flag, value) pair
    split: Split tokens into options
    AmbiguousOptionError: Token matches more than one flag
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from remsh import RemshError

logger = logging.getLogger(__name__)


class ConnectionArgsError(RemshError):
    """Base exception for connection argument errors."""

    pass


class AmbiguousOptionError(ConnectionArgsError):
    """Raised when an option token matches more than one known flag."""

    pass


@dataclass(frozen=True)
class FlagSpec:
    """An erl flag and whether it takes a value."""

    name: str
    tokens: tuple[str, ...]
    takes_value: bool = True

    @property
    def prefix(self) -> str:
        """Canonical flag string with its trailing separator, e.g. "-name "."""
        return " ".join(self.tokens) + " "


@dataclass(frozen=True)
class ConnectionOption:
    """A flag together with its value (None for flag-only options)."""

    flag: FlagSpec
    value: str | None = None

    def to_token(self) -> str:
        """Re-join flag and value into the token form accepted by split()."""
        if self.value is None:
            return " ".join(self.flag.tokens)
        return self.flag.prefix + self.value

    def to_argv(self) -> list[str]:
        """Flatten into argv tokens: the flag tokens, then the value."""
        argv = list(self.flag.tokens)
        if self.value is not None:
            argv.append(self.value)
        return argv


SETCOOKIE = FlagSpec("setcookie", ("-setcookie",))
NET_TICKTIME = FlagSpec("net_ticktime", ("-kernel", "net_ticktime"))
LONG_NAME = FlagSpec("name", ("-name",))
SHORT_NAME = FlagSpec("sname", ("-sname",))

# Options a user may supply
KNOWN_FLAGS: tuple[FlagSpec, ...] = (SETCOOKIE, NET_TICKTIME, LONG_NAME, SHORT_NAME)


def split(tokens: Iterable[str], flags: Sequence[FlagSpec] = KNOWN_FLAGS) -> list[ConnectionOption]:
    """Split option tokens into ConnectionOptions.

    Each token is matched by prefix against every flag's canonical string
    ("-setcookie ", "-kernel net_ticktime ", "-name ", "-sname "). The rest
    of the token, untrimmed, becomes the value.

    Args:
        tokens: Option tokens such as "-setcookie secret"
        flags: Flag vocabulary to match against

    Returns:
        Options in input order. Tokens matching no flag produce nothing.

    Raises:
        AmbiguousOptionError: If a token matches more than one flag

    Example:
        >>> [(o.flag.name, o.value) for o in split(["-setcookie abc", "-sname me"])]
        [('setcookie', 'abc'), ('sname', 'me')]
    """
    options = []
    for token in tokens:
        matches = [flag for flag in flags if token.startswith(flag.prefix)]
        if len(matches) > 1:
            candidates = ", ".join(repr(flag.prefix.strip()) for flag in matches)
            raise AmbiguousOptionError(
                f"Option '{token}' is ambiguous: it matches {candidates}"
            )
        if not matches:
            logger.debug(f"Ignoring unrecognized option: {token!r}")
            continue
        flag = matches[0]
        options.append(ConnectionOption(flag, token[len(flag.prefix) :]))
    return options


def join(options: Iterable[ConnectionOption]) -> list[str]:
    """Inverse of split() for well-formed options."""
    return [option.to_token() for option in options]


__all__ = [
    "AmbiguousOptionError",
    "ConnectionArgsError",
    "ConnectionOption",
    "FlagSpec",
    "KNOWN_FLAGS",
    "LONG_NAME",
    "NET_TICKTIME",
    "SETCOOKIE",
    "SHORT_NAME",
    "join",
    "split",
]
