"""Collision-free names for session buffers.

A base such as "*remsh*" ends with the wrapper marker "*"; the target is
inserted before it ("*remsh-foo*"). Names already in use get a "<N>" suffix.
"""

from collections.abc import Iterable

WRAPPER_MARKER = "*"


def decorate(base: str, target: str) -> str:
    """Combine base and target without resolving collisions.

    Example:
        >>> decorate("Erlang*", "foo")
        'Erlang-foo*'
        >>> decorate("erlang", "foo")
        'erlang-foo'
    """
    if base.endswith(WRAPPER_MARKER):
        return f"{base[: -len(WRAPPER_MARKER)]}-{target}{WRAPPER_MARKER}"
    return f"{base}-{target}"


class BufferNamer:
    """Hand out unique buffer names and remember which are taken."""

    def __init__(self, in_use: Iterable[str] = ()):
        self._in_use = set(in_use)

    @property
    def in_use(self) -> frozenset[str]:
        return frozenset(self._in_use)

    def unique(self, name: str) -> str:
        """Return name, or name<N> with the smallest N >= 2 not in use."""
        if name not in self._in_use:
            return name
        n = 2
        while f"{name}<{n}>" in self._in_use:
            n += 1
        return f"{name}<{n}>"

    def name(self, base: str, target: str) -> str:
        """Reserve and return a unique name for a session to target."""
        name = self.unique(decorate(base, target))
        self._in_use.add(name)
        return name

    def release(self, name: str) -> None:
        self._in_use.discard(name)


__all__ = ["BufferNamer", "WRAPPER_MARKER", "decorate"]
