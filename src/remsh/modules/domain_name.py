"""Resolve the local host's domain for long node names."""

import logging

from remsh.modules.subprocess_helper import DEFAULT_TIMEOUT, run_tool

logger = logging.getLogger(__name__)

LOOPBACK_ADDRESS = "127.0.0.1"


class DomainNameProvider:
    """Look up the fully qualified host name via `hostname -f`.

    Long node names need a host part containing a dot. When the lookup fails
    or returns a bare host name, the loopback address is used instead.
    """

    def __init__(self, command: str = "hostname", timeout: float = DEFAULT_TIMEOUT):
        self.command = command
        self.timeout = timeout

    def lookup(self) -> str:
        """Return the trimmed output of `hostname -f`, or "" on failure."""
        result = run_tool([self.command, "-f"], timeout=self.timeout)
        if not result.ok:
            logger.debug(f"{self.command} -f failed (code {result.returncode})")
            return ""
        return result.stdout.strip()

    def domain(self) -> str:
        """Return a host part usable in a long node name."""
        name = self.lookup()
        if "." not in name:
            logger.debug(f"Host name {name!r} has no domain, using {LOOPBACK_ADDRESS}")
            return LOOPBACK_ADDRESS
        return name


__all__ = ["DomainNameProvider", "LOOPBACK_ADDRESS"]
