"""
Name Registry Module

Discover Erlang nodes registered with the local epmd daemon.

epmd is optional infrastructure: when it is not installed, not started or
not on the search path, discovery simply finds no nodes.
"""

import logging
import re

from remsh.modules.subprocess_helper import DEFAULT_TIMEOUT, run_tool

logger = logging.getLogger(__name__)

HEADER_PATTERN = re.compile(r"\Aepmd: up and running on port \d+ with data\n")
NAME_PATTERN = re.compile(r"^name (\S+) at port \d+$")


class DiscoveryUnavailable(Exception):
    """Raised internally when the registry tool cannot be queried."""

    pass


def parse_names(output: str) -> set[str]:
    """
    Parse the output of `epmd -names` into node names.

    Args:
        output: Raw stdout of the registry tool

    Returns:
        Set of node names; empty if the daemon header is missing

    Example:
        >>> parse_names("epmd: up and running on port 4369 with data\\n"
        ...             "name foo at port 40001\\n")
        {'foo'}
    """
    if not HEADER_PATTERN.match(output):
        return set()

    names = set()
    for line in output.splitlines():
        match = NAME_PATTERN.match(line.strip())
        if match:
            names.add(match.group(1))
    return names


class NameRegistryClient:
    """Query epmd for the nodes it knows about."""

    DEFAULT_TOOL = "epmd"
    DISCOVERY_ARGUMENT = "-names"

    def __init__(self, tool: str = DEFAULT_TOOL, timeout: float = DEFAULT_TIMEOUT):
        self.tool = tool
        self.timeout = timeout

    def query(self) -> str:
        """
        Run the registry tool and return its raw output.

        Raises:
            DiscoveryUnavailable: If the tool is missing, fails or times out
        """
        result = run_tool([self.tool, self.DISCOVERY_ARGUMENT], timeout=self.timeout)
        if result.timed_out:
            raise DiscoveryUnavailable(f"{self.tool} timed out after {self.timeout}s")
        if result.returncode != 0:
            raise DiscoveryUnavailable(
                f"{self.tool} exited with code {result.returncode}: {result.stderr.strip()}"
            )
        return result.stdout

    def list_endpoints(self) -> set[str]:
        """
        List node names registered with epmd.

        Returns:
            Set of node names, empty when no registry is reachable
        """
        try:
            output = self.query()
        except DiscoveryUnavailable as e:
            logger.debug(f"Node discovery unavailable: {e}")
            return set()

        names = parse_names(output)
        logger.debug(f"Discovered {len(names)} node(s) via {self.tool}")
        return names


__all__ = ["DiscoveryUnavailable", "NameRegistryClient", "parse_names"]
