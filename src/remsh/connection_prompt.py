"""Interactive selection of a target node and connection options."""

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

import click

from remsh.modules.name_registry import NameRegistryClient
from remsh.modules.option_splitter import KNOWN_FLAGS

logger = logging.getLogger(__name__)


class ConnectionPrompt(Protocol):
    """What a host surface provides for picking a connection."""

    def list_candidates(self) -> set[str]: ...

    def choose_target(self) -> str: ...

    def choose_options(self) -> list[str]: ...


class ClickConnectionPrompt:
    """Terminal prompts built on click.

    Candidates are the nodes registered with epmd plus recently used targets.
    """

    def __init__(
        self,
        registry: NameRegistryClient,
        recent_targets: Callable[[], Sequence[str]] = list,
        default_options: Sequence[str] = (),
    ):
        self.registry = registry
        self.recent_targets = recent_targets
        self.default_options = list(default_options)

    def list_candidates(self) -> set[str]:
        return self.registry.list_endpoints() | set(self.recent_targets())

    def choose_target(self) -> str:
        """Show a numbered menu of candidates and return the chosen node.

        A node that is not listed can be typed in directly.
        """
        candidates = sorted(self.list_candidates())

        if candidates:
            click.echo("\nAvailable nodes:")
            click.echo("-" * 40)
            for i, name in enumerate(candidates, 1):
                click.echo(f"{i:2}. {name}")
            click.echo("-" * 40)

        while True:
            answer = click.prompt(
                "Node to attach to (number or name)",
                default="1" if candidates else None,
            ).strip()
            if answer.isdigit() and candidates:
                index = int(answer)
                if 1 <= index <= len(candidates):
                    return candidates[index - 1]
                click.echo(f"Invalid selection. Please choose 1-{len(candidates)}", err=True)
                continue
            if answer:
                return answer

    def choose_options(self) -> list[str]:
        """Prompt for option tokens until a blank line.

        Returns the configured default options when none are entered.
        """
        known = ", ".join(repr(flag.prefix.strip()) for flag in KNOWN_FLAGS)
        click.echo(f"Options ({known}); blank line to finish.")
        if self.default_options:
            click.echo(f"Defaults: {' '.join(self.default_options)}")

        tokens = []
        while True:
            token = click.prompt("Option", default="", show_default=False)
            if not token.strip():
                break
            tokens.append(token)

        return tokens or list(self.default_options)


__all__ = ["ClickConnectionPrompt", "ConnectionPrompt"]
