"""CLI entry point for remsh.

Commands:
    remsh nodes                      # List nodes registered with epmd
    remsh args TARGET [-o OPT]...    # Print the erl command line
    remsh connect [TARGET] [-o OPT]  # Attach a remote shell to a node
    remsh reconnect                  # Reattach using the last connection
    remsh config show|set            # View or change configuration
"""

import logging
import shlex
import sys

import click
import tomlkit
from rich.console import Console
from rich.table import Table

from remsh import RemshError, __version__
from remsh.config_manager import ConfigError, ConfigManager, RemshConfig
from remsh.connection_prompt import ClickConnectionPrompt
from remsh.connection_tracker import ConnectionTracker, ConnectionTrackerError
from remsh.modules.args_builder import ConnectionArgsBuilder, SequenceCounter
from remsh.modules.domain_name import DomainNameProvider
from remsh.modules.name_registry import NameRegistryClient
from remsh.modules.option_splitter import split
from remsh.modules.process_launcher import SubprocessLauncher
from remsh.modules.shell_reconnect import ShellReconnectHandler
from remsh.session_manager import Session, SessionManager

logger = logging.getLogger(__name__)


# =============================================================================
# Helper Functions
# =============================================================================


def _get_config(ctx: click.Context) -> RemshConfig:
    return ctx.obj["config"]


def _registry(config: RemshConfig) -> NameRegistryClient:
    return NameRegistryClient(config.registry_tool, timeout=config.discovery_timeout)


def _builder(config: RemshConfig) -> ConnectionArgsBuilder:
    return ConnectionArgsBuilder(
        DomainNameProvider(timeout=config.hostname_timeout), node_prefix=config.node_prefix
    )


def _announce(session: Session, reuse_existing_window: bool) -> None:
    where = "this terminal" if reuse_existing_window else "a new session"
    click.echo(f"Attaching {session.buffer_id} to {session.target} in {where}")


def _manager(config: RemshConfig) -> SessionManager:
    return SessionManager(
        launcher=SubprocessLauncher(interactive=True),
        builder=_builder(config),
        machine_command=config.machine_command,
        buffer_base=config.buffer_base,
        presenter=_announce,
    )


def _record(config: RemshConfig, target: str, options: list[str], session: Session) -> None:
    try:
        ConnectionTracker.record_connection(
            target, options, session_id=session.id, history_size=config.history_size
        )
    except ConnectionTrackerError as e:
        logger.warning(f"Could not save connection history: {e}")


def _attach(
    config: RemshConfig,
    manager: SessionManager,
    session: Session,
    options: list[str],
    no_reconnect: bool,
) -> int:
    if no_reconnect:
        return session.process.wait()
    handler = ShellReconnectHandler(
        manager,
        max_retries=config.max_reconnect_attempts,
        on_reconnect=lambda new: _record(config, new.target, options, new),
    )
    return handler.attach(session)


# =============================================================================
# Command Group
# =============================================================================


@click.group(context_settings={"help_option_names": ["--help", "-h"]})
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option("--config", "config_path", default=None, help="Config file path")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None) -> None:
    """remsh - attach a shell to a running Erlang node.

    \b
    CONFIGURATION:
        Config file: ~/.remsh/config.toml
        History:     ~/.remsh/history.toml
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")

    try:
        config = ConfigManager.load_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


# =============================================================================
# Discovery and Argument Commands
# =============================================================================


@main.command()
@click.pass_context
def nodes(ctx: click.Context) -> None:
    """List nodes registered with epmd."""
    config = _get_config(ctx)
    names = _registry(config).list_endpoints()

    if not names:
        click.echo(f"No nodes found (is {config.registry_tool} running?)")
        return

    table = Table(title="Erlang nodes")
    table.add_column("Node", style="cyan")
    for name in sorted(names):
        table.add_row(name)
    Console().print(table)


@main.command()
@click.argument("target")
@click.option("--option", "-o", "options", multiple=True, help='Option such as "-setcookie abc"')
@click.pass_context
def args(ctx: click.Context, target: str, options: tuple[str, ...]) -> None:
    """Print the erl command line for attaching to TARGET."""
    config = _get_config(ctx)
    raw = list(options) or config.default_options
    try:
        built = _builder(config).build(target, split(raw), SequenceCounter())
    except RemshError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(shlex.join([config.machine_command, *built.argv]))


# =============================================================================
# Session Commands
# =============================================================================


@main.command()
@click.argument("target", required=False)
@click.option("--option", "-o", "options", multiple=True, help='Option such as "-setcookie abc"')
@click.option("--no-reconnect", is_flag=True, help="Do not offer to reconnect on disconnect")
@click.pass_context
def connect(
    ctx: click.Context, target: str | None, options: tuple[str, ...], no_reconnect: bool
) -> None:
    """Attach a remote shell to TARGET.

    Without TARGET, pick a node from epmd and recent connections.
    """
    config = _get_config(ctx)
    raw = list(options)

    if not target:
        prompt = ClickConnectionPrompt(
            _registry(config),
            recent_targets=ConnectionTracker.recent_targets,
            default_options=config.default_options,
        )
        target = prompt.choose_target()
        if not raw:
            raw = prompt.choose_options()
    elif not raw:
        raw = list(config.default_options)

    manager = _manager(config)
    try:
        session = manager.connect(target, raw)
        _record(config, target, raw, session)
        exit_code = _attach(config, manager, session, raw, no_reconnect)
    except RemshError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    sys.exit(exit_code)


@main.command()
@click.option("--no-reconnect", is_flag=True, help="Do not offer to reconnect on disconnect")
@click.pass_context
def reconnect(ctx: click.Context, no_reconnect: bool) -> None:
    """Reattach using the last recorded connection."""
    config = _get_config(ctx)
    manager = _manager(config)

    try:
        last = ConnectionTracker.get_last_connection()
        if last is not None:
            manager.remember(last["target"], last["options"], last["session_id"])
        session = manager.reconnect(None)
        options = last["options"] if last is not None else []
        _record(config, session.target, options, session)
        exit_code = _attach(config, manager, session, options, no_reconnect)
    except RemshError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    sys.exit(exit_code)


# =============================================================================
# Configuration Commands
# =============================================================================


@main.group(name="config")
def config_group() -> None:
    """View or change configuration."""


@config_group.command(name="show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration."""
    click.echo(tomlkit.dumps(_get_config(ctx).to_dict()).rstrip())


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set KEY to VALUE (lists are comma separated)."""
    try:
        ConfigManager.set_value(key, value, ctx.obj["config_path"])
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Set {key} = {value}")


if __name__ == "__main__":
    main()
