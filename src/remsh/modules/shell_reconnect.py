"""
Shell Reconnect Module

Reattach an interactive remote shell when its session disconnects.

Features:
- Detect disconnect vs normal exit
- Prompt user to reconnect
- Configurable retry attempts
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from remsh.session_manager import Session, SessionManager

logger = logging.getLogger(__name__)

NORMAL_EXIT = 0
INTERRUPTED = 130


def is_disconnect_exit_code(exit_code: int) -> bool:
    """
    Determine if exit code indicates a disconnect vs normal exit.

    erl exits with 0 when the user quits the shell. Ctrl+C is reported
    as 130. Anything else means the shell lost its node.

    Example:
        >>> is_disconnect_exit_code(1)
        True
        >>> is_disconnect_exit_code(0)
        False
    """
    return exit_code not in (NORMAL_EXIT, INTERRUPTED)


def should_attempt_reconnect(target: str) -> bool:
    """Ask the user whether to reattach to target."""
    message = f"Your shell on {target} was disconnected, do you want to reconnect?"
    return click.confirm(message, default=True)


class ShellReconnectHandler:
    """
    Wait on an interactive session and reconnect it after a disconnect.

    Example:
        >>> handler = ShellReconnectHandler(manager, max_retries=3)
        >>> exit_code = handler.attach(session)
    """

    def __init__(
        self,
        manager: "SessionManager",
        max_retries: int = 3,
        confirm: Callable[[str], bool] = should_attempt_reconnect,
        on_reconnect: Callable[["Session"], None] | None = None,
    ):
        self.manager = manager
        self.max_retries = max_retries
        self.confirm = confirm
        self.on_reconnect = on_reconnect

    def attach(self, session: "Session") -> int:
        """
        Block until the session ends, reconnecting on disconnect.

        Args:
            session: Active session launched with an interactive launcher

        Returns:
            Final exit code of the shell
        """
        attempt = 0

        while True:
            try:
                exit_code = session.process.wait()
            except KeyboardInterrupt:
                logger.info("Shell interrupted by user")
                session.process.terminate()
                exit_code = INTERRUPTED
            self.manager.reap()

            if not is_disconnect_exit_code(exit_code):
                if exit_code == NORMAL_EXIT:
                    logger.info("Shell session ended normally")
                else:
                    logger.info("Shell session interrupted by user")
                return exit_code

            logger.warning(f"Shell on {session.target} lost (exit code: {exit_code})")

            if attempt >= self.max_retries:
                logger.error(
                    f"Maximum reconnection attempts ({self.max_retries}) reached. Giving up."
                )
                return exit_code

            if not self.confirm(session.target):
                logger.info("User declined reconnection")
                return exit_code

            attempt += 1
            logger.info(
                f"Reconnecting to {session.target} "
                f"(attempt {attempt}/{self.max_retries})..."
            )
            session = self.manager.reconnect(session)
            if self.on_reconnect is not None:
                self.on_reconnect(session)


__all__ = ["ShellReconnectHandler", "is_disconnect_exit_code", "should_attempt_reconnect"]
