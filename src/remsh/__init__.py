"""remsh - attach a local shell to a running Erlang node

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- Fail fast with helpful guidance

remsh discovers nodes through epmd, negotiates the erl command line for a
remote shell, and keeps track of sessions so they can be reattached after a
disconnect.
"""

__version__ = "0.1.0"
__all__ = ["__version__", "RemshError"]


class RemshError(Exception):
    """Base class for errors reported to the user."""

    pass
