"""remsh modules - Self-contained bricks following the brick philosophy

Each module is a self-contained component with clear contracts:
- Subprocess Helper: Run short-lived local tools with a timeout
- Name Registry: Discover nodes registered with epmd
- Domain Name: Resolve the local domain for long node names
- Option Splitter: Turn option tokens into (flag, value) pairs
- Args Builder: Build the erl argv for a remote shell
- Process Launcher: Launch erl and hand back a session process
- Shell Reconnect: Reattach interactive sessions after a disconnect
"""
