"""
Connecting to saved hosts through the system ssh client.
"""

from .launcher import (
    SSHCommand,
    SSHLauncher,
    build_ssh_command,
    wrap_in_tmux,
    tmux_session_name,
)

__all__ = [
    "SSHCommand",
    "SSHLauncher",
    "build_ssh_command",
    "wrap_in_tmux",
    "tmux_session_name",
]
