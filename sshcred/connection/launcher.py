"""
Connection launcher - turns a saved credential into an ssh invocation.

Nothing here speaks SSH. The launcher builds an argument list for the
system ``ssh`` client (wrapped in ``sshpass`` for password auth and
optionally in ``tmux``) and runs it attached to the current terminal.
"""

from __future__ import annotations
import logging
import os
import re
import shlex
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..config import AppSettings, get_settings
from ..vault.errors import ExternalProcessError
from ..vault.models import AuthType, Credential

logger = logging.getLogger(__name__)

# Options that turn off host-key verification for one connection
INSECURE_HOST_KEY_OPTIONS = (
    "-o", "StrictHostKeyChecking=no",
    "-o", "UserKnownHostsFile=/dev/null",
)

_MISSING_HINTS = {
    "ssh": "install an OpenSSH client",
    "sshpass": "install sshpass to connect with password authentication",
    "tmux": "install tmux or connect without --tmux",
}


@dataclass
class SSHCommand:
    """A ready-to-run command plus what it needs from the environment."""
    argv: list[str]
    env: dict[str, str] = field(default_factory=dict)
    binaries: list[str] = field(default_factory=list)

    def display(self) -> str:
        """Shell-quoted command line with environment values masked."""
        masked = []
        for arg in self.argv:
            key = arg.split("=", 1)[0]
            masked.append(f"{key}=***" if "=" in arg and key in self.env else arg)
        return shlex.join(masked)


def build_ssh_command(
    cred: Credential,
    settings: Optional[AppSettings] = None,
    accept_unknown_host_keys: Optional[bool] = None,
) -> SSHCommand:
    """
    Build the ssh argv for a credential.

    Args:
        cred: Validated credential
        settings: Binary names and defaults (current settings if omitted)
        accept_unknown_host_keys: Override the settings flag for this call

    Returns:
        SSHCommand; for password auth the password travels in the
        ``SSHPASS`` environment variable, never in argv.
    """
    settings = settings or get_settings()
    if accept_unknown_host_keys is None:
        accept_unknown_host_keys = settings.accept_unknown_host_keys

    argv = [settings.ssh_binary, "-p", str(cred.port)]
    env: dict[str, str] = {}
    binaries = [settings.ssh_binary]

    auth_type = AuthType.parse(cred.auth_type)
    if auth_type == AuthType.KEY_FILE:
        argv += ["-i", cred.key_path]

    if accept_unknown_host_keys:
        logger.warning(f"Host key verification disabled for {cred.host}")
        argv += list(INSECURE_HOST_KEY_OPTIONS)

    argv.append(cred.target)

    if auth_type == AuthType.PASSWORD:
        argv = [settings.sshpass_binary, "-e"] + argv
        env["SSHPASS"] = cred.password
        binaries.insert(0, settings.sshpass_binary)

    return SSHCommand(argv=argv, env=env, binaries=binaries)


def tmux_session_name(cred: Credential, settings: Optional[AppSettings] = None) -> str:
    """Session name for a credential; tmux forbids '.' and ':' in names."""
    settings = settings or get_settings()
    raw = f"{settings.tmux_session_prefix}-{cred.name}"
    return re.sub(r"[.:\s]", "_", raw)


def wrap_in_tmux(
    command: SSHCommand,
    session_name: str,
    settings: Optional[AppSettings] = None,
    inside_tmux: Optional[bool] = None,
) -> SSHCommand:
    """
    Run ``command`` inside tmux.

    Outside tmux this attaches to (or creates) a named session. Inside
    an existing tmux client it opens a new window instead of nesting.
    Environment needed by the inner command is passed with ``-e``.
    """
    settings = settings or get_settings()
    if inside_tmux is None:
        inside_tmux = bool(os.environ.get("TMUX"))

    env_args: list[str] = []
    for key, value in command.env.items():
        env_args += ["-e", f"{key}={value}"]

    inner = shlex.join(command.argv)
    if inside_tmux:
        argv = [settings.tmux_binary, "new-window", "-n", session_name, *env_args, inner]
    else:
        argv = [settings.tmux_binary, "new-session", "-A", "-s", session_name, *env_args, inner]

    return SSHCommand(
        argv=argv,
        env=dict(command.env),
        binaries=[settings.tmux_binary] + command.binaries,
    )


class SSHLauncher:
    """
    Connects to saved credentials through external binaries.

    ``runner`` and ``which`` default to ``subprocess.run`` and
    ``shutil.which``.
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        runner: Optional[Callable[..., subprocess.CompletedProcess]] = None,
        which: Optional[Callable[[str], Optional[str]]] = None,
    ):
        self.settings = settings or get_settings()
        self._run = runner or subprocess.run
        self._which = which or shutil.which

    def build(
        self,
        cred: Credential,
        use_tmux: Optional[bool] = None,
        insecure: Optional[bool] = None,
    ) -> SSHCommand:
        """Full command for a credential, honouring settings defaults."""
        command = build_ssh_command(cred, self.settings, accept_unknown_host_keys=insecure)
        if use_tmux is None:
            use_tmux = self.settings.use_tmux
        if use_tmux:
            command = wrap_in_tmux(command, tmux_session_name(cred, self.settings), self.settings)
        return command

    def check_binaries(self, command: SSHCommand) -> None:
        """
        Raises:
            ExternalProcessError: a required binary is not on PATH
        """
        for binary in command.binaries:
            if self._which(binary) is None:
                name = os.path.basename(binary)
                hint = _MISSING_HINTS.get(name, "install it or fix its path in settings")
                raise ExternalProcessError(
                    f"required program '{binary}' not found in PATH ({hint})",
                    binary=binary,
                )

    def connect(
        self,
        cred: Credential,
        use_tmux: Optional[bool] = None,
        insecure: Optional[bool] = None,
    ) -> int:
        """
        Open an interactive session for ``cred``.

        The child inherits stdin/stdout/stderr.

        Returns:
            Exit code (always 0; non-zero raises)

        Raises:
            ExternalProcessError: binary missing, failed to start, or
                exited non-zero
        """
        command = self.build(cred, use_tmux=use_tmux, insecure=insecure)
        self.check_binaries(command)

        env = None
        if command.env:
            env = dict(os.environ)
            env.update(command.env)

        logger.info(f"Connecting to {cred.display_name}")
        logger.debug(f"Running: {command.display()}")

        binary = command.argv[0]
        try:
            result = self._run(command.argv, env=env, check=False)
        except OSError as e:
            raise ExternalProcessError(f"failed to start {binary}: {e}", binary=binary) from e

        if result.returncode != 0:
            raise ExternalProcessError(
                f"{os.path.basename(binary)} exited with status {result.returncode}",
                binary=binary,
                returncode=result.returncode,
            )
        return result.returncode
