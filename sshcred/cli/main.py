"""
Command-line entry point.

Usage:
    sshcred save -n web1 -H 10.0.0.5 -u ubuntu -k ~/.ssh/id_ed25519
    sshcred wizard root@db1:2222 admin@[fd00::7]
    sshcred list --long
    sshcred connect web1 --tmux
    sshcred tui
"""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Optional, Sequence

from ..config import load_settings
from ..vault import CredentialError, CredentialStore
from . import commands

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sshcred",
        description="Save, manage and connect to SSH hosts",
    )
    parser.add_argument("--store", default=None, help="Path to the credentials JSON file")
    parser.add_argument("--config", default=None, help="Path to the settings YAML file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    # save
    p = sub.add_parser("save", aliases=["s", "add", "a"], help="Save new SSH credentials")
    p.add_argument("-n", "--name", default=None, help="Name of the SSH connection")
    p.add_argument("-H", "--host", default=None, help="Host address")
    p.add_argument("-p", "--port", type=int, default=None, help="SSH port (default: 22)")
    p.add_argument("-u", "--user", default=None, help="SSH username")
    p.add_argument("-P", "--password", default=None, help="SSH password (for password auth; prompts if omitted)")
    p.add_argument("-k", "--key", default=None, help="SSH private key path (default: first key found in ~/.ssh)")
    p.add_argument("-a", "--auth-type", default="key",
                   help="Authentication type: password or key (default: key; pass '' to be asked)")
    p.set_defaults(handler=commands.cmd_save)

    # wizard
    p = sub.add_parser("wizard", aliases=["w", "wiz"], help="Add one or more SSH credentials quickly")
    p.add_argument("targets", nargs="*", metavar="user@host[:port]")
    p.add_argument("-k", "--key", default=None, help="Key to use for every target")
    p.set_defaults(handler=commands.cmd_wizard)

    # list
    p = sub.add_parser("list", aliases=["ls", "l"], help="List all saved SSH credentials")
    p.add_argument("-l", "--long", action="store_true", help="Show detailed output")
    p.set_defaults(handler=commands.cmd_list)

    # search
    p = sub.add_parser("search", aliases=["find"], help="Find credentials by partial name")
    p.add_argument("query")
    p.set_defaults(handler=commands.cmd_search)

    # update
    p = sub.add_parser("update", aliases=["u", "up"], help="Update an existing SSH credential")
    p.add_argument("name", nargs="?", default=None)
    p.set_defaults(handler=commands.cmd_update)

    # rename
    p = sub.add_parser("rename", aliases=["mv"], help="Rename a saved credential")
    p.add_argument("old_name")
    p.add_argument("new_name")
    p.set_defaults(handler=commands.cmd_rename)

    # delete
    p = sub.add_parser("delete", aliases=["del", "rm", "d"], help="Delete saved SSH credential(s)")
    p.add_argument("name", nargs="?", default=None)
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(handler=commands.cmd_delete)

    # clear
    p = sub.add_parser("clear", help="Delete every saved credential")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(handler=commands.cmd_clear)

    # connect
    p = sub.add_parser("connect", aliases=["c", "conn"], help="Connect using a saved credential")
    p.add_argument("name", nargs="?", default=None)
    p.add_argument("--tmux", action="store_true", default=None, help="Open the session inside tmux")
    p.add_argument("--no-tmux", dest="tmux", action="store_false", default=None, help="Never use tmux")
    p.add_argument("--insecure", action="store_true", default=None,
                   help="Skip host key verification (accept and forget unknown keys)")
    p.set_defaults(handler=commands.cmd_connect)

    # tui
    p = sub.add_parser("tui", aliases=["t"], help="Launch the terminal menu")
    p.set_defaults(handler=commands.cmd_tui)

    # version
    p = sub.add_parser("version", aliases=["v"], help="Show version")
    p.set_defaults(handler=commands.cmd_version, needs_store=False)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args.config)

    # Logging
    level = logging.DEBUG if args.debug else getattr(logging, str(settings.log_level).upper(), logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 0

    try:
        if not getattr(args, "needs_store", True):
            return handler(args)
        store = CredentialStore(args.store or settings.resolved_store_path())
        return handler(args, store, settings)
    except CredentialError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nbye")
        return 130


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
