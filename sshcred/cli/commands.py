"""
Subcommand handlers.

Each handler takes the parsed arguments, an open store and the current
settings, and returns a process exit code. Store errors propagate to
:func:`sshcred.cli.main.main`, which reports them.
"""

from __future__ import annotations
import argparse
import logging
import re
from typing import Optional

from .. import __version__
from ..config import AppSettings, default_key_path
from ..connection import SSHLauncher
from ..vault import (
    AuthType,
    Credential,
    CredentialStore,
    NotFoundError,
    ValidationError,
    normalize_name,
)
from .prompts import (
    RULE,
    clear_screen,
    confirm,
    parse_selection,
    prompt_for_new_name,
    prompt_input,
    prompt_password,
    show_credential_details,
    show_credential_long,
)

logger = logging.getLogger(__name__)

_CONN_RE = re.compile(r"^(?P<user>[^@]+)@(?P<host>\[[^\]]+\]|[^:]+)(?::(?P<port>\d+))?$")


def parse_connection_string(text: str, default_port: int = 22) -> tuple[str, str, int]:
    """
    Split ``user@host[:port]``. IPv6 hosts go in brackets: ``root@[::1]:2222``.

    Raises:
        ValidationError: text is not in that shape
    """
    match = _CONN_RE.match((text or "").strip())
    if not match:
        raise ValidationError(f"invalid connection string: {text} (expected user@host[:port])")
    host = match.group("host")
    if host.startswith("["):
        host = host[1:-1]
    port = int(match.group("port")) if match.group("port") else default_port
    return match.group("user"), host, port


# -----------------------------------------------------------------------------
# save / wizard
# -----------------------------------------------------------------------------

def cmd_save(args: argparse.Namespace, store: CredentialStore, settings: AppSettings) -> int:
    """Save one credential from flags, prompting for anything missing."""
    print("Add new SSH credential")

    name = normalize_name(args.name or "")
    while not name:
        name = normalize_name(prompt_input("Enter connection name"))
        if not name:
            print("Name cannot be empty. Try again.")
    if store.exists(name):
        name = prompt_for_new_name(store, name)

    host = args.host or prompt_input("Enter host address")
    username = args.user or prompt_input("Enter username")

    auth_text = args.auth_type
    if not auth_text:
        print("Authentication type (password/key)")
        auth_text = prompt_input("Enter auth type")
    auth_type = AuthType.parse(auth_text)

    password = args.password or ""
    key_path = args.key or ""
    if auth_type == AuthType.PASSWORD:
        if not password:
            password = prompt_password("Enter password")
    elif not key_path:
        key_path = default_key_path()
        print(f"Using default key: {key_path}")

    port = args.port if args.port is not None else settings.default_port

    cred = Credential.create(
        name=name,
        host=host,
        port=port,
        username=username,
        auth_type=auth_type,
        password=password,
        key_path=key_path,
    )
    stored = store.save_credential(cred)
    print(f"Successfully saved SSH credential for {stored.name}")
    return 0


def cmd_wizard(args: argparse.Namespace, store: CredentialStore, settings: AppSettings) -> int:
    """Quick-add ``user@host[:port]`` targets with the default key."""
    if not args.targets:
        raise ValidationError("please provide at least one connection string (user@host[:port])")

    failures = 0
    for conn_str in args.targets:
        conn_str = conn_str.strip()
        if not conn_str:
            continue

        try:
            username, host, port = parse_connection_string(conn_str, settings.default_port)
        except ValidationError as e:
            print(str(e))
            failures += 1
            continue

        default_name = f"{username}@{host}"
        while True:
            name = normalize_name(
                prompt_input(f"Enter name for {conn_str} (default: {default_name})")
                or default_name
            )
            if store.exists(name):
                print(f"A credential with the name '{name}' already exists. "
                      f"Please enter a different name.")
                continue
            break

        cred = Credential.key_file_auth(
            name=name,
            host=host,
            username=username,
            key_path=args.key or default_key_path(),
            port=port,
        )
        try:
            stored = store.save_credential(cred)
        except ValidationError as e:
            print(f"Failed to save {conn_str}: {e}")
            failures += 1
            continue
        print(f"Saved: {stored.name} ({stored.username}@{stored.address})")

    return 1 if failures else 0


# -----------------------------------------------------------------------------
# list / search
# -----------------------------------------------------------------------------

def cmd_list(args: argparse.Namespace, store: CredentialStore, settings: AppSettings) -> int:
    credentials = store.list_credentials()
    if not credentials:
        print("No SSH credentials found")
        return 0

    if args.long:
        print("Saved SSH credentials (long output):")
        print(RULE)
        for i, cred in enumerate(credentials, 1):
            show_credential_long(cred, i)
        return 0

    print("Saved SSH credentials:")
    print(RULE)
    for i, cred in enumerate(credentials, 1):
        print(f"[{i}] Name: {cred.name} | ID: {cred.id}")
    print(RULE)

    selection = prompt_input(
        "Enter the numbers of the credentials you want to view (comma-separated, e.g. 1,3)"
    )
    if not selection:
        print("No selection made.")
        return 0

    print("\nSelected SSH credentials:")
    print(RULE)
    for idx in parse_selection(selection, len(credentials)):
        show_credential_long(credentials[idx])
    return 0


def cmd_search(args: argparse.Namespace, store: CredentialStore, settings: AppSettings) -> int:
    matches = store.find_credentials_by_name(args.query)
    if not matches:
        print(f"No credentials match '{args.query}'")
        return 0
    for cred in matches:
        print(f"{cred.name}\t{cred.username}@{cred.address}\t{cred.auth_label}")
    return 0


# -----------------------------------------------------------------------------
# update / rename
# -----------------------------------------------------------------------------

def _pick_credential(store: CredentialStore) -> Credential:
    credentials = store.list_credentials()
    if not credentials:
        raise NotFoundError("no credentials found")
    print("Available credentials:")
    for i, cred in enumerate(credentials, 1):
        print(f"[{i}] {cred.name} (ID: {cred.id})")
    choice = prompt_input("Select credential by number")
    if not choice.isdigit() or not 0 < int(choice) <= len(credentials):
        raise ValidationError("invalid selection")
    return credentials[int(choice) - 1]


def cmd_update(args: argparse.Namespace, store: CredentialStore, settings: AppSettings) -> int:
    """Edit a credential field by field; blank answers keep the current value."""
    print("Updating SSH credential...")

    if args.name and args.name.strip():
        cred = store.get_credential(args.name)
    else:
        cred = _pick_credential(store)
    original_name = cred.name

    print("\nCurrent credential values:")
    print(f"Host: {cred.host}")
    print(f"Port: {cred.port}")
    print(f"Username: {cred.username}")
    print(f"AuthType: {cred.auth_label}")
    if cred.uses_password:
        print("Password: (hidden)")
    else:
        print(f"KeyPath: {cred.key_path}")
    print("Leave blank to keep current value.")

    host = prompt_input(f"New Host [{cred.host}]")
    if host:
        cred.host = host

    port_text = prompt_input(f"New Port [{cred.port}]")
    if port_text:
        try:
            cred.port = int(port_text)
        except ValueError:
            raise ValidationError(f"port must be an integer, got {port_text!r}", field="port") from None

    username = prompt_input(f"New Username [{cred.username}]")
    if username:
        cred.username = username

    auth_text = prompt_input(f"New AuthType [{cred.auth_label}] [password/key]")
    if auth_text:
        cred.auth_type = AuthType.parse(auth_text)

    if cred.uses_password:
        keep = " (leave blank to keep)" if cred.password else ""
        password = prompt_password(f"New Password{keep}")
        if password:
            cred.password = password
    else:
        current = cred.key_path or default_key_path()
        key_path = prompt_input(f"New KeyPath [{current}]")
        cred.key_path = key_path or current

    store.update_credential(original_name, cred)
    print("Credential updated successfully.")
    return 0


def cmd_rename(args: argparse.Namespace, store: CredentialStore, settings: AppSettings) -> int:
    renamed = store.rename_credential(args.old_name, args.new_name)
    print(f"Renamed '{normalize_name(args.old_name)}' to '{renamed.name}'")
    return 0


# -----------------------------------------------------------------------------
# delete
# -----------------------------------------------------------------------------

def handle_multiple_delete(store: CredentialStore, credentials: list[Credential]) -> int:
    """Interactive checklist: toggle numbers, then delete the selection."""
    selected: set[int] = set()
    show_sensitive = False

    while True:
        clear_screen()
        print("\nAvailable credentials:")
        print("--------------------")
        for i, cred in enumerate(credentials):
            checked = "[x]" if i in selected else "[ ]"
            print(f"  {checked} {i + 1}. {cred.name} ({cred.username}@{cred.host})")

        print("\nCommands:")
        print("  1-N: Toggle selection")
        print("  v:   View credential details")
        print("  t:   Toggle sensitive information")
        print("  d:   Delete selected credentials")
        print("  q:   Quit without deleting")

        choice = prompt_input("\nEnter command").lower()

        if choice in ("q", ""):
            return 0
        elif choice == "v":
            num = prompt_input("Enter credential number to view")
            if num.isdigit() and 0 < int(num) <= len(credentials):
                show_credential_details(credentials[int(num) - 1], show_sensitive)
            prompt_input("\nPress Enter to continue...")
        elif choice == "t":
            show_sensitive = not show_sensitive
            print(f"Sensitive information is now {'shown' if show_sensitive else 'hidden'}")
        elif choice == "d":
            if not selected:
                print("No credentials selected")
                continue
            print("Selected credentials to delete:")
            print("------------------------------")
            for i in sorted(selected):
                show_credential_details(credentials[i])
            if not confirm("\nAre you sure you want to delete selected credentials?"):
                continue
            print("Deleting credentials...")
            for i in sorted(selected):
                store.delete_credential(credentials[i].name)
            print("\nSuccessfully deleted credentials:")
            for i in sorted(selected):
                print(f"  {credentials[i].name}")
            return 0
        elif choice.isdigit() and 0 < int(choice) <= len(credentials):
            selected ^= {int(choice) - 1}


def cmd_delete(args: argparse.Namespace, store: CredentialStore, settings: AppSettings) -> int:
    if not args.name:
        credentials = store.list_credentials()
        if not credentials:
            raise NotFoundError("no credentials found")
        return handle_multiple_delete(store, credentials)

    cred = store.get_credential(args.name)
    if not args.yes:
        show_credential_details(cred)
        if not confirm("\nDo you want to delete this credential?"):
            print("Deletion cancelled")
            return 0

    store.delete_credential(cred.name)
    print("\nSuccessfully deleted credential:")
    show_credential_details(cred)
    return 0


def cmd_clear(args: argparse.Namespace, store: CredentialStore, settings: AppSettings) -> int:
    count = store.count()
    if not args.yes and not confirm(f"Delete all {count} credentials? This cannot be undone"):
        print("Nothing deleted")
        return 0
    store.clear_all_credentials()
    print(f"Deleted {count} credentials")
    return 0


# -----------------------------------------------------------------------------
# connect / tui / version
# -----------------------------------------------------------------------------

def cmd_connect(
    args: argparse.Namespace,
    store: CredentialStore,
    settings: AppSettings,
    launcher: Optional[SSHLauncher] = None,
) -> int:
    name = args.name or prompt_input("Enter credential name")
    cred = store.get_credential(name)

    print(f"Connecting to {cred.username}@{cred.address}...")
    launcher = launcher or SSHLauncher(settings)
    return launcher.connect(cred, use_tmux=args.tmux, insecure=args.insecure)


def cmd_tui(args: argparse.Namespace, store: CredentialStore, settings: AppSettings) -> int:
    from ..tui import run_tui
    return run_tui(store, settings)


def cmd_version(args: argparse.Namespace, store: CredentialStore = None, settings: AppSettings = None) -> int:
    print(f"sshcred: {__version__}")
    return 0
