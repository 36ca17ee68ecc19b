"""
Terminal prompts and plain-text rendering shared by the CLI commands.
"""

from __future__ import annotations
import getpass
import sys

from ..vault import CredentialStore, normalize_name
from ..vault.models import Credential

RULE = "---------------------"


def prompt_input(prompt: str) -> str:
    """Read one trimmed line; EOF counts as an empty answer."""
    try:
        return input(f"{prompt}: ").strip()
    except EOFError:
        print()
        return ""


def prompt_password(prompt: str) -> str:
    """Read a secret without echo."""
    try:
        return getpass.getpass(f"{prompt}: ")
    except EOFError:
        print()
        return ""


def confirm(prompt: str) -> bool:
    return prompt_input(f"{prompt} (y/n)").lower() in ("y", "yes")


def prompt_for_new_name(store: CredentialStore, original_name: str) -> str:
    """Ask until the user supplies a name no other credential uses."""
    prompt = f"Connection name '{original_name}' already exists. Enter new name"
    while True:
        new_name = normalize_name(prompt_input(prompt))
        if not new_name:
            print("Name cannot be empty. Try again.")
            continue
        if not store.exists(new_name):
            return new_name
        prompt = f"Connection name '{new_name}' also exists. Enter new name"


def clear_screen() -> None:
    if sys.stdout.isatty():
        sys.stdout.write("\033[2J\033[H")
        sys.stdout.flush()


def show_credential_details(cred: Credential, show_sensitive: bool = False) -> None:
    print("\nConnection Details:")
    print("------------------")
    print(f"Name: {cred.name}")
    print(f"Host: {cred.address}")
    print(f"Username: {cred.username}")
    print(f"Auth Type: {cred.auth_label}")
    if cred.uses_password:
        print(f"Password: {cred.password if show_sensitive else '(hidden)'}")
    if cred.uses_key_file:
        print(f"Key Path: {cred.key_path}")


def show_credential_long(cred: Credential, index: int = None) -> None:
    prefix = f"[{index}] " if index is not None else ""
    pad = " " * len(prefix)
    print(f"{prefix}Name: {cred.name}")
    print(f"{pad}ID: {cred.id}")
    print(f"{pad}Host: {cred.address}")
    print(f"{pad}Username: {cred.username}")
    print(f"{pad}Auth Type: {cred.auth_label}")
    print(RULE)


def parse_selection(text: str, upper: int) -> list[int]:
    """
    Turn "1, 3,9" into sorted zero-based indexes within ``upper``.

    Out-of-range and non-numeric entries are dropped.
    """
    selected = set()
    for part in (text or "").split(","):
        part = part.strip()
        if part.isdigit() and 0 < int(part) <= upper:
            selected.add(int(part) - 1)
    return sorted(selected)
