"""
Error kinds raised by the credential vault and the connection launcher.
"""

from __future__ import annotations
from pathlib import Path
from typing import Optional


class CredentialError(Exception):
    """Base class for every error the vault surfaces to a front end."""
    pass


class NotFoundError(CredentialError):
    """No credential matches the given name."""

    def __init__(self, name: str):
        super().__init__(f"credential not found: {name}")
        self.name = name


class ConflictError(CredentialError):
    """Name already used by a different credential."""

    def __init__(self, name: str):
        super().__init__(f"credential with name '{name}' already exists")
        self.name = name


class ValidationError(CredentialError):
    """A credential field fails one of its constraints."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StoreIOError(CredentialError):
    """Reading or writing the backing file failed."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ExternalProcessError(CredentialError):
    """An external binary (ssh, sshpass, tmux) is missing or failed."""

    def __init__(self, message: str, binary: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.binary = binary
        self.returncode = returncode
