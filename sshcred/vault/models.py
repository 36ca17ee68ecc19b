"""
Credential records - everything needed to reach one saved host.
"""

from __future__ import annotations
import dataclasses
import os
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from .errors import ValidationError

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class AuthType(Enum):
    """Supported authentication methods."""
    PASSWORD = "password"
    KEY_FILE = "key"

    @classmethod
    def parse(cls, value: Union[AuthType, str]) -> AuthType:
        """
        Coerce user or file input into an AuthType.

        Accepts the enum itself, its stored value, or a few spellings
        people type by hand ("keyfile", "key_file").

        Raises:
            ValidationError: value names no known method
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        aliases = {
            "password": cls.PASSWORD,
            "key": cls.KEY_FILE,
            "keyfile": cls.KEY_FILE,
            "key_file": cls.KEY_FILE,
        }
        if text not in aliases:
            raise ValidationError(
                f"invalid authentication type: {value!r} (use 'password' or 'key')",
                field="auth_type",
            )
        return aliases[text]


def generate_id() -> str:
    """Random 16-hex-char identifier for a new credential."""
    return secrets.token_hex(8)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_name(name: str) -> str:
    """Lookup form of a credential name: trimmed and lowercased."""
    return (name or "").strip().lower()


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    # Other writers emit nanoseconds and a "Z" suffix
    text = _FRACTION_RE.sub(r"\1", str(value).strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass
class Credential:
    """
    Saved SSH connection profile.

    Only one of ``password`` / ``key_path`` is meaningful at a time,
    selected by ``auth_type``.
    """
    name: str
    host: str
    username: str
    port: int = 22
    auth_type: Union[AuthType, str] = AuthType.KEY_FILE

    # Secrets (plaintext on disk)
    password: str = ""
    key_path: str = ""

    # Metadata
    id: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(cls, **kwargs) -> Credential:
        """Factory for a brand-new record with id and timestamps assigned."""
        now = utcnow()
        kwargs.setdefault("id", generate_id())
        kwargs.setdefault("created_at", now)
        kwargs.setdefault("updated_at", now)
        return cls(**kwargs)

    @classmethod
    def password_auth(
        cls,
        name: str,
        host: str,
        username: str,
        password: str,
        port: int = 22,
    ) -> Credential:
        """Factory for password auth."""
        return cls.create(
            name=name,
            host=host,
            username=username,
            port=port,
            auth_type=AuthType.PASSWORD,
            password=password,
        )

    @classmethod
    def key_file_auth(
        cls,
        name: str,
        host: str,
        username: str,
        key_path: str,
        port: int = 22,
    ) -> Credential:
        """Factory for key file auth."""
        return cls.create(
            name=name,
            host=host,
            username=username,
            port=port,
            auth_type=AuthType.KEY_FILE,
            key_path=key_path,
        )

    @property
    def uses_password(self) -> bool:
        return self.auth_type == AuthType.PASSWORD

    @property
    def uses_key_file(self) -> bool:
        return self.auth_type == AuthType.KEY_FILE

    @property
    def auth_label(self) -> str:
        if isinstance(self.auth_type, AuthType):
            return self.auth_type.value
        return str(self.auth_type)

    @property
    def target(self) -> str:
        """``user@host`` as ssh expects it."""
        return f"{self.username}@{self.host}"

    @property
    def address(self) -> str:
        if ":" in self.host and not self.host.startswith("["):
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @property
    def display_name(self) -> str:
        """User-friendly display string."""
        return f"{self.name} ({self.username}@{self.address})"

    def clone(self, **overrides) -> Credential:
        """Create a copy with optional overrides."""
        return dataclasses.replace(self, **overrides)

    def to_dict(self) -> dict:
        """Serialize using the on-disk field names."""
        d = {
            "id": self.id,
            "name": self.name,
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "auth_type": self.auth_label,
            "password": self.password,
            "key_path": self.key_path,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        # Secrets for the inactive method are never written
        if not d["password"]:
            del d["password"]
        if not d["key_path"]:
            del d["key_path"]
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Credential:
        """
        Deserialize from dict.

        Raises:
            ValueError: data is not a mapping or a text field is not a string
            KeyError: a required field is missing
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        for key in ("name", "host", "username"):
            if not isinstance(data[key], str):
                raise ValueError(f"field '{key}' must be a string")
        for key in ("password", "key_path"):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ValueError(f"field '{key}' must be a string")

        return cls(
            id=str(data.get("id") or ""),
            name=data["name"],
            host=data["host"],
            port=int(data["port"]),
            username=data["username"],
            auth_type=AuthType.parse(data["auth_type"]),
            password=data.get("password") or "",
            key_path=data.get("key_path") or "",
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )


def normalize(cred: Credential) -> Credential:
    """
    Return the canonical form of a credential without touching the input.

    Trims every text field, lowercases the name, expands ``~`` in the key
    path and clears the secret of the inactive auth method. Unknown auth
    types are left as-is so validation can report them.
    """
    try:
        auth_type = AuthType.parse(cred.auth_type)
    except ValidationError:
        auth_type = cred.auth_type

    password = (cred.password or "").strip()
    key_path = (cred.key_path or "").strip()
    if key_path:
        key_path = os.path.expanduser(key_path)

    if auth_type == AuthType.PASSWORD:
        key_path = ""
    elif auth_type == AuthType.KEY_FILE:
        password = ""

    return dataclasses.replace(
        cred,
        name=normalize_name(cred.name),
        host=(cred.host or "").strip(),
        username=(cred.username or "").strip(),
        auth_type=auth_type,
        password=password,
        key_path=key_path,
    )
