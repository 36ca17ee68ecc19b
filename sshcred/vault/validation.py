"""
Credential validation.

Validation is a pure check: it never rewrites the credential it is
given. Callers that want trimmed/lowercased values run
:func:`sshcred.vault.models.normalize` first (the store always does).
"""

from __future__ import annotations
import ipaddress
import logging
import os
import re

from .errors import ValidationError
from .models import AuthType, Credential

logger = logging.getLogger(__name__)

MIN_PORT = 1
MAX_PORT = 65535

_LABEL_RE = re.compile(r"^(?!-)[A-Za-z0-9_-]{1,63}(?<!-)$")


def is_valid_host(host: str) -> bool:
    """
    Syntactic host check - IP literal or DNS hostname.

    No resolution is attempted; an unreachable but well-formed name passes.
    """
    host = (host or "").strip()
    if not host:
        return False

    bracketed = host.startswith("[") and host.endswith("]")
    literal = host[1:-1] if bracketed else host
    try:
        address = ipaddress.ip_address(literal)
        return not bracketed or address.version == 6
    except ValueError:
        pass

    # Brackets are only legal around an IPv6 literal
    if bracketed:
        return False

    name = host[:-1] if host.endswith(".") else host
    if not name or len(name) > 253:
        return False

    labels = name.split(".")
    if not all(_LABEL_RE.match(label) for label in labels):
        return False

    # "300.1.2.3" looks like a hostname of digits - it is a broken IPv4
    if all(label.isdigit() for label in labels):
        return False

    return True


def validate_port(port) -> None:
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValidationError(f"port must be an integer, got {port!r}", field="port")
    if port < MIN_PORT or port > MAX_PORT:
        raise ValidationError(
            f"port must be between {MIN_PORT} and {MAX_PORT}", field="port"
        )


def validate_key_path(key_path: str) -> None:
    """Key file must exist and be a regular file."""
    if not key_path:
        raise ValidationError(
            "key path cannot be empty when using key authentication",
            field="key_path",
        )
    try:
        if not os.path.exists(key_path):
            raise ValidationError(
                f"SSH key file does not exist: {key_path}", field="key_path"
            )
        if os.path.isdir(key_path):
            raise ValidationError(
                f"expected a file but got directory: {key_path}", field="key_path"
            )
    except OSError as e:
        raise ValidationError(
            f"unable to access SSH key file: {e}", field="key_path"
        ) from e


def validate_credential(cred: Credential) -> None:
    """
    Check every constraint on a credential.

    Raises:
        ValidationError: first violated constraint, naming the field
    """
    name = (cred.name or "").strip()
    host = (cred.host or "").strip()
    username = (cred.username or "").strip()

    if not name:
        raise ValidationError("name cannot be empty", field="name")

    if not host:
        raise ValidationError("host cannot be empty", field="host")

    if not username:
        raise ValidationError("username cannot be empty", field="username")

    validate_port(cred.port)

    if not is_valid_host(host):
        raise ValidationError(
            f"invalid host or port: {host}:{cred.port}", field="host"
        )

    auth_type = AuthType.parse(cred.auth_type)

    if auth_type == AuthType.PASSWORD:
        if not (cred.password or "").strip():
            raise ValidationError(
                "password cannot be empty when using password authentication",
                field="password",
            )
    elif auth_type == AuthType.KEY_FILE:
        validate_key_path((cred.key_path or "").strip())

    logger.debug(f"Credential '{name}' passed validation")
