"""
Form <-> credential conversion for the terminal menu.

Kept free of widgets so the rules can be tested without a terminal.
"""

from __future__ import annotations
from typing import Optional

from ..vault import AuthType, Credential, ValidationError

FORM_FIELDS = ("name", "host", "port", "username", "auth_type", "password", "key_path")


def form_values_from_credential(cred: Optional[Credential], default_port: int = 22) -> dict:
    """Initial form contents; blank add-form when ``cred`` is None."""
    if cred is None:
        return {
            "name": "",
            "host": "",
            "port": str(default_port),
            "username": "",
            "auth_type": AuthType.KEY_FILE.value,
            "password": "",
            "key_path": "",
        }
    return {
        "name": cred.name,
        "host": cred.host,
        "port": str(cred.port),
        "username": cred.username,
        "auth_type": cred.auth_label,
        # Secrets are not echoed back; blank keeps the stored one
        "password": "",
        "key_path": cred.key_path,
    }


def credential_from_form(
    values: dict,
    default_key: str = "",
    existing: Optional[Credential] = None,
) -> Credential:
    """
    Build a credential from raw form strings.

    Args:
        values: Field name -> text, as typed
        default_key: Key used when key auth is chosen with no path
        existing: Record being edited; a blank password keeps its secret

    Raises:
        ValidationError: port is not a number or no key path can be found.
            Everything else is left to the store's validation.
    """
    port_text = (values.get("port") or "").strip()
    try:
        port = int(port_text)
    except ValueError:
        raise ValidationError(f"invalid port: {port_text!r}", field="port") from None

    auth_type = AuthType.parse(values.get("auth_type") or AuthType.KEY_FILE.value)
    password = values.get("password") or ""
    key_path = (values.get("key_path") or "").strip()

    if auth_type == AuthType.KEY_FILE and not key_path:
        if not default_key:
            raise ValidationError(
                "no default SSH key found and key path not provided", field="key_path"
            )
        key_path = default_key

    if auth_type == AuthType.PASSWORD and not password and existing is not None:
        password = existing.password

    cred = Credential(
        name=values.get("name") or "",
        host=values.get("host") or "",
        port=port,
        username=values.get("username") or "",
        auth_type=auth_type,
        password=password,
        key_path=key_path,
    )
    if existing is not None:
        cred = cred.clone(id=existing.id, created_at=existing.created_at)
    return cred
