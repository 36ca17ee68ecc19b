"""
Credential vault - validated JSON storage for saved SSH hosts.
"""

from .errors import (
    CredentialError,
    NotFoundError,
    ConflictError,
    ValidationError,
    StoreIOError,
    ExternalProcessError,
)
from .models import AuthType, Credential, generate_id, normalize, normalize_name
from .validation import validate_credential, is_valid_host
from .store import CredentialStore

__all__ = [
    # Errors
    "CredentialError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "StoreIOError",
    "ExternalProcessError",
    # Models
    "AuthType",
    "Credential",
    "generate_id",
    "normalize",
    "normalize_name",
    # Validation
    "validate_credential",
    "is_valid_host",
    # Store
    "CredentialStore",
]
