"""
Terminal menu front end.
"""

from .app import CredentialManagerApp, run_tui
from .forms import credential_from_form, form_values_from_credential

__all__ = [
    "CredentialManagerApp",
    "run_tui",
    "credential_from_form",
    "form_values_from_credential",
]
