"""
Modal screens: add/edit form, single-line prompt, yes/no confirmation.
"""

from __future__ import annotations
import logging
from typing import Callable, Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select

from ..vault import AuthType, Credential, CredentialError
from .forms import FORM_FIELDS, form_values_from_credential

logger = logging.getLogger(__name__)

_MODAL_CSS = """
ModalScreen {
    align: center middle;
}
#dialog {
    width: 72;
    height: auto;
    padding: 1 2;
    border: thick $accent;
    background: $surface;
}
#dialog Label.title {
    text-style: bold;
    color: $accent;
    margin-bottom: 1;
}
#dialog Label.error {
    color: $error;
}
#buttons {
    height: auto;
    margin-top: 1;
    align-horizontal: right;
}
"""


class CredentialFormScreen(ModalScreen[Optional[Credential]]):
    """
    Add/edit form.

    ``on_submit`` receives the raw field values and returns the stored
    credential. A ``CredentialError`` it raises is shown in the form,
    which stays open so the user can fix the field.
    """

    DEFAULT_CSS = _MODAL_CSS
    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(
        self,
        on_submit: Callable[[dict], Credential],
        credential: Optional[Credential] = None,
        default_port: int = 22,
    ):
        super().__init__()
        self._on_submit = on_submit
        self.credential = credential
        self.is_edit = credential is not None
        self.error_message: Optional[str] = None
        self._values = form_values_from_credential(credential, default_port)

    def compose(self) -> ComposeResult:
        v = self._values
        with Vertical(id="dialog"):
            yield Label("Edit Credential" if self.is_edit else "Add Credential", classes="title")
            yield Input(value=v["name"], placeholder="Connection name", id="name")
            yield Input(value=v["host"], placeholder="Host address", id="host")
            yield Input(value=v["port"], placeholder="Port", id="port")
            yield Input(value=v["username"], placeholder="Username", id="username")
            yield Select(
                [("key file", AuthType.KEY_FILE.value), ("password", AuthType.PASSWORD.value)],
                value=v["auth_type"],
                allow_blank=False,
                id="auth_type",
            )
            password_hint = "(unchanged - enter new to replace)" if self.is_edit else "Password"
            yield Input(value=v["password"], placeholder=password_hint, password=True, id="password")
            yield Input(value=v["key_path"], placeholder="Key path (blank: default key)", id="key_path")
            yield Label("", id="error", classes="error")
            with Horizontal(id="buttons"):
                yield Button("Cancel", id="cancel")
                yield Button("Save" if self.is_edit else "Add", variant="primary", id="save")

    def on_mount(self) -> None:
        self.query_one("#name", Input).focus()

    def get_form_values(self) -> dict:
        values = {}
        for field_id in FORM_FIELDS:
            if field_id == "auth_type":
                values[field_id] = str(self.query_one("#auth_type", Select).value)
            else:
                values[field_id] = self.query_one(f"#{field_id}", Input).value
        return values

    def _show_error(self, message: str) -> None:
        self.error_message = message
        self.query_one("#error", Label).update(f"Error: {message}")

    def _validate_and_accept(self) -> None:
        try:
            stored = self._on_submit(self.get_form_values())
        except CredentialError as e:
            logger.debug(f"Form rejected: {e}")
            self._show_error(str(e))
            return
        self.dismiss(stored)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save":
            self._validate_and_accept()
        else:
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._validate_and_accept()

    def action_cancel(self) -> None:
        self.dismiss(None)


class PromptScreen(ModalScreen[Optional[str]]):
    """Single-line text prompt (rename, filter). Escape returns None."""

    DEFAULT_CSS = _MODAL_CSS
    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, title: str, value: str = "", placeholder: str = ""):
        super().__init__()
        self._title = title
        self._value = value
        self._placeholder = placeholder

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(self._title, classes="title")
            yield Input(value=self._value, placeholder=self._placeholder, id="prompt")
            yield Label("[Enter] to submit, [Esc] to cancel")

    def on_mount(self) -> None:
        self.query_one("#prompt", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no question, answered with y/n or the buttons."""

    DEFAULT_CSS = _MODAL_CSS
    BINDINGS = [
        Binding("y", "answer(True)", "Yes"),
        Binding("n", "answer(False)", "No"),
        Binding("escape", "answer(False)", "No", show=False),
    ]

    def __init__(self, question: str):
        super().__init__()
        self._question = question

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(self._question, classes="title")
            with Horizontal(id="buttons"):
                yield Button("No", id="no")
                yield Button("Yes", variant="error", id="yes")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

    def action_answer(self, answer: bool) -> None:
        self.dismiss(answer)
