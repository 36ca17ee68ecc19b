"""CredentialManagerApp - full-screen terminal menu over a CredentialStore.

Keybindings:
    [a]      Add credential
    [e]      Edit selected credential
    [r]      Rename selected credential
    [d]      Delete selected credential (asks first)
    [c]      Connect (suspends the menu while ssh runs)
    [s]      Show/hide secrets in the detail pane
    [/]      Filter by name
    [q]      Quit
"""

from __future__ import annotations
import logging
from typing import Optional

from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import DataTable, Footer, Header, Static

from ..config import AppSettings, default_key_path, get_settings
from ..connection import SSHLauncher
from ..vault import ConflictError, Credential, CredentialError, CredentialStore, normalize_name
from .forms import credential_from_form
from .screens import ConfirmScreen, CredentialFormScreen, PromptScreen

logger = logging.getLogger(__name__)

_APP_TITLE = "SSH Credential Manager"


class CredentialManagerApp(App[None]):
    """Main credential manager application.

    The store is passed in; the app never opens one on its own.
    """

    TITLE = _APP_TITLE

    CSS = """
    #body {
        height: 1fr;
    }
    #credentials {
        width: 3fr;
    }
    #details {
        width: 2fr;
        padding: 1 2;
        border-left: solid $accent;
    }
    """

    BINDINGS = [
        Binding("a", "add_credential", "Add"),
        Binding("e", "edit_credential", "Edit"),
        Binding("r", "rename_credential", "Rename"),
        Binding("d", "delete_credential", "Delete"),
        Binding("c", "connect", "Connect"),
        Binding("s", "toggle_secrets", "Secrets"),
        Binding("slash", "filter", "Filter"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        store: CredentialStore,
        settings: Optional[AppSettings] = None,
        launcher: Optional[SSHLauncher] = None,
    ):
        super().__init__()
        self.store = store
        self.settings = settings or get_settings()
        self.launcher = launcher or SSHLauncher(self.settings)
        self.show_secrets = False
        self.filter_text = ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="body"):
            yield DataTable(id="credentials", cursor_type="row", zebra_stripes=True)
            yield Static("No credentials found.", id="details")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#credentials", DataTable)
        table.add_columns("Name", "Address", "User", "Auth")
        self._refresh_credentials()
        table.focus()

    # ------------------------------------------------------------------
    # Table / detail rendering
    # ------------------------------------------------------------------

    def visible_credentials(self) -> list[Credential]:
        if self.filter_text:
            return self.store.find_credentials_by_name(self.filter_text)
        return self.store.list_credentials()

    def _refresh_credentials(self, select: Optional[str] = None) -> None:
        """Reload the table from the store, keeping or moving the cursor."""
        table = self.query_one("#credentials", DataTable)
        current = select or self.get_selected_credential()
        table.clear()

        credentials = self.visible_credentials()
        for cred in credentials:
            table.add_row(cred.name, cred.address, cred.username, cred.auth_label, key=cred.name)

        names = [c.name for c in credentials]
        if current in names:
            table.move_cursor(row=names.index(current))

        self.sub_title = f"{len(credentials)} of {self.store.count()} shown" if self.filter_text else ""
        self._render_details()

    def get_selected_credential(self) -> Optional[str]:
        """Name of the highlighted credential, if any."""
        table = self.query_one("#credentials", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return row_key.value

    def _selected(self) -> Optional[Credential]:
        name = self.get_selected_credential()
        if name is None:
            return None
        try:
            return self.store.get_credential(name)
        except CredentialError as e:
            self.notify(str(e), severity="error")
            return None

    def _render_details(self) -> None:
        details = self.query_one("#details", Static)
        cred = self._selected()
        if cred is None:
            details.update("No credentials found.")
            return

        lines = [
            f"ID:         {cred.id}",
            f"Name:       {cred.name}",
            f"Host:       {cred.host}",
            f"Port:       {cred.port}",
            f"Username:   {cred.username}",
            f"Auth Type:  {cred.auth_label}",
        ]
        if cred.uses_password:
            lines.append(f"Password:   {cred.password if self.show_secrets else '********'}")
        else:
            lines.append(f"Key Path:   {cred.key_path}")
        if cred.created_at:
            lines.append(f"Created At: {cred.created_at.isoformat(timespec='seconds')}")
        if cred.updated_at:
            lines.append(f"Updated At: {cred.updated_at.isoformat(timespec='seconds')}")
        details.update("\n".join(lines))

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        self._render_details()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def action_add_credential(self) -> None:
        """[a] Open the add form."""

        def submit(values: dict) -> Credential:
            cred = credential_from_form(values, default_key=default_key_path())
            if self.store.exists(cred.name):
                raise ConflictError(normalize_name(cred.name))
            return self.store.save_credential(cred)

        def done(stored: Optional[Credential]) -> None:
            if stored is not None:
                self.notify(f"Added '{stored.name}'")
                self._refresh_credentials(select=stored.name)

        self.push_screen(
            CredentialFormScreen(submit, default_port=self.settings.default_port), done
        )

    def action_edit_credential(self) -> None:
        """[e] Edit the highlighted credential."""
        existing = self._selected()
        if existing is None:
            return

        def submit(values: dict) -> Credential:
            cred = credential_from_form(values, default_key=default_key_path(), existing=existing)
            return self.store.update_credential(existing.name, cred)

        def done(stored: Optional[Credential]) -> None:
            if stored is not None:
                self.notify(f"Updated '{stored.name}'")
                self._refresh_credentials(select=stored.name)

        self.push_screen(CredentialFormScreen(submit, credential=existing), done)

    def action_rename_credential(self) -> None:
        """[r] Rename the highlighted credential."""
        old_name = self.get_selected_credential()
        if old_name is None:
            return

        def done(new_name: Optional[str]) -> None:
            if new_name is None:
                return
            try:
                renamed = self.store.rename_credential(old_name, new_name)
            except CredentialError as e:
                self.notify(f"failed to rename credential: {e}", severity="error")
                return
            self._refresh_credentials(select=renamed.name)

        self.push_screen(
            PromptScreen(f"Renaming credential '{old_name}' - new name:", value=old_name), done
        )

    def action_delete_credential(self) -> None:
        """[d] Delete the highlighted credential after confirmation."""
        name = self.get_selected_credential()
        if name is None:
            return

        def done(confirmed: bool) -> None:
            if not confirmed:
                return
            try:
                self.store.delete_credential(name)
            except CredentialError as e:
                self.notify(f"failed to delete credential: {e}", severity="error")
                return
            self.notify(f"Deleted '{name}'")
            self._refresh_credentials()

        self.push_screen(ConfirmScreen(f"Delete credential '{name}'? [y/n]"), done)

    def action_connect(self) -> None:
        """[c] Hand the terminal to ssh, then come back."""
        cred = self._selected()
        if cred is None:
            return
        try:
            with self.suspend():
                print(f"Connecting to {cred.username}@{cred.address}...")
                self.launcher.connect(cred)
        except SuspendNotSupported:
            self.notify("This terminal cannot be suspended; use 'sshcred connect'", severity="error")
        except CredentialError as e:
            logger.debug(f"Connection to {cred.name} failed: {e}")
            self.notify(str(e), severity="error")

    def action_toggle_secrets(self) -> None:
        """[s] Show or hide the password in the detail pane."""
        self.show_secrets = not self.show_secrets
        self._render_details()

    def action_filter(self) -> None:
        """[/] Narrow the table to names containing the typed text."""

        def done(query: Optional[str]) -> None:
            if query is None:
                return
            self.filter_text = query.strip()
            self._refresh_credentials()

        self.push_screen(PromptScreen("Filter by name (blank shows all):", value=self.filter_text), done)


def run_tui(store: CredentialStore, settings: Optional[AppSettings] = None) -> int:
    """Run the menu until the user quits. Returns an exit code."""
    CredentialManagerApp(store, settings).run()
    return 0


__all__ = ["CredentialManagerApp", "run_tui"]
