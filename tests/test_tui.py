"""Tests for the terminal menu: form conversion and app behaviour."""

from __future__ import annotations

import asyncio

import pytest
from textual.widgets import DataTable, Input

from sshcred.config import AppSettings
from sshcred.tui import CredentialManagerApp, credential_from_form, form_values_from_credential
from sshcred.tui.screens import CredentialFormScreen, PromptScreen
from sshcred.vault import AuthType, Credential, CredentialStore, ValidationError


def _values(**overrides) -> dict:
    values = {
        "name": "web1",
        "host": "10.0.0.5",
        "port": "22",
        "username": "ubuntu",
        "auth_type": "key",
        "password": "",
        "key_path": "",
    }
    values.update(overrides)
    return values


class TestFormValues:
    def test_blank_form(self) -> None:
        values = form_values_from_credential(None, default_port=2222)
        assert values["port"] == "2222"
        assert values["auth_type"] == "key"
        assert values["name"] == ""

    def test_edit_form_hides_password(self) -> None:
        cred = Credential.password_auth("db", "db.internal", "admin", "s3cret")
        values = form_values_from_credential(cred)
        assert values["name"] == "db"
        assert values["auth_type"] == "password"
        assert values["password"] == ""


class TestCredentialFromForm:
    def test_key_auth(self, key_file: str) -> None:
        cred = credential_from_form(_values(key_path=key_file))
        assert cred.auth_type is AuthType.KEY_FILE
        assert cred.key_path == key_file
        assert cred.port == 22

    def test_bad_port(self) -> None:
        with pytest.raises(ValidationError, match="invalid port"):
            credential_from_form(_values(port="ssh"))

    def test_default_key_used(self) -> None:
        cred = credential_from_form(_values(), default_key="/home/me/.ssh/id_ed25519")
        assert cred.key_path == "/home/me/.ssh/id_ed25519"

    def test_no_key_available(self) -> None:
        with pytest.raises(ValidationError, match="no default SSH key found"):
            credential_from_form(_values())

    def test_edit_keeps_password_and_identity(self) -> None:
        existing = Credential.password_auth("db", "db.internal", "admin", "s3cret")
        cred = credential_from_form(
            _values(name="db", auth_type="password", host="db2.internal"), existing=existing
        )
        assert cred.password == "s3cret"
        assert cred.host == "db2.internal"
        assert cred.id == existing.id
        assert cred.created_at == existing.created_at

    def test_edit_replaces_password(self) -> None:
        existing = Credential.password_auth("db", "db.internal", "admin", "s3cret")
        cred = credential_from_form(
            _values(name="db", auth_type="password", password="n3w"), existing=existing
        )
        assert cred.password == "n3w"


class TestCredentialManagerApp:
    @pytest.fixture
    def filled(self, store: CredentialStore, make_cred) -> CredentialStore:
        for name in ("box1", "box2", "db"):
            store.save_credential(make_cred(name))
        return store

    def test_lists_credentials(self, filled: CredentialStore) -> None:
        async def scenario() -> None:
            app = CredentialManagerApp(filled, AppSettings())
            async with app.run_test():
                table = app.query_one("#credentials", DataTable)
                assert table.row_count == 3
                assert app.get_selected_credential() == "box1"

        asyncio.run(scenario())

    def test_delete_after_confirmation(self, filled: CredentialStore) -> None:
        async def scenario() -> None:
            app = CredentialManagerApp(filled, AppSettings())
            async with app.run_test() as pilot:
                await pilot.press("d")
                await pilot.pause()
                await pilot.press("y")
                await pilot.pause()
                assert app.query_one("#credentials", DataTable).row_count == 2

        asyncio.run(scenario())
        assert [c.name for c in filled] == ["box2", "db"]

    def test_delete_declined(self, filled: CredentialStore) -> None:
        async def scenario() -> None:
            app = CredentialManagerApp(filled, AppSettings())
            async with app.run_test() as pilot:
                await pilot.press("d")
                await pilot.pause()
                await pilot.press("n")
                await pilot.pause()

        asyncio.run(scenario())
        assert filled.count() == 3

    def test_filter(self, filled: CredentialStore) -> None:
        async def scenario() -> None:
            app = CredentialManagerApp(filled, AppSettings())
            async with app.run_test() as pilot:
                await pilot.press("slash")
                await pilot.pause()
                await pilot.press("o", "x", "enter")
                await pilot.pause()
                assert app.filter_text == "ox"
                assert app.query_one("#credentials", DataTable).row_count == 2

        asyncio.run(scenario())


def _fill(screen, **values) -> None:
    for field_id, value in values.items():
        screen.query_one(f"#{field_id}", Input).value = value


def _record_notifications(app: CredentialManagerApp) -> list:
    seen = []

    def notify(message, *args, severity="information", **kwargs):
        seen.append((str(message), severity))

    app.notify = notify
    return seen


class TestCredentialManagerEditing:
    @pytest.fixture
    def filled(self, store: CredentialStore, make_cred) -> CredentialStore:
        store.save_credential(make_cred("box1"))
        store.save_credential(make_cred("box2"))
        store.save_credential(make_cred("db", auth_type=AuthType.PASSWORD, password="pw"))
        return store

    def test_add_credential(self, filled: CredentialStore, key_file: str) -> None:
        async def scenario() -> None:
            app = CredentialManagerApp(filled, AppSettings())
            async with app.run_test() as pilot:
                await pilot.press("a")
                await pilot.pause()
                form = app.screen
                assert isinstance(form, CredentialFormScreen)
                _fill(form, name="Web1", host="10.0.0.5", username="ubuntu", key_path=key_file)
                form.query_one("#name", Input).focus()
                await pilot.press("enter")
                await pilot.pause()
                assert not isinstance(app.screen, CredentialFormScreen)
                assert app.query_one("#credentials", DataTable).row_count == 4

        asyncio.run(scenario())
        assert filled.get_credential("web1").host == "10.0.0.5"

    def test_add_existing_name_keeps_form_open(self, filled: CredentialStore, key_file: str) -> None:
        async def scenario() -> None:
            app = CredentialManagerApp(filled, AppSettings())
            async with app.run_test() as pilot:
                await pilot.press("a")
                await pilot.pause()
                form = app.screen
                _fill(form, name="BOX1", host="9.9.9.9", username="root", key_path=key_file)
                form.query_one("#name", Input).focus()
                await pilot.press("enter")
                await pilot.pause()
                assert app.screen is form
                assert "'box1' already exists" in form.error_message

        asyncio.run(scenario())
        assert filled.get_credential("box1").host == "1.2.3.4"
        assert filled.count() == 3

    def test_edit_blank_password_keeps_secret(self, filled: CredentialStore) -> None:
        async def scenario() -> None:
            app = CredentialManagerApp(filled, AppSettings())
            async with app.run_test() as pilot:
                app.query_one("#credentials", DataTable).move_cursor(row=2)
                await pilot.pause()
                assert app.get_selected_credential() == "db"
                await pilot.press("e")
                await pilot.pause()
                form = app.screen
                assert isinstance(form, CredentialFormScreen)
                assert form.query_one("#password", Input).value == ""
                _fill(form, host="db2.internal")
                form.query_one("#name", Input).focus()
                await pilot.press("enter")
                await pilot.pause()
                assert not isinstance(app.screen, CredentialFormScreen)

        original = filled.get_credential("db")
        asyncio.run(scenario())
        cred = filled.get_credential("db")
        assert cred.host == "db2.internal"
        assert cred.password == "pw"
        assert cred.id == original.id

    def test_edit_into_taken_name_keeps_form_open(self, filled: CredentialStore) -> None:
        async def scenario() -> None:
            app = CredentialManagerApp(filled, AppSettings())
            async with app.run_test() as pilot:
                await pilot.press("e")
                await pilot.pause()
                form = app.screen
                _fill(form, name="box2")
                form.query_one("#name", Input).focus()
                await pilot.press("enter")
                await pilot.pause()
                assert app.screen is form
                assert "already exists" in form.error_message

        asyncio.run(scenario())
        assert [c.name for c in filled] == ["box1", "box2", "db"]

    def test_rename(self, filled: CredentialStore) -> None:
        async def scenario() -> None:
            app = CredentialManagerApp(filled, AppSettings())
            async with app.run_test() as pilot:
                await pilot.press("r")
                await pilot.pause()
                prompt = app.screen
                assert isinstance(prompt, PromptScreen)
                assert prompt.query_one("#prompt", Input).value == "box1"
                prompt.query_one("#prompt", Input).value = "Web1"
                await pilot.press("enter")
                await pilot.pause()
                assert app.get_selected_credential() == "web1"

        asyncio.run(scenario())
        assert [c.name for c in filled] == ["web1", "box2", "db"]

    def test_rename_to_taken_name_notifies(self, filled: CredentialStore) -> None:
        async def scenario() -> list:
            app = CredentialManagerApp(filled, AppSettings())
            seen = _record_notifications(app)
            async with app.run_test() as pilot:
                await pilot.press("r")
                await pilot.pause()
                app.screen.query_one("#prompt", Input).value = "box2"
                await pilot.press("enter")
                await pilot.pause()
                assert not isinstance(app.screen, PromptScreen)
            return seen

        seen = asyncio.run(scenario())
        assert any("already exists" in message and severity == "error" for message, severity in seen)
        assert [c.name for c in filled] == ["box1", "box2", "db"]
