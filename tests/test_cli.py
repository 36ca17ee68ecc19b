"""Tests for the sshcred command line."""

from __future__ import annotations

from pathlib import Path

import pytest

from sshcred import __version__
from sshcred.cli import commands
from sshcred.cli.commands import parse_connection_string
from sshcred.cli.main import build_parser, main
from sshcred.cli.prompts import parse_selection
from sshcred.vault import AuthType, CredentialStore, ValidationError


@pytest.fixture
def answers(monkeypatch: pytest.MonkeyPatch):
    """Queue replies for input(); an exhausted queue behaves like EOF."""
    queue: list[str] = []

    def fake_input(prompt: str = "") -> str:
        if not queue:
            raise EOFError
        return queue.pop(0)

    monkeypatch.setattr("builtins.input", fake_input)
    return queue


@pytest.fixture
def cli(store_path: Path):
    def _run(*args: str) -> int:
        return main(["--store", str(store_path), *args])

    return _run


@pytest.fixture
def seeded(store_path: Path, make_cred) -> CredentialStore:
    store = CredentialStore(store_path)
    store.save_credential(make_cred("box1"))
    store.save_credential(make_cred("box2", host="5.6.7.8"))
    store.save_credential(make_cred("db", auth_type=AuthType.PASSWORD, password="pw"))
    return store


def _reload(store_path: Path) -> CredentialStore:
    return CredentialStore(store_path)


class TestParsing:
    def test_connection_string(self) -> None:
        assert parse_connection_string("root@db1") == ("root", "db1", 22)
        assert parse_connection_string("root@db1:2222") == ("root", "db1", 2222)
        assert parse_connection_string("admin@[fd00::7]:2200") == ("admin", "fd00::7", 2200)

    def test_connection_string_default_port(self) -> None:
        assert parse_connection_string("root@db1", default_port=2022)[2] == 2022

    @pytest.mark.parametrize("text", ["db1", "@db1", "root@", "root@db1:abc"])
    def test_bad_connection_string(self, text: str) -> None:
        with pytest.raises(ValidationError):
            parse_connection_string(text)

    def test_parse_selection(self) -> None:
        assert parse_selection("3, 1,x,9,1", 3) == [0, 2]
        assert parse_selection("", 3) == []

    def test_aliases(self) -> None:
        parser = build_parser()
        assert parser.parse_args(["ls"]).handler is commands.cmd_list
        assert parser.parse_args(["rm", "x"]).handler is commands.cmd_delete
        assert parser.parse_args(["c", "x"]).handler is commands.cmd_connect


class TestMain:
    def test_no_command_prints_help(self, cli, capsys) -> None:
        assert cli() == 0
        assert "usage: sshcred" in capsys.readouterr().out

    def test_version(self, capsys) -> None:
        assert main(["version"]) == 0
        assert capsys.readouterr().out.strip() == f"sshcred: {__version__}"

    def test_unreadable_store_reports_error(self, cli, store_path, capsys) -> None:
        store_path.parent.mkdir(parents=True)
        store_path.write_bytes(b"\xff\xfe garbage")
        assert cli("list", "--long") == 1
        assert "Error: failed to read" in capsys.readouterr().err

    def test_store_without_credentials_list_reports_error(self, cli, store_path, capsys) -> None:
        store_path.parent.mkdir(parents=True)
        store_path.write_text('{"creds": []}', encoding="utf-8")
        assert cli("list") == 1
        assert "must be a list" in capsys.readouterr().err


class TestSave:
    def test_save_with_flags(self, cli, store_path, key_file, capsys) -> None:
        code = cli("save", "-n", "Web1", "-H", "10.0.0.5", "-p", "2222", "-u", "ubuntu", "-k", key_file)

        assert code == 0
        assert "Successfully saved SSH credential for web1" in capsys.readouterr().out
        cred = _reload(store_path).get_credential("web1")
        assert cred.port == 2222
        assert cred.key_path == key_file

    def test_save_uses_default_key(self, cli, store_path, isolated_home, capsys) -> None:
        ssh_dir = isolated_home / ".ssh"
        ssh_dir.mkdir()
        (ssh_dir / "id_ed25519").write_text("k")

        assert cli("save", "-n", "web1", "-H", "10.0.0.5", "-u", "ubuntu") == 0
        assert f"Using default key: {ssh_dir / 'id_ed25519'}" in capsys.readouterr().out
        assert _reload(store_path).get_credential("web1").port == 22

    def test_save_password_prompts(self, cli, store_path, monkeypatch) -> None:
        monkeypatch.setattr("sshcred.cli.prompts.getpass.getpass", lambda prompt="": "s3cret")
        assert cli("save", "-n", "db", "-H", "db.internal", "-u", "admin", "-a", "password") == 0
        assert _reload(store_path).get_credential("db").password == "s3cret"

    def test_save_blank_auth_type_prompts(self, cli, store_path, answers, monkeypatch, capsys) -> None:
        monkeypatch.setattr("sshcred.cli.prompts.getpass.getpass", lambda prompt="": "s3cret")
        answers.append("password")
        assert cli("save", "-n", "db", "-H", "db.internal", "-u", "admin", "-a", "") == 0
        assert "Authentication type (password/key)" in capsys.readouterr().out
        assert _reload(store_path).get_credential("db").auth_type is AuthType.PASSWORD

    def test_save_prompts_for_missing_fields(self, cli, store_path, key_file, answers) -> None:
        answers.extend(["web1", "10.0.0.5", "ubuntu"])
        assert cli("save", "-k", key_file) == 0
        assert _reload(store_path).get_credential("web1").username == "ubuntu"

    def test_save_existing_name_asks_for_another(self, cli, seeded, store_path, key_file, answers) -> None:
        answers.extend(["box2", "box3"])
        assert cli("save", "-n", "box1", "-H", "9.9.9.9", "-u", "root", "-k", key_file) == 0

        store = _reload(store_path)
        assert store.get_credential("box3").host == "9.9.9.9"
        assert store.get_credential("box1").host == "1.2.3.4"

    def test_save_invalid_port(self, cli, store_path, key_file, capsys) -> None:
        assert cli("save", "-n", "web1", "-H", "10.0.0.5", "-p", "0", "-u", "u", "-k", key_file) == 1
        assert "Error: port must be between 1 and 65535" in capsys.readouterr().err
        assert _reload(store_path).count() == 0


class TestWizard:
    def test_wizard_adds_targets(self, cli, store_path, key_file, answers, capsys) -> None:
        answers.extend(["", "db"])
        code = cli("wizard", "root@10.0.0.9:2222", "admin@[fd00::7]", "-k", key_file)

        assert code == 0
        store = _reload(store_path)
        assert store.get_credential("root@10.0.0.9").port == 2222
        assert store.get_credential("db").host == "fd00::7"
        assert "Saved: db (admin@[fd00::7]:22)" in capsys.readouterr().out

    def test_wizard_reports_bad_target(self, cli, store_path, key_file, answers) -> None:
        answers.append("web")
        assert cli("wizard", "nonsense", "root@web.local", "-k", key_file) == 1
        assert _reload(store_path).exists("web")

    def test_wizard_requires_targets(self, cli, capsys) -> None:
        assert cli("wizard") == 1
        assert "at least one connection string" in capsys.readouterr().err


class TestListSearch:
    def test_list_empty(self, cli, capsys) -> None:
        assert cli("list") == 0
        assert "No SSH credentials found" in capsys.readouterr().out

    def test_list_long(self, cli, seeded, capsys) -> None:
        assert cli("list", "--long") == 0
        out = capsys.readouterr().out
        assert "[1] Name: box1" in out
        assert "[3] Name: db" in out
        assert "pw" not in out

    def test_list_select(self, cli, seeded, answers, capsys) -> None:
        answers.append("2")
        assert cli("list") == 0
        out = capsys.readouterr().out
        selected = out.split("Selected SSH credentials:")[1]
        assert "Name: box2" in selected
        assert "Name: box1" not in selected

    def test_list_no_selection(self, cli, seeded, answers, capsys) -> None:
        answers.append("")
        assert cli("ls") == 0
        assert "No selection made." in capsys.readouterr().out

    def test_search(self, cli, seeded, capsys) -> None:
        assert cli("search", "OX") == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert [line.split("\t")[0] for line in lines] == ["box1", "box2"]

    def test_search_no_match(self, cli, seeded, capsys) -> None:
        assert cli("find", "zzz") == 0
        assert "No credentials match 'zzz'" in capsys.readouterr().out


class TestUpdateRename:
    def test_update_changes_answered_fields(self, cli, seeded, store_path, answers) -> None:
        answers.extend(["example.com", "2022", "", "", ""])
        assert cli("update", "box1") == 0

        cred = _reload(store_path).get_credential("box1")
        assert cred.host == "example.com"
        assert cred.port == 2022
        assert cred.username == "ubuntu"
        assert cred.id == seeded.get_credential("box1").id

    def test_update_picks_from_list(self, cli, seeded, store_path, answers) -> None:
        answers.extend(["2", "", "", "root", "", ""])
        assert cli("update") == 0
        assert _reload(store_path).get_credential("box2").username == "root"

    def test_update_bad_port(self, cli, seeded, store_path, answers, capsys) -> None:
        answers.extend(["", "abc"])
        assert cli("update", "box1") == 1
        assert "port must be an integer" in capsys.readouterr().err
        assert _reload(store_path).get_credential("box1").port == 22

    def test_update_missing(self, cli, seeded, capsys) -> None:
        assert cli("update", "ghost") == 1
        assert "Error: credential not found: ghost" in capsys.readouterr().err

    def test_rename(self, cli, seeded, store_path, capsys) -> None:
        assert cli("rename", "box1", "Web1") == 0
        assert "Renamed 'box1' to 'web1'" in capsys.readouterr().out
        assert _reload(store_path).exists("web1")

    def test_rename_conflict(self, cli, seeded, capsys) -> None:
        assert cli("mv", "box1", "box2") == 1
        assert "already exists" in capsys.readouterr().err


class TestDelete:
    def test_delete_yes(self, cli, seeded, store_path) -> None:
        assert cli("delete", "box2", "-y") == 0
        assert [c.name for c in _reload(store_path)] == ["box1", "db"]

    def test_delete_declined(self, cli, seeded, store_path, answers, capsys) -> None:
        answers.append("n")
        assert cli("delete", "box2") == 0
        assert "Deletion cancelled" in capsys.readouterr().out
        assert _reload(store_path).count() == 3

    def test_delete_missing(self, cli, seeded, capsys) -> None:
        assert cli("delete", "ghost", "-y") == 1
        assert "credential not found: ghost" in capsys.readouterr().err

    def test_multi_delete(self, cli, seeded, store_path, answers) -> None:
        answers.extend(["1", "3", "d", "y"])
        assert cli("delete") == 0
        assert [c.name for c in _reload(store_path)] == ["box2"]

    def test_multi_delete_toggle_off_and_quit(self, cli, seeded, store_path, answers) -> None:
        answers.extend(["1", "1", "d", "q"])
        assert cli("delete") == 0
        assert _reload(store_path).count() == 3

    def test_clear(self, cli, seeded, store_path, capsys) -> None:
        assert cli("clear", "--yes") == 0
        assert "Deleted 3 credentials" in capsys.readouterr().out
        assert _reload(store_path).count() == 0


class TestConnect:
    def test_connect_passes_flags(self, cli, seeded, monkeypatch, capsys) -> None:
        calls = []

        class FakeLauncher:
            def __init__(self, settings):
                self.settings = settings

            def connect(self, cred, use_tmux=None, insecure=None):
                calls.append((cred.name, use_tmux, insecure))
                return 0

        monkeypatch.setattr(commands, "SSHLauncher", FakeLauncher)

        assert cli("connect", "BOX1", "--insecure") == 0
        assert cli("c", "db", "--no-tmux") == 0
        assert calls == [("box1", None, True), ("db", False, None)]
        assert "Connecting to ubuntu@1.2.3.4:22..." in capsys.readouterr().out

    def test_connect_missing(self, cli, seeded, capsys) -> None:
        assert cli("connect", "ghost") == 1
        assert "credential not found" in capsys.readouterr().err
