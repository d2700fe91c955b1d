# Copyright (C) 2021 The AccountBook Contributors
#
# This file is part of AccountBook.
#
# AccountBook is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# AccountBook is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with AccountBook.  If not, see <http://www.gnu.org/licenses/>.

import asyncio

import pytest

from accountbook import AccountBook
from accountbook.__main__ import main

REGISTER_ANA = [
    "register",
    "--given-name",
    "Ana",
    "--family-name",
    "Diaz",
    "--national-id",
    "123",
    "--code",
    "X1",
    "--email",
    "Ana@Test.com",
    "--password",
    "Abcd123!",
]


@pytest.fixture
def cli(tmp_path):
    database = str(tmp_path / "accounts.db")

    def run(*argv: str) -> int:
        return main(["--database", database, "--password-scheme", "plaintext", *argv])

    return run


class TestCommandLine:
    def test_register_login_whoami_logout(self, cli, capsys):
        assert cli(*REGISTER_ANA) == 0
        assert "ana@test.com" in capsys.readouterr().out

        assert cli("login", "--email", "ANA@TEST.COM", "--password", "Abcd123!") == 0
        assert "Welcome, Ana Diaz." in capsys.readouterr().out

        assert cli("whoami") == 0
        out = capsys.readouterr().out
        assert "Email:       ana@test.com" in out
        assert "Abcd123!" not in out

        assert cli("logout") == 0
        capsys.readouterr()
        assert cli("whoami") == 1
        assert "Not logged in." in capsys.readouterr().out

    def test_errors_go_to_stderr(self, cli, capsys):
        assert cli(*REGISTER_ANA) == 0
        assert cli(*REGISTER_ANA) == 1
        assert "already registered" in capsys.readouterr().err

        assert cli("login", "--email", "ana@test.com", "--password", "nope") == 1
        err = capsys.readouterr().err
        assert "Wrong email or password" in err

    def test_update_and_delete(self, cli, capsys):
        cli(*REGISTER_ANA)
        cli("login", "--email", "ana@test.com", "--password", "Abcd123!")
        assert cli("update", "--email", "ana.diaz@test.com") == 0
        assert "Email:       ana.diaz@test.com" in capsys.readouterr().out

        assert cli("delete", "--yes") == 0
        assert "ana.diaz@test.com deleted" in capsys.readouterr().out
        assert cli("whoami") == 1
        assert cli("login", "--email", "ana.diaz@test.com", "--password", "Abcd123!") == 1

    def test_delete_can_be_cancelled(self, cli, capsys, monkeypatch):
        cli(*REGISTER_ANA)
        cli("login", "--email", "ana@test.com", "--password", "Abcd123!")
        monkeypatch.setattr("builtins.input", lambda prompt: "n")
        assert cli("delete") == 1
        assert "Cancelled." in capsys.readouterr().out
        assert cli("whoami") == 0

    def test_update_needs_login(self, cli, capsys):
        cli(*REGISTER_ANA)
        assert cli("update", "--password", "Newpass1$") == 1
        assert "not logged in" in capsys.readouterr().err

    def test_check_password(self, cli, capsys):
        assert cli("check-password", "--password", "abc") == 1
        out = capsys.readouterr().out
        assert "[ ] at least 8 characters" in out
        assert "[ ] an uppercase letter" in out
        assert cli("check-password", "--password", "Abcd123!") == 0
        assert "[ ]" not in capsys.readouterr().out

    def test_password_is_prompted(self, cli, capsys, monkeypatch):
        monkeypatch.setattr("accountbook.__main__.getpass", lambda prompt: "Abcd123!")
        assert cli(*REGISTER_ANA[:-2]) == 0
        assert cli("login", "--email", "ana@test.com") == 0

    def test_busy_database_is_reported(self, tmp_path, capsys):
        database = str(tmp_path / "accounts.db")
        book = AccountBook(database_path=database, password_scheme="plaintext")
        try:
            asyncio.run(book.storage_hub.user_records.list_emails())
            argv = ["--database", database, "--password-scheme", "plaintext"]
            assert main([*argv, *REGISTER_ANA]) == 1
            assert "in use by another program" in capsys.readouterr().err
        finally:
            asyncio.run(book.stop())

    def test_unknown_password_scheme_from_environment(
        self, tmp_path, capsys, monkeypatch
    ):
        monkeypatch.setenv("ACCOUNTBOOK_PASSWORD_SCHEME", "rot13")
        with pytest.raises(SystemExit) as info:
            main(["--database", str(tmp_path / "accounts.db"), "whoami"])
        assert info.value.code == 2
        assert "unknown password scheme 'rot13'" in capsys.readouterr().err
