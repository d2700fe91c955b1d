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

"""The command line front-end of AccountBook.

```
python -m accountbook [--database PATH] [--password-scheme NAME] [--verbose] COMMAND ...
```

The session pointer is kept in the database, so `login` in one run is still active in the next run until `logout`.
"""
import asyncio
import logging
import sys
from argparse import ArgumentParser, Namespace
from getpass import getpass
from os import environ
from typing import Callable, Dict, List, Optional

from . import AccountBook
from .errors import AccountBookError
from .usrsys.policy import evaluate_password
from .usrsys.usr import RegistrationForm, UserRecord
from .utils.asec import PASSWORD_SCHEME_ARGON2ID, PASSWORD_SCHEMES

DEFAULT_DATABASE_PATH = "accountbook.db"

RULE_DESCRIPTIONS = {
    "length": "at least 8 characters",
    "uppercase": "an uppercase letter",
    "digit": "a digit",
    "special": "a special character",
}


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="accountbook", description="Manage local accounts."
    )
    parser.add_argument(
        "--database",
        default=environ.get("ACCOUNTBOOK_DATABASE", DEFAULT_DATABASE_PATH),
        metavar="PATH",
        help="database file, or :mem: (default: %(default)s)",
    )
    parser.add_argument(
        "--password-scheme",
        default=environ.get("ACCOUNTBOOK_PASSWORD_SCHEME", PASSWORD_SCHEME_ARGON2ID),
        choices=sorted(PASSWORD_SCHEMES),
        help="how passwords are stored (default: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="show logs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register = subparsers.add_parser("register", help="create an account")
    register.add_argument("--given-name", required=True)
    register.add_argument("--family-name", required=True)
    register.add_argument("--national-id", required=True)
    register.add_argument("--code", required=True)
    register.add_argument("--email", required=True)
    register.add_argument("--password", help="prompted if not given")

    login = subparsers.add_parser("login", help="log in")
    login.add_argument("--email", required=True)
    login.add_argument("--password", help="prompted if not given")

    subparsers.add_parser("logout", help="log out")
    subparsers.add_parser("whoami", help="show the profile of the logged-in user")

    update = subparsers.add_parser("update", help="change your email or password")
    update.add_argument("--email", help="the new email")
    update.add_argument("--password", help="the new password")

    delete = subparsers.add_parser("delete", help="delete your account")
    delete.add_argument("--yes", action="store_true", help="do not ask to confirm")

    check = subparsers.add_parser(
        "check-password", help="show which password rules hold"
    )
    check.add_argument("--password", help="prompted if not given")
    return parser


def read_password(args: Namespace, prompt: str = "Password: ") -> str:
    if args.password is not None:
        return args.password
    return getpass(prompt)


def format_profile(record: UserRecord) -> str:
    return "\n".join(
        [
            "Given name:  {}".format(record.given_name),
            "Family name: {}".format(record.family_name),
            "National id: {}".format(record.national_id),
            "Code:        {}".format(record.code),
            "Email:       {}".format(record.email),
            "Created at:  {}".format(record.created_at),
            "Updated at:  {}".format(record.updated_at),
        ]
    )


async def cmd_register(book: AccountBook, args: Namespace) -> int:
    record = await book.accounts.register(
        RegistrationForm(
            given_name=args.given_name,
            family_name=args.family_name,
            national_id=args.national_id,
            code=args.code,
            email=args.email,
            password=read_password(args),
        )
    )
    print("Account created for {}. You can log in now.".format(record.email))
    return 0


async def cmd_login(book: AccountBook, args: Namespace) -> int:
    record = await book.accounts.login(args.email, read_password(args))
    print("Welcome, {} {}.".format(record.given_name, record.family_name))
    return 0


async def cmd_logout(book: AccountBook, args: Namespace) -> int:
    await book.accounts.logout()
    print("Logged out.")
    return 0


async def cmd_whoami(book: AccountBook, args: Namespace) -> int:
    record = await book.accounts.current_user()
    if not record:
        print("Not logged in.")
        return 1
    print(format_profile(record))
    return 0


async def cmd_update(book: AccountBook, args: Namespace) -> int:
    record = await book.accounts.update_profile(
        new_email=args.email, new_password=args.password
    )
    print("Changes saved.")
    print(format_profile(record))
    return 0


async def cmd_delete(book: AccountBook, args: Namespace) -> int:
    if not args.yes:
        answer = input(
            "This will delete your account and its local data. Continue? [y/N] "
        )
        if answer.strip().lower() not in ("y", "yes"):
            print("Cancelled.")
            return 1
    email = await book.accounts.delete_account()
    print("Account {} deleted.".format(email))
    return 0


async def cmd_check_password(book: AccountBook, args: Namespace) -> int:
    evaluation = evaluate_password(read_password(args))
    for rule, ok in evaluation.rules().items():
        print("[{}] {}".format("x" if ok else " ", RULE_DESCRIPTIONS[rule]))
    return 0 if evaluation.valid else 1


COMMANDS: Dict[str, Callable] = {
    "register": cmd_register,
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "update": cmd_update,
    "delete": cmd_delete,
    "check-password": cmd_check_password,
}


async def run(args: Namespace) -> int:
    book = AccountBook(
        database_path=args.database, password_scheme=args.password_scheme
    )
    try:
        return await COMMANDS[args.command](book, args)
    except AccountBookError as e:
        print(str(e), file=sys.stderr)
        return 1
    finally:
        await book.stop()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.password_scheme not in PASSWORD_SCHEMES:
        # argparse does not check a default against choices
        parser.error(
            "unknown password scheme {!r} (choose from {})".format(
                args.password_scheme, ", ".join(sorted(PASSWORD_SCHEMES))
            )
        )
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
