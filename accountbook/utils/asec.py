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

"""Security tools, including password hashing and password schemes.

A password scheme decides how a password is kept in a `accountbook.usrsys.usr.UserRecord` and how a login attempt is checked against it:

- `Argon2idPasswordScheme` keeps an argon2id hash, the default.
- `PlaintextPasswordScheme` keeps the password as is. It exists for demos only, it is not secure.

Both schemes share one contract: `check` returns `False` for any mismatch, including a stored value written by the other scheme.

Related:

- [nacl.pwhash - PyNaCL documentation](https://pynacl.readthedocs.io/en/latest/api/pwhash/)
- [Password hashing - libsodium documentation](https://doc.libsodium.org/password_hashing)
"""
import binascii
from asyncio import Future, ensure_future, get_running_loop
from base64 import standard_b64decode, standard_b64encode
from secrets import compare_digest
from typing import Awaitable, Dict, Protocol, Type

from nacl.exceptions import CryptoError
from nacl.pwhash import argon2id

from . import global_executor

PASSWORD_SCHEME_ARGON2ID = "argon2id"
PASSWORD_SCHEME_PLAINTEXT = "plaintext"


def password_hashing_sync(
    password: bytes,
    opslimit: int = argon2id.OPSLIMIT_INTERACTIVE,
    memlimit: int = argon2id.MEMLIMIT_INTERACTIVE,
) -> str:
    """Hash `password`.
    The password is hashed by argon2id algorithm, then encoded in base64. The result is an ASCII string.

    ..caution:: This function is synchrounous.
        It may unexecptly block the thread.
    """
    return standard_b64encode(
        argon2id.str(password, opslimit=opslimit, memlimit=memlimit)
    ).decode("ascii")


def password_check_sync(password: bytes, password_hash: str) -> bool:
    """Check if the `password_hash` matchs `password`.
    A `password_hash` which is not a base64-encoded argon2id hash never matchs.

    ..caution:: This function is synchrounous.
        It may unexecptly block the thread.
    """
    try:
        return argon2id.verify(
            standard_b64decode(password_hash.encode("ascii")), password
        )
    except (CryptoError, binascii.Error, UnicodeEncodeError):
        return False


def password_hashing(
    password: bytes,
    opslimit: int = argon2id.OPSLIMIT_INTERACTIVE,
    memlimit: int = argon2id.MEMLIMIT_INTERACTIVE,
) -> Future[str]:
    """Hash `password` in another thread.

    ..note:: A thread pool executor wrapper for `password_hashing_sync`.
    """
    return ensure_future(
        get_running_loop().run_in_executor(
            global_executor.get(), password_hashing_sync, password, opslimit, memlimit
        )
    )


def password_check(password: bytes, password_hash: str) -> Future[bool]:
    """Check if the `password_hash` matchs `password`, in another thread.

    ..note:: A thread pool executor wrapper for `password_check_sync`.
    """
    return ensure_future(
        get_running_loop().run_in_executor(
            global_executor.get(), password_check_sync, password, password_hash
        )
    )


class PasswordScheme(Protocol):
    """A protocol type for the way passwords are kept in user records."""

    name: str

    def hash(self, password: str) -> Awaitable[str]:
        """Build the value to be stored for `password`."""
        ...

    def check(self, password: str, stored: str) -> Awaitable[bool]:
        """Check `password` against the `stored` value."""
        ...


class Argon2idPasswordScheme(object):
    """Keep argon2id hashes of passwords. See `password_hashing`."""

    name = PASSWORD_SCHEME_ARGON2ID

    def __init__(
        self,
        *,
        opslimit: int = argon2id.OPSLIMIT_INTERACTIVE,
        memlimit: int = argon2id.MEMLIMIT_INTERACTIVE,
    ) -> None:
        self.opslimit = opslimit
        self.memlimit = memlimit
        super().__init__()

    def hash(self, password: str) -> Awaitable[str]:
        return password_hashing(password.encode("utf-8"), self.opslimit, self.memlimit)

    def check(self, password: str, stored: str) -> Awaitable[bool]:
        return password_check(password.encode("utf-8"), stored)


class PlaintextPasswordScheme(object):
    """Keep passwords as they are, compare them exactly (case-sensitive).

    ..danger:: Demo only. Anyone reading the database reads every password.
    """

    name = PASSWORD_SCHEME_PLAINTEXT

    async def hash(self, password: str) -> str:
        return password

    async def check(self, password: str, stored: str) -> bool:
        return compare_digest(password.encode("utf-8"), stored.encode("utf-8"))


PASSWORD_SCHEMES: Dict[str, Type] = {
    PASSWORD_SCHEME_ARGON2ID: Argon2idPasswordScheme,
    PASSWORD_SCHEME_PLAINTEXT: PlaintextPasswordScheme,
}
"""All password schemes by name."""


def get_password_scheme(name: str) -> PasswordScheme:
    """Create the password scheme called `name`.

    Raise `ValueError` if there is no such scheme.
    """
    try:
        return PASSWORD_SCHEMES[name]()
    except KeyError:
        raise ValueError(
            "unknown password scheme {!r}, expected one of {}".format(
                name, ", ".join(sorted(PASSWORD_SCHEMES))
            )
        ) from None
