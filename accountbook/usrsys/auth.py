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

"""`AuthRequest`, `AuthAnswer` and `AuthProvider`: The authentication tools for the user system.
"""
import secrets
from dataclasses import dataclass
from typing import Optional

from ..utils.asec import PasswordScheme
from .storage import UserRecordStore
from .usr import normalize_email


@dataclass
class AuthRequest(object):
    """The request for authentication.

    Attributes:
        email: `Optional[str]`. Normalized or not, the provider normalizes it.
        password: `Optional[str]`. In plaintext, used as is.

    Typical usage:

    ````python
    AuthRequest(
        email = "...",
        password = "...",
    )
    ````
    """

    email: Optional[str] = None
    password: Optional[str] = None

    def __repr__(self) -> str:
        return "AuthRequest(email={!r}, password=...)".format(self.email)


@dataclass
class AuthAnswer(object):
    """The answer for authentication.

    Attributes:
        handled: `bool`. If the request can be handled correctly.
        success: `bool`. The result of the authentication.
        email: `Optional[str]`. The normalized email of the authenticated user, only when `success`.
    """

    handled: bool
    success: bool
    email: Optional[str] = None


class AuthProvider(object):
    """Provide authentication to other concepts of AccountBook."""

    def __init__(
        self, user_record_store: UserRecordStore, password_scheme: PasswordScheme
    ) -> None:
        self.user_record_store = user_record_store
        self.password_scheme = password_scheme
        self._dummy_password: Optional[str] = None
        super().__init__()

    async def dummy_password(self) -> str:
        """A stored password value which no request matches, hashed once with `password_scheme`."""
        if self._dummy_password is None:
            self._dummy_password = await self.password_scheme.hash(
                secrets.token_hex(16)
            )
        return self._dummy_password

    async def auth(self, request: AuthRequest) -> AuthAnswer:
        """Process an authentication request.

        The answer is the same whether the email is unknown or the password is wrong.
        An unknown email is still checked against `dummy_password`, so both cases take about as long.
        """
        if not (request.email and request.password):
            return AuthAnswer(handled=False, success=False)
        email = normalize_email(request.email)
        record = await self.user_record_store.get(email)
        if not record:
            await self.password_scheme.check(
                request.password, await self.dummy_password()
            )
            return AuthAnswer(handled=True, success=False)
        if await self.password_scheme.check(request.password, record.password):
            return AuthAnswer(handled=True, success=True, email=email)
        return AuthAnswer(handled=True, success=False)
