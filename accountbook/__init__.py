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

from typing import Optional

from unqlite import UnQLite

from .storagehub import StorageHub
from .usrsys.account import AccountService
from .usrsys.auth import AuthProvider
from .usrsys.usr import RegistrationForm, UserRecord
from .utils.asec import PASSWORD_SCHEME_ARGON2ID, PasswordScheme, get_password_scheme


class AccountBook(object):
    """The entry of AccountBook. This class stores configuration and tools to keep other components running.

    AccountBook splits its feature units as reusable components:

    - Storage (`accountbook.storagehub`, `accountbook.utils.storage`)
    - User System (`accountbook.usrsys`)
    - Command line front-end (`accountbook.__main__`)

    Typical usage:

    ````python
    book = AccountBook(database_path="accounts.db")
    await book.accounts.register(RegistrationForm(...))
    await book.accounts.login("ana@test.com", "Abcd123!")
    await book.stop()
    ````

    .. caution:: Though many properties could be changed in runtime, be notice on the side effect!
    """

    def __init__(
        self,
        *,
        database_path: str,
        password_scheme: str = PASSWORD_SCHEME_ARGON2ID,
        custom_password_scheme: Optional[PasswordScheme] = None,
    ) -> None:
        self.password_scheme: PasswordScheme = (
            custom_password_scheme
            if custom_password_scheme
            else get_password_scheme(password_scheme)
        )
        """`accountbook.utils.asec.PasswordScheme`. "argon2id" by default, "plaintext" is for demos only.
        Raise `ValueError` on unknown names."""
        self.database_path = database_path
        """`str`. The path to database. Currently it's a file path or ":mem:".
        ":mem:" tells UnQLite open database in memory."""
        self.database = UnQLite(database_path)
        """Database instance. Notice that this property may not be avaliable in future."""
        self.storage_hub = StorageHub(self.database)
        """`accountbook.StorageHub`. The references to all storages in AccountBook."""
        self.auth_provider = AuthProvider(
            self.storage_hub.user_records, self.password_scheme
        )
        """`accountbook.usrsys.auth.AuthProvider`. The auth provider for this instance."""
        self.accounts = AccountService(
            self.storage_hub.user_records,
            self.storage_hub.session,
            self.auth_provider,
            self.password_scheme,
        )
        """`accountbook.usrsys.account.AccountService`. Register, log in, edit and delete accounts."""
        super().__init__()

    async def stop(self, *, end_session: bool = False) -> None:
        """Stop the instance and close the database.

        If `end_session` is `True`, the session pointer is cleared first: the next instance on this database starts logged out.
        """
        if end_session:
            await self.accounts.logout()
        self.storage_hub.close()

    async def new_user(
        self,
        *,
        given_name: str,
        family_name: str,
        national_id: str,
        code: str,
        email: str,
        password: str
    ) -> UserRecord:
        """Create a new user. This method is used for programmaic uses from outside.
        For internal uses please turn to `accountbook.usrsys.account.AccountService.register`.
        """
        return await self.accounts.register(
            RegistrationForm(
                given_name=given_name,
                family_name=family_name,
                national_id=national_id,
                code=code,
                email=email,
                password=password,
            )
        )
