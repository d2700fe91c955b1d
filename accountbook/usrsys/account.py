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

"""`AccountService`: the account lifecycle, from registration to deletion.

A caller is in one of two states:

- `STATE_ANONYMOUS`: nobody is logged in, or the session pointer names a record which no longer exists.
- `STATE_AUTHENTICATED`: the session pointer names an existing record.

```
Anonymous --login--> Authenticated --logout/delete_account--> Anonymous
                     Authenticated --update_profile--> Authenticated
```
"""
import logging
from typing import Optional

from ..errors import AuthenticationError, NotAuthenticatedError
from ..utils.asec import PasswordScheme
from .auth import AuthProvider, AuthRequest
from .policy import validate_profile_update, validate_registration
from .storage import SessionPointer, UserRecordStore
from .usr import RegistrationForm, UserRecord, normalize_email, now_timestamp

STATE_ANONYMOUS = "anonymous"
STATE_AUTHENTICATED = "authenticated"


class AccountService(object):
    """Register, log in, edit and delete accounts.

    Every writing operation loads the user map, checks the rules and commits in one step under `UserRecordStore.lock`.
    A failed check raises before anything is written.
    """

    __logger = logging.getLogger("accountbook.usrsys.AccountService")

    def __init__(
        self,
        user_record_store: UserRecordStore,
        session: SessionPointer,
        auth_provider: AuthProvider,
        password_scheme: PasswordScheme,
    ) -> None:
        self.user_record_store = user_record_store
        self.session = session
        self.auth_provider = auth_provider
        self.password_scheme = password_scheme
        super().__init__()

    async def register(self, form: RegistrationForm) -> UserRecord:
        """Create an account. It does not log in.

        Raise `accountbook.errors.ValidationError` if the form breaks a rule. See `accountbook.usrsys.policy.validate_registration`.
        """
        form = form.cleaned()
        async with self.user_record_store.lock:
            users = await self.user_record_store.load()
            validate_registration(form, users.records)
            timestamp = now_timestamp()
            record = UserRecord(
                given_name=form.given_name,
                family_name=form.family_name,
                national_id=form.national_id,
                code=form.code,
                email=form.email,
                password=await self.password_scheme.hash(form.password),
                created_at=timestamp,
                updated_at=timestamp,
            )
            users.put(form.email, record)
            await self.user_record_store.commit(users)
        self.__logger.info("registered %s", record.email)
        return record

    async def login(self, email: str, password: str) -> UserRecord:
        """Log in as the user at `email`.

        Raise `accountbook.errors.AuthenticationError` if the email is unknown or the password is wrong, with the same message.
        """
        async with self.user_record_store.lock:
            answer = await self.auth_provider.auth(
                AuthRequest(email=email, password=password)
            )
            if not answer.success or not answer.email:
                self.__logger.info("login refused")
                raise AuthenticationError()
            record = await self.user_record_store.get(answer.email)
            if not record:
                raise AuthenticationError()
            await self.session.set(answer.email)
        self.__logger.info("logged in as %s", answer.email)
        return record

    async def logout(self) -> None:
        """Forget the logged-in user. Nothing happens if nobody is logged in."""
        if await self.session.clear():
            self.__logger.info("logged out")

    async def current_user(self) -> Optional[UserRecord]:
        """Return the logged-in user's record, or `None`.

        ..note:: A session pointer to a missing record gives `None` too. The pointer is left as is.
        """
        email = await self.session.get()
        if not email:
            return None
        return await self.user_record_store.get(email)

    async def state(self) -> str:
        """Return `STATE_AUTHENTICATED` or `STATE_ANONYMOUS`."""
        if await self.current_user():
            return STATE_AUTHENTICATED
        return STATE_ANONYMOUS

    async def update_profile(
        self, new_email: Optional[str] = None, new_password: Optional[str] = None
    ) -> UserRecord:
        """Change the email and/or the password of the logged-in user.

        `new_email` as `None` keeps the current email, a blank one is refused.
        `new_password` as `None` or empty keeps the current password, otherwise it's trimmed before use.
        When the email changes, the record moves to the new key and the session pointer follows it, in the same commit.

        Raise `accountbook.errors.NotAuthenticatedError` if nobody is logged in,
        `accountbook.errors.ValidationError` if the change breaks a rule.
        """
        async with self.user_record_store.lock:
            current_email = await self.session.get()
            users = await self.user_record_store.load()
            record = users.get(current_email) if current_email else None
            if not current_email or not record:
                raise NotAuthenticatedError()
            target_email = (
                normalize_email(new_email) if new_email is not None else current_email
            )
            password = (new_password or "").strip()
            validate_profile_update(current_email, target_email, password, users.records)

            renamed = target_email != current_email
            if renamed:
                record.email = target_email
                record.updated_at = now_timestamp()
                users.remove(current_email)
                users.put(target_email, record)
            if password:
                record.password = await self.password_scheme.hash(password)
                record.updated_at = now_timestamp()
            await self.user_record_store.commit(
                users, login_as=target_email if renamed else None
            )
        if renamed:
            self.__logger.info("renamed %s to %s", current_email, target_email)
        if password:
            self.__logger.info("password changed for %s", target_email)
        return record

    async def delete_account(self) -> str:
        """Delete the logged-in user's record and log out, in one commit.

        Return the email of the deleted account.
        Raise `accountbook.errors.NotAuthenticatedError` if nobody is logged in.
        """
        async with self.user_record_store.lock:
            current_email = await self.session.get()
            users = await self.user_record_store.load()
            if not current_email or not users.remove(current_email):
                raise NotAuthenticatedError()
            await self.user_record_store.commit(users, logout=True)
        self.__logger.info("deleted account %s", current_email)
        return current_email
