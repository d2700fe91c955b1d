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

"""All exceptions of AccountBook.

Every one of them leaves the persisted state unchanged when raised.

Related:

- `accountbook.usrsys.account.AccountService` Which raises most of them.
"""
from typing import Optional

REASON_MISSING_FIELD = "missing_field"
REASON_WEAK_PASSWORD = "weak_password"
REASON_DUPLICATE_EMAIL = "duplicate_email"

GENERIC_AUTHENTICATION_MESSAGE = (
    "Wrong email or password. If you are not registered, create an account."
)


class AccountBookError(Exception):
    """Base class of AccountBook errors. `str(error)` is a message which could be shown to users."""

    pass


class ValidationError(AccountBookError):
    """The submitted fields break a rule.

    Attributes:
        reason: `str`. One of `REASON_MISSING_FIELD`, `REASON_WEAK_PASSWORD`, `REASON_DUPLICATE_EMAIL`.
        field: `Optional[str]`. The name of the field at fault, if there is one.
    """

    def __init__(self, reason: str, message: str, field: Optional[str] = None) -> None:
        self.reason = reason
        self.field = field
        super().__init__(message)


class PersistenceReadError(AccountBookError):
    """The stored data can not be decoded.

    ..note:: Callers of the record store never see this error, the store recovers by using an empty map.
    """

    pass


class AuthenticationError(AccountBookError):
    """The credentials are wrong. The message never tells whether it was the email or the password."""

    def __init__(self, message: str = GENERIC_AUTHENTICATION_MESSAGE) -> None:
        super().__init__(message)


class NotAuthenticatedError(AccountBookError):
    """The operation needs a logged-in user, but there is none (or the session points to a missing record)."""

    def __init__(self, message: str = "You are not logged in.") -> None:
        super().__init__(message)


class ConflictError(AccountBookError):
    """The stored user map was changed by another writer since it was loaded."""

    def __init__(
        self,
        message: str = "The accounts were changed by someone else, please try again.",
    ) -> None:
        super().__init__(message)


class DatabaseBusyError(AccountBookError):
    """The database file could not be used, usually because another program holds its lock.

    Nothing was read or written. The operation can be tried again once the other program is done.
    """

    def __init__(
        self,
        message: str = "The account database is in use by another program, please try again later.",
    ) -> None:
        super().__init__(message)
