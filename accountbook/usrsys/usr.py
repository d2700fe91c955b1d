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

"""This module contains definitions about users and the forms they submit.
"""
from dataclasses import dataclass
from datetime import datetime, timezone


def normalize_email(email: str) -> str:
    """Return the normalized form of `email`: trimmed and lower-cased.
    The normalized email is the only key of user records.
    """
    return email.strip().lower()


def now_timestamp() -> str:
    """Return the current time as an ISO 8601 string in UTC."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class UserRecord(object):
    """Infomation about user.

    Attributes:
        given_name: `str`.
        family_name: `str`.
        national_id: `str`. The number on the identity card.
        code: `str`. Any code given to the user by the organisation, like a student code.
        email: `str`. The normalized email, unique. It's also the key of the record.
        password: `str`. The stored password, in the form decided by the password scheme. See `accountbook.utils.asec`.
        created_at: `str`. ISO 8601 timestamp.
        updated_at: `str`. ISO 8601 timestamp, refreshed when the email or the password changes.
    """

    given_name: str
    family_name: str
    national_id: str
    code: str
    email: str
    password: str
    created_at: str
    updated_at: str


@dataclass
class RegistrationForm(object):
    """The fields submitted to create an account.

    Use `RegistrationForm.cleaned` to get the form with trimmed text and normalized email.
    The password is never trimmed here.
    """

    given_name: str
    family_name: str
    national_id: str
    code: str
    email: str
    password: str

    def cleaned(self) -> "RegistrationForm":
        """Return a copy with every text field trimmed and the email normalized."""
        return RegistrationForm(
            given_name=self.given_name.strip(),
            family_name=self.family_name.strip(),
            national_id=self.national_id.strip(),
            code=self.code.strip(),
            email=normalize_email(self.email),
            password=self.password,
        )
