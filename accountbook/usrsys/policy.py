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

"""The rules submitted fields must follow: password policy, required fields and email uniqueness.

The functions here never touch storage. They take the current user map and raise `accountbook.errors.ValidationError` on the first broken rule.
"""
import re
from dataclasses import dataclass
from typing import Mapping

from ..errors import (
    REASON_DUPLICATE_EMAIL,
    REASON_MISSING_FIELD,
    REASON_WEAK_PASSWORD,
    ValidationError,
)
from .usr import RegistrationForm, UserRecord, normalize_email

PASSWORD_MIN_LENGTH = 8

_UPPERCASE = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"[0-9]")
_SPECIAL = re.compile(r"[^A-Za-z0-9]")

REGISTRATION_REQUIRED_FIELDS = (
    "given_name",
    "family_name",
    "national_id",
    "code",
    "email",
)


@dataclass(frozen=True)
class PasswordEvaluation(object):
    """The result of `evaluate_password`, one flag for each rule.

    Attributes:
        length: `bool`. At least `PASSWORD_MIN_LENGTH` characters.
        uppercase: `bool`. At least one letter from A to Z.
        digit: `bool`. At least one digit from 0 to 9.
        special: `bool`. At least one character which is not a letter from A to Z (any case) or a digit from 0 to 9.
        valid: `bool`. All the rules above hold.
    """

    length: bool
    uppercase: bool
    digit: bool
    special: bool

    @property
    def valid(self) -> bool:
        return self.length and self.uppercase and self.digit and self.special

    def rules(self) -> Mapping[str, bool]:
        """Return the flags by rule name, in the order they are shown to users."""
        return {
            "length": self.length,
            "uppercase": self.uppercase,
            "digit": self.digit,
            "special": self.special,
        }


def evaluate_password(password: str) -> PasswordEvaluation:
    return PasswordEvaluation(
        length=len(password) >= PASSWORD_MIN_LENGTH,
        uppercase=bool(_UPPERCASE.search(password)),
        digit=bool(_DIGIT.search(password)),
        special=bool(_SPECIAL.search(password)),
    )


def validate_registration(
    form: RegistrationForm, users: Mapping[str, UserRecord]
) -> None:
    """Check a registration against the rules, in this order:

    1. the password follows the password policy,
    2. every required field is filled,
    3. no user has the same normalized email.

    `form` should be cleaned already (see `RegistrationForm.cleaned`).
    """
    if not evaluate_password(form.password).valid:
        raise ValidationError(
            REASON_WEAK_PASSWORD,
            "The password does not meet the minimum requirements.",
            field="password",
        )
    for name in REGISTRATION_REQUIRED_FIELDS:
        if not getattr(form, name):
            raise ValidationError(
                REASON_MISSING_FIELD, "Please fill in all the fields.", field=name
            )
    if normalize_email(form.email) in users:
        raise ValidationError(
            REASON_DUPLICATE_EMAIL,
            "A user with this email is already registered.",
            field="email",
        )


def validate_profile_update(
    current_email: str,
    new_email: str,
    new_password: str,
    users: Mapping[str, UserRecord],
) -> None:
    """Check a profile change of the user at `current_email`.

    An empty `new_password` means the password stays the same. `new_email` must not be blank.
    Both emails should be normalized already.
    """
    if not new_email:
        raise ValidationError(
            REASON_MISSING_FIELD, "The email can not be empty.", field="email"
        )
    if new_password and not evaluate_password(new_password).valid:
        raise ValidationError(
            REASON_WEAK_PASSWORD,
            "The new password does not meet the minimum requirements.",
            field="password",
        )
    if new_email != current_email and new_email in users:
        raise ValidationError(
            REASON_DUPLICATE_EMAIL,
            "A user with this email already exists.",
            field="email",
        )
