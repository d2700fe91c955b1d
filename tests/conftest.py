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

import pytest
from unqlite import UnQLite

from accountbook import AccountBook
from accountbook.usrsys.storage import SessionPointer, UserRecordStore
from accountbook.usrsys.usr import RegistrationForm, UserRecord
from accountbook.utils.storage import UnQLiteSlotStorage


def registration_form(**overrides) -> RegistrationForm:
    fields = dict(
        given_name="Ana",
        family_name="Diaz",
        national_id="123",
        code="X1",
        email="Ana@Test.com",
        password="Abcd123!",
    )
    fields.update(overrides)
    return RegistrationForm(**fields)


def user_record(**overrides) -> UserRecord:
    fields = dict(
        given_name="Ana",
        family_name="Diaz",
        national_id="123",
        code="X1",
        email="ana@test.com",
        password="Abcd123!",
        created_at="2021-06-01T10:00:00+00:00",
        updated_at="2021-06-01T10:00:00+00:00",
    )
    fields.update(overrides)
    return UserRecord(**fields)


@pytest.fixture
def make_form():
    return registration_form


@pytest.fixture
def make_record():
    return user_record


@pytest.fixture
async def accountbook():
    instance = AccountBook(database_path=":mem:", password_scheme="plaintext")
    try:
        yield instance
    finally:
        await instance.stop()


@pytest.fixture
async def slot_storage():
    storage = UnQLiteSlotStorage(UnQLite(":mem:"))
    try:
        yield storage
    finally:
        storage.close()


@pytest.fixture
def store(slot_storage):
    return UserRecordStore(slot_storage)


@pytest.fixture
def session(slot_storage):
    return SessionPointer(slot_storage)
