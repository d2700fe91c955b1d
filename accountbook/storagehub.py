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

"""This module contains `StorageHub`, the storage centre of AccountBook.
"""
from unqlite import UnQLite

from .usrsys.storage import SessionPointer, UserRecordStore
from .utils.storage import UnQLiteSlotStorage


class StorageHub(object):
    """The storage centre for AccountBook. This class keeps the storages sharing one database.

    ..note:: Typically you use the one from `accountbook.AccountBook`.

    Related:

    - `accountbook.utils.storage` The abstract storage layer of AccountBook.
    """

    def __init__(self, database: UnQLite) -> None:
        self.database = database
        """The database instance.
        .. important:: Don't depends on this property, AccountBook may support more database backend in future."""
        self.slot_storage = UnQLiteSlotStorage(database)
        """`accountbook.utils.storage.UnQLiteSlotStorage`. All storages below read and write through it."""
        self.user_records = UserRecordStore(self.slot_storage)
        """
        Related:

        - `accountbook.usrsys.usr.UserRecord` The object being stored.
        """
        self.session = SessionPointer(self.slot_storage)
        """`accountbook.usrsys.storage.SessionPointer`. Shares the database with `user_records`, so both can change in one transaction."""
        super().__init__()

    def close(self) -> None:
        """Release the slot storage, then close the database."""
        self.slot_storage.close()
        self.database.close()
