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

"""This module contains the storages of the user system: `UserRecordStore` and `SessionPointer`.

Persisted slots:

- `users_by_email`: JSON object, normalized email to `accountbook.usrsys.usr.UserRecord` fields.
- `users_by_email.revision`: decimal integer, bumped on every commit of the user map.
- `current_user_email`: JSON string, the email of the logged-in user. Missing when nobody is logged in.
"""
import json
import logging
from asyncio import Lock
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional

from ..errors import ConflictError, PersistenceReadError
from ..utils.storage import DataclassRecordAdapter, RecordAdapter, SlotStorage
from .usr import UserRecord, normalize_email

USERS_SLOT = "users_by_email"
REVISION_SLOT = "users_by_email.revision"
SESSION_SLOT = "current_user_email"


def encode_user_map(
    records: Mapping[str, UserRecord], adapter: RecordAdapter[UserRecord]
) -> str:
    return json.dumps(
        {email: adapter.record2dict(record) for email, record in records.items()},
        ensure_ascii=False,
        sort_keys=True,
    )


def decode_user_map(
    raw: str, adapter: RecordAdapter[UserRecord]
) -> Dict[str, UserRecord]:
    """Decode the content of the `users_by_email` slot.

    Raise `accountbook.errors.PersistenceReadError` if `raw` is not a JSON object of user records.
    """
    try:
        doc = json.loads(raw)
    except ValueError as e:
        raise PersistenceReadError("user map is not valid JSON") from e
    if not isinstance(doc, dict):
        raise PersistenceReadError(
            "user map should be a JSON object, got {}".format(type(doc).__name__)
        )
    records: Dict[str, UserRecord] = {}
    for email, d in doc.items():
        if not isinstance(d, dict):
            raise PersistenceReadError("record of {!r} is not an object".format(email))
        try:
            records[email] = adapter.dict2record(d)
        except TypeError as e:
            raise PersistenceReadError(
                "record of {!r} does not match UserRecord".format(email)
            ) from e
    return records


@dataclass
class UserMap(object):
    """A snapshot of the whole user map, as loaded by `UserRecordStore.load`.

    Change it in memory, then give it back to `UserRecordStore.commit`.

    Attributes:
        records: `Dict[str, UserRecord]`. Records by normalized email.
        revision_tag: `Optional[str]`. The raw revision slot when the snapshot was loaded, `None` if missing.
    """

    records: Dict[str, UserRecord] = field(default_factory=dict)
    revision_tag: Optional[str] = None

    @property
    def revision(self) -> int:
        """The revision number of this snapshot, 0 for a store never written."""
        try:
            return int(self.revision_tag) if self.revision_tag else 0
        except ValueError:
            return 0

    def get(self, email: str) -> Optional[UserRecord]:
        return self.records.get(normalize_email(email))

    def put(self, email: str, record: UserRecord) -> None:
        self.records[normalize_email(email)] = record

    def remove(self, email: str) -> bool:
        return self.records.pop(normalize_email(email), None) is not None

    def __contains__(self, email: object) -> bool:
        return isinstance(email, str) and normalize_email(email) in self.records

    def __iter__(self) -> Iterator[str]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


class UserRecordStore(object):
    """The record store: user records keyed by normalized email, kept in one slot.

    Every write is a whole-map write through `commit`, which refuses to overwrite a map changed since it was loaded.
    In one process, hold `UserRecordStore.lock` across a `load`-change-`commit` sequence.

    ..note:: Reads never fail. A slot which can not be decoded is read as an empty map, and a warning is logged.

    Typical usage:

    ````python
    async with store.lock:
        users = await store.load()
        users.put(email, record)
        await store.commit(users)
    ````
    """

    __logger = logging.getLogger("accountbook.usrsys.UserRecordStore")

    def __init__(
        self,
        slot_storage: SlotStorage,
        adapter: Optional[RecordAdapter[UserRecord]] = None,
    ) -> None:
        self.slot_storage = slot_storage
        self.adapter: RecordAdapter[UserRecord] = (
            adapter if adapter else DataclassRecordAdapter(UserRecord)
        )
        self.lock = Lock()
        """`asyncio.Lock`. Serialises read-modify-write sequences on this store."""
        super().__init__()

    async def load(self) -> UserMap:
        """Read the whole user map."""
        slots = await self.slot_storage.read_many([USERS_SLOT, REVISION_SLOT])
        raw = slots[USERS_SLOT]
        records: Dict[str, UserRecord] = {}
        if raw:
            try:
                records = decode_user_map(raw, self.adapter)
            except PersistenceReadError as e:
                self.__logger.warning("user map unreadable, using an empty one: %s", e)
        return UserMap(records=records, revision_tag=slots[REVISION_SLOT])

    async def commit(
        self,
        users: UserMap,
        *,
        login_as: Optional[str] = None,
        logout: bool = False,
    ) -> UserMap:
        """Write `users` back, together with a session change.

        `login_as` sets the session pointer, `logout` removes it. They are written in the same transaction as the map,
        so nobody can see the map and the session pointer disagree.

        Return `users` with its revision updated.
        Raise `accountbook.errors.ConflictError` if the stored map changed since `users` was loaded; nothing is written then.
        Raise `accountbook.errors.DatabaseBusyError` if another handle holds the database file.
        """
        assert not (login_as and logout), "login_as and logout are exclusive"
        new_tag = str(users.revision + 1)
        values = {
            USERS_SLOT: encode_user_map(users.records, self.adapter),
            REVISION_SLOT: new_tag,
        }
        if login_as:
            values[SESSION_SLOT] = SessionPointer.encode(login_as)
        written = await self.slot_storage.write_many(
            values,
            erase=[SESSION_SLOT] if logout else [],
            expect={REVISION_SLOT: users.revision_tag},
        )
        if not written:
            self.__logger.warning(
                "user map changed since revision %d, commit refused", users.revision
            )
            raise ConflictError()
        users.revision_tag = new_tag
        return users

    async def get(self, email: str) -> Optional[UserRecord]:
        return (await self.load()).get(email)

    async def exists(self, email: str) -> bool:
        return email in await self.load()

    async def list_emails(self) -> List[str]:
        """Return all the keys, sorted."""
        return sorted(await self.load())

    async def put(self, email: str, record: UserRecord) -> None:
        """Save `record` under `email`, replacing any record there."""
        async with self.lock:
            users = await self.load()
            users.put(email, record)
            await self.commit(users)

    async def delete(self, email: str) -> bool:
        """Remove the record under `email`. Return `False` if there is none."""
        async with self.lock:
            users = await self.load()
            if not users.remove(email):
                return False
            await self.commit(users)
            return True


class SessionPointer(object):
    """The session pointer: the email of the logged-in user, or nothing.

    The pointer may name a record which no longer exists. It's not an error, readers should treat it as logged out.

    Related:

    - `UserRecordStore.commit` Which can change the pointer together with the user map.
    """

    __logger = logging.getLogger("accountbook.usrsys.SessionPointer")

    def __init__(self, slot_storage: SlotStorage) -> None:
        self.slot_storage = slot_storage
        super().__init__()

    @staticmethod
    def encode(email: str) -> str:
        return json.dumps(normalize_email(email))

    async def get(self) -> Optional[str]:
        raw = await self.slot_storage.read(SESSION_SLOT)
        if raw is None:
            return None
        try:
            email = json.loads(raw)
        except ValueError:
            email = None
        if not isinstance(email, str) or not email:
            self.__logger.warning("session pointer unreadable, treated as logged out")
            return None
        return email

    async def set(self, email: str) -> None:
        await self.slot_storage.write(SESSION_SLOT, self.encode(email))

    async def clear(self) -> bool:
        """Remove the pointer. Return `False` if nobody was logged in."""
        return await self.slot_storage.erase(SESSION_SLOT)
