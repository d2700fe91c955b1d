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

import json

import pytest
from unqlite import UnQLiteError

from accountbook.errors import ConflictError, DatabaseBusyError, PersistenceReadError
from accountbook.usrsys.storage import (
    REVISION_SLOT,
    SESSION_SLOT,
    USERS_SLOT,
    decode_user_map,
)
from accountbook.usrsys.usr import UserRecord
from accountbook.utils.storage import DataclassRecordAdapter, UnQLiteSlotStorage


class LockedDatabase(object):
    """Stands in for an `UnQLite` handle whose file is locked by someone else."""

    def __getattr__(self, name):
        def locked(*args, **kwargs):
            # -76 is UNQLITE_LOCKERR
            raise UnQLiteError(
                "Another process or thread hold the requested lock", -76
            )

        return locked


class TestUnQLiteSlotStorage:
    @pytest.mark.asyncio
    async def test_missing_slot_reads_as_none(self, slot_storage):
        assert await slot_storage.read("nothing") is None
        assert await slot_storage.read_many(["a", "b"]) == {"a": None, "b": None}

    @pytest.mark.asyncio
    async def test_write_then_read(self, slot_storage):
        await slot_storage.write("greeting", "héllo")
        assert await slot_storage.read("greeting") == "héllo"

    @pytest.mark.asyncio
    async def test_erase_reports_if_slot_existed(self, slot_storage):
        await slot_storage.write("x", "1")
        assert await slot_storage.erase("x") is True
        assert await slot_storage.erase("x") is False
        assert await slot_storage.read("x") is None

    @pytest.mark.asyncio
    async def test_write_many_writes_and_erases_together(self, slot_storage):
        await slot_storage.write("old", "1")
        written = await slot_storage.write_many({"a": "1", "b": "2"}, erase=["old"])
        assert written
        assert await slot_storage.read_many(["a", "b", "old"]) == {
            "a": "1",
            "b": "2",
            "old": None,
        }

    @pytest.mark.asyncio
    async def test_write_many_refuses_on_unexpected_value(self, slot_storage):
        await slot_storage.write("rev", "2")
        written = await slot_storage.write_many(
            {"a": "1"}, erase=["rev"], expect={"rev": "1"}
        )
        assert not written
        assert await slot_storage.read("a") is None
        assert await slot_storage.read("rev") == "2"

    @pytest.mark.asyncio
    async def test_write_many_expects_missing_slot_as_none(self, slot_storage):
        assert await slot_storage.write_many({"a": "1"}, expect={"rev": None})
        assert not await slot_storage.write_many({"a": "2"}, expect={"a": None})
        assert await slot_storage.read("a") == "1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation",
        [
            lambda storage: storage.read("slot"),
            lambda storage: storage.read_many(["slot"]),
            lambda storage: storage.write("slot", "value"),
            lambda storage: storage.erase("slot"),
            lambda storage: storage.write_many({"slot": "value"}),
        ],
    )
    async def test_lock_failure_is_database_busy(self, operation):
        storage = UnQLiteSlotStorage(LockedDatabase())
        try:
            with pytest.raises(DatabaseBusyError) as info:
                await operation(storage)
            assert isinstance(info.value.__cause__, UnQLiteError)
        finally:
            storage.close()


class TestUserRecordStore:
    @pytest.mark.asyncio
    async def test_put_then_get_returns_equal_record(self, store, make_record):
        record = make_record()
        await store.put("ana@test.com", record)
        assert await store.get("ana@test.com") == record

    @pytest.mark.asyncio
    async def test_keys_are_normalized(self, store, make_record):
        await store.put("  Ana@Test.COM ", make_record())
        assert await store.exists("ana@test.com")
        assert await store.get("ANA@TEST.COM") is not None
        assert await store.list_emails() == ["ana@test.com"]

    @pytest.mark.asyncio
    async def test_delete(self, store, make_record):
        await store.put("ana@test.com", make_record())
        assert await store.delete("ana@test.com") is True
        assert not await store.exists("ana@test.com")
        assert await store.get("ana@test.com") is None
        assert await store.delete("ana@test.com") is False

    @pytest.mark.asyncio
    async def test_list_emails_is_sorted(self, store, make_record):
        for email in ["zoe@test.com", "ana@test.com", "mia@test.com"]:
            await store.put(email, make_record(email=email))
        assert await store.list_emails() == [
            "ana@test.com",
            "mia@test.com",
            "zoe@test.com",
        ]

    @pytest.mark.asyncio
    async def test_map_is_persisted_as_one_json_blob(
        self, store, slot_storage, make_record
    ):
        await store.put("ana@test.com", make_record())
        doc = json.loads(await slot_storage.read(USERS_SLOT))
        assert list(doc) == ["ana@test.com"]
        assert doc["ana@test.com"]["email"] == "ana@test.com"
        assert doc["ana@test.com"]["password"] == "Abcd123!"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            "[1, 2, 3]",
            '"a string"',
            '{"ana@test.com": 42}',
            '{"ana@test.com": {"email": "ana@test.com"}}',
        ],
    )
    async def test_corrupt_map_reads_as_empty(self, store, slot_storage, raw):
        await slot_storage.write(USERS_SLOT, raw)
        users = await store.load()
        assert len(users) == 0
        assert await store.get("ana@test.com") is None
        assert not await store.exists("ana@test.com")

    @pytest.mark.asyncio
    async def test_corrupt_map_can_be_overwritten(
        self, store, slot_storage, make_record
    ):
        await slot_storage.write(USERS_SLOT, "{not json")
        await store.put("ana@test.com", make_record())
        assert await store.list_emails() == ["ana@test.com"]

    @pytest.mark.asyncio
    async def test_every_commit_bumps_revision(self, store, make_record):
        assert (await store.load()).revision == 0
        await store.put("ana@test.com", make_record())
        assert (await store.load()).revision == 1
        await store.delete("ana@test.com")
        assert (await store.load()).revision == 2

    @pytest.mark.asyncio
    async def test_commit_on_stale_snapshot_raises_conflict(
        self, store, make_record
    ):
        stale = await store.load()
        await store.put("ana@test.com", make_record())
        stale.put("bob@test.com", make_record(email="bob@test.com"))
        with pytest.raises(ConflictError):
            await store.commit(stale)
        assert await store.list_emails() == ["ana@test.com"]

    @pytest.mark.asyncio
    async def test_commit_can_move_session_pointer(
        self, store, session, make_record
    ):
        users = await store.load()
        users.put("ana@test.com", make_record())
        await store.commit(users, login_as="ana@test.com")
        assert await session.get() == "ana@test.com"
        users.remove("ana@test.com")
        await store.commit(users, logout=True)
        assert await session.get() is None


class TestDecodeUserMap:
    def test_decode_raises_persistence_read_error(self):
        with pytest.raises(PersistenceReadError):
            decode_user_map("nope", DataclassRecordAdapter(UserRecord))


class TestSessionPointer:
    @pytest.mark.asyncio
    async def test_empty_by_default(self, session):
        assert await session.get() is None

    @pytest.mark.asyncio
    async def test_set_get_clear(self, session):
        await session.set("Ana@Test.com")
        assert await session.get() == "ana@test.com"
        assert await session.clear() is True
        assert await session.get() is None
        assert await session.clear() is False

    @pytest.mark.asyncio
    async def test_unreadable_pointer_is_logged_out(self, session, slot_storage):
        await slot_storage.write(SESSION_SLOT, "{broken")
        assert await session.get() is None

    @pytest.mark.asyncio
    async def test_pointer_is_independent_of_revision(self, session, slot_storage):
        await session.set("ana@test.com")
        assert await slot_storage.read(REVISION_SLOT) is None
