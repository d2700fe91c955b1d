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

"""The abstract storage layer of AccountBook.

The abstract storage layer of AccountBook is centred on the concept of Slot: one named value in a key-value database.
A slot holds a `str`, usually a serialized document, and is read and written as a whole (see `SlotStorage`).
There is no partial update: a component which keeps a composite value in a slot reads the whole value, changes it in memory, then writes the whole value back.

Because several slots often have to change together (say a record map and the pointer to one of its records), `SlotStorage.write_many` writes and erases a group of slots in one transaction.
It can also check the current value of some slots before writing anything, which is the building block for optimistic concurrency: callers keep a revision slot and refuse to write if somebody else bumped it.

We often want to work with a specific type rather than a `dict`. This module provides `RecordAdapter` to convert between the two, and `DataclassRecordAdapter` as the implementation for `dataclasses.dataclass`, which is how most of the data structures in AccountBook are declared.
"""
import asyncio
import dataclasses
from concurrent.futures import ThreadPoolExecutor
from typing import (
    Any,
    Awaitable,
    Dict,
    Generic,
    Iterable,
    Mapping,
    Optional,
    Type,
    TypeVar,
)

from unqlite import UnQLite, UnQLiteError

from ..errors import DatabaseBusyError

T = TypeVar("T")


class SlotStorage(object):
    """A protocol type which describes basic operations on named slots.

    A missing slot reads as `None`.
    """

    def read(self, name: str) -> Awaitable[Optional[str]]:
        """Read the value of slot `name`."""
        ...

    def read_many(self, names: Iterable[str]) -> Awaitable[Dict[str, Optional[str]]]:
        """Read several slots at once, so the values are consistent with each other."""
        ...

    def write(self, name: str, value: str) -> Awaitable[None]:
        """Replace the value of slot `name`."""
        ...

    def erase(self, name: str) -> Awaitable[bool]:
        """Remove slot `name`. Return `False` if the slot does not exist."""
        ...

    def write_many(
        self,
        values: Mapping[str, str],
        *,
        erase: Iterable[str] = (),
        expect: Optional[Mapping[str, Optional[str]]] = None
    ) -> Awaitable[bool]:
        """Write `values` and erase the slots in `erase` in one transaction.

        If `expect` is given, every slot named in it must currently hold the expected value (`None` for a missing slot).
        Otherwise nothing is written and the result is `False`.
        """
        ...


class RecordAdapter(Generic[T]):
    """Adapter between a record type and `dict`.
    Implement `record2dict` and `dict2record` to transform the data between record and dict.
    """

    def record2dict(self, record: T) -> Dict[str, Any]:
        """Build a `dict` from `record`."""
        ...

    def dict2record(self, d: Dict[str, Any]) -> T:
        """Build a record from a `d`."""
        ...


class DataclassRecordAdapter(RecordAdapter[T]):
    """A `RecordAdapter` for `dataclasses`.

    ..warning:: the checking is performed by dataclass itself. `dataclasses` does not check the actual data type, but checking the fields given.
        Unknown or missing fields raise `TypeError`.
    """

    def __init__(self, datacls: Type[T]) -> None:
        assert dataclasses.is_dataclass(datacls), "datacls should be a dataclass"
        self.datacls = datacls
        super().__init__()

    def dict2record(self, d: Dict[str, Any]) -> T:
        return self.datacls(**d)  # type: ignore # it should work

    def record2dict(self, record: T) -> Dict[str, Any]:
        return dataclasses.asdict(record)


class UnQLiteSlotStorage(SlotStorage):
    """An implementation of `SlotStorage` for `unqlite.UnQLite` key-value store.

    .. note:: This implementation uses a thread pool to avoid main thread blocking.
        The API of `unqlite-python` is synchronous. To prevent main thread blocking it is wrapped with a thread pool executor.
        The executor has only one worker, so the operations on the database handle never overlap.

    .. note:: UnQLite locks the database file. When another handle (in this or another process) holds the lock,
        the asynchronous methods raise `accountbook.errors.DatabaseBusyError` instead of `unqlite.UnQLiteError`.
        The `*_sync` methods let `unqlite.UnQLiteError` through.

    Related:

    - [unqlite-python API documentation](https://unqlite-python.readthedocs.io/en/latest/api.html)
    """

    def __init__(self, instance: UnQLite) -> None:
        self.executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="accountbook.utils.storage.UnQLiteSlotStorage.executor",
        )
        self.instance = instance
        super().__init__()

    def _run(self, fn, *args) -> Awaitable[Any]:
        return asyncio.get_running_loop().run_in_executor(
            self.executor, self._call, fn, *args
        )

    @staticmethod
    def _call(fn, *args) -> Any:
        try:
            return fn(*args)
        except UnQLiteError as e:
            raise DatabaseBusyError() from e

    @staticmethod
    def _decode(value: Any) -> str:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def read_sync(self, name: str) -> Optional[str]:
        """Read the slot without thread pool."""
        if not self.instance.exists(name):
            return None
        return self._decode(self.instance.fetch(name))

    def read(self, name: str) -> Awaitable[Optional[str]]:
        return self._run(self.read_sync, name)

    def read_many_sync(self, names: Iterable[str]) -> Dict[str, Optional[str]]:
        return {name: self.read_sync(name) for name in names}

    def read_many(self, names: Iterable[str]) -> Awaitable[Dict[str, Optional[str]]]:
        return self._run(self.read_many_sync, list(names))

    def write_sync(self, name: str, value: str) -> None:
        """Write the slot without thread pool."""
        with self.instance.transaction():
            self.instance.store(name, value)

    def write(self, name: str, value: str) -> Awaitable[None]:
        return self._run(self.write_sync, name, value)

    def erase_sync(self, name: str) -> bool:
        if not self.instance.exists(name):
            return False
        with self.instance.transaction():
            self.instance.delete(name)
        return True

    def erase(self, name: str) -> Awaitable[bool]:
        return self._run(self.erase_sync, name)

    def write_many_sync(
        self,
        values: Mapping[str, str],
        erase: Iterable[str],
        expect: Optional[Mapping[str, Optional[str]]],
    ) -> bool:
        """Write and erase slots in one transaction, without thread pool."""
        with self.instance.transaction():
            if expect:
                for name, expected in expect.items():
                    if self.read_sync(name) != expected:
                        return False
            for name, value in values.items():
                self.instance.store(name, value)
            for name in erase:
                if self.instance.exists(name):
                    self.instance.delete(name)
        return True

    def write_many(
        self,
        values: Mapping[str, str],
        *,
        erase: Iterable[str] = (),
        expect: Optional[Mapping[str, Optional[str]]] = None
    ) -> Awaitable[bool]:
        return self._run(
            self.write_many_sync,
            dict(values),
            list(erase),
            dict(expect) if expect is not None else None,
        )

    def close(self) -> None:
        """Wait for pending operations, then release the executor.

        ..note:: The database itself is not closed here, it belongs to whoever opened it.
        """
        self.executor.shutdown(wait=True)
