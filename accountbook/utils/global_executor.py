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

"""Utilities use thread pool executors, here is one to be shared.

Password hashing runs here, so it does not queue behind database operations.
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

_global_thread_pool_executor: Optional[ThreadPoolExecutor] = None


def get() -> ThreadPoolExecutor:
    """Return the shared thread pool executor, create it if it does not exists."""
    global _global_thread_pool_executor
    if not _global_thread_pool_executor:
        _global_thread_pool_executor = ThreadPoolExecutor(
            None, "accountbook.utils.global_thread_pool_executor"
        )
    return _global_thread_pool_executor
