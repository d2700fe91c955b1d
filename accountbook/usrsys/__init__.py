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

"""The user system for AccountBook.

User system process all the things about users:

- User records and the record store (`usr`, `storage`)
- Rules for submitted fields (`policy`)
- Authentication (`auth`)
- The account lifecycle (`account`)

## The record store and the session pointer
`storage.UserRecordStore` keeps every `usr.UserRecord` in one map keyed by normalized email.
`storage.SessionPointer` keeps the email of the logged-in user. It lives next to the map but is shorter-lived: logging out or deleting the account removes it.
When a user changes their email, the record moves to a new key and the pointer follows in the same commit.
"""
