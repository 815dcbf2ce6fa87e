# Copyright (c) 2023-2024 Jan Malakhovski <oxij@oxij.org>
#
# This file is a part of `hoardy-sanitize` project.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program. If not, see <http://www.gnu.org/licenses/>.

"""Exceptions raised by `hoardy_sanitize`.

Internal invariant violations raise `kisstdlib`'s `CatastrophicFailure`,
everything a caller can cause raises a `SanitizeError`.
"""

from kisstdlib.exceptions import *

class SanitizeError(Failure):
    """Base class of all errors caused by inputs or misuse of this package."""

def test_sanitize_error() -> None:
    assert str(SanitizeError("plain")) == "plain"
    assert str(SanitizeError("got `%s`, expected %d", "x", 1)) == "got `x`, expected 1"
    assert isinstance(SanitizeError("x"), CatastrophicFailure)

    exc = SanitizeError("element `%s` is not allowed", "script")
    exc.elaborate("while building a sanitizer")
    assert str(exc) == "while building a sanitizer: element `script` is not allowed"
