# errors.py -- errors for gitcore
# Copyright (C) 2007 James Westby <jw+debian@jameswestby.net>
# Copyright (C) 2009-2012 Jelmer Vernooij <jelmer@jelmer.uk>
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitcore is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""gitcore exception classes."""

__all__ = [
    "AmbiguousShortId",
    "CorruptDataError",
    "FileFormatException",
    "FormatError",
    "InvalidUserIdentity",
    "NotCommitError",
    "NotFoundError",
    "NotGitRepository",
    "NotTreeError",
    "PackedRefsException",
    "WrongObjectException",
]

# Please do not add more errors here, but instead add them close to the code
# that raises the error.


def _describe(sha: bytes | None) -> str:
    if sha is None:
        return "<unknown>"
    if len(sha) == 20:
        return sha.hex()
    return sha.decode("ascii", "replace")


class NotFoundError(KeyError):
    """Indicates that a requested object is not in the object store."""

    def __init__(self, sha: bytes, *args: object) -> None:
        """Initialize a NotFoundError.

        Args:
            sha: The hex or binary id of the missing object.
            *args: Additional positional arguments.
        """
        self.sha = sha
        super().__init__(sha, *args)

    def __str__(self) -> str:
        return f"object {_describe(self.sha)} not found"


class FileFormatException(Exception):
    """Base class for exceptions relating to reading git file formats."""


class FormatError(FileFormatException):
    """Indicates an error parsing an object header or payload."""

    def __init__(
        self, message: str, *, sha: bytes | None = None, type_name: bytes | None = None
    ) -> None:
        """Initialize a FormatError.

        Args:
            message: Description of what is malformed.
            sha: Id of the object being parsed, if known.
            type_name: Type of the object being parsed, if known.
        """
        self.sha = sha
        self.type_name = type_name
        context = []
        if type_name is not None:
            context.append(type_name.decode("ascii", "replace"))
        if sha is not None:
            context.append(_describe(sha))
        if context:
            message = f"{message} ({' '.join(context)})"
        super().__init__(message)


class CorruptDataError(FileFormatException):
    """Indicates that stored bytes are damaged.

    Raised when compressed data fails to decompress, or when the decompressed
    content does not hash to the id it was stored under.
    """

    def __init__(self, message: str, *, sha: bytes | None = None) -> None:
        """Initialize a CorruptDataError.

        Args:
            message: Description of the failure.
            sha: Id of the damaged object, if known.
        """
        self.sha = sha
        if sha is not None:
            message = f"{message} (object {_describe(sha)})"
        super().__init__(message)


class WrongObjectException(Exception):
    """Baseclass for all the _ is not a _ exceptions on objects.

    Do not instantiate directly.

    Subclasses should define a type_name attribute that indicates what
    was expected if they were raised.
    """

    type_name: str

    def __init__(self, sha: bytes, *args: object) -> None:
        """Initialize a WrongObjectException.

        Args:
            sha: The id of the object that was not of the expected type.
            *args: Additional positional arguments.
        """
        self.sha = sha
        Exception.__init__(self, f"{_describe(sha)} is not a {self.type_name}")


class NotCommitError(WrongObjectException):
    """Indicates that the sha requested does not point to a commit."""

    type_name = "commit"


class NotTreeError(WrongObjectException):
    """Indicates that the sha requested does not point to a tree."""

    type_name = "tree"


class AmbiguousShortId(Exception):
    """The abbreviated id matches more than one object."""

    def __init__(self, prefix: bytes, options: list[bytes]) -> None:
        """Initialize AmbiguousShortId.

        Args:
            prefix: The abbreviated id that was looked up.
            options: The full ids it matched.
        """
        self.prefix = prefix
        self.options = options
        super().__init__(
            f"short object id {prefix.decode('ascii', 'replace')} is ambiguous"
        )


class NotGitRepository(Exception):
    """Indicates that no Git repository was found."""


class InvalidUserIdentity(Exception):
    """User identity is not of the format 'user <email>'."""

    def __init__(self, identity: str) -> None:
        """Initialize InvalidUserIdentity.

        Args:
            identity: The offending identity string.
        """
        self.identity = identity
        super().__init__(f"invalid user identity: {identity!r}")


class PackedRefsException(FileFormatException):
    """Indicates an error parsing a packed-refs file."""
