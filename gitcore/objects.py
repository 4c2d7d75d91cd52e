# objects.py -- Access to base git objects
# Copyright (C) 2007 James Westby <jw+debian@jameswestby.net>
# Copyright (C) 2008-2013 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Access to base git objects.

Every object is stored framed as ``<type> <decimal length>\\0<payload>``; the
SHA-1 of the framed bytes is the object's id and the zlib-compressed framed
bytes are what ends up on disk.

Objects are immutable: build a new one to change anything. The id is computed
on first use and cached.
"""

__all__ = [
    "BLOB_MODE",
    "EXECUTABLE_MODE",
    "HEX_LENGTH",
    "OBJECT_CLASSES",
    "RAW_LENGTH",
    "S_IFGITLINK",
    "SYMLINK_MODE",
    "TREE_MODE",
    "Blob",
    "Commit",
    "ObjectID",
    "RawObjectID",
    "ShaFile",
    "Tree",
    "TreeEntry",
    "compress",
    "decompress",
    "format_timezone",
    "format_tree_entry",
    "frame_object",
    "hash_object",
    "hex_to_filename",
    "hex_to_sha",
    "key_entry",
    "object_class",
    "object_header",
    "parse_timezone",
    "parse_tree",
    "pretty_format_tree_entry",
    "serialize_tree",
    "sha_to_hex",
    "sorted_tree_items",
    "unframe_object",
    "valid_hexsha",
]

import binascii
import hashlib
import os
import posixpath
import stat
import zlib
from collections.abc import Iterable, Iterator, Mapping
from typing import NamedTuple, NewType

from .errors import CorruptDataError, FormatError

# Hex-encoded object id (40 ASCII bytes)
ObjectID = NewType("ObjectID", bytes)
# Binary object id (20 bytes)
RawObjectID = NewType("RawObjectID", bytes)

HEX_LENGTH = 40
RAW_LENGTH = 20

# Header fields for commits
_TREE_HEADER = b"tree"
_PARENT_HEADER = b"parent"
_AUTHOR_HEADER = b"author"
_COMMITTER_HEADER = b"committer"
_ENCODING_HEADER = b"encoding"

S_IFGITLINK = 0o160000

BLOB_MODE = stat.S_IFREG | 0o644
EXECUTABLE_MODE = stat.S_IFREG | 0o755
SYMLINK_MODE = stat.S_IFLNK
TREE_MODE = stat.S_IFDIR

_VALID_TREE_MODES = frozenset(
    [BLOB_MODE, EXECUTABLE_MODE, SYMLINK_MODE, TREE_MODE, S_IFGITLINK]
)

_DEFAULT_COMPRESSION_LEVEL = -1


def S_ISGITLINK(m: int) -> bool:
    """Check if a mode indicates a submodule.

    Args:
      m: Mode to check
    Returns: a ``boolean``
    """
    return stat.S_IFMT(m) == S_IFGITLINK


def sha_to_hex(sha: RawObjectID) -> ObjectID:
    """Takes a string and returns the hex of the sha within."""
    hexsha = binascii.hexlify(sha)
    assert len(hexsha) == HEX_LENGTH, f"Incorrect length of sha1 string: {sha!r}"
    return ObjectID(hexsha)


def hex_to_sha(hex: bytes | str) -> RawObjectID:
    """Takes a hex sha and returns a binary sha."""
    assert len(hex) == HEX_LENGTH, f"Incorrect length of hexsha: {hex!r}"
    try:
        return RawObjectID(binascii.unhexlify(hex))
    except (TypeError, binascii.Error) as exc:
        if not isinstance(hex, bytes):
            raise
        raise ValueError(exc.args[0]) from exc


def valid_hexsha(hex: bytes | str) -> bool:
    """Check if a string is a valid full hex object id."""
    if len(hex) != HEX_LENGTH:
        return False
    try:
        binascii.unhexlify(hex)
    except (TypeError, binascii.Error):
        return False
    else:
        return True


def to_hexsha(sha: bytes) -> ObjectID:
    """Normalize a hex or binary object id to its hex form.

    Raises:
      ValueError: if `sha` is neither a 40 character hex id nor 20 raw bytes
    """
    if len(sha) == HEX_LENGTH and valid_hexsha(sha):
        return ObjectID(sha.lower())
    if len(sha) == RAW_LENGTH:
        return sha_to_hex(RawObjectID(sha))
    raise ValueError(f"Invalid object id {sha!r}")


def hex_to_filename(path: str, hex: bytes) -> str:
    """Takes a hex sha and returns its filename relative to the given path."""
    # os.path.join accepts bytes or unicode, but all args must be of the same
    # type. Make sure that hex which is expected to be bytes, is the same type
    # as path.
    hex_str = hex.decode("ascii")
    dir = hex_str[:2]
    file = hex_str[2:]
    # Check from object dir
    return os.path.join(path, dir, file)


def filename_to_hex(filename: str) -> ObjectID:
    """Takes an object filename and returns its corresponding hex sha."""
    # grab the last (up to) two path components
    names = filename.rsplit(os.path.sep, 2)[-2:]
    errmsg = f"Invalid object filename: {filename}"
    assert len(names) == 2, errmsg
    base, rest = names
    assert len(base) == 2 and len(rest) == HEX_LENGTH - 2, errmsg
    hex_bytes = (base + rest).encode("ascii")
    hex_to_sha(hex_bytes)
    return ObjectID(hex_bytes)


def object_header(type_name: bytes, length: int) -> bytes:
    """Return an object header for the given type name and content length."""
    return type_name + b" " + str(length).encode("ascii") + b"\0"


def frame_object(type_name: bytes, payload: bytes) -> bytes:
    """Prepend the type/length header to an object payload.

    Args:
      type_name: Object type tag, e.g. ``b"blob"``
      payload: Raw object contents
    Returns: The framed bytes that are hashed and compressed
    """
    return object_header(type_name, len(payload)) + payload


def hash_object(framed: bytes) -> ObjectID:
    """Compute the id of framed object bytes.

    The hash covers the header too, so identical payloads of different types
    get different ids.
    """
    return ObjectID(hashlib.sha1(framed).hexdigest().encode("ascii"))


def unframe_object(framed: bytes, sha: bytes | None = None) -> tuple[bytes, bytes]:
    """Split framed object bytes into type name and payload.

    Args:
      framed: Header followed by payload
      sha: Id of the object, used in error messages only
    Returns: Tuple of (type name, payload)
    Raises:
      FormatError: if the header is malformed, names an unknown type, or
        declares a length different from the payload length
    """
    end = framed.find(b"\0")
    if end == -1:
        raise FormatError("object header is not NUL-terminated", sha=sha)
    header = framed[:end]
    try:
        type_name, size_text = header.split(b" ", 1)
    except ValueError as exc:
        raise FormatError(f"malformed object header {header[:32]!r}", sha=sha) from exc
    object_class(type_name, sha=sha)
    if not size_text.isdigit() or (len(size_text) > 1 and size_text[:1] == b"0"):
        raise FormatError(
            f"invalid object length {size_text[:32]!r}", sha=sha, type_name=type_name
        )
    payload = framed[end + 1 :]
    if int(size_text) != len(payload):
        raise FormatError(
            f"object length mismatch: header says {int(size_text)}, "
            f"payload has {len(payload)} bytes",
            sha=sha,
            type_name=type_name,
        )
    return type_name, payload


def compress(data: bytes, level: int = _DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Compress bytes with zlib.

    Args:
      data: Bytes to compress (may be empty)
      level: zlib compression level, -1 for the zlib default
    """
    compobj = zlib.compressobj(level)
    return compobj.compress(data) + compobj.flush()


def decompress(data: bytes) -> bytes:
    """Decompress a complete zlib stream.

    Raises:
      CorruptDataError: if the data is not a valid zlib stream, is truncated,
        or has trailing bytes after the end of the stream
    """
    dcomp = zlib.decompressobj()
    try:
        dcomped = dcomp.decompress(data)
        dcomped += dcomp.flush()
    except zlib.error as exc:
        raise CorruptDataError(f"invalid compressed data: {exc}") from exc
    if not dcomp.eof:
        raise CorruptDataError("compressed data is truncated")
    if dcomp.unused_data:
        raise CorruptDataError(
            f"{len(dcomp.unused_data)} bytes of trailing data after compressed stream"
        )
    return dcomped


def object_class(type_name: bytes | str, sha: bytes | None = None) -> type["ShaFile"]:
    """Get the object class corresponding to the given type name.

    Args:
      type_name: A type name such as ``b"blob"``
      sha: Id of the object, used in error messages only
    Returns: The ShaFile subclass corresponding to the given type.
    Raises:
      FormatError: if the type is not one of blob, tree or commit
    """
    if isinstance(type_name, str):
        type_name = type_name.encode("ascii")
    try:
        return _TYPE_MAP[type_name]
    except KeyError as exc:
        raise FormatError(f"unknown object type {type_name[:32]!r}", sha=sha) from exc


class ShaFile:
    """A git SHA file.

    Subclasses define ``type_name`` and implement ``_serialize`` (fields to
    payload chunks) and ``_deserialize`` (payload to fields).
    """

    type_name: bytes

    _chunked_text: list[bytes]
    _sha: ObjectID | None

    def _init_from_chunks(self, chunks: list[bytes]) -> None:
        self._chunked_text = chunks
        self._sha = None

    @classmethod
    def _from_payload(cls, payload: bytes, sha: bytes | None = None) -> "ShaFile":
        obj = cls.__new__(cls)
        obj._deserialize(payload, sha)
        obj._init_from_chunks([payload])
        return obj

    def _deserialize(self, payload: bytes, sha: bytes | None) -> None:
        raise NotImplementedError(self._deserialize)

    def _serialize(self) -> list[bytes]:
        raise NotImplementedError(self._serialize)

    @staticmethod
    def from_raw_string(
        type_name: bytes | str, string: bytes, sha: bytes | None = None
    ) -> "ShaFile":
        """Creates an object of the indicated type from the raw string given.

        Args:
          type_name: The type name of the object.
          string: The raw uncompressed contents.
          sha: Optional known id of the object, used in error messages.
        """
        return object_class(type_name, sha=sha)._from_payload(string, sha)

    @staticmethod
    def from_framed(framed: bytes, sha: bytes | None = None) -> "ShaFile":
        """Create an object from header-framed, uncompressed bytes."""
        type_name, payload = unframe_object(framed, sha=sha)
        return ShaFile.from_raw_string(type_name, payload, sha=sha)

    @staticmethod
    def from_compressed(data: bytes, sha: bytes | None = None) -> "ShaFile":
        """Create an object from its on-disk (compressed, framed) form.

        Args:
          data: Compressed framed bytes
          sha: The id the data was stored under. When given, the decoded
            object must hash to it.
        Raises:
          CorruptDataError: if the data does not decompress or does not
            match `sha`
          FormatError: if the decompressed data is not a valid object
        """
        try:
            framed = decompress(data)
        except CorruptDataError as exc:
            raise CorruptDataError(str(exc), sha=sha) from exc
        obj = ShaFile.from_framed(framed, sha=sha)
        if sha is not None and obj.id != to_hexsha(sha):
            raise CorruptDataError(
                f"content hashes to {obj.id.decode('ascii')}", sha=sha
            )
        return obj

    def as_raw_chunks(self) -> list[bytes]:
        """Return chunks with serialization of the object."""
        return self._chunked_text

    def as_raw_string(self) -> bytes:
        """Return raw string with serialization of the object."""
        return b"".join(self._chunked_text)

    def as_framed_string(self) -> bytes:
        """Return the header-framed, uncompressed serialization."""
        return frame_object(self.type_name, self.as_raw_string())

    def as_legacy_object(
        self, compression_level: int = _DEFAULT_COMPRESSION_LEVEL
    ) -> bytes:
        """Return the object as it is stored on disk (framed, compressed)."""
        return compress(self.as_framed_string(), compression_level)

    def as_pretty_string(self) -> str:
        """Return a string representing this object, fit for display."""
        return self.as_raw_string().decode("utf-8", "replace")

    def raw_length(self) -> int:
        """Returns the length of the raw string of this object."""
        return sum(map(len, self._chunked_text))

    @property
    def id(self) -> ObjectID:
        """The hex SHA of this object."""
        if self._sha is None:
            self._sha = hash_object(self.as_framed_string())
        return self._sha

    @property
    def raw_id(self) -> RawObjectID:
        """The binary SHA of this object."""
        return hex_to_sha(self.id)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.id.decode('ascii')}>"

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        """Return True if the SHAs of the two objects match."""
        return isinstance(other, ShaFile) and self.id == other.id

    def __ne__(self, other: object) -> bool:
        """Check whether this object does not match the other."""
        return not self == other


class Blob(ShaFile):
    """A Git Blob object."""

    type_name = b"blob"

    def __init__(self, data: bytes = b"") -> None:
        """Create a blob holding `data`."""
        if not isinstance(data, bytes):
            raise TypeError(f"Blob data must be bytes, not {type(data).__name__}")
        self._init_from_chunks([data])

    @classmethod
    def from_string(cls, string: bytes) -> "Blob":
        """Create a blob from a string."""
        return cls(string)

    def _deserialize(self, payload: bytes, sha: bytes | None) -> None:
        pass

    def _serialize(self) -> list[bytes]:
        return self._chunked_text

    @property
    def data(self) -> bytes:
        """The text contained within the blob object."""
        return self.as_raw_string()


class TreeEntry(NamedTuple):
    """Named tuple encapsulating a single tree entry."""

    path: bytes
    mode: int
    sha: ObjectID

    def in_path(self, path: bytes) -> "TreeEntry":
        """Return a copy of this entry with the given path prepended."""
        if not isinstance(self.path, bytes):
            raise TypeError(f"Expected bytes for path, got {path!r}")
        return TreeEntry(posixpath.join(path, self.path), self.mode, self.sha)


def parse_tree(
    text: bytes, sha: bytes | None = None
) -> Iterator[tuple[bytes, int, ObjectID]]:
    """Parse a tree text.

    Args:
      text: Serialized text to parse
      sha: Id of the tree, used in error messages only
    Returns: iterator of tuples of (name, mode, sha)

    Raises:
      FormatError: if the object was malformed in some way
    """
    count = 0
    length = len(text)
    while count < length:
        mode_end = text.find(b" ", count)
        if mode_end == -1:
            raise FormatError(
                f"tree entry at offset {count} has no mode separator",
                sha=sha,
                type_name=Tree.type_name,
            )
        mode_text = text[count:mode_end]
        if not mode_text or mode_text.strip(b"01234567"):
            raise FormatError(
                f"invalid mode {mode_text[:16]!r}", sha=sha, type_name=Tree.type_name
            )
        mode = int(mode_text, 8)
        name_end = text.find(b"\0", mode_end)
        if name_end == -1:
            raise FormatError(
                f"tree entry at offset {count} has no name terminator",
                sha=sha,
                type_name=Tree.type_name,
            )
        name = text[mode_end + 1 : name_end]
        count = name_end + 1 + RAW_LENGTH
        if count > length:
            raise FormatError(
                f"tree entry {name!r} has a truncated object id",
                sha=sha,
                type_name=Tree.type_name,
            )
        raw_sha = RawObjectID(text[name_end + 1 : count])
        yield (name, mode, sha_to_hex(raw_sha))


def serialize_tree(items: Iterable[tuple[bytes, int, ObjectID]]) -> Iterator[bytes]:
    """Serialize the items in a tree to a text.

    Args:
      items: Sorted iterable over (name, mode, sha) tuples
    Returns: Serialized tree text as chunks
    """
    for name, mode, hexsha in items:
        yield (
            (f"{mode:04o}").encode("ascii") + b" " + name + b"\0" + hex_to_sha(hexsha)
        )


def key_entry(entry: tuple[bytes, tuple[int, ObjectID]]) -> bytes:
    """Sort key for tree entry.

    Args:
      entry: (name, value) tuple
    """
    (name, (mode, _sha)) = entry
    if stat.S_ISDIR(mode):
        name += b"/"
    return name


def sorted_tree_items(
    entries: Mapping[bytes, tuple[int, ObjectID]],
) -> Iterator[TreeEntry]:
    """Iterate over a tree entries dictionary.

    Args:
      entries: Dictionary mapping names to (mode, sha) tuples
    Returns: Iterator over (name, mode, hexsha) in the order git serializes
      them: by name, with directories compared as if their name ended in "/".
    """
    for name, entry in sorted(entries.items(), key=key_entry):
        mode, hexsha = entry
        mode = int(mode)
        if not isinstance(hexsha, bytes):
            raise TypeError(f"Expected bytes for SHA, got {hexsha!r}")
        yield TreeEntry(name, mode, hexsha)


def format_tree_entry(name: bytes, mode: int, hexsha: bytes) -> bytes:
    """Format a tree entry as ``git ls-tree`` prints it.

    Args:
      name: Name of the directory entry
      mode: Mode of entry
      hexsha: Hexsha of the referenced object
    Returns: ``<mode> <type> <sha>\\t<name>`` line, with the name left as is
    """
    if stat.S_ISDIR(mode):
        kind = b"tree"
    elif S_ISGITLINK(mode):
        kind = b"commit"
    else:
        kind = b"blob"
    return b"%06o %s %s\t%s\n" % (mode, kind, hexsha, name)


def pretty_format_tree_entry(
    name: bytes, mode: int, hexsha: bytes, encoding: str = "utf-8"
) -> str:
    """Pretty format tree entry.

    Args:
      name: Name of the directory entry
      mode: Mode of entry
      hexsha: Hexsha of the referenced object
      encoding: Character encoding for the name
    Returns: string describing the tree entry
    """
    return format_tree_entry(name, mode, hexsha).decode(encoding, "replace")



class Tree(ShaFile):
    """A Git tree object."""

    type_name = b"tree"

    _entries: dict[bytes, tuple[int, ObjectID]]
    _order: list[TreeEntry]

    def __init__(self, entries: Iterable[tuple[bytes, int, bytes]] = ()) -> None:
        """Create a tree from (name, mode, sha) tuples, in any order.

        Raises:
          ValueError: if a name occurs twice
        """
        self._entries = {}
        for name, mode, sha in entries:
            if name in self._entries:
                raise ValueError(f"duplicate tree entry {name!r}")
            self._entries[name] = (mode, to_hexsha(sha))
        self._order = list(sorted_tree_items(self._entries))
        self._init_from_chunks(self._serialize())

    def _deserialize(self, payload: bytes, sha: bytes | None) -> None:
        self._order = [TreeEntry(*item) for item in parse_tree(payload, sha=sha)]
        self._entries = {entry.path: (entry.mode, entry.sha) for entry in self._order}

    def _serialize(self) -> list[bytes]:
        return list(serialize_tree(self._order))

    def __contains__(self, name: bytes) -> bool:
        return name in self._entries

    def __getitem__(self, name: bytes) -> tuple[int, ObjectID]:
        return self._entries[name]

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[bytes]:
        return (entry.path for entry in self._order)

    def iteritems(self) -> Iterator[TreeEntry]:
        """Iterate over entries in the order in which they are stored.

        Returns: Iterator over (name, mode, sha) tuples
        """
        return iter(self._order)

    def items(self) -> list[TreeEntry]:
        """Return the sorted entries in this tree.

        Returns: List with (name, mode, sha) tuples
        """
        return list(self._order)

    def check(self) -> None:
        """Check this object for internal consistency.

        Raises:
          FormatError: if the object is malformed in some way
        """
        last = None
        for name, mode, _sha in self._order:
            if name in (b"", b".", b"..") or b"/" in name or b"\0" in name:
                raise FormatError(
                    f"invalid name {name!r}", sha=self.id, type_name=self.type_name
                )
            if mode not in _VALID_TREE_MODES:
                raise FormatError(
                    f"invalid mode {mode:06o} for {name!r}",
                    sha=self.id,
                    type_name=self.type_name,
                )
            key = key_entry((name, (mode, _sha)))
            if last is not None:
                if key == last:
                    raise FormatError(
                        f"duplicate entry {name!r}",
                        sha=self.id,
                        type_name=self.type_name,
                    )
                if key < last:
                    raise FormatError(
                        f"entries not sorted at {name!r}",
                        sha=self.id,
                        type_name=self.type_name,
                    )
            last = key

    def as_pretty_string(self) -> str:
        """Return a string representation of this tree.

        Returns: one ``<mode> <type> <sha>\\t<name>`` line per entry
        """
        return "".join(
            pretty_format_tree_entry(name, mode, hexsha)
            for name, mode, hexsha in self._order
        )


def parse_timezone(text: bytes) -> tuple[int, bool]:
    """Parse a timezone text fragment (e.g. '+0100').

    Args:
      text: Text to parse.
    Returns: Tuple with timezone as seconds difference to UTC
        and a boolean indicating whether this was a UTC timezone
        prefixed with a negative sign (-0000).
    Raises:
      ValueError: if the text is not a valid timezone
    """
    # cgit parses the first character as the sign, and the rest
    #  as an integer (using strtol), which could also be negative.
    #  We do the same for compatibility. See #697828.
    if text[:1] not in (b"+", b"-"):
        raise ValueError(f"Timezone must start with + or - ({text!r})")
    sign = text[:1]
    offset = int(text[1:])
    if sign == b"-":
        offset = -offset
    unnecessary_negative_timezone = offset >= 0 and sign == b"-"
    signum = ((offset < 0) and -1) or 1
    offset = abs(offset)
    hours = int(offset / 100)
    minutes = offset % 100
    return (
        signum * (hours * 3600 + minutes * 60),
        unnecessary_negative_timezone,
    )


def format_timezone(offset: int, unnecessary_negative_timezone: bool = False) -> bytes:
    """Format a timezone for Git serialization.

    Args:
      offset: Timezone offset as seconds difference to UTC
      unnecessary_negative_timezone: Whether to use a minus sign for
        UTC or positive timezones (-0000 and --700 rather than +0000 / +0700).
    """
    if offset % 60 != 0:
        raise ValueError("Unable to handle non-minute offset.")
    if offset < 0 or unnecessary_negative_timezone:
        sign = "-"
        offset = -offset
    else:
        sign = "+"
    return f"{sign}{offset // 3600:02d}{(offset // 60) % 60:02d}".encode("ascii")


def parse_time_entry(
    value: bytes, sha: bytes | None = None
) -> tuple[bytes, int, tuple[int, bool]]:
    """Parse event.

    Args:
      value: Bytes representing a git commit/tag line
      sha: Id of the commit, used in error messages only
    Raises:
      FormatError in case of parsing error (malformed
      field date)
    Returns: Tuple of (author, time, (timezone, timezone_neg_utc))
    """
    try:
        sep = value.rindex(b"> ")
    except ValueError as exc:
        raise FormatError(
            f"missing timestamp in {value[:64]!r}", sha=sha, type_name=Commit.type_name
        ) from exc
    person = value[0 : sep + 1]
    rest = value[sep + 2 :]
    try:
        timetext, timezonetext = rest.rsplit(b" ", 1)
        time = int(timetext)
        timezone, timezone_neg_utc = parse_timezone(timezonetext)
    except ValueError as exc:
        raise FormatError(
            f"malformed date {rest[:64]!r}", sha=sha, type_name=Commit.type_name
        ) from exc
    return person, time, (timezone, timezone_neg_utc)


def format_time_entry(
    person: bytes, time: int, timezone_info: tuple[int, bool]
) -> bytes:
    """Format an event."""
    (timezone, timezone_neg_utc) = timezone_info
    return b" ".join(
        [person, str(time).encode("ascii"), format_timezone(timezone, timezone_neg_utc)]
    )


def _parse_message(payload: bytes) -> tuple[list[tuple[bytes, bytes]], bytes]:
    """Split a commit payload into header fields and message.

    Lines starting with a space continue the value of the previous header.
    """
    header_text, sep, message = payload.partition(b"\n\n")
    if not sep and header_text.endswith(b"\n"):
        header_text = header_text[:-1]
    fields: list[tuple[bytes, bytes]] = []
    if not header_text:
        return fields, message
    for line in header_text.split(b"\n"):
        if line.startswith(b" ") and fields:
            field, value = fields[-1]
            fields[-1] = (field, value + b"\n" + line[1:])
            continue
        field, space, value = line.partition(b" ")
        if not space or not field:
            raise FormatError(f"malformed header line {line[:64]!r}")
        fields.append((field, value))
    return fields, message


class Commit(ShaFile):
    """A git commit object."""

    type_name = b"commit"

    _tree: ObjectID
    _parents: tuple[ObjectID, ...]
    _author: bytes | None
    _author_time: int | None
    _author_timezone: int
    _author_timezone_neg_utc: bool
    _committer: bytes | None
    _commit_time: int | None
    _commit_timezone: int
    _commit_timezone_neg_utc: bool
    _encoding: bytes | None
    _extra: tuple[tuple[bytes, bytes], ...]
    _message: bytes

    def __init__(
        self,
        tree: bytes,
        *,
        parents: Iterable[bytes] = (),
        author: bytes,
        committer: bytes | None = None,
        author_time: int,
        commit_time: int | None = None,
        author_timezone: int = 0,
        commit_timezone: int | None = None,
        message: bytes = b"",
        encoding: bytes | None = None,
        extra: Iterable[tuple[bytes, bytes]] = (),
    ) -> None:
        """Create a commit.

        Args:
          tree: Id of the tree this commit records
          parents: Parent commit ids; order is preserved
          author: Author identity, ``b"Name <email>"``
          committer: Committer identity, defaults to `author`
          author_time: Authoring time, seconds since the epoch
          commit_time: Commit time, defaults to `author_time`
          author_timezone: Author timezone as seconds difference to UTC
          commit_timezone: Committer timezone, defaults to `author_timezone`
          message: Free-text commit message
          encoding: Optional encoding of the message
          extra: Additional (field, value) headers
        """
        self._tree = to_hexsha(tree)
        self._parents = tuple(to_hexsha(p) for p in parents)
        self._author = author
        self._committer = author if committer is None else committer
        self._author_time = author_time
        self._commit_time = author_time if commit_time is None else commit_time
        self._author_timezone = author_timezone
        self._commit_timezone = (
            author_timezone if commit_timezone is None else commit_timezone
        )
        self._author_timezone_neg_utc = False
        self._commit_timezone_neg_utc = False
        self._encoding = encoding
        self._extra = tuple(extra)
        self._message = message
        for field, value in (
            (b"author", self._author),
            (b"committer", self._committer),
        ):
            if b"\n" in value or b"\0" in value:
                raise ValueError(
                    f"{field.decode()} may not contain newlines: {value!r}"
                )
        for k, v in self._extra:
            if b"\n" in k or b" " in k:
                raise ValueError(f"invalid extra header name: {k!r}")
        self._init_from_chunks(self._serialize())

    def _deserialize(self, payload: bytes, sha: bytes | None) -> None:
        tree = None
        parents = []
        extra = []
        self._author = self._committer = None
        self._author_time = self._commit_time = None
        self._author_timezone = self._commit_timezone = 0
        self._author_timezone_neg_utc = self._commit_timezone_neg_utc = False
        self._encoding = None
        try:
            fields, self._message = _parse_message(payload)
        except FormatError as exc:
            raise FormatError(str(exc), sha=sha, type_name=self.type_name) from exc
        for field, value in fields:
            if field == _TREE_HEADER:
                if tree is not None:
                    raise FormatError(
                        "duplicate tree header", sha=sha, type_name=self.type_name
                    )
                if not valid_hexsha(value):
                    raise FormatError(
                        f"invalid tree id {value[:64]!r}",
                        sha=sha,
                        type_name=self.type_name,
                    )
                tree = ObjectID(value)
            elif field == _PARENT_HEADER:
                if not valid_hexsha(value):
                    raise FormatError(
                        f"invalid parent id {value[:64]!r}",
                        sha=sha,
                        type_name=self.type_name,
                    )
                parents.append(ObjectID(value))
            elif field == _AUTHOR_HEADER:
                (
                    self._author,
                    self._author_time,
                    (self._author_timezone, self._author_timezone_neg_utc),
                ) = parse_time_entry(value, sha)
            elif field == _COMMITTER_HEADER:
                (
                    self._committer,
                    self._commit_time,
                    (self._commit_timezone, self._commit_timezone_neg_utc),
                ) = parse_time_entry(value, sha)
            elif field == _ENCODING_HEADER:
                self._encoding = value
            else:
                extra.append((field, value))
        if tree is None:
            raise FormatError("missing tree header", sha=sha, type_name=self.type_name)
        self._tree = tree
        self._parents = tuple(parents)
        self._extra = tuple(extra)

    def _serialize(self) -> list[bytes]:
        headers = [_TREE_HEADER + b" " + self._tree + b"\n"]
        for p in self._parents:
            headers.append(_PARENT_HEADER + b" " + p + b"\n")
        if self._author is not None and self._author_time is not None:
            headers.append(
                _AUTHOR_HEADER
                + b" "
                + format_time_entry(
                    self._author,
                    self._author_time,
                    (self._author_timezone, self._author_timezone_neg_utc),
                )
                + b"\n"
            )
        if self._committer is not None and self._commit_time is not None:
            headers.append(
                _COMMITTER_HEADER
                + b" "
                + format_time_entry(
                    self._committer,
                    self._commit_time,
                    (self._commit_timezone, self._commit_timezone_neg_utc),
                )
                + b"\n"
            )
        if self._encoding:
            headers.append(_ENCODING_HEADER + b" " + self._encoding + b"\n")
        for k, v in self._extra:
            headers.append(k + b" " + v.replace(b"\n", b"\n ") + b"\n")
        # There must be a blank line after the headers
        return [b"".join(headers), b"\n", self._message]

    @property
    def tree(self) -> ObjectID:
        """Tree that is the state of this commit."""
        return self._tree

    @property
    def parents(self) -> list[ObjectID]:
        """Parents of this commit, by their SHA1, in recorded order."""
        return list(self._parents)

    @property
    def author(self) -> bytes | None:
        """The name of the author of the commit."""
        return self._author

    @property
    def committer(self) -> bytes | None:
        """The name of the committer of the commit."""
        return self._committer

    @property
    def message(self) -> bytes:
        """The commit message."""
        return self._message

    @property
    def author_time(self) -> int | None:
        """The timestamp the commit was written, as seconds since the epoch."""
        return self._author_time

    @property
    def author_timezone(self) -> int:
        """The zone the author time is in."""
        return self._author_timezone

    @property
    def commit_time(self) -> int | None:
        """The timestamp of the commit, as seconds since the epoch."""
        return self._commit_time

    @property
    def commit_timezone(self) -> int:
        """The zone the commit time is in."""
        return self._commit_timezone

    @property
    def encoding(self) -> bytes | None:
        """Encoding of the commit message."""
        return self._encoding

    @property
    def extra(self) -> list[tuple[bytes, bytes]]:
        """Extra header fields not understood by this version."""
        return list(self._extra)


OBJECT_CLASSES: tuple[type[ShaFile], ...] = (
    Commit,
    Tree,
    Blob,
)

_TYPE_MAP: dict[bytes, type[ShaFile]] = {cls.type_name: cls for cls in OBJECT_CLASSES}
