# object_store.py -- Object store for git objects
# Copyright (C) 2008-2013 Jelmer Vernooij <jelmer@jelmer.uk>
#                         and others
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

"""Git object store interfaces and implementation.

Objects are stored loose, one zlib-compressed file per object at
``objects/<2 hex chars>/<38 hex chars>``. Stores are write-once: an object
that is already present is never rewritten.
"""

__all__ = [
    "BaseObjectStore",
    "DiskObjectStore",
    "MemoryObjectStore",
    "iter_tree_contents",
]

import logging
import os
import stat
from collections.abc import Iterator
from typing import TYPE_CHECKING

from .errors import NotFoundError, NotTreeError
from .file import GitFile, ensure_dir_exists
from .objects import (
    ObjectID,
    RawObjectID,
    ShaFile,
    Tree,
    TreeEntry,
    hex_to_filename,
    to_hexsha,
    valid_hexsha,
)

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)

OBJECT_MODE = 0o444


class BaseObjectStore:
    """Object store interface."""

    loose_compression_level: int = -1

    def contains_loose(self, sha: ObjectID | RawObjectID) -> bool:
        """Check if a particular object is present by SHA1 and is loose."""
        raise NotImplementedError(self.contains_loose)

    def __contains__(self, sha: ObjectID | RawObjectID) -> bool:
        """Check if a particular object is present by SHA1."""
        return self.contains_loose(sha)

    def __iter__(self) -> Iterator[ObjectID]:
        """Iterate over the SHAs that are present in this store."""
        raise NotImplementedError(self.__iter__)

    def get_compressed(self, sha: ObjectID | RawObjectID) -> bytes:
        """Obtain the stored (framed, compressed) bytes for an object.

        Raises:
          NotFoundError: if the object is not present
        """
        raise NotImplementedError(self.get_compressed)

    def add_compressed(self, sha: ObjectID | RawObjectID, data: bytes) -> None:
        """Store framed, compressed bytes under an id.

        The caller is responsible for `data` matching `sha`. Storing an id
        that is already present is a no-op.
        """
        raise NotImplementedError(self.add_compressed)

    def get_raw(self, sha: ObjectID | RawObjectID) -> tuple[bytes, bytes]:
        """Obtain the type and uncompressed payload of an object.

        Args:
          sha: sha for the object.
        Returns: tuple with type name and object contents.
        """
        obj = self[sha]
        return obj.type_name, obj.as_raw_string()

    def __getitem__(self, sha: ObjectID | RawObjectID) -> ShaFile:
        """Obtain an object by SHA1.

        Raises:
          NotFoundError: if the object is not present
          CorruptDataError: if the stored bytes do not decompress, or do not
            hash to `sha`
          FormatError: if the stored bytes are not a valid object
        """
        return ShaFile.from_compressed(self.get_compressed(sha), sha=sha)

    def add_object(self, obj: ShaFile) -> ObjectID:
        """Add a single object to this object store.

        Returns: id of the object
        """
        if obj.id not in self:
            self.add_compressed(
                obj.id, obj.as_legacy_object(self.loose_compression_level)
            )
        return obj.id

    def add_objects(self, objects: Iterator[ShaFile] | list[ShaFile]) -> None:
        """Add a set of objects to this object store."""
        for obj in objects:
            self.add_object(obj)

    def iter_prefix(self, prefix: bytes) -> Iterator[ObjectID]:
        """Iterate over all object SHAs with the given hex prefix."""
        prefix = prefix.lower()
        for sha in self:
            if sha.startswith(prefix):
                yield sha


def _to_hexsha(sha: ObjectID | RawObjectID) -> ObjectID:
    try:
        return to_hexsha(sha)
    except ValueError as exc:
        raise NotFoundError(sha) from exc


class DiskObjectStore(BaseObjectStore):
    """Git-style object store that exists on disk."""

    path: str

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        loose_compression_level: int = -1,
        fsync_object_files: bool = False,
    ) -> None:
        """Open an object store.

        Args:
          path: Path of the object store.
          loose_compression_level: zlib compression level for loose objects
          fsync_object_files: whether to fsync object files for durability
        """
        self.path = os.fspath(path)
        self.loose_compression_level = loose_compression_level
        self.fsync_object_files = fsync_object_files

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.path!r})>"

    @classmethod
    def from_config(
        cls, path: str | os.PathLike[str], config: "Config"
    ) -> "DiskObjectStore":
        """Create a DiskObjectStore from a configuration object.

        Honours core.compression, core.looseCompression and
        core.fsyncObjectFiles.

        Raises:
          ValueError: if a compression level is outside -1..9
        """
        default_level = config.get_int((b"core",), b"compression", -1)
        level = config.get_int((b"core",), b"looseCompression", default_level)
        assert level is not None
        if not -1 <= level <= 9:
            raise ValueError(f"invalid zlib compression level {level}")
        fsync = config.get_boolean((b"core",), b"fsyncObjectFiles", False)
        return cls(path, loose_compression_level=level, fsync_object_files=bool(fsync))

    @classmethod
    def init(cls, path: str | os.PathLike[str]) -> "DiskObjectStore":
        """Create the directory for a new object store and open it."""
        ensure_dir_exists(path)
        return cls(path)

    def _get_shafile_path(self, sha: ObjectID | RawObjectID) -> str:
        return hex_to_filename(self.path, _to_hexsha(sha))

    def contains_loose(self, sha: ObjectID | RawObjectID) -> bool:
        try:
            return os.path.exists(self._get_shafile_path(sha))
        except NotFoundError:
            return False

    def __iter__(self) -> Iterator[ObjectID]:
        try:
            bases = sorted(os.listdir(self.path))
        except FileNotFoundError:
            return
        for base in bases:
            if len(base) != 2:
                continue
            try:
                names = sorted(os.listdir(os.path.join(self.path, base)))
            except NotADirectoryError:
                continue
            for rest in names:
                sha = os.fsencode(base + rest)
                if valid_hexsha(sha):
                    yield ObjectID(sha.lower())

    def iter_prefix(self, prefix: bytes) -> Iterator[ObjectID]:
        if len(prefix) < 2:
            yield from super().iter_prefix(prefix)
            return
        prefix = prefix.lower()
        dir = prefix[:2].decode("ascii")
        rest = prefix[2:].decode("ascii")
        try:
            names = sorted(os.listdir(os.path.join(self.path, dir)))
        except (FileNotFoundError, NotADirectoryError):
            return
        for name in names:
            sha = os.fsencode(dir + name)
            if name.startswith(rest) and valid_hexsha(sha):
                yield ObjectID(sha)

    def get_compressed(self, sha: ObjectID | RawObjectID) -> bytes:
        path = self._get_shafile_path(sha)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as exc:
            raise NotFoundError(_to_hexsha(sha)) from exc

    def add_compressed(self, sha: ObjectID | RawObjectID, data: bytes) -> None:
        path = self._get_shafile_path(sha)
        if os.path.exists(path):
            logger.debug("object %s already present", _to_hexsha(sha).decode("ascii"))
            return
        ensure_dir_exists(os.path.dirname(path))
        # Every writer gets its own temporary file; renaming it into place is
        # atomic, and racing writers of the same id write identical bytes.
        with GitFile(
            path, "wb", mask=OBJECT_MODE, fsync=self.fsync_object_files, exclusive=False
        ) as f:
            f.write(data)
        logger.debug("wrote object %s", _to_hexsha(sha).decode("ascii"))


class MemoryObjectStore(BaseObjectStore):
    """Object store that keeps all objects in memory."""

    def __init__(self) -> None:
        self._data: dict[ObjectID, bytes] = {}

    def contains_loose(self, sha: ObjectID | RawObjectID) -> bool:
        try:
            return _to_hexsha(sha) in self._data
        except NotFoundError:
            return False

    def __iter__(self) -> Iterator[ObjectID]:
        return iter(list(self._data))

    def get_compressed(self, sha: ObjectID | RawObjectID) -> bytes:
        hexsha = _to_hexsha(sha)
        try:
            return self._data[hexsha]
        except KeyError as exc:
            raise NotFoundError(hexsha) from exc

    def add_compressed(self, sha: ObjectID | RawObjectID, data: bytes) -> None:
        self._data.setdefault(_to_hexsha(sha), data)


def iter_tree_contents(
    store: BaseObjectStore, tree_id: ObjectID, *, include_trees: bool = False
) -> Iterator[TreeEntry]:
    """Iterate the contents of a tree and all subtrees.

    Iteration is depth-first pre-order, as in e.g. os.walk.

    Args:
      store: Object store to get trees from
      tree_id: SHA1 of the tree.
      include_trees: If True, include tree objects in the iteration.

    Yields: TreeEntry namedtuples for all matching files in a tree.
    """
    todo = [TreeEntry(b"", stat.S_IFDIR, tree_id)]
    while todo:
        entry = todo.pop()
        if stat.S_ISDIR(entry.mode):
            extra = []
            tree = store[entry.sha]
            if not isinstance(tree, Tree):
                raise NotTreeError(entry.sha)
            for subentry in tree.iteritems():
                extra.append(subentry.in_path(entry.path))
            todo.extend(reversed(extra))
        if not stat.S_ISDIR(entry.mode) or include_trees:
            yield entry


