# tree_builder.py -- Build tree objects from directories on disk
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

"""Snapshot a directory on disk into tree and blob objects."""

__all__ = [
    "blob_from_path_and_mode",
    "build_tree",
    "cleanup_mode",
]

import logging
import os
import stat
from collections.abc import Collection

from .object_store import BaseObjectStore
from .objects import S_IFGITLINK, S_ISGITLINK, Blob, ObjectID, Tree

logger = logging.getLogger(__name__)


def cleanup_mode(mode: int) -> int:
    """Cleanup a mode value.

    This will return a mode that can be stored in a tree object.

    Args:
      mode: Mode to clean up.

    Returns:
      mode
    """
    if stat.S_ISLNK(mode):
        return stat.S_IFLNK
    elif stat.S_ISDIR(mode):
        return stat.S_IFDIR
    elif S_ISGITLINK(mode):
        return S_IFGITLINK
    ret = stat.S_IFREG | 0o644
    if mode & 0o100:
        ret |= 0o111
    return ret


def blob_from_path_and_mode(fs_path: bytes, mode: int) -> Blob:
    """Create a blob from a path and a file mode.

    Args:
      fs_path: Full file system path to file
      mode: File mode
    Returns: A `Blob` object holding the file contents, or the link target
      for a symlink
    """
    if stat.S_ISLNK(mode):
        return Blob(os.readlink(fs_path))
    with open(fs_path, "rb") as f:
        return Blob(f.read())


def _build_tree(
    object_store: BaseObjectStore, path: bytes, exclude: Collection[bytes]
) -> ObjectID | None:
    entries = []
    with os.scandir(path) as it:
        names = [entry.name for entry in it]
    for name in names:
        if name in exclude:
            continue
        child_path = os.path.join(path, name)
        st = os.lstat(child_path)
        if stat.S_ISDIR(st.st_mode):
            sha = _build_tree(object_store, child_path, exclude)
            if sha is None:
                logger.debug("skipping empty directory %r", child_path)
                continue
            entries.append((name, stat.S_IFDIR, sha))
        elif stat.S_ISREG(st.st_mode) or stat.S_ISLNK(st.st_mode):
            blob = blob_from_path_and_mode(child_path, st.st_mode)
            entries.append(
                (name, cleanup_mode(st.st_mode), object_store.add_object(blob))
            )
        else:
            logger.debug("skipping special file %r", child_path)
    if not entries:
        return None
    return object_store.add_object(Tree(entries))


def build_tree(
    object_store: BaseObjectStore,
    path: str | bytes | os.PathLike[str],
    *,
    exclude: Collection[bytes] = (b".git",),
) -> ObjectID:
    """Store the contents of a directory as a tree, recursively.

    Regular files become blobs (mode 100644, or 100755 when executable) and
    symlinks become blobs holding the link target (mode 120000).
    Subdirectories become subtrees, except empty ones which are left out.
    Other file types are skipped.

    Args:
      object_store: Object store to add blobs and trees to
      path: Directory to snapshot
      exclude: Entry names to leave out at every level
    Returns: id of the root tree
    Raises:
      OSError: if the directory can not be read
    """
    fs_path = os.fsencode(os.fspath(path))
    sha = _build_tree(object_store, fs_path, exclude)
    if sha is None:
        sha = object_store.add_object(Tree())
    return sha
