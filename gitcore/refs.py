# refs.py -- For dealing with git refs
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

"""Ref handling.

Refs are only read here: a ref is resolved to an object id by following
``ref:`` symbolic refs, reading loose ref files before the packed-refs file.
"""

__all__ = [
    "HEADREF",
    "LOCAL_BRANCH_PREFIX",
    "LOCAL_TAG_PREFIX",
    "SYMREF",
    "DiskRefsContainer",
    "SymrefLoop",
    "check_ref_format",
    "local_branch_name",
    "local_tag_name",
    "read_packed_refs",
]

import logging
import os
from collections.abc import Iterator
from typing import IO

from .errors import PackedRefsException
from .file import GitFile
from .objects import ObjectID, valid_hexsha

logger = logging.getLogger(__name__)

HEADREF = b"HEAD"
SYMREF = b"ref: "
LOCAL_BRANCH_PREFIX = b"refs/heads/"
LOCAL_TAG_PREFIX = b"refs/tags/"
BAD_REF_CHARS = set(b"\177 ~^:?*[")
MAX_SYMREF_DEPTH = 5


class SymrefLoop(Exception):
    """There is a loop between one or more symrefs."""

    def __init__(self, ref: bytes, depth: int) -> None:
        """Initialize SymrefLoop exception."""
        self.ref = ref
        self.depth = depth
        super().__init__(
            f"symbolic ref {ref.decode('utf-8', 'replace')} nested too deeply"
        )


def check_ref_format(refname: bytes) -> bool:
    """Check if a refname is correctly formatted.

    Implements the rules of git-check-ref-format.

    Args:
      refname: The refname to check
    Returns: True if refname is valid, False otherwise
    """
    if b"/." in refname or refname.startswith(b"."):
        return False
    if b"/" not in refname:
        return False
    if b".." in refname:
        return False
    for c in refname:
        if c < 0o40 or c in BAD_REF_CHARS:
            return False
    if refname[-1] in b"/.":
        return False
    if refname.endswith(b".lock"):
        return False
    if b"@{" in refname:
        return False
    if b"\\" in refname:
        return False
    return True


def local_branch_name(name: bytes) -> bytes:
    """Build a full branch ref from a short name.

    Args:
      name: Short branch name (e.g., b"main") or full ref

    Returns:
      Full branch ref name (e.g., b"refs/heads/main")
    """
    if name.startswith(LOCAL_BRANCH_PREFIX):
        return name
    return LOCAL_BRANCH_PREFIX + name


def local_tag_name(name: bytes) -> bytes:
    """Build a full tag ref from a short name.

    Args:
      name: Short tag name (e.g., b"v1.0") or full ref

    Returns:
      Full tag ref name (e.g., b"refs/tags/v1.0")
    """
    if name.startswith(LOCAL_TAG_PREFIX):
        return name
    return LOCAL_TAG_PREFIX + name


def _split_ref_line(line: bytes) -> tuple[bytes, bytes]:
    """Split a single ref line into a tuple of SHA1 and name."""
    fields = line.rstrip(b"\n\r").split(b" ")
    if len(fields) != 2:
        raise PackedRefsException(f"invalid ref line {line!r}")
    sha, name = fields
    if not valid_hexsha(sha):
        raise PackedRefsException(f"Invalid hex sha {sha!r}")
    if not check_ref_format(name):
        raise PackedRefsException(f"invalid ref name {name!r}")
    return (sha, name)


def read_packed_refs(f: IO[bytes]) -> Iterator[tuple[bytes, bytes]]:
    """Read a packed refs file.

    Comment lines and peeled (``^``) lines are skipped.

    Args:
      f: file-like object to read from
    Returns: Iterator over tuples with SHA1s and ref names.
    """
    for line in f:
        if line.startswith(b"#") or line.startswith(b"^"):
            continue
        if not line.strip():
            continue
        yield _split_ref_line(line)


class DiskRefsContainer:
    """Read-only view of the refs stored in a git control directory."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Initialize DiskRefsContainer.

        Args:
          path: Path to the control directory (usually ``.git``)
        """
        self.path = os.fsencode(os.fspath(path))
        self._packed_refs: dict[bytes, bytes] | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def refpath(self, name: bytes) -> bytes:
        """Return the disk path of a ref."""
        path = name
        if os.path.sep != "/":
            path = path.replace(b"/", os.fsencode(os.path.sep))
        return os.path.join(self.path, path)

    def get_packed_refs(self) -> dict[bytes, bytes]:
        """Get contents of the packed-refs file.

        Returns: Dictionary mapping ref names to SHA1s

        Note: Will return an empty dictionary when no packed-refs file is
            present.
        """
        if self._packed_refs is None:
            packed_refs: dict[bytes, bytes] = {}
            path = os.path.join(self.path, b"packed-refs")
            try:
                f = GitFile(path, "rb")
            except FileNotFoundError:
                self._packed_refs = packed_refs
                return packed_refs
            with f:
                for sha, name in read_packed_refs(f):
                    packed_refs[name] = sha
            self._packed_refs = packed_refs
        return self._packed_refs

    def read_loose_ref(self, name: bytes) -> bytes | None:
        """Read a reference file and return its contents.

        If the reference file a symbolic reference, only read the first line of
        the file. Otherwise, only read the first 40 bytes.

        Args:
          name: the refname to read, relative to refpath
        Returns: The contents of the ref file, or None if the file does not
            exist.
        """
        filename = self.refpath(name)
        try:
            with GitFile(filename, "rb") as f:
                header = f.read(len(SYMREF))
                if header == SYMREF:
                    # Read only the first line
                    return header + next(iter(f), b"").rstrip(b"\r\n")
                else:
                    # Read only the first 40 bytes
                    return header + f.read(40 - len(SYMREF))
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            return None

    def read_ref(self, refname: bytes) -> bytes | None:
        """Read a reference without following any references.

        Args:
          refname: The name of the reference
        Returns: The contents of the ref file, or None if it does
            not exist.
        """
        contents = self.read_loose_ref(refname)
        if not contents:
            contents = self.get_packed_refs().get(refname, None)
        return contents

    def follow(self, name: bytes) -> tuple[list[bytes], bytes | None]:
        """Follow a reference name.

        Returns: a tuple of (refnames, sha), wheres refnames are the names of
            references in the chain
        Raises:
          SymrefLoop: if symbolic refs nest more than MAX_SYMREF_DEPTH deep
        """
        contents: bytes | None = SYMREF + name
        depth = 0
        refnames = []
        while contents and contents.startswith(SYMREF):
            refname = contents[len(SYMREF) :]
            refnames.append(refname)
            contents = self.read_ref(refname)
            if not contents:
                break
            depth += 1
            if depth > MAX_SYMREF_DEPTH:
                raise SymrefLoop(name, depth)
        return refnames, contents

    def __contains__(self, refname: bytes) -> bool:
        """Check if a reference exists."""
        if self.read_ref(refname):
            return True
        return False

    def __getitem__(self, name: bytes) -> ObjectID:
        """Get the SHA1 for a reference name.

        This method follows all symbolic references.

        Raises:
          KeyError: if the ref, or the ref it points at, does not exist
        """
        refnames, sha = self.follow(name)
        if sha is None or not valid_hexsha(sha):
            raise KeyError(name)
        logger.debug(
            "resolved %s to %s",
            b" -> ".join(refnames).decode("utf-8", "replace"),
            sha.decode("ascii"),
        )
        return ObjectID(sha.lower())
