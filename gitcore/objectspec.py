# objectspec.py -- Object specification
# Copyright (C) 2014 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Object specification."""

__all__ = [
    "MIN_SHORT_ID_LENGTH",
    "parse_object",
    "parse_ref",
    "parse_tree",
    "scan_for_short_id",
    "to_bytes",
]

import logging
from typing import TYPE_CHECKING

from .errors import AmbiguousShortId, NotFoundError, NotTreeError
from .objects import Commit, ObjectID, Tree, valid_hexsha
from .refs import HEADREF, check_ref_format, local_branch_name, local_tag_name

if TYPE_CHECKING:
    from .object_store import BaseObjectStore
    from .refs import DiskRefsContainer
    from .repo import Repo

logger = logging.getLogger(__name__)

MIN_SHORT_ID_LENGTH = 4


def to_bytes(text: str | bytes) -> bytes:
    """Convert text to bytes.

    Args:
      text: Text to convert (str or bytes)

    Returns:
      Bytes representation of text
    """
    if isinstance(text, str):
        return text.encode("utf-8")
    return text


def parse_ref(container: "DiskRefsContainer", refspec: str | bytes) -> bytes:
    """Parse a string referring to a reference.

    Args:
      container: A refs container
      refspec: A string referring to a ref
    Returns: A ref
    Raises:
      KeyError: If the ref can not be found
    """
    refspec = to_bytes(refspec)
    possible_refs = [refspec]
    if refspec != HEADREF:
        possible_refs += [
            b"refs/" + refspec,
            local_branch_name(refspec),
            local_tag_name(refspec),
        ]
    for ref in possible_refs:
        if ref != HEADREF and not check_ref_format(ref):
            continue
        if ref in container:
            return ref
    raise KeyError(refspec)


def scan_for_short_id(object_store: "BaseObjectStore", prefix: bytes) -> ObjectID:
    """Scan an object store for a short id.

    Raises:
      KeyError: if no object id starts with `prefix`
      AmbiguousShortId: if more than one does
    """
    ret = list(object_store.iter_prefix(prefix.lower()))
    if not ret:
        raise KeyError(prefix)
    if len(ret) == 1:
        return ret[0]
    raise AmbiguousShortId(prefix, ret)


def parse_object(repo: "Repo", objectish: bytes | str) -> ObjectID:
    """Parse a string referring to an object.

    The name is tried as a full hex object id, then as a ref (``HEAD``,
    ``refs/...``, a branch or a tag name), then as an abbreviated object id.

    Args:
      repo: A `Repo` object
      objectish: A string referring to an object
    Returns: The id of the object
    Raises:
      NotFoundError: If the object can not be found
      AmbiguousShortId: If an abbreviated id matches several objects
    """
    objectish = to_bytes(objectish)
    if len(objectish) == 40 and valid_hexsha(objectish):
        sha = ObjectID(objectish.lower())
        if sha in repo.object_store:
            return sha
    try:
        ref = parse_ref(repo.refs, objectish)
    except KeyError:
        pass
    else:
        try:
            sha = repo.refs[ref]
        except KeyError as exc:
            raise NotFoundError(objectish) from exc
        logger.debug(
            "%s is ref %s",
            objectish.decode("utf-8", "replace"),
            ref.decode("utf-8", "replace"),
        )
        return sha
    if MIN_SHORT_ID_LENGTH <= len(objectish) < 40:
        try:
            int(objectish, 16)
        except ValueError:
            pass
        else:
            try:
                return scan_for_short_id(repo.object_store, objectish)
            except KeyError:
                pass
    raise NotFoundError(objectish)


def parse_tree(repo: "Repo", treeish: bytes | str) -> Tree:
    """Parse a string referring to a tree.

    A name that refers to a commit resolves to the commit's tree.

    Args:
      repo: A repository object
      treeish: A string referring to a tree or a commit
    Returns: A Tree object
    Raises:
      NotFoundError: If the object can not be found
      NotTreeError: If the object is neither a tree nor a commit
    """
    sha = parse_object(repo, treeish)
    o = repo.object_store[sha]
    if isinstance(o, Commit):
        sha = o.tree
        o = repo.object_store[sha]
    if not isinstance(o, Tree):
        raise NotTreeError(sha)
    return o

