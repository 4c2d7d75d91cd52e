# porcelain.py -- Porcelain-like layer on top of gitcore
# Copyright (C) 2013 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Simple wrapper that provides porcelain-like functions on top of gitcore.

Currently implemented:
 * cat_file
 * commit_tree
 * hash_object
 * init
 * ls_tree
 * write_tree

These functions are meant to behave similarly to the git subcommands.
Differences in behaviour are considered bugs.

Note: one of the consequences of this is that paths tend to be
interpreted relative to the current working directory rather than relative
to the repository root.

Functions should generally accept both unicode strings and bytestrings
"""

__all__ = [
    "CAT_FILE_MODES",
    "Error",
    "TimezoneFormatError",
    "cat_file",
    "commit_tree",
    "get_user_timezones",
    "hash_object",
    "init",
    "ls_tree",
    "open_repo_closing",
    "parse_git_date",
    "write_tree",
]

import io
import logging
import os
import re
import sys
import time
from collections.abc import Iterator, Sequence
from contextlib import AbstractContextManager, closing, contextmanager
from typing import BinaryIO, TextIO

from .errors import NotCommitError, NotFoundError, NotTreeError
from .object_store import iter_tree_contents
from .objects import (
    Blob,
    Commit,
    ObjectID,
    Tree,
    format_tree_entry,
    parse_timezone,
)
from .objectspec import parse_object, parse_tree, to_bytes
from .repo import CONTROLDIR, Repo, check_user_identity
from .tree_builder import build_tree

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

RepoPath = str | os.PathLike[str] | Repo

CAT_FILE_MODES = ("-p", "-t", "-s", "-e")


class Error(Exception):
    """Porcelain-based error."""

    def __init__(self, msg: str) -> None:
        """Initialize Error with message."""
        super().__init__(msg)


class TimezoneFormatError(Error):
    """Raised when a date can not be parsed."""


@contextmanager
def _noop_context_manager(obj: Repo) -> Iterator[Repo]:
    """Context manager that has the same api as closing but does nothing."""
    yield obj


def open_repo_closing(path_or_repo: RepoPath) -> AbstractContextManager[Repo]:
    """Open an argument that can be a repository or a path for a repository.

    returns a context manager that will close the repo on exit if the argument
    is a path, else does nothing if the argument is a repo.
    """
    if isinstance(path_or_repo, Repo):
        return _noop_context_manager(path_or_repo)
    return closing(Repo(path_or_repo))


def _write_text(outstream: TextIO | BinaryIO, text: str) -> None:
    if isinstance(outstream, io.TextIOBase):
        outstream.write(text)
    else:
        outstream.write(text.encode(DEFAULT_ENCODING))  # type: ignore[arg-type]


def _write_bytes(outstream: TextIO | BinaryIO, data: bytes) -> None:
    if not isinstance(outstream, io.TextIOBase):
        outstream.write(data)  # type: ignore[arg-type]
        return
    buffer = getattr(outstream, "buffer", None)
    if buffer is not None:
        outstream.flush()
        buffer.write(data)
        buffer.flush()
    else:
        outstream.write(data.decode(DEFAULT_ENCODING, "replace"))


def parse_git_date(value: str) -> tuple[int, int]:
    """Parse a date in git's internal format.

    Accepts ``<unix timestamp> <+/-HHMM>``, optionally with a leading ``@``,
    or a bare unix timestamp (taken to be UTC).

    Args:
      value: Date string, e.g. from GIT_AUTHOR_DATE
    Returns: Tuple with the timestamp and the timezone offset in seconds
    Raises:
      TimezoneFormatError: if the date is not in git's internal format
    """
    match = re.match(r"^@?([0-9]+)(?: ([+-][0-9]{4}))?$", value.strip())
    if match is None:
        raise TimezoneFormatError(f"invalid date format: {value}")
    timestamp, tz = match.groups()
    if tz is None:
        return int(timestamp), 0
    try:
        offset, _neg_utc = parse_timezone(tz.encode("ascii"))
    except ValueError as exc:
        raise TimezoneFormatError(f"invalid date format: {value}") from exc
    return int(timestamp), offset


def get_user_timezones() -> tuple[int, int]:
    """Retrieve local timezone as described in git documentation.

    https://raw.githubusercontent.com/git/git/v2.3.0/Documentation/date-formats.txt
    Returns: A tuple containing author timezone, committer timezone.
    """
    local_timezone = time.localtime().tm_gmtoff

    if os.environ.get("GIT_AUTHOR_DATE"):
        _, author_timezone = parse_git_date(os.environ["GIT_AUTHOR_DATE"])
    else:
        author_timezone = local_timezone
    if os.environ.get("GIT_COMMITTER_DATE"):
        _, commit_timezone = parse_git_date(os.environ["GIT_COMMITTER_DATE"])
    else:
        commit_timezone = local_timezone

    return author_timezone, commit_timezone


def _bad_name(name: str | bytes) -> Error:
    text = to_bytes(name).decode(DEFAULT_ENCODING, "replace")
    return Error(f"Not a valid object name {text}")


def _resolve(r: Repo, name: str | bytes) -> ObjectID:
    try:
        return parse_object(r, name)
    except NotFoundError as exc:
        raise _bad_name(name) from exc


def init(path: str | os.PathLike[str] = ".") -> Repo:
    """Create a new git repository.

    Args:
      path: Path to repository.
    Returns: A Repo instance
    Raises:
      Error: if a repository already exists at `path`
    """
    if not os.path.exists(path):
        os.mkdir(path)
    if os.path.exists(os.path.join(path, CONTROLDIR)):
        raise Error(f"{os.path.join(os.fspath(path), CONTROLDIR)} already exists")
    return Repo.init(path)


def hash_object(
    repo: RepoPath | None,
    path_or_data: str | os.PathLike[str] | bytes,
    write: bool = True,
) -> ObjectID:
    """Compute the id of a blob, optionally storing it.

    Args:
      repo: Repository to store the blob in; may be None when `write` is
        false
      path_or_data: Path of a file to read, or the blob contents as bytes
      write: Whether to store the blob in the object store
    Returns: id of the blob
    """
    if isinstance(path_or_data, bytes):
        data = path_or_data
    else:
        with open(path_or_data, "rb") as f:
            data = f.read()
    blob = Blob(data)
    if not write:
        return blob.id
    if repo is None:
        raise ValueError("a repository is required to write objects")
    with open_repo_closing(repo) as r:
        return r.object_store.add_object(blob)


def write_tree(repo: RepoPath) -> ObjectID:
    """Write a tree object for the files in the working directory.

    Args:
      repo: Repository for which to write tree
    Returns: tree id for the tree that was written
    Raises:
      Error: if the repository is bare
    """
    with open_repo_closing(repo) as r:
        if r.bare:
            raise Error(f"{r.path}: write-tree requires a working tree")
        sha = build_tree(r.object_store, r.path, exclude=(os.fsencode(CONTROLDIR),))
        logger.debug("wrote tree %s for %s", sha.decode("ascii"), r.path)
        return sha


def cat_file(
    repo: RepoPath,
    name: str | bytes,
    mode: str = "-p",
    outstream: TextIO | BinaryIO = sys.stdout,
) -> bool:
    """Print information about an object.

    Args:
      repo: Path to the repository
      name: Name of the object (id, abbreviated id or ref)
      mode: One of ``-p`` (pretty-print contents), ``-t`` (type), ``-s``
        (size) or ``-e`` (existence check only, nothing is printed)
      outstream: Stream to write to
    Returns: Whether the object exists; always True unless `mode` is ``-e``
    Raises:
      Error: if the object can not be found
    """
    if mode not in CAT_FILE_MODES:
        raise ValueError(f"invalid mode {mode!r}")
    with open_repo_closing(repo) as r:
        if mode == "-e":
            try:
                sha = parse_object(r, name)
            except NotFoundError:
                return False
            return sha in r.object_store
        obj = r.object_store[_resolve(r, name)]
        if mode == "-t":
            _write_text(outstream, obj.type_name.decode("ascii") + "\n")
        elif mode == "-s":
            _write_text(outstream, f"{obj.raw_length()}\n")
        elif isinstance(obj, Blob):
            _write_bytes(outstream, obj.data)
        elif isinstance(obj, Tree):
            for name, mode, sha in obj.iteritems():
                _write_bytes(outstream, format_tree_entry(name, mode, sha))
        else:
            _write_bytes(outstream, obj.as_raw_string())
    return True


def ls_tree(
    repo: RepoPath,
    treeish: str | bytes = b"HEAD",
    outstream: TextIO | BinaryIO = sys.stdout,
    name_only: bool = False,
    recursive: bool = False,
) -> None:
    """List contents of a tree.

    Args:
      repo: Path to the repository
      treeish: Tree id to list, or a commit whose tree is listed
      outstream: Output stream (defaults to stdout)
      name_only: Only print item name
      recursive: Whether to recursively list files
    """
    with open_repo_closing(repo) as r:
        try:
            tree = parse_tree(r, treeish)
        except NotFoundError as exc:
            raise _bad_name(treeish) from exc
        if recursive:
            entries = iter_tree_contents(r.object_store, tree.id)
        else:
            entries = tree.iteritems()
        for name, mode, sha in entries:
            if name_only:
                _write_bytes(outstream, name + b"\n")
            else:
                _write_bytes(outstream, format_tree_entry(name, mode, sha))


def commit_tree(
    repo: RepoPath,
    tree: str | bytes,
    parents: Sequence[str | bytes] = (),
    message: str | bytes = b"",
    author: bytes | None = None,
    committer: bytes | None = None,
    author_time: int | None = None,
    commit_time: int | None = None,
    timezone: int | None = None,
) -> ObjectID:
    """Create a new commit object.

    Args:
      repo: Path to repository
      tree: An existing tree object
      parents: Existing parent commits, recorded in the given order
      message: Commit message
      author: Optional author name and email
      committer: Optional committer name and email
      author_time: Optional authoring time, defaults to GIT_AUTHOR_DATE or
        the current time
      commit_time: Optional commit time, defaults to GIT_COMMITTER_DATE or
        the current time
      timezone: Optional timezone offset in seconds for both times
    Returns: id of the new commit
    Raises:
      Error: if the tree or a parent can not be found
      NotTreeError: if `tree` names something other than a tree
      NotCommitError: if a parent is not a commit
    """
    if isinstance(message, str):
        message = message.encode(DEFAULT_ENCODING)
    with open_repo_closing(repo) as r:
        tree_id = _resolve(r, tree)
        if not isinstance(r.object_store[tree_id], Tree):
            raise NotTreeError(tree_id)
        parent_ids = []
        for parent in parents:
            parent_id = _resolve(r, parent)
            if not isinstance(r.object_store[parent_id], Commit):
                raise NotCommitError(parent_id)
            parent_ids.append(parent_id)

        if author is None:
            author = r.get_user_identity("AUTHOR")
        else:
            check_user_identity(author)
        if committer is None:
            committer = r.get_user_identity("COMMITTER")
        else:
            check_user_identity(committer)

        author_timezone, commit_timezone = get_user_timezones()
        if timezone is not None:
            author_timezone = commit_timezone = timezone
        now = int(time.time())
        if author_time is None:
            if os.environ.get("GIT_AUTHOR_DATE"):
                author_time, _ = parse_git_date(os.environ["GIT_AUTHOR_DATE"])
            else:
                author_time = now
        if commit_time is None:
            if os.environ.get("GIT_COMMITTER_DATE"):
                commit_time, _ = parse_git_date(os.environ["GIT_COMMITTER_DATE"])
            else:
                commit_time = now

        commit = Commit(
            tree_id,
            parents=parent_ids,
            author=author,
            committer=committer,
            author_time=author_time,
            commit_time=commit_time,
            author_timezone=author_timezone,
            commit_timezone=commit_timezone,
            message=message,
        )
        sha = r.object_store.add_object(commit)
        logger.debug("created commit %s", sha.decode("ascii"))
        return sha
