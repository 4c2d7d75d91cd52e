# repo.py -- For dealing with git repositories.
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

"""Repository access.

A repository is a working directory with a ``.git`` control directory next
to the files, or a bare control directory on its own. The control directory
holds the object store, the refs and the repository configuration.
"""

__all__ = [
    "BASE_DIRECTORIES",
    "CONTROLDIR",
    "DEFAULT_BRANCH",
    "OBJECTDIR",
    "REFSDIR",
    "REFSDIR_HEADS",
    "REFSDIR_TAGS",
    "DefaultIdentityNotFound",
    "Repo",
    "check_user_identity",
    "get_user_identity",
]

import logging
import os
import socket
from types import TracebackType

from .config import ConfigFile, StackedConfig
from .errors import InvalidUserIdentity, NotFoundError, NotGitRepository
from .file import GitFile
from .object_store import DiskObjectStore
from .objects import ObjectID, ShaFile, valid_hexsha
from .refs import HEADREF, SYMREF, DiskRefsContainer, local_branch_name

logger = logging.getLogger(__name__)

CONTROLDIR = ".git"
OBJECTDIR = "objects"
REFSDIR = "refs"
REFSDIR_TAGS = "tags"
REFSDIR_HEADS = "heads"
DEFAULT_BRANCH = b"main"

BASE_DIRECTORIES = [
    [OBJECTDIR],
    [REFSDIR],
    [REFSDIR, REFSDIR_TAGS],
    [REFSDIR, REFSDIR_HEADS],
]


class DefaultIdentityNotFound(Exception):
    """Default identity could not be determined."""


def _get_default_identity() -> tuple[str, str]:
    for name in ("LOGNAME", "USER", "LNAME", "USERNAME"):
        username = os.environ.get(name)
        if username:
            break
    else:
        username = None

    try:
        import pwd
    except ImportError:
        fullname = None
    else:
        try:
            entry = pwd.getpwuid(os.getuid())
        except KeyError:
            fullname = None
        else:
            if getattr(entry, "pw_gecos", None):
                fullname = entry.pw_gecos.split(",")[0]
            else:
                fullname = None
            if username is None:
                username = entry.pw_name
    if not fullname:
        if username is None:
            raise DefaultIdentityNotFound("no username found")
        fullname = username
    email = os.environ.get("EMAIL")
    if email is None:
        if username is None:
            raise DefaultIdentityNotFound("no username found")
        email = f"{username}@{socket.gethostname()}"
    return (fullname, email)


def get_user_identity(config: StackedConfig, kind: str | None = None) -> bytes:
    """Determine the identity to use for new commits.

    If kind is set, this first checks
    GIT_${KIND}_NAME and GIT_${KIND}_EMAIL.

    If those variables are not set, then it will fall back
    to reading the user.name and user.email settings from
    the specified configuration.

    If that also fails, then it will fall back to using
    the current users' identity as obtained from the host
    system (e.g. the gecos field, $EMAIL, $USER@$(hostname -f).

    Args:
      config: Configuration stack to read from
      kind: Optional kind to return identity for,
        usually either "AUTHOR" or "COMMITTER".

    Returns:
      A user identity
    """
    user: bytes | None = None
    email: bytes | None = None
    if kind:
        user_uc = os.environ.get("GIT_" + kind + "_NAME")
        if user_uc is not None:
            user = user_uc.encode("utf-8")
        email_uc = os.environ.get("GIT_" + kind + "_EMAIL")
        if email_uc is not None:
            email = email_uc.encode("utf-8")
    if user is None:
        try:
            user = config.get(("user",), "name")
        except KeyError:
            user = None
    if email is None:
        try:
            email = config.get(("user",), "email")
        except KeyError:
            email = None
    if user is None or email is None:
        default_user, default_email = _get_default_identity()
        if user is None:
            user = default_user.encode("utf-8")
        if email is None:
            email = default_email.encode("utf-8")
    if email.startswith(b"<") and email.endswith(b">"):
        email = email[1:-1]
    return user + b" <" + email + b">"


def check_user_identity(identity: bytes) -> None:
    """Verify that a user identity is formatted correctly.

    Args:
      identity: User identity bytestring
    Raises:
      InvalidUserIdentity: Raised when identity is invalid
    """
    try:
        _fst, snd = identity.split(b" <", 1)
    except ValueError as exc:
        raise InvalidUserIdentity(identity.decode("utf-8", "replace")) from exc
    if b">" not in snd:
        raise InvalidUserIdentity(identity.decode("utf-8", "replace"))
    if b"\0" in identity or b"\n" in identity:
        raise InvalidUserIdentity(identity.decode("utf-8", "replace"))


class Repo:
    """A git repository backed by local disk.

    To open an existing repository, call the constructor with
    the path of the repository.

    To create a new repository, use the Repo.init class method.

    Attributes:
      path: Path to the working copy (if it exists) or repository control
        directory (if the repository is bare)
      bare: Whether this is a bare repository
    """

    path: str
    bare: bool
    object_store: DiskObjectStore
    refs: DiskRefsContainer

    def __init__(
        self, root: str | bytes | os.PathLike[str], bare: bool | None = None
    ) -> None:
        """Open a repository on disk.

        Args:
          root: Path to the repository's root.
          bare: True if this is a bare repository.

        Raises:
          NotGitRepository: if `root` holds no repository
        """
        root = os.fspath(root)
        if isinstance(root, bytes):
            root = os.fsdecode(root)
        hidden_path = os.path.join(root, CONTROLDIR)
        if bare is None:
            if os.path.isdir(os.path.join(hidden_path, OBJECTDIR)):
                bare = False
            elif os.path.isdir(os.path.join(root, OBJECTDIR)) and os.path.isdir(
                os.path.join(root, REFSDIR)
            ):
                bare = True
            else:
                raise NotGitRepository(f"No git repository was found at {root}")

        self.bare = bare
        self._controldir = root if bare else hidden_path
        self.path = root
        self.object_store = DiskObjectStore.from_config(
            os.path.join(self._controldir, OBJECTDIR), self.get_config_stack()
        )
        self.refs = DiskRefsContainer(self._controldir)

    def __repr__(self) -> str:
        return f"<Repo at {self.path!r}>"

    @classmethod
    def discover(cls, start: str | bytes | os.PathLike[str] = ".") -> "Repo":
        """Iterate parent directories to discover a repository.

        Return a Repo object for the first parent directory that looks like a
        Git repository.

        Args:
          start: The directory to start discovery from (defaults to '.')
        """
        path = os.path.abspath(start)
        while True:
            try:
                return cls(path)
            except NotGitRepository:
                new_path, _tail = os.path.split(path)
                if new_path == path:  # Root reached
                    break
                path = new_path
        start_str = os.fspath(start)
        if isinstance(start_str, bytes):
            start_str = start_str.decode("utf-8")
        raise NotGitRepository(f"No git repository was found at {start_str}")

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self._controldir

    def get_named_file(self, path: str) -> bytes | None:
        """Get the contents of a file in the control directory.

        Args:
          path: The path to the file, relative to the control dir.
        Returns: The file contents, or None if the file does not exist.
        """
        try:
            with open(os.path.join(self.controldir(), path.lstrip("/")), "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def _put_named_file(self, path: str, contents: bytes) -> None:
        """Write a file to the control dir with the given name and contents.

        Args:
          path: The path to the file, relative to the control dir.
          contents: A string to write to the file.
        """
        path = path.lstrip(os.path.sep)
        with GitFile(os.path.join(self.controldir(), path), "wb") as f:
            f.write(contents)

    def get_config(self) -> ConfigFile:
        """Retrieve the config object.

        Returns: `ConfigFile` object for the ``.git/config`` file.
        """
        path = os.path.join(self._controldir, "config")
        try:
            return ConfigFile.from_path(path)
        except FileNotFoundError:
            ret = ConfigFile()
            ret.path = path
            return ret

    def get_config_stack(self) -> StackedConfig:
        """Return a config stack for this repository.

        This stack accesses the configuration for both this repository
        itself (.git/config) and the global configuration, which usually
        lives in ~/.gitconfig.

        Returns: `Config` instance for this repository
        """
        local_config = self.get_config()
        backends: list[ConfigFile] = [local_config]
        backends += StackedConfig.default_backends()
        return StackedConfig(backends, writable=local_config)

    def get_user_identity(self, kind: str | None = None) -> bytes:
        """Determine the identity to use for new commits.

        Args:
          kind: "AUTHOR", "COMMITTER" or None
        Raises:
          InvalidUserIdentity: if the resolved identity is malformed
        """
        identity = get_user_identity(self.get_config_stack(), kind=kind)
        check_user_identity(identity)
        return identity

    def __getitem__(self, name: bytes) -> ShaFile:
        """Retrieve a Git object by SHA1 or ref.

        Args:
          name: A Git object SHA1 or a ref name
        Returns: A `ShaFile` object, such as a Commit or Blob
        Raises:
          NotFoundError: when the specified ref or object does not exist
        """
        if not isinstance(name, bytes):
            raise TypeError(f"'name' must be bytestring, not {type(name).__name__:.80}")
        if len(name) == 20 or (len(name) == 40 and valid_hexsha(name)):
            try:
                return self.object_store[name]
            except NotFoundError:
                pass
        try:
            sha = self.refs[name]
        except KeyError as exc:
            raise NotFoundError(name) from exc
        return self.object_store[sha]

    def __contains__(self, name: bytes) -> bool:
        """Check if a specific Git object or ref is present.

        Args:
          name: Git object SHA1 or ref name
        """
        if len(name) == 20 or (len(name) == 40 and valid_hexsha(name)):
            if name in self.object_store:
                return True
        return name in self.refs

    def head(self) -> ObjectID:
        """Return the SHA1 pointed at by HEAD.

        Raises:
          KeyError: if HEAD points at a branch without commits
        """
        return self.refs[HEADREF]

    @classmethod
    def init(
        cls,
        path: str | bytes | os.PathLike[str],
        *,
        mkdir: bool = False,
        default_branch: bytes | None = None,
    ) -> "Repo":
        """Create a new repository.

        Args:
          path: Path in which to create the repository
          mkdir: Whether to create the directory
          default_branch: Branch HEAD points at, defaults to init.defaultBranch
            or "main"
        Returns: `Repo` instance
        Raises:
          FileExistsError: if the control directory already exists
        """
        path = os.fspath(path)
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if mkdir:
            os.mkdir(path)
        controldir = os.path.join(path, CONTROLDIR)
        os.mkdir(controldir)
        for d in BASE_DIRECTORIES:
            os.mkdir(os.path.join(controldir, *d))
        if default_branch is None:
            try:
                default_branch = StackedConfig.default().get(
                    ("init",), "defaultBranch"
                )
            except KeyError:
                default_branch = DEFAULT_BRANCH
        ret = cls(path, bare=False)
        ret._put_named_file(
            HEADREF.decode("ascii"),
            SYMREF + local_branch_name(default_branch) + b"\n",
        )
        ret._init_files(bare=False)
        logger.debug("initialized empty repository in %s", controldir)
        return ret

    def _init_files(self, bare: bool) -> None:
        """Initialize a default set of named files."""
        cf = ConfigFile()
        cf.set("core", "repositoryformatversion", "0")
        cf.set("core", "filemode", True)
        cf.set("core", "bare", bare)
        cf.set("core", "logallrefupdates", True)
        cf.write_to_path(os.path.join(self.controldir(), "config"))

    def close(self) -> None:
        """Close any files opened by this repository."""

    def __enter__(self) -> "Repo":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
