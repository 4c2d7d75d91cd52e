# file.py -- Safe access to git files
# Copyright (C) 2010 Google, Inc.
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

"""Safe access to git files."""

__all__ = [
    "FileLocked",
    "GitFile",
    "ensure_dir_exists",
]

import os
import tempfile
import warnings
from types import TracebackType
from typing import IO, Literal, overload

StrPath = str | os.PathLike[str]


def ensure_dir_exists(dirname: StrPath, mode: int | None = None) -> None:
    """Ensure a directory exists, creating if necessary.

    Args:
      dirname: Directory to create
      mode: Optional permission bits to apply to a newly created directory
    """
    try:
        os.makedirs(dirname)
    except FileExistsError:
        return
    if mode is not None:
        os.chmod(dirname, mode)


@overload
def GitFile(
    filename: StrPath,
    mode: Literal["wb"],
    bufsize: int = -1,
    mask: int = 0o644,
    fsync: bool = True,
    exclusive: bool = True,
) -> "_GitFile": ...


@overload
def GitFile(
    filename: StrPath,
    mode: Literal["rb"] = "rb",
    bufsize: int = -1,
    mask: int = 0o644,
    fsync: bool = True,
    exclusive: bool = True,
) -> IO[bytes]: ...


def GitFile(
    filename: StrPath,
    mode: str = "rb",
    bufsize: int = -1,
    mask: int = 0o644,
    fsync: bool = True,
    exclusive: bool = True,
) -> "IO[bytes] | _GitFile":
    """Create a file object that obeys the git file locking protocol.

    Returns: a builtin file object or a _GitFile object

    Note: See _GitFile for a description of the file locking protocol.

    Only read-only and write-only (binary) modes are supported; r+, w+, and a
    are not.

    The default file mask makes any created files user-writable and
    world-readable.

    Args:
      filename: Path to the file
      mode: File mode (only 'rb' and 'wb' are supported)
      bufsize: Buffer size for file operations
      mask: File mask for created files
      fsync: Whether to call fsync() before closing (default: True)
      exclusive: Whether writers must hold ``<filename>.lock``. When false,
        each writer gets its own uniquely named temporary file, which suits
        content-addressed files that several writers may produce at once.
    """
    if "a" in mode:
        raise OSError("append mode not supported for Git files")
    if "+" in mode:
        raise OSError("read/write mode not supported for Git files")
    if "b" not in mode:
        raise OSError("text mode not supported for Git files")
    if "w" in mode:
        return _GitFile(filename, mode, bufsize, mask, fsync, exclusive)
    else:
        return open(filename, mode, bufsize)


class FileLocked(Exception):
    """File is already locked."""

    def __init__(self, filename: StrPath, lockfilename: str) -> None:
        """Initialize FileLocked.

        Args:
          filename: Name of the file that is locked
          lockfilename: Name of the lock file
        """
        self.filename = filename
        self.lockfilename = lockfilename
        super().__init__(filename, lockfilename)


class _GitFile:
    """File that follows the git locking protocol for writes.

    All writes to a file foo will be written into foo.lock in the same
    directory (or a unique temporary file next to it, for non-exclusive
    writers), and that file will be renamed to overwrite the original file on
    close. Readers therefore see either the old file or the complete new one.

    Note: You *must* call close() or abort() on a _GitFile for the lock to be
        released. Typically this will happen in a with block.
    """

    def __init__(
        self,
        filename: StrPath,
        mode: str,
        bufsize: int,
        mask: int,
        fsync: bool = True,
        exclusive: bool = True,
    ) -> None:
        self._filename = os.fspath(filename)
        self._fsync = fsync
        if exclusive:
            self._lockfilename = self._filename + ".lock"
            try:
                fd = os.open(
                    self._lockfilename,
                    os.O_RDWR | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0),
                    mask,
                )
            except FileExistsError as exc:
                raise FileLocked(filename, self._lockfilename) from exc
        else:
            dirname, basename = os.path.split(self._filename)
            fd, self._lockfilename = tempfile.mkstemp(
                prefix=f"tmp_{basename}_", dir=dirname or "."
            )
            os.chmod(self._lockfilename, mask)
        self._file = os.fdopen(fd, mode, bufsize)
        self._closed = False

    def abort(self) -> None:
        """Close and discard the lockfile without overwriting the target.

        If the file is already closed, this is a no-op.
        """
        if self._closed:
            return
        self._file.close()
        try:
            os.remove(self._lockfilename)
        except FileNotFoundError:
            # The file may have been renamed into place already, which is ok.
            pass
        self._closed = True

    def close(self) -> None:
        """Close this file, saving the lockfile over the original.

        Note: If this method fails, it will attempt to delete the lockfile.
            However, it is not guaranteed to do so (e.g. if a filesystem
            becomes suddenly read-only), which will prevent future writes to
            this file until the lockfile is removed manually.

        Raises:
          OSError: if the original file could not be overwritten. The
            lock file is still closed, so further attempts to write to the same
            file object will raise ValueError.
        """
        if self._closed:
            return
        self._file.flush()
        if self._fsync:
            os.fsync(self._file.fileno())
        self._file.close()
        try:
            os.replace(self._lockfilename, self._filename)
        finally:
            self.abort()

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            warnings.warn(f"unclosed {self!r}", ResourceWarning, stacklevel=2)
            self.abort()

    def __enter__(self) -> "_GitFile":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()

    def __fspath__(self) -> str:
        """Return the file path for os.fspath() compatibility."""
        return self._filename

    @property
    def closed(self) -> bool:
        """Return whether the file is closed."""
        return self._closed

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def flush(self) -> None:
        return self._file.flush()

    def fileno(self) -> int:
        return self._file.fileno()
