# test_file.py -- Test for git files
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

"""Tests for atomic file writes."""

import os
import shutil
import stat
import tempfile

from gitcore.file import FileLocked, GitFile, ensure_dir_exists

from . import TestCase


class GitFileTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self._tempdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self._tempdir)
        with open(self.path("foo"), "wb") as f:
            f.write(b"foo contents")

    def path(self, filename: str) -> str:
        return os.path.join(self._tempdir, filename)

    def test_invalid(self) -> None:
        foo = self.path("foo")
        self.assertRaises(OSError, GitFile, foo, mode="r")
        self.assertRaises(OSError, GitFile, foo, mode="ab")
        self.assertRaises(OSError, GitFile, foo, mode="r+b")
        self.assertRaises(OSError, GitFile, foo, mode="w+b")
        self.assertRaises(OSError, GitFile, foo, mode="a+bU")

    def test_readonly(self) -> None:
        with GitFile(self.path("foo"), "rb") as f:
            self.assertEqual(b"foo contents", f.read())

    def test_write(self) -> None:
        foo = self.path("foo")
        foo_lock = f"{foo}.lock"

        with open(foo, "rb") as orig_f:
            self.assertEqual(orig_f.read(), b"foo contents")

        self.assertFalse(os.path.exists(foo_lock))
        f = GitFile(foo, "wb")
        self.assertFalse(f.closed)
        self.assertRaises(AttributeError, getattr, f, "not_a_file_property")

        self.assertTrue(os.path.exists(foo_lock))
        f.write(b"new stuff")
        f.close()
        self.assertFalse(os.path.exists(foo_lock))

        with open(foo, "rb") as new_f:
            self.assertEqual(b"new stuff", new_f.read())

    def test_open_twice(self) -> None:
        foo = self.path("foo")
        f1 = GitFile(foo, "wb")
        f1.write(b"new")
        try:
            with self.assertRaises(FileLocked) as cm:
                GitFile(foo, "wb")
            self.assertEqual(foo + ".lock", cm.exception.lockfilename)
        finally:
            f1.close()

        # The first lock was released, so the file can be written again.
        with GitFile(foo, "wb") as f2:
            f2.write(b"newer")
        with open(foo, "rb") as f:
            self.assertEqual(b"newer", f.read())

    def test_abort(self) -> None:
        foo = self.path("foo")
        foo_lock = f"{foo}.lock"

        f = GitFile(foo, "wb")
        f.write(b"new contents")
        f.abort()
        self.assertTrue(f.closed)
        self.assertFalse(os.path.exists(foo_lock))

        with open(foo, "rb") as new_orig_f:
            self.assertEqual(new_orig_f.read(), b"foo contents")

    def test_abort_close(self) -> None:
        foo = self.path("foo")
        f = GitFile(foo, "wb")
        f.abort()
        f.close()
        f.abort()

        f = GitFile(foo, "wb")
        f.close()
        f.abort()
        f.close()

    def test_exception_in_with_block_aborts(self) -> None:
        foo = self.path("foo")
        with self.assertRaises(RuntimeError):
            with GitFile(foo, "wb") as f:
                f.write(b"half written")
                raise RuntimeError("boom")
        with open(foo, "rb") as orig_f:
            self.assertEqual(b"foo contents", orig_f.read())
        self.assertEqual(["foo"], os.listdir(self._tempdir))

    def test_new_file(self) -> None:
        bar = self.path("bar")
        with GitFile(bar, "wb", fsync=False) as f:
            f.write(b"bar contents")
        with open(bar, "rb") as f:
            self.assertEqual(b"bar contents", f.read())

    def test_fspath(self) -> None:
        with GitFile(self.path("foo"), "wb") as f:
            self.assertEqual(self.path("foo"), os.fspath(f))


class NonExclusiveGitFileTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self._tempdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self._tempdir)

    def test_no_lock_file(self) -> None:
        target = os.path.join(self._tempdir, "obj")
        f = GitFile(target, "wb", exclusive=False)
        self.assertFalse(os.path.exists(target + ".lock"))
        [tmpname] = os.listdir(self._tempdir)
        self.assertTrue(tmpname.startswith("tmp_obj_"))
        f.write(b"data")
        f.close()
        self.assertEqual(["obj"], os.listdir(self._tempdir))

    def test_concurrent_writers(self) -> None:
        target = os.path.join(self._tempdir, "obj")
        f1 = GitFile(target, "wb", exclusive=False)
        f2 = GitFile(target, "wb", exclusive=False)
        f1.write(b"same")
        f2.write(b"same")
        f1.close()
        f2.close()
        with open(target, "rb") as f:
            self.assertEqual(b"same", f.read())
        self.assertEqual(["obj"], os.listdir(self._tempdir))

    def test_mask(self) -> None:
        target = os.path.join(self._tempdir, "obj")
        with GitFile(target, "wb", mask=0o444, exclusive=False) as f:
            f.write(b"data")
        self.assertEqual(0o444, stat.S_IMODE(os.stat(target).st_mode))

    def test_abort_removes_temporary(self) -> None:
        target = os.path.join(self._tempdir, "obj")
        f = GitFile(target, "wb", exclusive=False)
        f.write(b"data")
        f.abort()
        self.assertEqual([], os.listdir(self._tempdir))


class EnsureDirExistsTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self._tempdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self._tempdir)

    def test_creates_parents(self) -> None:
        path = os.path.join(self._tempdir, "a", "b", "c")
        ensure_dir_exists(path)
        self.assertTrue(os.path.isdir(path))

    def test_existing(self) -> None:
        ensure_dir_exists(self._tempdir)
        ensure_dir_exists(self._tempdir)
        self.assertTrue(os.path.isdir(self._tempdir))

    def test_mode(self) -> None:
        path = os.path.join(self._tempdir, "sub")
        ensure_dir_exists(path, mode=0o700)
        self.assertEqual(0o700, stat.S_IMODE(os.stat(path).st_mode))
