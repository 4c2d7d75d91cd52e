# test_repository.py -- tests for repository.py
# Copyright (C) 2007 James Westby <jw+debian@jameswestby.net>
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

"""Tests for the repository."""

import os
import shutil
import tempfile

from gitcore.config import StackedConfig
from gitcore.errors import InvalidUserIdentity, NotFoundError, NotGitRepository
from gitcore.objects import Blob
from gitcore.repo import (
    Repo,
    check_user_identity,
    get_user_identity,
)

from . import TestCase


class CreateRepositoryTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.tmp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp_dir)

    def _check_repo_contents(self, repo: Repo) -> None:
        self.assertFalse(repo.bare)
        controldir = os.path.join(self.tmp_dir, ".git")
        self.assertEqual(controldir, repo.controldir())
        for d in (
            "objects",
            "refs",
            os.path.join("refs", "heads"),
            os.path.join("refs", "tags"),
        ):
            self.assertTrue(os.path.isdir(os.path.join(controldir, d)), d)
        self.assertEqual(b"ref: refs/heads/main\n", repo.get_named_file("HEAD"))
        config = repo.get_config()
        self.assertEqual(b"0", config.get((b"core",), b"repositoryformatversion"))
        self.assertTrue(config.get_boolean((b"core",), b"filemode"))
        self.assertFalse(config.get_boolean((b"core",), b"bare"))
        self.assertTrue(config.get_boolean((b"core",), b"logallrefupdates"))

    def test_create_disk(self) -> None:
        repo = Repo.init(self.tmp_dir)
        self._check_repo_contents(repo)

    def test_create_mkdir(self) -> None:
        path = os.path.join(self.tmp_dir, "new")
        repo = Repo.init(path, mkdir=True)
        self.assertEqual(path, repo.path)
        self.assertTrue(os.path.isdir(os.path.join(path, ".git", "objects")))

    def test_create_twice(self) -> None:
        Repo.init(self.tmp_dir)
        self.assertRaises(FileExistsError, Repo.init, self.tmp_dir)

    def test_default_branch_argument(self) -> None:
        repo = Repo.init(self.tmp_dir, default_branch=b"trunk")
        self.assertEqual(b"ref: refs/heads/trunk\n", repo.get_named_file("HEAD"))

    def test_default_branch_from_config(self) -> None:
        config_path = os.path.join(self.tmp_dir, "gitconfig")
        with open(config_path, "wb") as f:
            f.write(b"[init]\n\tdefaultBranch = develop\n")
        self.overrideEnv("GIT_CONFIG_GLOBAL", config_path)
        repo_path = os.path.join(self.tmp_dir, "repo")
        repo = Repo.init(repo_path, mkdir=True)
        self.assertEqual(b"ref: refs/heads/develop\n", repo.get_named_file("HEAD"))

    def test_bytes_path(self) -> None:
        repo = Repo.init(os.fsencode(self.tmp_dir))
        self.assertEqual(self.tmp_dir, repo.path)


class RepositoryRootTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.tmp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp_dir)
        self.repo = Repo.init(self.tmp_dir)
        self.addCleanup(self.repo.close)
        self.blob = Blob(b"file contents\n")
        self.repo.object_store.add_object(self.blob)

    def _set_branch(self, name: str, sha: bytes) -> None:
        path = os.path.join(self.repo.controldir(), "refs", "heads", name)
        with open(path, "wb") as f:
            f.write(sha + b"\n")

    def test_repr(self) -> None:
        self.assertEqual(f"<Repo at {self.tmp_dir!r}>", repr(self.repo))

    def test_open(self) -> None:
        repo = Repo(self.tmp_dir)
        self.assertFalse(repo.bare)
        self.assertEqual(self.blob, repo.object_store[self.blob.id])

    def test_not_a_repository(self) -> None:
        empty = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, empty)
        self.assertRaises(NotGitRepository, Repo, empty)

    def test_bare(self) -> None:
        repo = Repo(self.repo.controldir())
        self.assertTrue(repo.bare)
        self.assertEqual(self.repo.controldir(), repo.controldir())
        self.assertIn(self.blob.id, repo.object_store)

    def test_discover(self) -> None:
        subdir = os.path.join(self.tmp_dir, "a", "b")
        os.makedirs(subdir)
        repo = Repo.discover(subdir)
        self.assertEqual(self.tmp_dir, repo.path)

    def test_discover_not_found(self) -> None:
        empty = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, empty)
        if os.path.isdir(os.path.join(os.path.dirname(empty), ".git")):
            self.skipTest("temporary directory is inside a repository")
        self.assertRaises(NotGitRepository, Repo.discover, empty)

    def test_get_named_file(self) -> None:
        self.assertEqual(b"ref: refs/heads/main\n", self.repo.get_named_file("HEAD"))
        self.assertEqual(b"ref: refs/heads/main\n", self.repo.get_named_file("/HEAD"))
        self.assertIsNone(self.repo.get_named_file("nonexistent"))

    def test_getitem_by_sha(self) -> None:
        self.assertEqual(self.blob, self.repo[self.blob.id])
        self.assertEqual(self.blob, self.repo[self.blob.raw_id])

    def test_getitem_by_ref(self) -> None:
        self._set_branch("main", self.blob.id)
        self.assertEqual(self.blob, self.repo[b"refs/heads/main"])
        self.assertEqual(self.blob, self.repo[b"HEAD"])

    def test_getitem_missing(self) -> None:
        self.assertRaises(NotFoundError, self.repo.__getitem__, b"a" * 40)
        self.assertRaises(NotFoundError, self.repo.__getitem__, b"refs/heads/nope")

    def test_getitem_str(self) -> None:
        self.assertRaises(TypeError, self.repo.__getitem__, "HEAD")

    def test_contains(self) -> None:
        self.assertIn(self.blob.id, self.repo)
        self.assertNotIn(b"a" * 40, self.repo)
        self.assertIn(b"HEAD", self.repo)
        self.assertNotIn(b"refs/heads/nope", self.repo)

    def test_head(self) -> None:
        self.assertRaises(KeyError, self.repo.head)
        self._set_branch("main", self.blob.id)
        self.assertEqual(self.blob.id, self.repo.head())

    def test_config_stack(self) -> None:
        stack = self.repo.get_config_stack()
        self.assertIsInstance(stack, StackedConfig)
        self.assertEqual(b"0", stack.get((b"core",), b"repositoryformatversion"))

    def test_compression_from_config(self) -> None:
        config = self.repo.get_config()
        config.set((b"core",), b"looseCompression", b"0")
        config.write_to_path()
        repo = Repo(self.tmp_dir)
        self.assertEqual(0, repo.object_store.loose_compression_level)

    def test_context_manager(self) -> None:
        with Repo(self.tmp_dir) as repo:
            self.assertIn(self.blob.id, repo.object_store)


class UserIdentityTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.tmp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp_dir)
        self.repo = Repo.init(self.tmp_dir)

    def test_from_environment(self) -> None:
        self.overrideEnv("GIT_AUTHOR_NAME", "Env Author")
        self.overrideEnv("GIT_AUTHOR_EMAIL", "author@example.com")
        self.assertEqual(
            b"Env Author <author@example.com>", self.repo.get_user_identity("AUTHOR")
        )

    def test_from_config(self) -> None:
        config = self.repo.get_config()
        config.set((b"user",), b"name", b"Config User")
        config.set((b"user",), b"email", b"<config@example.com>")
        config.write_to_path()
        self.assertEqual(
            b"Config User <config@example.com>",
            self.repo.get_user_identity("COMMITTER"),
        )

    def test_environment_overrides_config(self) -> None:
        config = self.repo.get_config()
        config.set((b"user",), b"name", b"Config User")
        config.set((b"user",), b"email", b"config@example.com")
        config.write_to_path()
        self.overrideEnv("GIT_COMMITTER_NAME", "Env Committer")
        self.assertEqual(
            b"Env Committer <config@example.com>",
            self.repo.get_user_identity("COMMITTER"),
        )
        self.assertEqual(
            b"Config User <config@example.com>",
            self.repo.get_user_identity("AUTHOR"),
        )

    def test_default_identity(self) -> None:
        self.overrideEnv("EMAIL", "fallback@example.com")
        self.overrideEnv("USER", "someone")
        identity = get_user_identity(StackedConfig([]))
        check_user_identity(identity)
        self.assertTrue(identity.endswith(b" <fallback@example.com>"))

    def test_invalid_identity(self) -> None:
        self.overrideEnv("GIT_AUTHOR_NAME", "Bad\nName")
        self.overrideEnv("GIT_AUTHOR_EMAIL", "bad@example.com")
        self.assertRaises(InvalidUserIdentity, self.repo.get_user_identity, "AUTHOR")


class CheckUserIdentityTests(TestCase):
    def test_valid(self) -> None:
        check_user_identity(b"Me <me@example.com>")

    def test_invalid(self) -> None:
        self.assertRaises(InvalidUserIdentity, check_user_identity, b"No Email")
        self.assertRaises(
            InvalidUserIdentity, check_user_identity, b"Fullname <missing"
        )
        self.assertRaises(
            InvalidUserIdentity, check_user_identity, b"Fullname missing>"
        )
        self.assertRaises(
            InvalidUserIdentity, check_user_identity, b"Fullname <a@b>\nextra"
        )
        self.assertRaises(InvalidUserIdentity, check_user_identity, b"Nul\0 <a@b>")
