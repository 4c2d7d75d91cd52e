# test_porcelain.py -- porcelain tests
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

"""Tests for gitcore.porcelain."""

import os
import shutil
import tempfile
from io import BytesIO, StringIO

from gitcore import porcelain
from gitcore.errors import InvalidUserIdentity, NotCommitError, NotTreeError
from gitcore.objects import BLOB_MODE, TREE_MODE, Blob, Commit, Tree
from gitcore.repo import Repo

from . import TestCase

TEST_CONTENT_ID = b"d670460b4b4aece5915caf5c68d12f560a9fe3e4"
EMPTY_TREE_ID = b"4b825dc642cb6eb9a060e54bf8d69288fbee4904"


class PorcelainTestCase(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.test_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.test_dir)
        self.repo_path = os.path.join(self.test_dir, "repo")
        self.repo = Repo.init(self.repo_path, mkdir=True)
        self.addCleanup(self.repo.close)
        self.overrideEnv("GIT_AUTHOR_NAME", "Joe Example")
        self.overrideEnv("GIT_AUTHOR_EMAIL", "joe@example.com")
        self.overrideEnv("GIT_COMMITTER_NAME", "Jane Committer")
        self.overrideEnv("GIT_COMMITTER_EMAIL", "jane@example.com")

    def write_file(self, relpath: str, contents: bytes) -> str:
        path = os.path.join(self.repo_path, relpath)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(contents)
        return path

    def set_head(self, sha: bytes) -> None:
        path = os.path.join(self.repo.controldir(), "refs", "heads", "main")
        with open(path, "wb") as f:
            f.write(sha + b"\n")

    def make_commit(
        self, parents: tuple[bytes, ...] = (), message: bytes = b"msg\n"
    ) -> bytes:
        tree_id = porcelain.write_tree(self.repo)
        return porcelain.commit_tree(
            self.repo,
            tree_id,
            parents=parents,
            message=message,
            author_time=1234567890,
            commit_time=1234567890,
            timezone=0,
        )


class InitTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.test_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.test_dir)

    def test_non_bare(self) -> None:
        repo = porcelain.init(self.test_dir)
        self.assertEqual(self.test_dir, repo.path)
        self.assertTrue(os.path.isdir(os.path.join(self.test_dir, ".git", "objects")))
        with open(os.path.join(self.test_dir, ".git", "HEAD"), "rb") as f:
            self.assertEqual(b"ref: refs/heads/main\n", f.read())

    def test_creates_directory(self) -> None:
        path = os.path.join(self.test_dir, "new")
        porcelain.init(path)
        self.assertTrue(os.path.isdir(os.path.join(path, ".git", "refs", "heads")))
        self.assertTrue(os.path.isdir(os.path.join(path, ".git", "refs", "tags")))

    def test_already_exists(self) -> None:
        porcelain.init(self.test_dir)
        self.assertRaises(porcelain.Error, porcelain.init, self.test_dir)


class HashObjectTests(PorcelainTestCase):
    def test_no_write(self) -> None:
        self.assertEqual(
            TEST_CONTENT_ID, porcelain.hash_object(None, b"test content\n", write=False)
        )
        self.assertNotIn(TEST_CONTENT_ID, self.repo.object_store)

    def test_write(self) -> None:
        sha = porcelain.hash_object(self.repo, b"test content\n")
        self.assertEqual(TEST_CONTENT_ID, sha)
        self.assertEqual(Blob(b"test content\n"), self.repo.object_store[sha])

    def test_path(self) -> None:
        path = self.write_file("file.txt", b"test content\n")
        self.assertEqual(TEST_CONTENT_ID, porcelain.hash_object(self.repo_path, path))
        self.assertIn(TEST_CONTENT_ID, Repo(self.repo_path).object_store)

    def test_write_without_repo(self) -> None:
        self.assertRaises(ValueError, porcelain.hash_object, None, b"data")

    def test_missing_file(self) -> None:
        self.assertRaises(
            FileNotFoundError,
            porcelain.hash_object,
            self.repo,
            os.path.join(self.repo_path, "missing"),
        )


class WriteTreeTests(PorcelainTestCase):
    def test_empty(self) -> None:
        self.assertEqual(EMPTY_TREE_ID, porcelain.write_tree(self.repo))

    def test_files(self) -> None:
        self.write_file("b.txt", b"world\n")
        self.write_file("a", b"hello\n")
        tree_id = porcelain.write_tree(self.repo)
        tree = self.repo.object_store[tree_id]
        self.assertIsInstance(tree, Tree)
        self.assertEqual([b"a", b"b.txt"], [e.path for e in tree.items()])

    def test_excludes_control_dir(self) -> None:
        self.write_file("file", b"x")
        tree = self.repo.object_store[porcelain.write_tree(self.repo_path)]
        self.assertIsInstance(tree, Tree)
        self.assertNotIn(b".git", tree)

    def test_idempotent(self) -> None:
        self.write_file("dir/file", b"x")
        self.assertEqual(
            porcelain.write_tree(self.repo), porcelain.write_tree(self.repo)
        )

    def test_bare_repository(self) -> None:
        bare_path = os.path.join(self.test_dir, "bare.git")
        os.rename(self.repo.controldir(), bare_path)
        with Repo(bare_path) as bare:
            self.assertTrue(bare.bare)
            self.assertRaises(porcelain.Error, porcelain.write_tree, bare)
        self.assertEqual(
            ["HEAD", "config", "objects", "refs"], sorted(os.listdir(bare_path))
        )
        self.assertEqual([], os.listdir(os.path.join(bare_path, "objects")))


class LsTreeTests(PorcelainTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.write_file("a", b"hello\n")
        self.write_file("b.txt", b"world\n")
        self.write_file("sub/c", b"nested\n")
        self.tree_id = porcelain.write_tree(self.repo)
        self.sub_id = self.repo.object_store[self.tree_id][b"sub"][1]

    def test_pretty(self) -> None:
        hello_id = Blob(b"hello\n").id.decode("ascii")
        world_id = Blob(b"world\n").id.decode("ascii")
        sub_id = self.sub_id.decode("ascii")
        f = StringIO()
        porcelain.ls_tree(self.repo, self.tree_id, outstream=f)
        self.assertEqual(
            f"100644 blob {hello_id}\ta\n"
            f"100644 blob {world_id}\tb.txt\n"
            f"040000 tree {sub_id}\tsub\n",
            f.getvalue(),
        )

    def test_name_only(self) -> None:
        f = StringIO()
        porcelain.ls_tree(self.repo, self.tree_id, outstream=f, name_only=True)
        self.assertEqual("a\nb.txt\nsub\n", f.getvalue())

    def test_recursive(self) -> None:
        f = StringIO()
        porcelain.ls_tree(
            self.repo, self.tree_id, outstream=f, name_only=True, recursive=True
        )
        self.assertEqual("a\nb.txt\nsub/c\n", f.getvalue())

    def test_binary_stream(self) -> None:
        f = BytesIO()
        porcelain.ls_tree(self.repo, self.tree_id, outstream=f, name_only=True)
        self.assertEqual(b"a\nb.txt\nsub\n", f.getvalue())

    def test_subtree_sorts_before_file(self) -> None:
        blob = Blob(b"world\n")
        subtree = Tree([(b"c", BLOB_MODE, blob.id)])
        tree = Tree([(b"b.txt", BLOB_MODE, blob.id), (b"a", TREE_MODE, subtree.id)])
        self.repo.object_store.add_objects([blob, subtree, tree])
        f = StringIO()
        porcelain.ls_tree(self.repo, tree.id, outstream=f, name_only=True)
        self.assertEqual("a\nb.txt\n", f.getvalue())

    def test_undecodable_name(self) -> None:
        blob = Blob(b"hello\n")
        tree = Tree([(b"caf\xe9", BLOB_MODE, blob.id)])
        self.repo.object_store.add_objects([blob, tree])
        f = BytesIO()
        porcelain.ls_tree(self.repo, tree.id, outstream=f, name_only=True)
        self.assertEqual(b"caf\xe9\n", f.getvalue())
        f = BytesIO()
        porcelain.ls_tree(self.repo, tree.id, outstream=f)
        self.assertEqual(b"100644 blob " + blob.id + b"\tcaf\xe9\n", f.getvalue())


    def test_short_id(self) -> None:
        f = StringIO()
        porcelain.ls_tree(self.repo, self.tree_id[:7], outstream=f, name_only=True)
        self.assertEqual("a\nb.txt\nsub\n", f.getvalue())

    def test_commit(self) -> None:
        commit_id = porcelain.commit_tree(self.repo, self.tree_id, message=b"m\n")
        self.set_head(commit_id)
        f = StringIO()
        porcelain.ls_tree(self.repo, "HEAD", outstream=f, name_only=True)
        self.assertEqual("a\nb.txt\nsub\n", f.getvalue())

    def test_unborn_head(self) -> None:
        self.assertRaises(
            porcelain.Error, porcelain.ls_tree, self.repo, outstream=StringIO()
        )

    def test_blob(self) -> None:
        blob_id = self.repo.object_store[self.tree_id][b"a"][1]
        self.assertRaises(
            NotTreeError, porcelain.ls_tree, self.repo, blob_id, outstream=StringIO()
        )


class CatFileTests(PorcelainTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.write_file("file", b"test content\n")
        self.tree_id = porcelain.write_tree(self.repo)
        self.commit_id = self.make_commit()

    def cat(self, name: bytes | str, mode: str) -> bytes:
        f = BytesIO()
        self.assertTrue(porcelain.cat_file(self.repo, name, mode, outstream=f))
        return f.getvalue()

    def test_blob(self) -> None:
        self.assertEqual(b"test content\n", self.cat(TEST_CONTENT_ID, "-p"))
        self.assertEqual(b"blob\n", self.cat(TEST_CONTENT_ID, "-t"))
        self.assertEqual(b"13\n", self.cat(TEST_CONTENT_ID, "-s"))

    def test_blob_text_stream(self) -> None:
        f = StringIO()
        porcelain.cat_file(self.repo, TEST_CONTENT_ID, "-p", outstream=f)
        self.assertEqual("test content\n", f.getvalue())

    def test_tree(self) -> None:
        self.assertEqual(
            b"100644 blob " + TEST_CONTENT_ID + b"\tfile\n",
            self.cat(self.tree_id, "-p"),
        )
        self.assertEqual(b"tree\n", self.cat(self.tree_id, "-t"))
        self.assertEqual(b"32\n", self.cat(self.tree_id, "-s"))

    def test_tree_undecodable_name(self) -> None:
        blob = Blob(b"test content\n")
        tree = Tree([(b"caf\xe9", BLOB_MODE, blob.id)])
        self.repo.object_store.add_object(tree)
        self.assertEqual(
            b"100644 blob " + TEST_CONTENT_ID + b"\tcaf\xe9\n", self.cat(tree.id, "-p")
        )

    def test_commit(self) -> None:
        commit = self.repo.object_store[self.commit_id]
        self.assertEqual(commit.as_raw_string(), self.cat(self.commit_id, "-p"))
        self.assertEqual(b"commit\n", self.cat(self.commit_id, "-t"))
        self.assertEqual(
            f"{len(commit.as_raw_string())}\n".encode(), self.cat(self.commit_id, "-s")
        )

    def test_by_ref_and_short_id(self) -> None:
        self.set_head(self.commit_id)
        self.assertEqual(b"commit\n", self.cat("HEAD", "-t"))
        self.assertEqual(b"commit\n", self.cat("main", "-t"))
        self.assertEqual(b"blob\n", self.cat(TEST_CONTENT_ID[:6].decode(), "-t"))

    def test_exists(self) -> None:
        f = BytesIO()
        self.assertTrue(porcelain.cat_file(self.repo, self.commit_id, "-e", f))
        self.assertFalse(porcelain.cat_file(self.repo, b"a" * 40, "-e", f))
        self.assertFalse(porcelain.cat_file(self.repo, "nonexistent", "-e", f))
        self.assertEqual(b"", f.getvalue())

    def test_missing(self) -> None:
        with self.assertRaises(porcelain.Error) as cm:
            porcelain.cat_file(self.repo, b"a" * 40, "-p", outstream=BytesIO())
        self.assertEqual(f"Not a valid object name {'a' * 40}", str(cm.exception))

    def test_invalid_mode(self) -> None:
        self.assertRaises(
            ValueError, porcelain.cat_file, self.repo, self.commit_id, "-x", BytesIO()
        )


class CommitTreeTests(PorcelainTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.write_file("file", b"contents\n")
        self.tree_id = porcelain.write_tree(self.repo)

    def get_commit(self, sha: bytes) -> Commit:
        commit = self.repo.object_store[sha]
        assert isinstance(commit, Commit)
        return commit

    def test_simple(self) -> None:
        sha = porcelain.commit_tree(
            self.repo,
            self.tree_id,
            message=b"initial\n",
            author_time=1234567890,
            commit_time=1234567891,
            timezone=3600,
        )
        commit = self.get_commit(sha)
        self.assertEqual(self.tree_id, commit.tree)
        self.assertEqual([], commit.parents)
        self.assertEqual(b"Joe Example <joe@example.com>", commit.author)
        self.assertEqual(b"Jane Committer <jane@example.com>", commit.committer)
        self.assertEqual(1234567890, commit.author_time)
        self.assertEqual(1234567891, commit.commit_time)
        self.assertEqual(3600, commit.author_timezone)
        self.assertEqual(3600, commit.commit_timezone)
        self.assertEqual(b"initial\n", commit.message)

    def test_str_message(self) -> None:
        sha = porcelain.commit_tree(self.repo, self.tree_id, message="héllo\n")
        self.assertEqual("héllo\n".encode(), self.get_commit(sha).message)

    def test_deterministic(self) -> None:
        first = self.make_commit()
        second = self.make_commit()
        self.assertEqual(first, second)

    def test_parent_order_preserved(self) -> None:
        p1 = self.make_commit(message=b"one\n")
        p2 = self.make_commit(message=b"two\n")
        sha = self.make_commit(parents=(p2, p1), message=b"merge\n")
        self.assertEqual([p2, p1], self.get_commit(sha).parents)

    def test_parent_by_short_id(self) -> None:
        p1 = self.make_commit(message=b"one\n")
        sha = self.make_commit(parents=(p1[:8],))
        self.assertEqual([p1], self.get_commit(sha).parents)

    def test_missing_tree(self) -> None:
        self.assertRaises(porcelain.Error, porcelain.commit_tree, self.repo, b"a" * 40)

    def test_not_a_tree(self) -> None:
        blob_id = porcelain.hash_object(self.repo, b"blob\n")
        self.assertRaises(NotTreeError, porcelain.commit_tree, self.repo, blob_id)

    def test_missing_parent(self) -> None:
        self.assertRaises(
            porcelain.Error,
            porcelain.commit_tree,
            self.repo,
            self.tree_id,
            parents=[b"b" * 40],
        )

    def test_parent_not_a_commit(self) -> None:
        self.assertRaises(
            NotCommitError,
            porcelain.commit_tree,
            self.repo,
            self.tree_id,
            parents=[self.tree_id],
        )

    def test_explicit_identities(self) -> None:
        sha = porcelain.commit_tree(
            self.repo,
            self.tree_id,
            author=b"Other Author <other@example.com>",
            committer=b"Other Committer <oc@example.com>",
        )
        commit = self.get_commit(sha)
        self.assertEqual(b"Other Author <other@example.com>", commit.author)
        self.assertEqual(b"Other Committer <oc@example.com>", commit.committer)

    def test_invalid_identity(self) -> None:
        self.assertRaises(
            InvalidUserIdentity,
            porcelain.commit_tree,
            self.repo,
            self.tree_id,
            author=b"no email",
        )

    def test_dates_from_environment(self) -> None:
        self.overrideEnv("GIT_AUTHOR_DATE", "1234567890 +0200")
        self.overrideEnv("GIT_COMMITTER_DATE", "@1234567999 -0130")
        commit = self.get_commit(porcelain.commit_tree(self.repo, self.tree_id))
        self.assertEqual(1234567890, commit.author_time)
        self.assertEqual(7200, commit.author_timezone)
        self.assertEqual(1234567999, commit.commit_time)
        self.assertEqual(-5400, commit.commit_timezone)


class ParseGitDateTests(TestCase):
    def test_with_timezone(self) -> None:
        self.assertEqual(
            (1234567890, 7200), porcelain.parse_git_date("1234567890 +0200")
        )
        self.assertEqual(
            (1234567890, -19800), porcelain.parse_git_date("@1234567890 -0530")
        )

    def test_without_timezone(self) -> None:
        self.assertEqual((1234567890, 0), porcelain.parse_git_date("1234567890"))

    def test_invalid(self) -> None:
        for value in ("yesterday", "12345 0200", "12345 +02", ""):
            self.assertRaises(
                porcelain.TimezoneFormatError, porcelain.parse_git_date, value
            )


class GetUserTimezonesTests(TestCase):
    def test_from_environment(self) -> None:
        self.overrideEnv("GIT_AUTHOR_DATE", "1 +0100")
        self.overrideEnv("GIT_COMMITTER_DATE", "1 -0100")
        self.assertEqual((3600, -3600), porcelain.get_user_timezones())

    def test_invalid_environment(self) -> None:
        self.overrideEnv("GIT_AUTHOR_DATE", "not a date")
        self.assertRaises(porcelain.TimezoneFormatError, porcelain.get_user_timezones)
