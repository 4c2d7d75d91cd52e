# __init__.py -- The tests for gitcore
# Copyright (C) 2024 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Tests for gitcore."""

__all__ = [
    "SkipTest",
    "TestCase",
    "expectedFailure",
    "skipIf",
    "test_suite",
]

import os
import unittest
from unittest import SkipTest, expectedFailure, skipIf
from unittest import TestCase as _TestCase

# Environment variables that would let the user's own git setup leak into
# the tests.
_ISOLATED_ENVIRONMENT = (
    "GIT_AUTHOR_NAME",
    "GIT_AUTHOR_EMAIL",
    "GIT_AUTHOR_DATE",
    "GIT_COMMITTER_NAME",
    "GIT_COMMITTER_EMAIL",
    "GIT_COMMITTER_DATE",
    "GIT_CONFIG_GLOBAL",
    "GIT_CONFIG_SYSTEM",
    "GIT_TRACE",
    "XDG_CONFIG_HOME",
)


class TestCase(_TestCase):
    """Test case that hides the user's git configuration."""

    def setUp(self) -> None:
        super().setUp()
        self.overrideEnv("HOME", "/nonexistent")
        self.overrideEnv("GIT_CONFIG_NOSYSTEM", "1")
        for name in _ISOLATED_ENVIRONMENT:
            self.overrideEnv(name, None)

    def overrideEnv(self, name: str, value: str | None) -> None:
        """Set an environment variable for the duration of the test.

        Args:
          name: Name of the variable
          value: New value, or None to unset it
        """

        def restore(oldvalue: str | None) -> None:
            if oldvalue is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = oldvalue

        oldvalue = os.environ.get(name)
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value
        self.addCleanup(restore, oldvalue)


def self_test_suite() -> unittest.TestSuite:
    names = [
        "cli",
        "config",
        "file",
        "log_utils",
        "object_store",
        "objects",
        "objectspec",
        "porcelain",
        "refs",
        "repository",
        "tree_builder",
    ]
    module_names = ["tests.test_" + name for name in names]
    loader = unittest.TestLoader()
    return loader.loadTestsFromNames(module_names)


def test_suite() -> unittest.TestSuite:
    result = unittest.TestSuite()
    result.addTests(self_test_suite())
    return result
