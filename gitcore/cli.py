#
# gitcore - Simple command-line interface to gitcore
# Copyright (C) 2008-2011 Jelmer Vernooij <jelmer@jelmer.uk>
# vim: expandtab
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

"""Simple command-line interface to gitcore.

Each subcommand mirrors the git plumbing command of the same name. Failures
are logged as ``fatal: <message>`` (on stderr unless GIT_TRACE points the
logs elsewhere) with exit status 1; argument errors exit with status 2.
"""

__all__ = [
    "Command",
    "commands",
    "main",
    "signal_int",
]

import argparse
import logging
import os
import signal
import sys
import types
from collections.abc import Sequence

from . import porcelain
from .errors import (
    AmbiguousShortId,
    FileFormatException,
    InvalidUserIdentity,
    NotGitRepository,
    WrongObjectException,
)
from .log_utils import _configure_logging_from_trace, remove_null_handler
from .refs import SymrefLoop
from .repo import Repo

logger = logging.getLogger(__name__)

# Errors that end a command with "fatal: <message>" rather than a traceback.
FATAL_ERRORS: tuple[type[BaseException], ...] = (
    porcelain.Error,
    NotGitRepository,
    FileFormatException,
    WrongObjectException,
    AmbiguousShortId,
    InvalidUserIdentity,
    SymrefLoop,
    KeyError,
    OSError,
    ValueError,
)


def signal_int(signal: int, frame: types.FrameType | None) -> None:
    """Handle interrupt signal by exiting.

    Args:
        signal: Signal number
        frame: Current stack frame
    """
    sys.exit(1)


def _write_line(text: str) -> None:
    sys.stdout.write(text + "\n")


class Command:
    """A gitcore subcommand."""

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_init(Command):
    """Create an empty Git repository."""

    def run(self, args: Sequence[str]) -> None:
        """Execute the init command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcore init")
        parser.add_argument(
            "path", nargs="?", default=os.getcwd(), help="Repository path"
        )
        parsed_args = parser.parse_args(args)

        with porcelain.init(parsed_args.path):
            pass
        _write_line("Initialized git directory")


class cmd_hash_object(Command):
    """Compute object ID and optionally create an object from a file."""

    def run(self, args: Sequence[str]) -> None:
        """Execute the hash-object command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcore hash-object")
        parser.add_argument(
            "-w",
            dest="write",
            action="store_true",
            help="Actually write the object into the object database.",
        )
        parser.add_argument(
            "--stdin",
            action="store_true",
            help="Read the object from standard input instead of from a file.",
        )
        parser.add_argument("paths", nargs="*", help="Files to hash")
        parsed_args = parser.parse_args(args)
        if not parsed_args.stdin and not parsed_args.paths:
            parser.error("no input: give a file or --stdin")

        inputs: list[str | bytes] = []
        if parsed_args.stdin:
            inputs.append(sys.stdin.buffer.read())
        inputs.extend(parsed_args.paths)

        if parsed_args.write:
            with Repo.discover() as repo:
                for path_or_data in inputs:
                    sha = porcelain.hash_object(repo, path_or_data, write=True)
                    _write_line(sha.decode("ascii"))
        else:
            for path_or_data in inputs:
                sha = porcelain.hash_object(None, path_or_data, write=False)
                _write_line(sha.decode("ascii"))


class cmd_cat_file(Command):
    """Provide content, type or size information for repository objects."""

    def run(self, args: Sequence[str]) -> int | None:
        """Execute the cat-file command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcore cat-file")
        group = parser.add_mutually_exclusive_group(required=True)
        group.add_argument(
            "-p",
            dest="mode",
            action="store_const",
            const="-p",
            help="Pretty-print the contents of the object.",
        )
        group.add_argument(
            "-t",
            dest="mode",
            action="store_const",
            const="-t",
            help="Show the object type.",
        )
        group.add_argument(
            "-s",
            dest="mode",
            action="store_const",
            const="-s",
            help="Show the object size.",
        )
        group.add_argument(
            "-e",
            dest="mode",
            action="store_const",
            const="-e",
            help="Exit with zero status if the object exists.",
        )
        parser.add_argument("object", help="The name of the object to show")
        parsed_args = parser.parse_args(args)

        with Repo.discover() as repo:
            found = porcelain.cat_file(
                repo, parsed_args.object, parsed_args.mode, outstream=sys.stdout
            )
        return 0 if found else 1


class cmd_ls_tree(Command):
    """List the contents of a tree object."""

    def run(self, args: Sequence[str]) -> None:
        """Execute the ls-tree command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcore ls-tree")
        parser.add_argument(
            "-r",
            "--recursive",
            action="store_true",
            help="Recursively list tree contents.",
        )
        parser.add_argument(
            "--name-only", action="store_true", help="Only display name."
        )
        parser.add_argument(
            "treeish", nargs="?", default="HEAD", help="Tree-ish to list"
        )
        parsed_args = parser.parse_args(args)
        with Repo.discover() as repo:
            porcelain.ls_tree(
                repo,
                parsed_args.treeish,
                outstream=sys.stdout,
                recursive=parsed_args.recursive,
                name_only=parsed_args.name_only,
            )


class cmd_write_tree(Command):
    """Create a tree object from the working directory."""

    def run(self, args: Sequence[str]) -> None:
        """Execute the write-tree command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcore write-tree")
        parser.parse_args(args)
        with Repo.discover() as repo:
            _write_line(porcelain.write_tree(repo).decode("ascii"))


class cmd_commit_tree(Command):
    """Create a new commit object from a tree."""

    def run(self, args: Sequence[str]) -> None:
        """Execute the commit-tree command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcore commit-tree")
        parser.add_argument("--message", "-m", required=True, help="Commit message")
        parser.add_argument(
            "-p",
            dest="parents",
            action="append",
            default=[],
            help="Id of a parent commit object (may be repeated)",
        )
        parser.add_argument("tree", help="Tree SHA to commit")
        parsed_args = parser.parse_args(args)
        message = parsed_args.message
        if not message.endswith("\n"):
            message += "\n"
        with Repo.discover() as repo:
            sha = porcelain.commit_tree(
                repo,
                tree=parsed_args.tree,
                parents=parsed_args.parents,
                message=message,
            )
        _write_line(sha.decode("ascii"))


class cmd_help(Command):
    """Display help information about gitcore."""

    def run(self, args: Sequence[str]) -> None:
        """Execute the help command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitcore help")
        parser.parse_args(args)
        _write_line("Available commands:")
        for cmd in sorted(commands):
            _write_line(f"  {cmd}")


commands: dict[str, type[Command]] = {
    "cat-file": cmd_cat_file,
    "commit-tree": cmd_commit_tree,
    "hash-object": cmd_hash_object,
    "help": cmd_help,
    "init": cmd_init,
    "ls-tree": cmd_ls_tree,
    "write-tree": cmd_write_tree,
}


def main(argv: Sequence[str] | None = None) -> int | None:
    """Main entry point for the gitcore CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code or None
    """
    if argv is None:
        argv = sys.argv[1:]

    # Parse only the global options and command, stop at first positional
    parser = argparse.ArgumentParser(
        prog="gitcore",
        description="Simple command-line interface to gitcore",
        add_help=False,
    )
    parser.add_argument("--help", "-h", action="store_true", help="Show help")
    global_args, remaining = parser.parse_known_args(argv)

    if global_args.help or not remaining:
        parser = argparse.ArgumentParser(
            prog="gitcore", description="Simple command-line interface to gitcore"
        )
        parser.add_argument(
            "command",
            nargs="?",
            help=f"Command to run. Available: {', '.join(sorted(commands.keys()))}",
        )
        parser.print_help()
        return 1

    remove_null_handler()
    # Try to configure from GIT_TRACE, fall back to default if it fails
    if not _configure_logging_from_trace():
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
        )

    # First remaining arg is the command
    cmd = remaining[0]
    cmd_args = remaining[1:]

    try:
        cmd_kls = commands[cmd]
    except KeyError:
        logger.fatal("fatal: No such subcommand: %s", cmd)
        return 1
    try:
        return cmd_kls().run(cmd_args) or 0
    except FATAL_ERRORS as exc:
        logger.debug("%s failed", cmd, exc_info=True)
        logger.error("fatal: %s", exc)
        return 1


def _main() -> None:
    signal.signal(signal.SIGINT, signal_int)

    sys.exit(main())


if __name__ == "__main__":
    _main()
