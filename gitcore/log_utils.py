# log_utils.py -- Logging utilities for gitcore
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

"""Logging utilities for gitcore.

gitcore is mostly used as a library, so by default nothing is logged: the
package logger carries a handler that drops every record. Command line
front ends call default_logging_config() (or remove_null_handler() before
configuring logging themselves) to get output.

Tracing follows git's GIT_TRACE convention, so the same environment variable
that makes git chatty makes gitcore chatty.
"""

__all__ = [
    "default_logging_config",
    "getLogger",
    "remove_null_handler",
]

import logging
import os
import sys

getLogger = logging.getLogger


class _NullHandler(logging.Handler):
    """No-op logging handler to avoid unexpected logging warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        pass


_NULL_HANDLER = _NullHandler()
_GITCORE_LOGGER = getLogger("gitcore")
_GITCORE_LOGGER.addHandler(_NULL_HANDLER)

TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


def _should_trace() -> bool:
    """Check if GIT_TRACE is enabled."""
    trace_value = os.environ.get("GIT_TRACE", "")
    if not trace_value or trace_value.lower() in ("0", "false"):
        return False
    return True


def _get_trace_target() -> str | int | None:
    """Get the trace target from GIT_TRACE environment variable.

    Returns:
        - None if tracing is disabled
        - 2 for stderr output (values "1", "2", "true")
        - int (3-9) for file descriptor
        - str for file path (absolute paths or directories)
    """
    if not _should_trace():
        return None
    trace_value = os.environ["GIT_TRACE"]

    if trace_value.lower() in ("1", "2", "true"):
        return 2

    try:
        fd = int(trace_value)
    except ValueError:
        pass
    else:
        if 3 <= fd <= 9:
            return fd
        return None

    if os.path.isabs(trace_value):
        return trace_value

    return None


def _configure_logging_from_trace() -> bool:
    """Configure logging based on GIT_TRACE environment variable.

    Returns True if trace configuration was successful, False otherwise.
    """
    trace_target = _get_trace_target()
    if trace_target is None:
        return False

    if trace_target == 2:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format=TRACE_FORMAT)
        return True

    if isinstance(trace_target, int):
        try:
            stream = os.fdopen(trace_target, "w", buffering=1)
        except OSError as e:
            sys.stderr.write(
                f"Warning: Failed to open GIT_TRACE fd {trace_target}: {e}\n"
            )
            return False
        logging.basicConfig(level=logging.DEBUG, stream=stream, format=TRACE_FORMAT)
        return True

    if os.path.isdir(trace_target):
        filename = os.path.join(trace_target, f"trace.{os.getpid()}")
    else:
        filename = trace_target
    try:
        logging.basicConfig(
            level=logging.DEBUG, filename=filename, filemode="a", format=TRACE_FORMAT
        )
    except OSError as e:
        sys.stderr.write(
            f"Warning: Failed to open GIT_TRACE file {trace_target}: {e}\n"
        )
        return False
    return True


def default_logging_config(level: int = logging.INFO) -> None:
    """Set up the default gitcore loggers.

    Respects the GIT_TRACE environment variable for trace output:
    - If GIT_TRACE is set to "1", "2", or "true", trace to stderr
    - If GIT_TRACE is set to an integer 3-9, trace to that file descriptor
    - If GIT_TRACE is set to an absolute path, trace to that file
    - If the path is a directory, trace to files in that directory (per process)
    - Otherwise, log messages at `level` and above to stderr
    """
    remove_null_handler()

    if not _configure_logging_from_trace():
        logging.basicConfig(level=level, stream=sys.stderr, format="%(message)s")


def remove_null_handler() -> None:
    """Remove the null handler from the gitcore loggers.

    If a caller wants to set up logging using something other than
    default_logging_config, calling this function first is a minor optimization
    to avoid the overhead of using the _NullHandler.
    """
    _GITCORE_LOGGER.removeHandler(_NULL_HANDLER)
