# config.py - Reading and writing Git config files
# Copyright (C) 2011-2013 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Reading and writing Git configuration files.

Only the subset of git-config syntax that plain configuration files use is
understood: sections, quoted subsections, values with escapes and line
continuations, and comments. Include directives are ignored.
"""

__all__ = [
    "Config",
    "ConfigDict",
    "ConfigFile",
    "StackedConfig",
    "get_xdg_config_home_path",
]

import logging
import os
import sys
from collections.abc import Iterator
from typing import IO

from .file import GitFile

logger = logging.getLogger(__name__)

Name = bytes
NameLike = bytes | str
Section = tuple[bytes, ...]
SectionLike = bytes | str | tuple[bytes | str, ...]
Value = bytes
ValueLike = bytes | str


def lower_key(key: Name | Section) -> Name | Section:
    """Lowercase a config key, preserving the case of subsection names."""
    if isinstance(key, bytes):
        return key.lower()
    if key:
        return (key[0].lower(), *key[1:])
    return key


class _SectionValues:
    """Ordered, case-insensitive multi-valued mapping of names to values."""

    def __init__(self) -> None:
        self._real: list[tuple[Name, Value]] = []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._real!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _SectionValues) and other._real == self._real

    def __len__(self) -> int:
        return len({lower_key(k) for k, _ in self._real})

    def __getitem__(self, name: Name) -> Value:
        """Get the last value for a name.

        Raises:
          KeyError: If the name is not set
        """
        lowered = lower_key(name)
        for key, value in reversed(self._real):
            if lower_key(key) == lowered:
                return value
        raise KeyError(name)

    def add(self, name: Name, value: Value) -> None:
        self._real.append((name, value))

    def set(self, name: Name, value: Value) -> None:
        """Replace all values for `name` with `value`."""
        lowered = lower_key(name)
        self._real = [(k, v) for (k, v) in self._real if lower_key(k) != lowered]
        self._real.append((name, value))

    def get_all(self, name: Name) -> Iterator[Value]:
        lowered = lower_key(name)
        for key, value in self._real:
            if lower_key(key) == lowered:
                yield value

    def items(self) -> Iterator[tuple[Name, Value]]:
        return iter(self._real)


class Config:
    """A Git configuration."""

    def get(self, section: SectionLike, name: NameLike) -> Value:
        """Retrieve the contents of a configuration setting.

        Args:
          section: Tuple with section name and optional subsection name
          name: Variable name
        Returns:
          Contents of the setting
        Raises:
          KeyError: if the value is not set
        """
        raise NotImplementedError(self.get)

    def get_boolean(
        self, section: SectionLike, name: NameLike, default: bool | None = None
    ) -> bool | None:
        """Retrieve a configuration setting as boolean.

        Args:
          section: Tuple with section name and optional subsection name
          name: Name of the setting, including section and possible
            subsection.
          default: Default value if setting is not found

        Returns:
          Contents of the setting
        Raises:
          ValueError: if the value is not a git boolean
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        if value.lower() in (b"true", b"yes", b"on", b"1"):
            return True
        elif value.lower() in (b"false", b"no", b"off", b"0", b""):
            return False
        raise ValueError(f"not a valid boolean string: {value!r}")

    def get_int(
        self, section: SectionLike, name: NameLike, default: int | None = None
    ) -> int | None:
        """Retrieve a configuration setting as integer.

        Understands the k/m/g suffixes git allows.

        Raises:
          ValueError: if the value is not an integer
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        multiplier = {b"k": 1024, b"m": 1024**2, b"g": 1024**3}.get(
            value[-1:].lower(), 1
        )
        if multiplier != 1:
            value = value[:-1]
        return int(value) * multiplier

    def sections(self) -> Iterator[Section]:
        """Iterate over the sections.

        Returns: Iterator over section tuples
        """
        raise NotImplementedError(self.sections)

    def has_section(self, name: Section) -> bool:
        """Check if a specified section exists."""
        return name in self.sections()


class ConfigDict(Config):
    """Git configuration stored in a dictionary."""

    def __init__(self, encoding: str | None = None) -> None:
        """Create a new ConfigDict."""
        if encoding is None:
            encoding = sys.getdefaultencoding()
        self.encoding = encoding
        self._values: dict[Section, _SectionValues] = {}
        self._section_names: dict[Section, Section] = {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._values!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, self.__class__) and other._values == self._values

    def _check_section_and_name(
        self, section: SectionLike, name: NameLike
    ) -> tuple[Section, Name]:
        if not isinstance(section, tuple):
            section = (section,)
        checked_section = tuple(
            s if isinstance(s, bytes) else s.encode(self.encoding) for s in section
        )
        if not isinstance(name, bytes):
            name = name.encode(self.encoding)
        return checked_section, name

    def _section(self, section: Section, create: bool = False) -> _SectionValues:
        key = lower_key(section)
        assert isinstance(key, tuple)
        try:
            return self._values[key]
        except KeyError:
            if not create:
                raise
        self._section_names[key] = section
        values = self._values[key] = _SectionValues()
        return values

    def get(self, section: SectionLike, name: NameLike) -> Value:
        """Get a configuration value.

        A setting missing from a subsection is looked up in the section
        itself.

        Raises:
            KeyError: if the value is not set
        """
        section, name = self._check_section_and_name(section, name)
        if len(section) > 1:
            try:
                return self._section(section)[name]
            except KeyError:
                pass
        return self._section((section[0],))[name]

    def get_multivar(self, section: SectionLike, name: NameLike) -> Iterator[Value]:
        """Get all values of a multivar setting, in file order."""
        section, name = self._check_section_and_name(section, name)
        try:
            values = self._section(section)
        except KeyError:
            return iter([])
        return values.get_all(name)

    def set(
        self, section: SectionLike, name: NameLike, value: ValueLike | bool
    ) -> None:
        """Set a configuration value, replacing earlier values."""
        section, name = self._check_section_and_name(section, name)
        if isinstance(value, bool):
            value = b"true" if value else b"false"
        if not isinstance(value, bytes):
            value = value.encode(self.encoding)
        self._section(section, create=True).set(name, value)

    def items(self, section: SectionLike) -> Iterator[tuple[Name, Value]]:
        """Iterate over the (name, value) pairs of a section."""
        section, _ = self._check_section_and_name(section, b"")
        try:
            return self._section(section).items()
        except KeyError:
            return iter([])

    def sections(self) -> Iterator[Section]:
        return iter(self._section_names.values())


_ESCAPE_TABLE = {
    ord(b"\\"): ord(b"\\"),
    ord(b'"'): ord(b'"'),
    ord(b"n"): ord(b"\n"),
    ord(b"t"): ord(b"\t"),
    ord(b"b"): ord(b"\b"),
}
_COMMENT_CHARS = [ord(b"#"), ord(b";")]
_WHITESPACE_CHARS = [ord(b"\t"), ord(b" ")]


def _parse_string(value: bytes) -> bytes:
    value_array = bytearray(value.strip())
    ret = bytearray()
    whitespace = bytearray()
    in_quotes = False
    i = 0
    while i < len(value_array):
        c = value_array[i]
        if (
            c == ord(b"\\")
            and i + 1 < len(value_array)
            and value_array[i + 1] in _ESCAPE_TABLE
        ):
            ret.extend(whitespace)
            whitespace = bytearray()
            ret.append(_ESCAPE_TABLE[value_array[i + 1]])
            i += 1
        elif c == ord(b'"'):
            in_quotes = not in_quotes
        elif c in _COMMENT_CHARS and not in_quotes:
            # the rest of the line is a comment
            break
        elif c in _WHITESPACE_CHARS and not in_quotes:
            whitespace.append(c)
        else:
            ret.extend(whitespace)
            whitespace = bytearray()
            ret.append(c)
        i += 1

    if in_quotes:
        raise ValueError("missing end quote")

    return bytes(ret)


def _escape_value(value: bytes) -> bytes:
    """Escape a value."""
    value = value.replace(b"\\", b"\\\\")
    value = value.replace(b"\n", b"\\n")
    value = value.replace(b"\t", b"\\t")
    value = value.replace(b'"', b'\\"')
    return value


def _format_string(value: bytes) -> bytes:
    if (
        value.startswith((b" ", b"\t"))
        or value.endswith((b" ", b"\t"))
        or b"#" in value
    ):
        return b'"' + _escape_value(value) + b'"'
    return _escape_value(value)


def _check_variable_name(name: bytes) -> bool:
    return bool(name) and all(
        c.isalnum() or c == "-" for c in name.decode("ascii", "replace")
    )


def _check_section_name(name: bytes) -> bool:
    return bool(name) and all(
        c.isalnum() or c in "-." for c in name.decode("ascii", "replace")
    )


def _strip_comments(line: bytes) -> bytes:
    string_open = False
    for i, character in enumerate(line):
        # Comment characters outside balanced quotes denote comment start
        if character == ord(b'"'):
            string_open = not string_open
        elif not string_open and character in _COMMENT_CHARS:
            return line[:i]
    return line


def _continues(value: bytes) -> bool:
    """Check whether a raw value ends with an unescaped line continuation."""
    content = value.rstrip(b"\r\n")
    trailing = len(content) - len(content.rstrip(b"\\"))
    return trailing % 2 == 1


def _parse_section_header_line(line: bytes) -> tuple[Section, bytes]:
    # Parse section header ("[bla]")
    line = _strip_comments(line).rstrip()
    in_quotes = False
    last = None
    for i, c in enumerate(line):
        if c == ord(b'"'):
            in_quotes = not in_quotes
        elif c == ord(b"]") and not in_quotes:
            last = i
            break
    if last is None:
        raise ValueError("expected trailing ]")
    pts = line[1:last].split(b" ", 1)
    rest = line[last + 1 :]
    if not _check_section_name(pts[0]):
        raise ValueError(f"invalid section name {pts[0]!r}")
    if len(pts) == 2:
        if not (pts[1][:1] == b'"' and pts[1][-1:] == b'"'):
            raise ValueError(f"Invalid subsection {pts[1]!r}")
        return (pts[0], pts[1][1:-1]), rest
    name, dot, subsection = pts[0].partition(b".")
    if dot:
        return (name, subsection), rest
    return (name,), rest


class ConfigFile(ConfigDict):
    """A Git configuration file, like .git/config or ~/.gitconfig."""

    def __init__(self, encoding: str | None = None) -> None:
        super().__init__(encoding=encoding)
        self.path: str | None = None

    @classmethod
    def from_file(cls, f: IO[bytes]) -> "ConfigFile":
        """Read configuration from a file-like object.

        Raises:
          ValueError: if the file is not valid git-config syntax
        """
        ret = cls()
        section: Section | None = None
        setting: bytes | None = None
        continuation = b""
        for lineno, line in enumerate(f.readlines()):
            if lineno == 0 and line.startswith(b"\xef\xbb\xbf"):
                line = line[3:]
            if setting is None:
                line = line.lstrip()
                if line[:1] == b"[":
                    section, line = _parse_section_header_line(line)
                    ret._section(section, create=True)
                if _strip_comments(line).strip() == b"":
                    continue
                if section is None:
                    raise ValueError(f"setting {line!r} without section")
                name, eq, value = line.partition(b"=")
                setting = name.strip()
                if not eq:
                    value = b"true"
                if not _check_variable_name(setting):
                    raise ValueError(f"invalid variable name {setting!r}")
                continuation = b""
            else:
                value = line
            if _continues(value):
                continuation += value.rstrip(b"\r\n")[:-1]
                continue
            assert section is not None
            ret._section(section).add(setting, _parse_string(continuation + value))
            setting = None
            continuation = b""
        return ret

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> "ConfigFile":
        """Read configuration from a file on disk."""
        abs_path = os.fspath(path)
        with GitFile(abs_path, "rb") as f:
            ret = cls.from_file(f)
        ret.path = abs_path
        return ret

    def write_to_path(self, path: str | os.PathLike[str] | None = None) -> None:
        """Write configuration to a file on disk."""
        if path is None:
            if self.path is None:
                raise ValueError("No path specified and no default path available")
            path = self.path
        with GitFile(path, "wb") as f:
            self.write_to_file(f)

    def write_to_file(self, f: IO[bytes] | GitFile) -> None:
        """Write configuration to a file-like object."""
        for key, values in self._values.items():
            section = self._section_names[key]
            if len(section) == 1:
                f.write(b"[" + section[0] + b"]\n")
            else:
                f.write(b"[" + section[0] + b' "' + section[1] + b'"]\n')
            for name, value in values.items():
                f.write(b"\t" + name + b" = " + _format_string(value) + b"\n")


def get_xdg_config_home_path(*path_segments: str) -> str:
    """Get a path in the XDG config home directory."""
    xdg_config_home = os.environ.get(
        "XDG_CONFIG_HOME",
        os.path.expanduser("~/.config/"),
    )
    return os.path.join(xdg_config_home, *path_segments)


class StackedConfig(Config):
    """Configuration which reads from multiple config files.."""

    def __init__(
        self, backends: list[ConfigFile], writable: ConfigFile | None = None
    ) -> None:
        """Initialize a StackedConfig.

        Args:
          backends: List of config files to read from (in order of precedence)
          writable: Optional config file to write changes to
        """
        self.backends = backends
        self.writable = writable

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} for {self.backends!r}>"

    @classmethod
    def default(cls) -> "StackedConfig":
        """Create a StackedConfig with default system/user config files."""
        return cls(cls.default_backends())

    @classmethod
    def default_backends(cls) -> list[ConfigFile]:
        """Retrieve the default configuration.

        See git-config(1) for details on the files searched.
        """
        paths = []

        try:
            paths.append(os.environ["GIT_CONFIG_GLOBAL"])
        except KeyError:
            paths.append(os.path.expanduser("~/.gitconfig"))
            paths.append(get_xdg_config_home_path("git", "config"))

        try:
            paths.append(os.environ["GIT_CONFIG_SYSTEM"])
        except KeyError:
            if "GIT_CONFIG_NOSYSTEM" not in os.environ:
                paths.append("/etc/gitconfig")

        logger.debug("Loading gitconfig from paths: %s", paths)

        backends = []
        for path in paths:
            try:
                cf = ConfigFile.from_path(path)
            except (FileNotFoundError, NotADirectoryError):
                logger.debug("Gitconfig file not found: %s", path)
                continue
            backends.append(cf)
        return backends

    def get(self, section: SectionLike, name: NameLike) -> Value:
        """Get value from the first configuration that sets it."""
        if not isinstance(section, tuple):
            section = (section,)
        for backend in self.backends:
            try:
                return backend.get(section, name)
            except KeyError:
                pass
        raise KeyError(name)

    def set(
        self, section: SectionLike, name: NameLike, value: ValueLike | bool
    ) -> None:
        """Set value in the writable configuration."""
        if self.writable is None:
            raise NotImplementedError(self.set)
        return self.writable.set(section, name, value)

    def sections(self) -> Iterator[Section]:
        """Get all sections."""
        seen = set()
        for backend in self.backends:
            for section in backend.sections():
                if section not in seen:
                    seen.add(section)
                    yield section
