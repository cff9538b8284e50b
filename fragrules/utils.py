"""Helper module for errors and I/O operations"""

import os
import io
import re
import gzip
import logging

from typing import Any, Mapping, Optional, Union

from fragrules.const import RULE_FILE_SUFFIX

DEFAULT_BUFFER_SIZE = int(2e6)
GZIP_MAGIC = b"\037\213"

INTEGER_PATTERN = re.compile(r"[+-]?\d+", re.ASCII)
FLOAT_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class RulesError(Exception):
    """
    A violation of the fragmentation rule grammar or of one of its semantic constraints.

    Attributes
    ----------
    message : str
        The human readable description of the violation
    line_number : int, optional
        The 1-based line number of the rule file the violation was found at
    """

    message: str
    line_number: Optional[int]

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.message = message
        self.line_number = line_number
        super().__init__(message)

    def __str__(self):
        if self.line_number is None:
            return self.message
        return f"{self.message} Error at line number {self.line_number}!"

    def at_line(self, line_number: int) -> "RulesError":
        """Return a copy of this error attributed to ``line_number`` unless it already has one."""
        if self.line_number is not None:
            return self
        return self.__class__(self.message, line_number)


class MissingSectionError(RulesError):
    """A mandatory section of the rules file is absent."""


class RulesIOError(RulesError, OSError):
    """The rules file could not be read, or the output destination could not be written."""


class _NotClosingWrapper:
    stream: io.IOBase

    def __init__(self, stream) -> None:
        self.stream = stream

    def __getattr__(self, attrib: str):
        attr = getattr(self.stream, attrib)
        return attr

    def close(self):
        logger.debug("Resetting stream handle %r", self.stream)
        if self.stream.seekable():
            self.stream.seek(0)

    def __iter__(self):
        return iter(self.stream)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        logger.debug("Resetting stream handle %r", self.stream)
        if self.stream.seekable():
            self.stream.seek(0)
        return


def test_gzipped(f) -> bool:
    """Whether the binary stream ``f`` starts with the gzip magic bytes. The position is restored."""
    try:
        current = f.tell()
        assert current >= 0
    except OSError:
        return False
    f.seek(0)
    magic = f.read(2)
    f.seek(current)
    return magic == GZIP_MAGIC


def open_stream(
    f: Union[io.IOBase, os.PathLike, str],
    encoding: Optional[str] = "utf8",
    newline=None,
    closing=False,
):
    """
    Open the given path or stream for reading text.

    Detects whether the file is gzip encoded. Streams that the caller passed in
    are not closed when the returned handle is closed unless ``closing`` is set.
    """
    if isinstance(f, io.TextIOBase):
        if closing:
            return f
        return _NotClosingWrapper(f)
    if not hasattr(f, "read"):
        f = io.open(f, "rb")
    elif not closing:
        f = _NotClosingWrapper(f)
    if isinstance(f, io.BufferedReader):
        buffered_reader = f
    else:
        buffered_reader = io.BufferedReader(f, DEFAULT_BUFFER_SIZE)
    if test_gzipped(buffered_reader):
        handle = gzip.GzipFile(fileobj=buffered_reader, mode="rb")
    else:
        handle = buffered_reader
    return io.TextIOWrapper(handle, encoding=encoding, newline=newline)


class CaseInsensitiveDict(dict):
    """A case insensitive version of a dictionary with string keys."""

    def __init__(self, base=None, **kwargs):
        if base is not None:
            self.update(base)
        if kwargs:
            self.update(kwargs)

    def __getitem__(self, key: str):
        return super().__getitem__(key.lower())

    def __setitem__(self, key: str, value):
        super().__setitem__(key.lower(), value)

    def __delitem__(self, key: str):
        super().__delitem__(key.lower())

    def __contains__(self, __o: str) -> bool:
        if hasattr(__o, "lower"):
            return super().__contains__(__o.lower())
        else:
            return super().__contains__(__o)

    def get(self, key: str, default=None):
        return super().get(key.lower(), default)

    def update(self, value: Mapping[str, Any]):
        super().update({k.lower(): v for k, v in value.items()})


def split_key_value(text: str, line_number: Optional[int] = None, context: str = "The entry"):
    """
    Split a ``key=value`` token at its first ``=``.

    Raises
    ------
    RulesError
        If ``text`` has no ``=``.
    """
    index = text.find("=")
    if index == -1:
        raise RulesError(
            f'{context} consists of key/value pairs separated by "="! There is no "=" in "{text}"!',
            line_number,
        )
    return text[:index].strip(), text[index + 1:].strip()


def rule_name(lipid_class: str, adduct: Optional[str] = None) -> str:
    """Combine a lipid class and an adduct into the name of a rule set."""
    name = lipid_class
    if adduct:
        name += "_" + adduct
    return name


def rule_file_name(lipid_class: str, adduct: Optional[str] = None) -> str:
    """The file name a rule set for ``lipid_class`` and ``adduct`` is stored under."""
    return rule_name(lipid_class, adduct) + RULE_FILE_SUFFIX


def rule_name_from_path(path: Union[str, os.PathLike]) -> str:
    """Recover the rule set name from a rule file path."""
    name = os.path.basename(os.fspath(path))
    if name.endswith(".gz"):
        name = name[:-3]
    if name.endswith(RULE_FILE_SUFFIX):
        name = name[: -len(RULE_FILE_SUFFIX)]
    return name


def strict_int(text: str) -> int:
    """
    Convert ``text`` to :class:`int`, accepting only an optional sign and ASCII digits.

    Raises
    ------
    ValueError
        If ``text`` contains anything else, including whitespace or ``_``
    """
    if not INTEGER_PATTERN.fullmatch(text):
        raise ValueError(text)
    return int(text)


def strict_float(text: str) -> float:
    """Convert a plain decimal or exponent literal to :class:`float`, like :func:`strict_int`."""
    if not FLOAT_PATTERN.fullmatch(text):
        raise ValueError(text)
    return float(text)
