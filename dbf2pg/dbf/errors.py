"""Exceptions raised while decoding DBF tables and their memo files."""
from __future__ import annotations


class DBFError(Exception):
    """Base class for every decoding failure."""


class FormatError(DBFError, ValueError):
    """Malformed header or descriptor geometry, or an unsupported value layout."""


class MissingFileError(FormatError, FileNotFoundError):
    """The table file does not exist or cannot be opened."""


class MissingMemoFileError(MissingFileError):
    """Memo fields are declared but the companion .fpt/.dbt file is absent."""


class TruncatedMemoError(DBFError, EOFError):
    """A memo pointer leads past the end of the memo file."""


class AlreadyConsumedError(DBFError, RuntimeError):
    """A single-pass operation was invoked a second time."""
