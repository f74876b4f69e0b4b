"""Memo file readers for .fpt (Visual FoxPro) and .dbt (dBase III) stores.

FPT layout:
  Header:  next free block (uint32 BE) + unused(2) + block size (uint16 BE at offset 6).
  Block:   type (uint32 BE) + length (uint32 BE), then `length` bytes of text.
  Pointer: 4-byte little-endian block index in the table record.

DBT layout:
  Fixed 512-byte blocks, text terminated by 0x1A 0x1A, possibly spanning
  several blocks.
  Pointer: 10 ASCII digits (space or zero padded) in the table record.
"""
from __future__ import annotations

import abc
import logging
import struct
from pathlib import Path
from typing import BinaryIO

from dbf2pg.dbf.constants import (
    DBT_BLOCK_SIZE,
    FPT_BLOCK_HEADER_SIZE,
    FPT_BLOCK_SIZE_OFFSET,
    MEMO_TERMINATOR,
)
from dbf2pg.dbf.errors import FormatError, MissingMemoFileError, TruncatedMemoError
from dbf2pg.dbf.fields import MemoVariant

logger = logging.getLogger(__name__)

_FPT_POINTER = struct.Struct("<I")
_FPT_BLOCK_HEADER = struct.Struct(">II")    # block type(4) + text length(4)
_FPT_BLOCK_SIZE = struct.Struct(">H")


def memo_path_for(table_path: Path, variant: MemoVariant) -> Path:
    """Derive the companion memo path: same directory and stem, variant extension.

    An existing file whose extension differs only in case (FOO.FPT) is
    preferred over the lower-case name.
    """
    expected = table_path.with_suffix(variant.extension)
    if expected.exists():
        return expected
    upper = table_path.with_suffix(variant.extension.upper())
    if upper.exists():
        return upper
    return expected


class MemoStore(abc.ABC):
    """An open memo file. Subclasses implement `resolve` for one layout."""

    variant: MemoVariant

    def __init__(self, path: Path, file: BinaryIO, block_size: int):
        self.path = path
        self.file = file
        self.block_size = block_size

    @abc.abstractmethod
    def resolve(self, pointer: bytes, encoding: str = "ascii") -> str:
        """Return the memo text referenced by a record's raw pointer bytes."""

    def close(self):
        self.file.close()

    @property
    def closed(self) -> bool:
        return self.file.closed

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def _seek_block(self, index: int) -> int:
        offset = index * self.block_size
        self.file.seek(offset)
        return offset


class FptMemoStore(MemoStore):
    """Length-prefixed blocks, block size taken from the memo file header."""

    variant = MemoVariant.FPT

    @classmethod
    def read_block_size(cls, file: BinaryIO) -> int:
        file.seek(FPT_BLOCK_SIZE_OFFSET)
        data = file.read(_FPT_BLOCK_SIZE.size)
        if len(data) < _FPT_BLOCK_SIZE.size:
            raise FormatError("Memo file is too short to hold an FPT header")
        return _FPT_BLOCK_SIZE.unpack(data)[0]

    def resolve(self, pointer: bytes, encoding: str = "ascii") -> str:
        index = _FPT_POINTER.unpack_from(pointer)[0]
        if index == 0:
            return ""

        offset = self._seek_block(index)
        header = self.file.read(_FPT_BLOCK_HEADER.size)
        if len(header) < FPT_BLOCK_HEADER_SIZE:
            raise TruncatedMemoError(
                f"{self.path.name}: block {index} at offset {offset} is past end of file"
            )
        _, length = _FPT_BLOCK_HEADER.unpack(header)

        text = self.file.read(length)
        if len(text) < length:
            raise TruncatedMemoError(
                f"{self.path.name}: block {index} declares {length} bytes, "
                f"only {len(text)} available"
            )
        return text.decode(encoding, errors="replace")


class DbtMemoStore(MemoStore):
    """Fixed-size blocks, text runs until a pair of 0x1A bytes."""

    variant = MemoVariant.DBT

    def resolve(self, pointer: bytes, encoding: str = "ascii") -> str:
        digits = pointer.decode("ascii", errors="replace").strip()
        if not digits:
            return ""
        try:
            index = int(digits)
        except ValueError:
            raise FormatError(f"Invalid DBT memo pointer {pointer!r}") from None
        if index < 0:
            raise FormatError(f"Negative DBT memo pointer {pointer!r}")
        if index == 0:
            return ""

        offset = self._seek_block(index)
        memo = self._read_until_terminator(index, offset)
        return memo.decode(encoding, errors="replace")

    def _read_until_terminator(self, index: int, offset: int) -> bytes:
        memo = bytearray()
        while True:
            # Back up one byte so a terminator pair split across blocks is found
            pos = len(memo) - 1 if memo else 0
            block = self.file.read(self.block_size)
            if not block:
                raise TruncatedMemoError(
                    f"{self.path.name}: memo at block {index} (offset {offset}) "
                    "has no terminator before end of file"
                )
            memo += block

            # pos ends one past a terminator byte, or 0 when none is left
            while True:
                pos = memo.find(MEMO_TERMINATOR, pos) + 1
                if pos <= 0 or pos >= len(memo) or memo[pos] == MEMO_TERMINATOR:
                    break

            # A lone terminator at the very end may pair with the next block
            if pos > 0 and pos != len(memo):
                return bytes(memo[:pos - 1])


def open_memo_store(table_path: Path, variant: MemoVariant,
                    dbt_block_size: int = DBT_BLOCK_SIZE) -> MemoStore:
    """Open the memo file that belongs to a table file."""
    path = memo_path_for(table_path, variant)
    if not path.is_file():
        raise MissingMemoFileError(f"Memo file not found: {path}")

    file = open(path, "rb")
    try:
        if variant is MemoVariant.FPT:
            block_size = FptMemoStore.read_block_size(file)
            if block_size == 0:
                raise FormatError(f"{path.name}: FPT header declares a block size of 0")
            store: MemoStore = FptMemoStore(path, file, block_size)
        else:
            store = DbtMemoStore(path, file, dbt_block_size)
    except BaseException:
        file.close()
        raise

    logger.debug("Opened %s memo store %s (block size %d)",
                 variant.name, path, store.block_size)
    return store

