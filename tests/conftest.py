"""Builders for synthetic DBF, FPT, and DBT files."""
from __future__ import annotations

import struct
from pathlib import Path
from typing import Optional

import pytest

FPT_BLOCK = 64
DBT_BLOCK = 512


def descriptor(name: str, type_: str, length: int, decimals: int = 0) -> bytes:
    raw = name.encode("ascii").ljust(11, b"\x00")
    return raw + type_.encode("ascii") + b"\x00" * 4 + bytes([length, decimals]) + b"\x00" * 14


def build_dbf(fields: list[tuple], records: list, version: int = 0x03,
              extra_pad: bool = False) -> bytes:
    """Build table bytes.

    `fields` holds (name, type, length[, decimals]) tuples. Each record is a
    list of raw values (bytes, padded to the field length), optionally
    wrapped as ("*", values) to mark it deleted.
    """
    descriptors = b"".join(descriptor(*f) for f in fields)
    backlink = b"\x00" * 263 if version == 0x30 else b""
    pad = b"\x00" if extra_pad else b""
    header_length = 32 + len(descriptors) + len(pad) + len(backlink) + 1
    record_length = 1 + sum(f[2] for f in fields)

    header = struct.pack("<B3sIHH20s", version, b"\x7b\x06\x0f", len(records),
                         header_length, record_length, b"\x00" * 20)
    out = bytearray(header + descriptors + b"\x0d" + pad + backlink)
    for record in records:
        flag = b" "
        if isinstance(record, tuple):
            flag, record = record[0].encode("ascii"), record[1]
        out += flag
        for (_, _, length, *_), value in zip(fields, record):
            out += value.ljust(length, b" ")[:length]
    out += b"\x1a"
    return bytes(out)


def build_fpt(memos: dict[int, bytes], block_size: int = FPT_BLOCK,
              declared: Optional[dict[int, int]] = None) -> bytes:
    """Build an FPT file with memos at the given block indexes."""
    declared = declared or {}
    last = max(memos, default=0)
    out = bytearray(struct.pack(">I", last + 1) + b"\x00\x00" + struct.pack(">H", block_size))
    out = out.ljust(block_size, b"\x00")
    for index in sorted(memos):
        text = memos[index]
        out = out.ljust(index * block_size, b"\x00")
        out += struct.pack(">II", 1, declared.get(index, len(text))) + text
    return bytes(out)


def build_dbt(memos: dict[int, bytes]) -> bytes:
    """Build a DBT file; each memo is stored with its 0x1A 0x1A terminator."""
    out = bytearray(struct.pack("<I", max(memos, default=0) + 1)).ljust(DBT_BLOCK, b"\x00")
    for index in sorted(memos):
        out = out.ljust(index * DBT_BLOCK, b"\x00")
        out += memos[index] + b"\x1a\x1a"
    if len(out) % DBT_BLOCK:
        out = out.ljust(len(out) + DBT_BLOCK - len(out) % DBT_BLOCK, b"\x00")
    return bytes(out)


def fpt_pointer(index: int) -> bytes:
    return struct.pack("<I", index)


def dbt_pointer(index: int) -> bytes:
    return str(index).rjust(10).encode("ascii")


@pytest.fixture
def write_file(tmp_path: Path):
    """Write bytes to a file under tmp_path and return its path."""
    def _write(name: str, data: bytes) -> Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path
    return _write


@pytest.fixture
def people_fields() -> list[tuple]:
    return [
        ("NAME", "C", 10),
        ("AGE", "N", 3, 0),
        ("BORN", "D", 8),
        ("ACTIVE", "L", 1),
    ]


@pytest.fixture
def people_dbf(write_file, people_fields) -> Path:
    records = [
        [b"Alice", b" 31", b"19920301", b"T"],
        ("*", [b"Deleted", b"  1", b"20000101", b"F"]),
        [b"Bob", b"  7", b"20160716", b"N"],
    ]
    return write_file("people.dbf", build_dbf(people_fields, records))
