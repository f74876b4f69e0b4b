"""Table header and field-descriptor array parser."""
from __future__ import annotations

import logging
import struct
from typing import BinaryIO

from dbf2pg.dbf.constants import (
    FIELD_ARRAY_TERMINATOR_SIZE,
    FIELD_DECIMALS_OFFSET,
    FIELD_DESCRIPTOR_SIZE,
    FIELD_LENGTH_OFFSET,
    FIELD_NAME_LENGTH,
    FIELD_TYPE_OFFSET,
    HEADER_SIZE,
    VERSION_VISUAL_FOXPRO,
    VFP_BACKLINK_SIZE,
)
from dbf2pg.dbf.errors import FormatError
from dbf2pg.dbf.fields import FieldDescriptor, TableLayout

logger = logging.getLogger(__name__)

# version(1) + last update YMD(3) + record count(4) + header length(2) + record length(2) + reserved(20)
_HEADER_FMT = struct.Struct("<B3sIHH20s")


def field_array_geometry(header_length: int, skip_bytes: int) -> tuple[int, int]:
    """Return (field array size, skip bytes) for a declared header length.

    Some writers put one extra padding byte in front of the terminator; an
    array size that is one more than a multiple of the descriptor size is
    taken to be that padding.
    """
    array_size = header_length - HEADER_SIZE - skip_bytes - FIELD_ARRAY_TERMINATOR_SIZE
    if array_size % FIELD_DESCRIPTOR_SIZE == 1:
        skip_bytes += 1
        array_size -= 1
    if array_size <= 0:
        raise FormatError(
            f"Header length {header_length} leaves no room for field descriptors"
        )
    return array_size, skip_bytes


def parse_descriptor(data: bytes, pos: int, offset: int) -> FieldDescriptor:
    """Parse one 32-byte field descriptor starting at `pos`."""
    raw_name = data[pos:pos + FIELD_NAME_LENGTH]
    # Some writers leave garbage after the NUL padding
    name = raw_name.split(b"\x00", 1)[0].decode("ascii", errors="replace")
    return FieldDescriptor(
        name=name,
        type=chr(data[pos + FIELD_TYPE_OFFSET]),
        length=data[pos + FIELD_LENGTH_OFFSET],
        offset=offset,
        decimal_count=data[pos + FIELD_DECIMALS_OFFSET],
        export_name=name,
    )


def parse_header(f: BinaryIO) -> TableLayout:
    """Read the header and field descriptors from the start of a table stream.

    On return the stream is positioned at the first record.
    """
    header = f.read(HEADER_SIZE)
    if len(header) < HEADER_SIZE:
        raise FormatError(f"File is too short for a table header ({len(header)} bytes)")

    version, _, record_count, header_length, _, _ = _HEADER_FMT.unpack(header)
    skip_bytes = VFP_BACKLINK_SIZE if version == VERSION_VISUAL_FOXPRO else 0

    array_size, skip_bytes = field_array_geometry(header_length, skip_bytes)
    field_count = array_size // FIELD_DESCRIPTOR_SIZE

    data = f.read(array_size)
    if len(data) < array_size:
        raise FormatError(
            f"Field descriptor array truncated: expected {array_size} bytes, got {len(data)}"
        )

    fields = []
    offset = 0
    for i in range(field_count):
        descriptor = parse_descriptor(data, i * FIELD_DESCRIPTOR_SIZE, offset)
        offset += descriptor.length
        fields.append(descriptor)

    # Backlink / padding and the 0x0D terminator sit between descriptors and records
    f.seek(skip_bytes + FIELD_ARRAY_TERMINATOR_SIZE, 1)

    layout = TableLayout(
        version=version,
        record_count=record_count,
        header_length=header_length,
        skip_bytes=skip_bytes,
        fields=fields,
    )
    logger.debug(
        "Header: version=0x%02X records=%d header_length=%d fields=%d body=%d skip=%d",
        version, record_count, header_length, field_count,
        layout.record_body_length, skip_bytes,
    )
    return layout
