"""Forward-only DBF table reader (dBase III / FoxPro / Visual FoxPro)."""
from __future__ import annotations

import enum
import logging
from functools import partial
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Mapping, Optional

from dbf2pg.dbf.constants import DBT_BLOCK_SIZE, DELETED_FLAG
from dbf2pg.dbf.decoders import get_decoder
from dbf2pg.dbf.errors import (
    AlreadyConsumedError,
    FormatError,
    MissingFileError,
    TruncatedMemoError,
)
from dbf2pg.dbf.fields import ColumnInfo, FieldDescriptor, MemoVariant, TableLayout
from dbf2pg.dbf.header import parse_header
from dbf2pg.dbf.memo import MemoStore, open_memo_store

logger = logging.getLogger(__name__)


class ScanState(enum.Enum):
    OPEN = "open"               # header parsed, positioned at the first record
    SCANNING = "scanning"
    EXHAUSTED = "exhausted"     # record count reached
    CLOSED = "closed"


def select_fields(layout: TableLayout, include: Iterable[str] = (),
                  renames: Optional[Mapping[str, str]] = None) -> None:
    """Apply renames and the inclusion list to the layout's fields.

    Names are matched case-insensitively. An included name may be either
    the stored name or its renamed form. An empty list exports everything.
    """
    rename_map = {k.upper(): v for k, v in (renames or {}).items()}
    wanted = {name.upper() for name in include}
    matched: set[str] = set()

    for fld in layout.fields:
        fld.export_name = rename_map.get(fld.name.upper(), fld.name)
        keys = {fld.name.upper(), fld.export_name.upper()}
        fld.exported = not wanted or bool(keys & wanted)
        matched |= keys & wanted

    for name in sorted(wanted - matched):
        logger.warning("Included column %s does not exist in the table", name)


def memo_variant_for(layout: TableLayout) -> Optional[MemoVariant]:
    """Return the memo layout needed by the exported memo fields, if any."""
    memo_fields = layout.memo_fields
    if not memo_fields:
        return None

    for fld in memo_fields:
        if fld.memo_variant is None:
            raise FormatError(
                f"Invalid memo field {fld.name} length {fld.length} (expected 4 or 10)"
            )

    variants = {fld.memo_variant for fld in memo_fields}
    if len(variants) > 1:
        lengths = sorted(fld.length for fld in memo_fields)
        raise FormatError(f"Memo fields disagree on pointer length: {lengths}")
    return variants.pop()


class DBFTable:
    """A single decoding session over one table file and its memo file.

    The table is read as a forward stream: `columns()` and `rows()` may each
    be called once, and both handles are released when the rows are
    exhausted, when the row iterator is closed early, or on `close()`.
    """

    def __init__(self, path: Path, file: BinaryIO, layout: TableLayout,
                 memo: Optional[MemoStore] = None, encoding: str = "ascii",
                 strict_memo: bool = True):
        self.path = path
        self.file = file
        self.layout = layout
        self.memo = memo
        self.encoding = encoding
        self.strict_memo = strict_memo
        self.state = ScanState.OPEN
        self._columns_read = False
        self.deleted_count = 0

        for fld in layout.memo_fields:
            if fld.decode is None:
                fld.decode = partial(self._read_memo, fld)

    @property
    def record_count(self) -> int:
        return self.layout.record_count

    @property
    def fields(self) -> list[FieldDescriptor]:
        return self.layout.fields

    def columns(self) -> list[ColumnInfo]:
        """Exported columns in declaration order. Must be called before `rows()`."""
        if self._columns_read or self.state is not ScanState.OPEN:
            raise AlreadyConsumedError("Column names have already been read")
        self._columns_read = True
        return [
            ColumnInfo(f.export_name, f.type, f.length, f.decimal_count)
            for f in self.layout.exported_fields
        ]

    def rows(self) -> Iterator[list[str]]:
        """Lazily decode the remaining records, skipping soft-deleted ones."""
        if self.state is not ScanState.OPEN:
            raise AlreadyConsumedError("Rows have already been read")
        self.state = ScanState.SCANNING
        self._columns_read = True
        return self._scan()

    def _scan(self) -> Iterator[list[str]]:
        f = self.file
        body_length = self.layout.record_body_length
        exported = self.layout.exported_fields

        try:
            for number in range(self.layout.record_count):
                flag = f.read(1)
                if flag == DELETED_FLAG:
                    f.seek(body_length, 1)
                    self.deleted_count += 1
                    continue

                body = f.read(body_length)
                if not flag or len(body) < body_length:
                    raise FormatError(
                        f"{self.path.name}: record {number} is truncated "
                        f"({len(body)} of {body_length} bytes)"
                    )
                yield [fld.decode(fld.slice(body)) for fld in exported]

            self.state = ScanState.EXHAUSTED
            logger.debug("%s: %d records read, %d deleted",
                         self.path.name, self.layout.record_count, self.deleted_count)
        finally:
            self.close()

    def _read_memo(self, fld: FieldDescriptor, pointer: bytes) -> str:
        try:
            return self.memo.resolve(pointer, self.encoding)
        except TruncatedMemoError as exc:
            if self.strict_memo:
                raise
            logger.warning("%s.%s: %s; using empty text", self.path.name, fld.name, exc)
            return ""

    def close(self):
        if self.memo is not None:
            self.memo.close()
        self.file.close()
        self.state = ScanState.CLOSED

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def open_table(path: Path | str, include: Iterable[str] = (),
               renames: Optional[Mapping[str, str]] = None, *,
               encoding: str = "ascii",
               type_overrides: Optional[Mapping[str, str]] = None,
               strict_memo: bool = True,
               dbt_block_size: int = DBT_BLOCK_SIZE) -> DBFTable:
    """Open a table file, parse its layout, and open its memo file if needed."""
    path = Path(path)
    if not path.is_file():
        raise MissingFileError(f"The DBF file does not exist or is inaccessible: {path}")
    try:
        file = open(path, "rb")
    except OSError as exc:
        raise MissingFileError(f"Cannot open DBF file {path}: {exc}") from exc

    try:
        layout = parse_header(file)
        select_fields(layout, include, renames)

        overrides = type_overrides or {}
        for fld in layout.fields:
            fld.decode = get_decoder(overrides.get(fld.type, fld.type), encoding)

        variant = memo_variant_for(layout)
        memo = open_memo_store(path, variant, dbt_block_size) if variant else None
    except BaseException:
        file.close()
        raise

    return DBFTable(path, file, layout, memo, encoding=encoding, strict_memo=strict_memo)


def main():
    """Quick test: dump the layout and first rows of a DBF file."""
    import sys
    if len(sys.argv) < 2:
        print("Usage: python -m dbf2pg.dbf.reader <path/to/table.dbf> [rows]")
        sys.exit(1)

    path = Path(sys.argv[1])
    limit = int(sys.argv[2]) if len(sys.argv) > 2 else 10

    with open_table(path) as table:
        layout = table.layout
        print(f"{path.name}: version 0x{layout.version:02X}, {layout.record_count:,} records, "
              f"{layout.record_size} bytes each\n")
        print(f"{'Name':<12} {'Type':<4} {'Len':>4} {'Dec':>4} {'Offset':>7}")
        print("-" * 35)
        for f in layout.fields:
            print(f"{f.name:<12} {f.type:<4} {f.length:>4} {f.decimal_count:>4} {f.offset:>7}")

        print()
        for i, row in enumerate(table.rows()):
            if i >= limit:
                break
            print("\t".join(row))


if __name__ == "__main__":
    main()
