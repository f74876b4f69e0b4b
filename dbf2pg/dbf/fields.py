"""Field descriptor and table layout dataclasses for DBF parsing."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, NamedTuple, Optional

from dbf2pg.dbf.constants import DBT_POINTER_LENGTH, FPT_POINTER_LENGTH


class MemoVariant(enum.Enum):
    """Companion memo file layout, keyed by the in-record pointer length."""
    FPT = ".fpt"    # 4-byte binary block index, length-prefixed blocks
    DBT = ".dbt"    # 10-byte ASCII block index, 0x1A 0x1A terminated text

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def for_length(cls, length: int) -> Optional[MemoVariant]:
        if length == FPT_POINTER_LENGTH:
            return cls.FPT
        if length == DBT_POINTER_LENGTH:
            return cls.DBT
        return None


@dataclass(slots=True)
class FieldDescriptor:
    """A single column as declared in the table's field-descriptor array."""
    name: str               # Stored name, trailing NULs removed
    type: str               # Single-character type tag (C, N, D, M, ...)
    length: int             # Bytes occupied within the record body
    offset: int             # Offset within the record body (deletion flag excluded)
    decimal_count: int = 0
    export_name: str = ""
    exported: bool = True
    decode: Optional[Callable[[bytes], str]] = field(default=None, repr=False)

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def is_memo(self) -> bool:
        return self.type == "M"

    @property
    def memo_variant(self) -> Optional[MemoVariant]:
        if not self.is_memo:
            return None
        return MemoVariant.for_length(self.length)

    def slice(self, body: bytes) -> bytes:
        """Cut this field's raw bytes out of a record body."""
        return body[self.offset:self.end]


@dataclass(slots=True)
class TableLayout:
    """Record geometry derived once from the table header."""
    version: int
    record_count: int
    header_length: int
    skip_bytes: int
    fields: list[FieldDescriptor] = field(default_factory=list)

    @property
    def record_body_length(self) -> int:
        return sum(f.length for f in self.fields)

    @property
    def record_size(self) -> int:
        """Bytes consumed per stored record, deletion flag included."""
        return 1 + self.record_body_length

    @property
    def exported_fields(self) -> list[FieldDescriptor]:
        return [f for f in self.fields if f.exported]

    @property
    def memo_fields(self) -> list[FieldDescriptor]:
        return [f for f in self.fields if f.exported and f.is_memo]


class ColumnInfo(NamedTuple):
    """Exported column as handed to the SQL layer."""
    name: str
    type: str
    length: int
    decimal_count: int
