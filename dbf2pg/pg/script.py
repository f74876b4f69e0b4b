"""Generate a PostgreSQL load script (DDL + COPY data) from a DBF table."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from dbf2pg.dbf.fields import ColumnInfo
from dbf2pg.dbf.reader import DBFTable, open_table
from dbf2pg.pg.names import safe_column_names, sanitize_table_name, table_name_for
from dbf2pg.pg.schema import is_null, pg_column_type

logger = logging.getLogger(__name__)

PG_VERSIONS = ("8.1", "8.2")

COPY_NULL = "\\N"
COPY_END = "\\."

_COPY_ESCAPES = str.maketrans({
    "\\": "\\\\",
    "\t": "\\t",
    "\n": "\\n",
    "\r": "\\r",
})


@dataclass
class PgScriptOptions:
    """How a table is (re)created and loaded.

    Truncating implies neither dropping nor creating; dropping implies
    creating.
    """
    table_name: Optional[str] = None
    drop_table: bool = True
    create_table: bool = True
    truncate_table: bool = False
    pg_version: str = "8.2"
    numeric_as_text: bool = False
    bool_as_varchar: bool = False
    transaction: bool = True
    include: list[str] = field(default_factory=list)
    renames: dict[str, str] = field(default_factory=dict)
    encoding: str = "ascii"
    strict_memo: bool = True

    def __post_init__(self):
        if self.pg_version not in PG_VERSIONS:
            raise ValueError(f"Unsupported PostgreSQL version {self.pg_version!r}")
        if self.table_name is not None:
            self.table_name = sanitize_table_name(self.table_name)
        if self.truncate_table:
            self.create_table = False
            self.drop_table = False
        if self.drop_table:
            self.create_table = True

    @property
    def type_overrides(self) -> dict[str, str]:
        # VARCHAR(1) booleans carry the stored character, not t/f
        return {"L": "C"} if self.bool_as_varchar else {}


def copy_escape(value: str) -> str:
    """Escape a value for COPY text format."""
    return value.translate(_COPY_ESCAPES)


def copy_line(columns: list[ColumnInfo], row: list[str], numeric_as_text: bool = False) -> str:
    """Format one decoded row as a tab-separated COPY line."""
    return "\t".join(
        COPY_NULL if is_null(col, value, numeric_as_text) else copy_escape(value)
        for col, value in zip(columns, row)
    )


def drop_statement(table_name: str, pg_version: str) -> str:
    if_exists = "IF EXISTS " if pg_version != "8.1" else ""
    return (
        f"SET statement_timeout = 60000; DROP TABLE {if_exists}{table_name};"
        "  SET statement_timeout=0;"
    )


def create_statement(table_name: str, columns: list[ColumnInfo], names: list[str],
                     options: PgScriptOptions) -> str:
    column_defs = ",".join(
        f"{name} {pg_column_type(col, options.numeric_as_text, options.bool_as_varchar)}"
        for name, col in zip(names, columns)
    )
    return f"CREATE TABLE {table_name} ({column_defs});"


def table_script(table: DBFTable, table_name: str, options: PgScriptOptions) -> Iterator[str]:
    """Yield the script lines for an already opened table."""
    columns = table.columns()
    names = safe_column_names(c.name for c in columns)

    if options.transaction:
        yield "BEGIN;"
    if options.drop_table:
        yield drop_statement(table_name, options.pg_version)
    if options.create_table:
        yield create_statement(table_name, columns, names, options)
    if options.truncate_table:
        yield f"TRUNCATE TABLE {table_name};"

    yield f"COPY {table_name} ({','.join(names)}) FROM STDIN;"
    count = 0
    for row in table.rows():
        yield copy_line(columns, row, options.numeric_as_text)
        count += 1
    yield COPY_END

    if options.transaction:
        yield "COMMIT;"
    logger.debug("%s: wrote %d rows to %s", table.path.name, count, table_name)


def generate_script(path: Path | str, options: Optional[PgScriptOptions] = None) -> Iterator[str]:
    """Yield a PostgreSQL script that loads the DBF file at `path`.

    The table is opened on the first `next()`; its file handles are released
    when the script is exhausted or the iterator is closed.
    """
    options = options or PgScriptOptions()
    table_name = options.table_name or table_name_for(path)

    with open_table(
        path,
        options.include,
        options.renames,
        encoding=options.encoding,
        type_overrides=options.type_overrides,
        strict_memo=options.strict_memo,
    ) as table:
        yield from table_script(table, table_name, options)
