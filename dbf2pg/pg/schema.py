"""DBF field type to PostgreSQL column type mapping."""
from __future__ import annotations

from dbf2pg.dbf.fields import ColumnInfo

# Column types whose empty text must be loaded as NULL
NULLABLE_EMPTY_TYPES = frozenset("NFDTYBI")

_FIXED_TYPES = {
    "M": "TEXT",
    "D": "DATE",
    "T": "TIMESTAMP",
    "Y": "NUMERIC(19,4)",
    "B": "DOUBLE PRECISION",
    "I": "INTEGER",
}


def pg_column_type(column: ColumnInfo, numeric_as_text: bool = False,
                   bool_as_varchar: bool = False) -> str:
    """Return the PostgreSQL type used to create a column."""
    if column.type in ("N", "F"):
        if numeric_as_text:
            return "TEXT"
        if column.decimal_count == 0:
            return f"NUMERIC({column.length})"
        return f"NUMERIC({column.length},{column.decimal_count})"
    if column.type == "L":
        return "VARCHAR(1)" if bool_as_varchar else "BOOLEAN"
    fixed = _FIXED_TYPES.get(column.type)
    if fixed:
        return fixed
    return f"VARCHAR({column.length})"


def is_null(column: ColumnInfo, value: str, numeric_as_text: bool = False) -> bool:
    """True when a decoded value stands for NULL in its target column."""
    if column.type == "D":
        return not value.strip(" -0\x00")
    if column.type in ("N", "F") and numeric_as_text:
        return False
    return column.type in NULLABLE_EMPTY_TYPES and not value
