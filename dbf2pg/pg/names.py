"""Table and column naming rules for PostgreSQL output."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

_NON_WORD_RE = re.compile(r"\W+")

# Words PostgreSQL refuses as bare column names
RESERVED_WORDS = frozenset({
    "all", "analyse", "analyze", "and", "any", "array", "as", "asc",
    "asymmetric", "both", "case", "cast", "check", "collate", "column",
    "constraint", "create", "current_catalog", "current_date", "current_role",
    "current_time", "current_timestamp", "current_user", "default",
    "deferrable", "desc", "distinct", "do", "else", "end", "except", "false",
    "fetch", "for", "foreign", "from", "grant", "group", "having", "in",
    "initially", "intersect", "into", "leading", "limit", "localtime",
    "localtimestamp", "new", "not", "null", "off", "offset", "old", "on",
    "only", "or", "order", "placing", "primary", "references", "returning",
    "select", "session_user", "some", "symmetric", "table", "then", "to",
    "trailing", "true", "union", "unique", "user", "using", "variadic",
    "when", "where", "window", "with",
    "",
})


def table_name_for(path: Path | str) -> str:
    """Default table name: file stem with runs of non-word characters as '_'."""
    return sanitize_table_name(Path(path).stem)


def sanitize_table_name(name: str) -> str:
    return _NON_WORD_RE.sub("_", name)


def is_reserved(name: str) -> bool:
    return name.lower() in RESERVED_WORDS


def safe_column_names(names: Iterable[str]) -> list[str]:
    """Rename reserved (or empty) column names to `<name>_<n>`.

    `n` is the smallest positive integer whose result does not collide with
    another column name.
    """
    names = list(names)
    taken = {n.lower() for n in names}
    result = []
    for name in names:
        if is_reserved(name):
            n = 1
            while f"{name}_{n}".lower() in taken:
                n += 1
            name = f"{name}_{n}"
            taken.add(name.lower())
        result.append(name)
    return result
