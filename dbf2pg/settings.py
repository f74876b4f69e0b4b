"""TOML configuration: export defaults and per-table overrides."""
from __future__ import annotations

import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import click

from dbf2pg.pg.script import PgScriptOptions

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

# Keys that only make sense for a single table
_TABLE_ONLY_KEYS = frozenset({"table_name", "include", "rename"})
_OPTION_KEYS = frozenset(f.name for f in fields(PgScriptOptions)) - {"renames"} | {"rename"}


@dataclass
class Config:
    defaults: dict[str, Any] = field(default_factory=dict)
    tables: dict[str, dict[str, Any]] = field(default_factory=dict)
    path: Optional[Path] = None


def get_config_path() -> Path:
    """Return the default TOML config file path via click.get_app_dir."""
    return Path(click.get_app_dir("dbf2pg")) / "config.toml"


def _check_keys(section: str, values: dict[str, Any], allowed: frozenset[str]) -> None:
    for key in values:
        if key not in allowed:
            raise click.UsageError(f"Unknown setting '{key}' in [{section}]")


def load_config(path: Optional[Path] = None) -> Config:
    """Read TOML config. Returns an empty Config if the file is missing."""
    path = path or get_config_path()
    if not path.exists():
        return Config()

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise click.UsageError(f"Invalid config file {path}: {exc}") from exc

    defaults = data.get("defaults", {})
    _check_keys("defaults", defaults, _OPTION_KEYS - _TABLE_ONLY_KEYS)

    tables = {}
    for stem, values in data.get("tables", {}).items():
        _check_keys(f"tables.{stem}", values, _OPTION_KEYS)
        tables[stem.lower()] = values

    return Config(defaults=defaults, tables=tables, path=path)


def resolve_options(config: Config, dbf: Path, overrides: dict[str, Any]) -> PgScriptOptions:
    """Merge settings: command line > [tables.<stem>] > [defaults] > built-ins.

    `overrides` holds only the options given on the command line.
    """
    merged: dict[str, Any] = {}
    merged.update(config.defaults)
    merged.update(config.tables.get(dbf.stem.lower(), {}))
    merged.update({k: v for k, v in overrides.items() if v is not None})

    if "rename" in merged:
        merged["renames"] = dict(merged.pop("rename"))
    if "include" in merged:
        merged["include"] = list(merged["include"])

    try:
        return PgScriptOptions(**merged)
    except (TypeError, ValueError) as exc:
        raise click.UsageError(str(exc)) from exc
