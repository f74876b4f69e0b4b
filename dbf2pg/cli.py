"""Click CLI for the DBF to PostgreSQL exporter."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import click

from dbf2pg.dbf.errors import DBFError
from dbf2pg.settings import Config, load_config, resolve_options


class Context:
    """Holds the config file location and loads it on first use."""

    def __init__(self, config_path: Path | None = None):
        self._config_path = config_path
        self._config: Config | None = None

    @property
    def config(self) -> Config:
        if self._config is None:
            self._config = load_config(self._config_path)
        return self._config


pass_ctx = click.make_pass_decorator(Context)

_dbf_argument = click.argument(
    "dbf", type=click.Path(exists=True, dir_okay=False, path_type=Path),
)


def _parse_renames(values: tuple[str, ...]) -> Optional[dict[str, str]]:
    if not values:
        return None
    renames = {}
    for value in values:
        old, sep, new = value.partition("=")
        if not sep or not old or not new:
            raise click.BadParameter(f"expected OLD=NEW, got '{value}'", param_hint="--rename")
        renames[old] = new
    return renames


@click.group()
@click.option(
    "--config", "config_path", default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="TOML settings file (default: dbf2pg/config.toml in the user config dir)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log header geometry and memo details to stderr")
@click.version_option(package_name="dbf2pg")
@click.pass_context
def cli(ctx, config_path: Optional[Path], verbose: bool):
    """dbf2pg - dump dBase / FoxPro tables as PostgreSQL load scripts.

    Reads DBF files (with their .fpt/.dbt memo files) and writes
    DROP/CREATE TABLE statements followed by COPY data.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj = Context(config_path=config_path)


@cli.command()
@_dbf_argument
@click.option("--output", "-o", "output_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Write the script to a file instead of stdout")
@click.option("--table", "-t", "table_name", default=None, help="Target table name (default: file stem)")
@click.option("--include", "-i", multiple=True, help="Column to export (repeatable; default: all)")
@click.option("--rename", "-r", multiple=True, metavar="OLD=NEW", help="Rename a column (repeatable)")
@click.option("--drop/--no-drop", "drop_table", default=None, help="DROP TABLE before creating it")
@click.option("--create/--no-create", "create_table", default=None, help="Emit CREATE TABLE")
@click.option("--truncate", "truncate_table", is_flag=True, default=False,
              help="TRUNCATE an existing table instead of dropping/creating it")
@click.option("--transaction/--no-transaction", default=None, help="Wrap the script in BEGIN/COMMIT")
@click.option("--numeric-as-text", is_flag=True, default=False, help="Create N/F columns as TEXT")
@click.option("--bool-as-varchar", is_flag=True, default=False, help="Create L columns as VARCHAR(1)")
@click.option("--pg-version", type=click.Choice(["8.1", "8.2"]), default=None,
              help="Oldest server to support (8.1 has no DROP TABLE IF EXISTS)")
@click.option("--encoding", default=None, help="Text encoding of character and memo fields")
@click.option("--lenient-memo", is_flag=True, default=False,
              help="Load unreadable memo values as empty text instead of failing")
@pass_ctx
def dump(ctx: Context, dbf: Path, output_path: Optional[Path], table_name: Optional[str],
         include: tuple[str, ...], rename: tuple[str, ...], drop_table: Optional[bool],
         create_table: Optional[bool], truncate_table: bool,
         transaction: Optional[bool], numeric_as_text: bool,
         bool_as_varchar: bool, pg_version: Optional[str],
         encoding: Optional[str], lenient_memo: bool):
    """Write a PostgreSQL script that loads DBF into a table."""
    from dbf2pg.pg.script import generate_script

    overrides = {
        "table_name": table_name,
        "include": list(include) or None,
        "rename": _parse_renames(rename),
        "drop_table": drop_table,
        "create_table": create_table,
        "truncate_table": truncate_table or None,
        "transaction": transaction,
        "numeric_as_text": numeric_as_text or None,
        "bool_as_varchar": bool_as_varchar or None,
        "pg_version": pg_version,
        "encoding": encoding,
        "strict_memo": False if lenient_memo else None,
    }
    options = resolve_options(ctx.config, dbf, overrides)

    t0 = time.perf_counter()
    lines = 0
    try:
        with click.open_file(str(output_path) if output_path else "-", "w", encoding="utf-8") as out:
            for line in generate_script(dbf, options):
                out.write(line)
                out.write("\n")
                lines += 1
    except DBFError as exc:
        raise click.ClickException(str(exc)) from exc

    if output_path:
        click.echo(f"Wrote {lines:,} lines to {output_path} in {time.perf_counter() - t0:.1f}s",
                   err=True)


@cli.command()
@_dbf_argument
@click.option("--rows", "-n", "row_limit", type=int, default=0, help="Also print the first N decoded rows")
@click.option("--encoding", default=None, help="Text encoding of character and memo fields")
@pass_ctx
def info(ctx: Context, dbf: Path, row_limit: int, encoding: Optional[str]):
    """Show the header, field layout, and optionally sample rows of DBF."""
    from dbf2pg.dbf.reader import open_table

    try:
        encoding = resolve_options(ctx.config, dbf, {"encoding": encoding}).encoding
        with open_table(dbf, encoding=encoding) as table:
            layout = table.layout
            click.echo(f"File:     {dbf}")
            click.echo(f"Version:  0x{layout.version:02X}")
            click.echo(f"Records:  {layout.record_count:,}")
            click.echo(f"Record:   {layout.record_size} bytes ({layout.record_body_length} + deletion flag)")
            if table.memo is not None:
                click.echo(f"Memo:     {table.memo.path.name} ({table.memo.variant.name}, "
                           f"{table.memo.block_size}-byte blocks)")

            click.echo(f"\n{'Name':<12} {'Type':<4} {'Len':>4} {'Dec':>4} {'Offset':>7}")
            click.echo("-" * 35)
            for f in layout.fields:
                click.echo(f"{f.name:<12} {f.type:<4} {f.length:>4} {f.decimal_count:>4} {f.offset:>7}")

            if row_limit > 0:
                click.echo()
                for i, row in enumerate(table.rows()):
                    if i >= row_limit:
                        break
                    click.echo("\t".join(row))
    except DBFError as exc:
        raise click.ClickException(str(exc)) from exc


def main():
    cli()


if __name__ == "__main__":
    main()
