"""Command-line interface for inspecting and editing aesprefs namespaces."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from aesprefs import get_version_info
from aesprefs.base import APP_LAUNCHES_KEY, PrefsError
from aesprefs.codec.values import ValueType
from aesprefs.config import PrefsConfig, load_config
from aesprefs.store import AesPrefs

app = typer.Typer(
    name="aesprefs",
    help="Encrypted key/value preferences: read, write and inspect a namespace",
    add_completion=False,
    no_args_is_help=True,
)

#: Command-line defaults; records have to outlive a single invocation.
CLI_DEFAULTS = {"backend": "filesystem", "base_path": "~/.config/aesprefs"}

_VOLATILE_BACKENDS = ("memory", "mem")


TypeOpt = Annotated[
    str,
    typer.Option("--type", "-t", help="Value type (string, int, long, float, double, boolean)"),
]


@dataclass
class _State:
    config: PrefsConfig
    prefs: AesPrefs | None = None


def _open(ctx: typer.Context) -> AesPrefs:
    """Initialize the store described by the global options once per run."""
    state: _State = ctx.obj
    if state.prefs is None:
        if state.config.backend.strip().lower() in _VOLATILE_BACKENDS:
            typer.echo(
                f"Error: The '{state.config.backend}' backend does not persist between "
                "commands; use --backend filesystem",
                err=True,
            )
            raise typer.Exit(1)
        try:
            state.prefs = AesPrefs.from_config(state.config)
        except PrefsError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
    return state.prefs


def _value_type(name: str) -> ValueType:
    try:
        return ValueType.from_string(name)
    except ValueError:
        valid = ", ".join(t.value for t in ValueType)
        typer.echo(f"Error: Unknown type '{name}'. Valid types: {valid}", err=True)
        raise typer.Exit(1)


def _coerce(raw: str, value_type: ValueType) -> Any:
    """Turn command-line text into a value of ``value_type``."""
    if value_type is ValueType.BOOLEAN:
        lowered = raw.lower()
        if lowered not in ("true", "false"):
            raise ValueError(f"expected true or false, got {raw!r}")
        return lowered == "true"
    return value_type.parse(raw)


@app.callback()
def main(
    ctx: typer.Context,
    namespace: Annotated[
        Optional[str],
        typer.Option("--namespace", "-n", help="Namespace (env: AESPREFS_NAMESPACE)"),
    ] = None,
    password: Annotated[
        Optional[str],
        typer.Option("--password", "-p", help="Password (env: AESPREFS_PASSWORD)"),
    ] = None,
    backend: Annotated[
        Optional[str],
        typer.Option("--backend", "-b", help="Backing store (default: filesystem)"),
    ] = None,
    path: Annotated[
        Optional[str],
        typer.Option(
            "--path", help="Directory of the filesystem backend (default: ~/.config/aesprefs)"
        ),
    ] = None,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="TOML, YAML or JSON file with an aesprefs table"),
    ] = None,
    log_mode: Annotated[
        Optional[str],
        typer.Option("--log-mode", help="none, default, get, set, all"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Print diagnostic log records"),
    ] = False,
) -> None:
    """Encrypted key/value preferences."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s - %(message)s",
    )
    try:
        config = load_config(
            config_file,
            defaults=CLI_DEFAULTS,
            namespace=namespace,
            password=password,
            backend=backend,
            base_path=path,
            log_mode=log_mode,
        )
    except PrefsError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    ctx.obj = _State(config=config)


@app.command(name="get")
def get_cmd(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting name")],
    value_type: TypeOpt = "string",
    default: Annotated[
        Optional[str],
        typer.Option("--default", "-d", help="Printed when the key is missing"),
    ] = None,
) -> None:
    """Print the decrypted value of a setting."""
    prefs = _open(ctx)
    vtype = _value_type(value_type)
    if not prefs.contains(key):
        if default is None:
            typer.echo(f"Error: Key not found: {key}", err=True)
            raise typer.Exit(1)
        typer.echo(default)
        return

    value = prefs.get_value(key, None, vtype)
    if value is None:
        typer.echo(f"Error: Cannot decode {key} as {vtype.value}", err=True)
        raise typer.Exit(1)
    typer.echo(vtype.render(value))


@app.command(name="put")
def put_cmd(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting name")],
    value: Annotated[str, typer.Argument(help="Value to store")],
    value_type: TypeOpt = "string",
    if_absent: Annotated[
        bool,
        typer.Option("--if-absent", help="Only write when the key has no entry"),
    ] = False,
) -> None:
    """Encrypt and store a setting."""
    prefs = _open(ctx)
    vtype = _value_type(value_type)
    try:
        parsed = _coerce(value, vtype)
    except ValueError as e:
        typer.echo(f"Error: Invalid {vtype.value}: {e}", err=True)
        raise typer.Exit(1)

    if if_absent:
        initializers = {
            ValueType.STRING: prefs.init_string,
            ValueType.INT: prefs.init_int,
            ValueType.LONG: prefs.init_long,
            ValueType.FLOAT: prefs.init_float,
            ValueType.DOUBLE: prefs.init_double,
            ValueType.BOOLEAN: prefs.init_boolean,
        }
        written = initializers[vtype](key, parsed)
        typer.echo(f"Stored {key}" if written else f"Unchanged {key} (already exists)")
        return

    prefs.put_value(key, parsed, vtype)
    typer.echo(f"Stored {key}")


@app.command(name="contains")
def contains_cmd(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting name")],
) -> None:
    """Exit with 0 if the setting exists, 1 otherwise."""
    prefs = _open(ctx)
    found = prefs.contains(key)
    typer.echo("yes" if found else "no")
    if not found:
        raise typer.Exit(1)


@app.command(name="remove")
def remove_cmd(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting name")],
) -> None:
    """Remove a scalar setting."""
    prefs = _open(ctx)
    if not prefs.remove(key):
        typer.echo(f"Error: Key not found: {key}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Removed {key}")


@app.command(name="array")
def array_cmd(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Array name")],
    values: Annotated[
        Optional[list[str]],
        typer.Option("--set", "-s", help="Store these elements (repeatable)"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print the array as JSON"),
    ] = False,
) -> None:
    """Print a string array, or replace it with --set values."""
    prefs = _open(ctx)
    if values:
        prefs.store_array(key, values)
        typer.echo(f"Stored {len(values)} items in {key}")
        return

    items = prefs.restore_array(key)
    if json_output:
        typer.echo(json.dumps(items))
    else:
        for item in items:
            typer.echo(item)


@app.command(name="count")
def count_cmd(ctx: typer.Context) -> None:
    """Print the number of raw records in the namespace."""
    typer.echo(str(_open(ctx).count_entries()))


@app.command(name="dump")
def dump_cmd(
    ctx: typer.Context,
    raw: Annotated[
        bool,
        typer.Option("--raw", help="Plain 'name : value' lines instead of a table"),
    ] = False,
) -> None:
    """Show every record exactly as stored (still encrypted)."""
    prefs = _open(ctx)
    if raw:
        typer.echo(prefs.get_encrypted_content(), nl=False)
        return

    table = Table(title=f"Records of {prefs.namespace}")
    table.add_column("Record", style="cyan", overflow="fold")
    table.add_column("Stored value", style="green", overflow="fold")
    for name, value in prefs.backend.items():
        table.add_row(name, value)
    Console().print(table)


@app.command(name="key")
def key_cmd(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting name")],
) -> None:
    """Print the encrypted record name of a setting."""
    typer.echo(_open(ctx).get_encrypted_key(key))


@app.command(name="clear")
def clear_cmd(
    ctx: typer.Context,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Delete every record of the namespace, master IV included."""
    prefs = _open(ctx)
    if not yes:
        typer.confirm(f"Delete all records of '{prefs.namespace}'?", abort=True)
    if not prefs.delete_all():
        typer.echo("Error: Backing store could not be cleared", err=True)
        raise typer.Exit(1)
    typer.echo("All records deleted")


@app.command(name="info")
def info_cmd(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show namespace, record count, launch counter and installation date."""
    prefs = _open(ctx)
    state: _State = ctx.obj
    info = {
        "namespace": prefs.namespace,
        "backend": state.config.backend,
        "records": prefs.count_entries(),
        "launch_counter": prefs.get_launch_counter() if prefs.contains(APP_LAUNCHES_KEY) else None,
        "installation_date": prefs.format_installation_date() or None,
        "log_mode": prefs.log_mode.value,
    }
    if json_output:
        typer.echo(json.dumps(info, indent=2))
        return

    table = Table(title="aesprefs", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field_name, value in info.items():
        table.add_row(field_name, "-" if value is None else str(value))
    Console().print(table)


@app.command(name="version")
def version_cmd() -> None:
    """Print the library version."""
    typer.echo(get_version_info())


if __name__ == "__main__":
    app()
