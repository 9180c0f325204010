"""CLI commands: config show."""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path

import click

from lubcore.config import Config, env_var_name


def _toml_value(value: object) -> str:
    match value:
        case bool():
            return "true" if value else "false"
        case int() | float():
            return str(value)
        case Path():
            return f'"{value.as_posix()}"'
        case list():
            return "[" + ", ".join(_toml_value(v) for v in value) + "]"
        case _:
            return f'"{value}"'


@click.group("config")
def config_group() -> None:
    """Inspect the effective configuration."""


@config_group.command("show")
@click.option("--section", "only", default=None, help="Print a single section.")
@click.option("--env", "with_env", is_flag=True, help="Annotate override variables.")
@click.pass_obj
def config_show(config: Config, only: str | None, with_env: bool) -> None:
    """Print the merged configuration in config.toml form."""
    names = [f.name for f in fields(config)]
    if only is not None and only not in names:
        raise click.BadParameter(
            f"choose from {', '.join(names)}", param_hint="--section"
        )

    for name in names:
        if only is not None and name != only:
            continue
        section = getattr(config, name)
        click.echo(f"[{name}]")
        for f in fields(section):
            line = f"{f.name} = {_toml_value(getattr(section, f.name))}"
            if with_env:
                line += f"  # {env_var_name(name, f.name)}"
            click.echo(line)
        click.echo()
    click.echo(f"# database: {config.db_path}")
