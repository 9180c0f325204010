"""LubCore CLI — Click command groups and sub-commands.

Operator surface over a SQLite-backed :class:`~lubcore.services.RewardCore`
in ``node.data_dir``:

- ``config`` — ``config show``
- ``challenge`` — ``generate``, ``complete``, ``list``, ``cleanup``
- ``viral`` — ``detect``, ``verify``, ``stats``, ``retry-distribution``
- ``report`` — ``submit``, ``review``, ``list``
- ``actor`` — ``stats``, ``warn``, ``unban``
- ``cleanup`` — every service's cleanup pass
"""

from __future__ import annotations

from pathlib import Path

import click

from lubcore import __version__
from lubcore.cli.common import configure_logging, fail
from lubcore.config import load_config
from lubcore.errors import ConfigError

# Configure structlog once at CLI entry; the group callback narrows the
# level once the config is loaded.
configure_logging("info")


@click.group()
@click.version_option(version=__version__, prog_name="lubcore")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.lubcore/config.toml).",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """LubCore — challenges, viral rewards and anti-spam for LUB."""
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        fail(exc)
    configure_logging(config.node.log_level)
    ctx.obj = config


# Register sub-command modules
from lubcore.cli.actor import actor_group  # noqa: E402
from lubcore.cli.challenge import challenge_group  # noqa: E402
from lubcore.cli.config import config_group  # noqa: E402
from lubcore.cli.maintenance import cleanup  # noqa: E402
from lubcore.cli.report import report_group  # noqa: E402
from lubcore.cli.viral import viral_group  # noqa: E402

cli.add_command(config_group)
cli.add_command(challenge_group)
cli.add_command(viral_group)
cli.add_command(report_group)
cli.add_command(actor_group)
cli.add_command(cleanup)
