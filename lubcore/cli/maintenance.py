"""CLI command: cleanup."""

from __future__ import annotations

import click

from lubcore.cli.common import open_core
from lubcore.config import Config


@click.command("cleanup")
@click.pass_obj
def cleanup(config: Config) -> None:
    """Run every service's cleanup pass."""
    with open_core(config) as core:
        report = core.cleanup()

    ledger = report.ledger
    viral = report.viral
    click.echo("Cleanup complete")
    click.echo(f"  History entries pruned: {ledger.history_pruned}")
    click.echo(f"  Expired bans cleared:   {ledger.bans_cleared}")
    click.echo(f"  Idle actors evicted:    {ledger.actors_evicted}")
    click.echo(f"  Resolved reports gone:  {ledger.reports_removed}")
    click.echo(f"  Detections trimmed:     {viral.detections_removed}")
    click.echo(f"  Rate counters cleared:  {viral.counters_cleared}")
    click.echo(f"  Reward entries pruned:  {viral.rewards_pruned}")
    click.echo(f"  Challenges expired:     {report.challenges_expired}")
