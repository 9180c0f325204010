"""CLI commands: actor stats, warn, unban."""

from __future__ import annotations

import click

from lubcore.cli.common import format_ts, open_core
from lubcore.config import Config


@click.group("actor")
def actor_group() -> None:
    """Actor reputation and moderation."""


@actor_group.command("stats")
@click.argument("actor_id", type=int)
@click.pass_obj
def actor_stats(config: Config, actor_id: int) -> None:
    """Show ACTOR_ID's reputation and activity."""
    with open_core(config) as core:
        stats = core.ledger.get_user_stats(actor_id)
        recent = core.detector.recent_rewards(actor_id)

    click.echo(f"Actor {actor_id}")
    click.echo(f"{'=' * 30}")
    click.echo(f"Reputation:      {stats.reputation_score}/100")
    click.echo(f"Challenges:      {stats.challenges_created}")
    click.echo(f"Viral hits:      {stats.viral_detections}")
    click.echo(f"Reports filed:   {stats.reports_filed}")
    click.echo(f"Warnings:        {stats.warnings}")
    click.echo(f"Rewards (24h):   {recent} LUB")
    if stats.is_banned:
        click.secho(f"Banned until:    {format_ts(stats.banned_until)}", fg="red")
    if stats.can_create_challenge:
        click.echo("Can challenge:   yes")
    else:
        click.echo(
            f"Can challenge:   no (next {format_ts(stats.next_challenge_allowed)})"
        )


@actor_group.command("warn")
@click.argument("actor_id", type=int)
@click.argument("reason")
@click.option("--detail", default="", help="Free-text detail")
@click.pass_obj
def actor_warn(config: Config, actor_id: int, reason: str, detail: str) -> None:
    """Issue a moderator warning to ACTOR_ID."""
    with open_core(config) as core:
        actor = core.ledger.issue_warning(actor_id, reason, detail)
    click.echo(f"Warned actor {actor_id}; reputation now {actor.reputation_score}")


@actor_group.command("unban")
@click.argument("actor_id", type=int)
@click.pass_obj
def actor_unban(config: Config, actor_id: int) -> None:
    """Lift ACTOR_ID's ban."""
    with open_core(config) as core:
        lifted = core.ledger.lift_ban(actor_id)
    click.echo(f"Ban lifted for actor {actor_id}" if lifted else "No ban to lift")
