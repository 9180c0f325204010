"""CLI commands: challenge generate, complete, list, cleanup."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from lubcore.challenges.types import Difficulty
from lubcore.cli.common import fail, format_ts, open_core
from lubcore.config import Config
from lubcore.errors import ChallengeBlockedError, LubCoreError
from lubcore.social import TIER_EMOJI, SocialActor


@click.group("challenge")
def challenge_group() -> None:
    """Generate and settle social challenges."""


@challenge_group.command("generate")
@click.argument("username")
@click.option("--fid", type=int, required=True, help="Target's Farcaster id")
@click.option("--followers", type=int, required=True, help="Target's follower count")
@click.option(
    "--difficulty",
    type=click.Choice([d.value for d in Difficulty]),
    default=Difficulty.EASY.value,
    show_default=True,
)
@click.option("--creator", "creator_id", type=int, default=None, help="Creator fid")
@click.option("--created-by", default=None, help="Creator display handle")
@click.pass_obj
def challenge_generate(
    config: Config,
    username: str,
    fid: int,
    followers: int,
    difficulty: str,
    creator_id: int | None,
    created_by: str | None,
) -> None:
    """Generate a challenge against USERNAME."""
    with open_core(config) as core:
        try:
            target = SocialActor(fid=fid, username=username, follower_count=followers)
            challenge = core.engine.generate_challenge(
                target, difficulty, created_by, creator_id
            )
        except ChallengeBlockedError as exc:
            click.secho(f"Blocked ({exc.decision.action.value}):", fg="red")
            for reason in exc.decision.reasons:
                click.echo(f"  - {reason}")
            if exc.decision.cooldown_until:
                click.echo(f"  Retry after {format_ts(exc.decision.cooldown_until)}")
            raise SystemExit(1) from None
        except LubCoreError as exc:
            fail(exc)

    click.echo(f"Challenge {challenge.id}")
    click.echo(f"  Type:      {challenge.type_id}")
    click.echo(
        f"  Reward:    {challenge.total_reward} LUB"
        f" ({challenge.base_reward} × {challenge.whale_multiplier:g})"
    )
    click.echo(f"  Deadline:  {format_ts(challenge.deadline)}")
    click.echo()
    click.echo(challenge.prompt)


@challenge_group.command("complete")
@click.argument("challenge_id")
@click.option("--failed", is_flag=True, default=False, help="Record a failed attempt")
@click.option("--viral", is_flag=True, default=False, help="Viral mention detected")
@click.option("--evidence", default=None, help="Link or note proving completion")
@click.pass_obj
def challenge_complete(
    config: Config,
    challenge_id: str,
    failed: bool,
    viral: bool,
    evidence: str | None,
) -> None:
    """Settle CHALLENGE_ID and print the payout."""
    with open_core(config) as core:
        try:
            result = core.engine.complete_challenge(
                challenge_id, not failed, evidence, viral
            )
        except LubCoreError as exc:
            fail(exc)

    status = "succeeded" if result.success else "failed"
    click.echo(f"Challenge {challenge_id} {status}")
    click.echo(f"  Reward: {result.actual_reward} LUB")
    b = result.bonuses
    click.echo(f"  Bonuses: whale={b.whale} viral={b.viral} speed={b.speed}")


@challenge_group.command("list")
@click.option("--history", is_flag=True, default=False, help="Show completed results")
@click.option("--limit", type=int, default=None, help="History rows to show")
@click.pass_obj
def challenge_list(config: Config, history: bool, limit: int | None) -> None:
    """List active challenges (or completed ones with --history)."""
    console = Console()
    with open_core(config) as core:
        if history:
            table = Table(title="Challenge History")
            table.add_column("Challenge", no_wrap=True)
            table.add_column("Result")
            table.add_column("Reward", justify="right")
            table.add_column("Completed")
            for r in core.engine.get_challenge_history(limit):
                table.add_row(
                    r.challenge_id,
                    "[green]success[/]" if r.success else "[red]failed[/]",
                    str(r.actual_reward),
                    format_ts(r.completed_at),
                )
        else:
            table = Table(title="Active Challenges")
            table.add_column("Challenge", no_wrap=True)
            table.add_column("Target")
            table.add_column("Type")
            table.add_column("Difficulty")
            table.add_column("Reward", justify="right")
            table.add_column("Deadline")
            for c in core.engine.get_active_challenges():
                table.add_row(
                    c.id,
                    f"{TIER_EMOJI[c.target.tier]} @{c.target.username}",
                    c.type_id,
                    c.difficulty.value,
                    str(c.total_reward),
                    format_ts(c.deadline),
                )
    console.print(table)


@challenge_group.command("cleanup")
@click.pass_obj
def challenge_cleanup(config: Config) -> None:
    """Discard challenges whose deadline has passed."""
    with open_core(config) as core:
        removed = core.engine.cleanup_expired_challenges()
    click.echo(f"Removed {removed} expired challenge(s)")
