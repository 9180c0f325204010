"""CLI commands: viral detect, verify, stats, retry-distribution."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from lubcore.cli.common import fail, open_core
from lubcore.config import Config
from lubcore.errors import LubCoreError
from lubcore.social import SocialActor
from lubcore.viral.types import DistributionStatus, Engagement


@click.group("viral")
def viral_group() -> None:
    """Viral mention detection and rewards."""


@viral_group.command("detect")
@click.argument("challenge_id")
@click.argument("text")
@click.option("--fid", type=int, required=True, help="Author's Farcaster id")
@click.option("--username", required=True, help="Author's username")
@click.option("--followers", type=int, default=0, show_default=True)
@click.option("--likes", type=int, default=0)
@click.option("--recasts", type=int, default=0)
@click.option("--replies", type=int, default=0)
@click.pass_obj
def viral_detect(
    config: Config,
    challenge_id: str,
    text: str,
    fid: int,
    username: str,
    followers: int,
    likes: int,
    recasts: int,
    replies: int,
) -> None:
    """Score TEXT as a viral mention for CHALLENGE_ID."""
    with open_core(config) as core:
        try:
            actor = SocialActor(fid=fid, username=username, follower_count=followers)
            engagement = Engagement(likes=likes, recasts=recasts, replies=replies)
            detection = core.detector.detect_viral_mention(
                challenge_id, actor, text, engagement
            )
        except LubCoreError as exc:
            fail(exc)

    if detection is None:
        click.echo("No viral mention detected")
        return
    click.echo(f"Detection {detection.id}")
    click.echo(f"  Type:       {detection.detection_type.value}")
    click.echo(f"  Confidence: {detection.confidence:g}")
    click.echo(f"  Reward:     {detection.reward} LUB (unverified)")


@viral_group.command("verify")
@click.argument("detection_id")
@click.pass_obj
def viral_verify(config: Config, detection_id: str) -> None:
    """Verify DETECTION_ID and hand its reward to the distributor."""
    with open_core(config) as core:
        verified = core.detector.verify_detection(detection_id)
        detection = core.detector.get_detection(detection_id)

    if detection is None:
        click.secho(f"Unknown detection: {detection_id}", fg="red")
        raise SystemExit(1)
    if not verified:
        click.echo(f"Not verified (score {detection.verification_score})")
        return
    click.secho(f"Verified {detection_id}", fg="green")
    click.echo(f"  Distribution: {detection.distribution_status.value}")
    if detection.distribution_status is DistributionStatus.FAILED:
        click.echo(f"  Error: {detection.distribution_error}")


@viral_group.command("stats")
@click.pass_obj
def viral_stats(config: Config) -> None:
    """Show detection totals and the top detectors."""
    with open_core(config) as core:
        stats = core.detector.get_detection_stats()

    click.echo(f"Detections:      {stats.total_detections}")
    click.echo(f"Verified:        {stats.verified_detections}")
    click.echo(f"Total rewards:   {stats.total_rewards} LUB")
    click.echo(f"Avg confidence:  {stats.average_confidence}")

    if stats.top_detectors:
        table = Table(title="Top Detectors")
        table.add_column("#", justify="right")
        table.add_column("Actor")
        table.add_column("Detections", justify="right")
        table.add_column("Rewards", justify="right")
        for rank, row in enumerate(stats.top_detectors, 1):
            table.add_row(
                str(rank),
                f"@{row.actor.username}",
                str(row.detections),
                str(row.rewards),
            )
        Console().print(table)


@viral_group.command("retry-distribution")
@click.pass_obj
def viral_retry(config: Config) -> None:
    """Re-send payouts whose distribution failed."""
    with open_core(config) as core:
        succeeded = core.detector.retry_failed_distributions()
        remaining = core.detector.list_detections(verified=True)
    failed = sum(
        1 for d in remaining if d.distribution_status is DistributionStatus.FAILED
    )
    click.echo(f"Distributed {succeeded} payout(s); {failed} still failing")
