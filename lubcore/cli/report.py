"""CLI commands: report submit, review, list."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from lubcore.antispam.types import ReportCategory, ReportStatus
from lubcore.cli.common import fail, format_ts, open_core
from lubcore.config import Config
from lubcore.errors import LubCoreError


@click.group("report")
def report_group() -> None:
    """Community reports and moderation."""


@report_group.command("submit")
@click.argument("reporter_id", type=int)
@click.argument("target_id", type=int)
@click.argument("category", type=click.Choice([c.value for c in ReportCategory]))
@click.argument("description")
@click.option("--evidence", default=None, help="Link or note supporting the report")
@click.pass_obj
def report_submit(
    config: Config,
    reporter_id: int,
    target_id: int,
    category: str,
    description: str,
    evidence: str | None,
) -> None:
    """File a report from REPORTER_ID against TARGET_ID."""
    with open_core(config) as core:
        try:
            result = core.ledger.submit_report(
                reporter_id, target_id, category, description, evidence
            )
        except LubCoreError as exc:
            fail(exc)

    if not result.success:
        click.secho(f"Rejected: {result.error}", fg="yellow")
        raise SystemExit(1)
    click.echo(f"Report {result.report_id} filed")
    if result.auto_action_applied:
        click.secho(f"  Actor {target_id} auto-banned", fg="red")


@report_group.command("review")
@click.argument("report_id")
@click.argument(
    "status",
    type=click.Choice(
        [s.value for s in ReportStatus if s is not ReportStatus.PENDING]
    ),
)
@click.option("--notes", default="", help="Moderator notes")
@click.pass_obj
def report_review(config: Config, report_id: str, status: str, notes: str) -> None:
    """Move REPORT_ID to STATUS."""
    with open_core(config) as core:
        try:
            report = core.ledger.review_report(report_id, status, notes=notes)
        except LubCoreError as exc:
            fail(exc)
    click.echo(f"Report {report.report_id} is now {report.status.value}")


@report_group.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ReportStatus]),
    default=None,
)
@click.option(
    "--needs-review",
    is_flag=True,
    default=False,
    help="Only targets with enough pending reports to need review",
)
@click.pass_obj
def report_list(config: Config, status: str | None, needs_review: bool) -> None:
    """List community reports."""
    with open_core(config) as core:
        if needs_review:
            queue = core.ledger.reports_for_review()
            if not queue:
                click.echo("Nothing needs review")
                return
            for target_id, reports in sorted(queue.items()):
                click.echo(f"Actor {target_id}: {len(reports)} pending report(s)")
            return
        reports = core.ledger.list_reports(status=status)

    table = Table(title="Community Reports")
    table.add_column("Report", no_wrap=True)
    table.add_column("Reporter", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Category")
    table.add_column("Status")
    table.add_column("Filed")
    for r in reports:
        table.add_row(
            r.report_id,
            str(r.reporter_id),
            str(r.target_id),
            r.category.value,
            r.status.value,
            format_ts(r.timestamp),
        )
    Console().print(table)
