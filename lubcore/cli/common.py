"""Shared helpers for CLI commands."""

from __future__ import annotations

import logging
import sys
import time
from typing import NoReturn

import click
import structlog

from lubcore.config import Config
from lubcore.errors import LubCoreError
from lubcore.services import RewardCore, build_core


def configure_logging(level: str) -> None:
    """Route structlog to stderr, dropping events below *level*."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[level.upper()]
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def open_core(config: Config) -> RewardCore:
    """Durable core backed by ``<data_dir>/<db_name>``."""
    return build_core(config, db_path=config.db_path)


def fail(exc: LubCoreError) -> NoReturn:
    """Print a structured error and exit with status 1."""
    click.secho(f"Error [{exc.code}]: {exc}", fg="red")
    click.echo(f"Resolution: {exc.info.resolution}")
    raise SystemExit(1)


def format_ts(ts: float | None) -> str:
    if not ts:
        return "—"
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts))
