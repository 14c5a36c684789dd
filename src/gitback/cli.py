"""CLI for gitback."""

import sys
from typing import Callable

import click
import structlog

from gitback.config.loader import load_config
from gitback.config.logging import configure_logging
from gitback.config.settings import get_settings
from gitback.core.exceptions import GitbackError
from gitback.services.backup import BackupService
from gitback.services.catalog import format_catalog_table
from gitback.services.reconciler import SyncOutcome
from gitback.services.reporting import RunReporter

logger = structlog.get_logger(__name__)


def _run(ctx: click.Context, action: Callable[[BackupService, RunReporter], None]) -> None:
    """Load config, open the reporter and run ``action``; exit 1 on fatal errors."""
    options = ctx.obj
    try:
        config = load_config(options["config"])
        logger.debug("Using config", config=repr(config))
        with RunReporter(
            error_log=options["log_file"], show_progress=options["progress"]
        ) as reporter:
            action(BackupService(config, reporter), reporter)
    except GitbackError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    metavar="FILE",
    help="Load configuration from FILE (default: ./config.yml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--log-file",
    metavar="FILE",
    help="Append per-repository errors to FILE",
)
@click.version_option(package_name="gitback")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool, log_file: str | None) -> None:
    """gitback: back up your GitHub and GitLab accounts."""
    settings = get_settings()
    configure_logging(log_level="DEBUG" if verbose else settings.log_level)
    ctx.obj = {
        "config": config_path or settings.config,
        "log_file": log_file or settings.log_file,
        "progress": settings.progress,
    }


@cli.command()
@click.pass_context
def backup(ctx: click.Context) -> None:
    """Back up every repository the configured accounts can access.

    Clones missing mirrors, pulls existing ones and handles orphans as
    configured.
    """
    def _backup(service: BackupService, reporter: RunReporter) -> None:
        catalog = service.check()
        click.echo(format_catalog_table(catalog))
        result = service.backup(catalog)

        report = result.sync
        click.echo(
            f"Synced {len(report.outcomes)} repositories: "
            f"{report.count(SyncOutcome.CLONED)} cloned, "
            f"{report.count(SyncOutcome.UPDATED)} updated, "
            f"{report.count(SyncOutcome.UP_TO_DATE)} up to date, "
            f"{report.count(SyncOutcome.OVERWRITTEN)} overwritten, "
            f"{len(report.failed)} failed"
        )
        if result.orphans:
            click.echo(f"Handled {len(result.orphans)} orphaned repositories")
        if report.count(SyncOutcome.BROKEN):
            click.echo(
                "Some conflict recoveries could not be rolled back; "
                "check the *_conflict directories.",
                err=True,
            )

    _run(ctx, _backup)


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """List what would be backed up and validate the config."""
    def _check(service: BackupService, reporter: RunReporter) -> None:
        click.echo(format_catalog_table(service.check()))

    _run(ctx, _check)


@cli.command()
@click.pass_context
def update(ctx: click.Context) -> None:
    """Point each mirror's origin at the current clone URL."""
    def _update(service: BackupService, reporter: RunReporter) -> None:
        updated = service.update()
        click.echo(f"Updated origin of {len(updated)} repositories")
        for name in updated:
            click.echo(f"  - {name}")

    _run(ctx, _update)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
