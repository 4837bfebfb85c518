"""Main CLI entry point for the LFS Migration Tool."""

import asyncio
import sys
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..config.config import (
    ConfigError,
    ExportConfig,
    PullConfig,
    Settings,
    SyncConfig,
    create_template,
    load_config_file,
    load_env_file,
)
from ..migration.engine import ExportSummary, MigrationEngine
from ..migration.executor import JobFailure, ProcessStats
from ..utils.logging import setup_logging

console = Console()

MAX_LISTED_FAILURES = 5


@click.group()
@click.version_option(version=__version__, prog_name='lfs-migrate')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', help='Write logs to this file as well')
@click.option('--http-proxy', help='HTTP proxy URL (HTTP_PROXY)')
@click.option('--https-proxy', help='HTTPS proxy URL (HTTPS_PROXY)')
@click.option('--no-proxy', help='Hosts that bypass the proxy (NO_PROXY)')
@click.option('--retry-max', type=int, help='Maximum API attempts (RETRY_MAX)')
@click.option('--retry-delay', help='Initial retry delay, e.g. 1s (RETRY_DELAY)')
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[str],
    verbose: bool,
    log_file: Optional[str],
    http_proxy: Optional[str],
    https_proxy: Optional[str],
    no_proxy: Optional[str],
    retry_max: Optional[int],
    retry_delay: Optional[str],
) -> None:
    """LFS Migration Tool - Move Git LFS repositories between GitHub organizations."""
    ctx.ensure_object(dict)
    load_env_file()

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose
    ctx.obj['global_flags'] = {
        'log_file': log_file,
        'http_proxy': http_proxy,
        'https_proxy': https_proxy,
        'no_proxy': no_proxy,
        'retry_max': retry_max,
        'retry_delay': retry_delay,
    }


@cli.command()
@click.option(
    '--output',
    '-o',
    default='config.yaml',
    help='Output configuration file path',
)
def init(output: str) -> None:
    """Initialize a new configuration file."""
    console.print(
        Panel.fit(
            '[bold green]LFS Migration Tool[/bold green]\n'
            'Initializing configuration...',
            border_style='green',
        )
    )

    try:
        create_template(output)
    except OSError as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(1)

    console.print(f'[green]✓[/green] Configuration template created at: {output}')
    console.print(
        f'[yellow]Please edit {output} with your organization details[/yellow]'
    )


@cli.command()
@click.option(
    '--hostname', help='Source Enterprise Server URL (GHMLFS_SOURCE_HOSTNAME)'
)
@click.option(
    '--organization', '-o', help='Source organization (GHMLFS_SOURCE_ORGANIZATION)'
)
@click.option('--token', help='Source access token (GHMLFS_SOURCE_TOKEN)')
@click.option(
    '--search-depth', type=int, help='Directory levels to search (GHMLFS_SEARCH_DEPTH)'
)
@click.option('--output-file', help='Output CSV file (GHMLFS_OUTPUT_FILE)')
@click.pass_context
def export(
    ctx: click.Context,
    hostname: Optional[str],
    organization: Optional[str],
    token: Optional[str],
    search_depth: Optional[int],
    output_file: Optional[str],
) -> None:
    """Find the repositories of an organization that use Git LFS."""
    console.print(
        Panel.fit(
            '[bold blue]LFS Migration Tool[/bold blue]\n'
            'Exporting LFS repositories...',
            border_style='blue',
        )
    )

    flags = {
        'hostname': hostname,
        'organization': organization,
        'token': token,
        'search_depth': search_depth,
        'output_file': output_file,
    }

    try:
        settings, file_data = _load_settings(ctx)
        config = ExportConfig.load(flags, file_data)
        summary = MigrationEngine(settings).export(config)
    except Exception as e:
        _fail(ctx, 'Export', e)

    _display_export_summary(summary)
    if summary.has_failures:
        sys.exit(1)


@cli.command()
@click.option('--file', '-f', 'file', help='Exchange CSV file (GHMLFS_FILE)')
@click.option(
    '--hostname',
    help='Source Enterprise Server URL, rows for other hosts are skipped '
    '(GHMLFS_SOURCE_HOSTNAME)',
)
@click.option('--token', help='Source access token (GHMLFS_SOURCE_TOKEN)')
@click.option('--work-dir', help='Directory for local clones (GHMLFS_WORK_DIR)')
@click.option('--workers', type=int, help='Concurrent git workers (GHMLFS_WORKERS)')
@click.option(
    '--branch-mode',
    is_flag=True,
    default=None,
    help='Transfer branch by branch instead of mirroring (GHMLFS_BRANCH_MODE)',
)
@click.pass_context
def pull(
    ctx: click.Context,
    file: Optional[str],
    hostname: Optional[str],
    token: Optional[str],
    work_dir: Optional[str],
    workers: Optional[int],
    branch_mode: Optional[bool],
) -> None:
    """Clone or update the listed repositories with all LFS objects."""
    console.print(
        Panel.fit(
            '[bold cyan]LFS Migration Tool[/bold cyan]\n'
            'Pulling repositories...',
            border_style='cyan',
        )
    )

    flags = {
        'file': file,
        'hostname': hostname,
        'token': token,
        'work_dir': work_dir,
        'workers': workers,
        'branch_mode': branch_mode,
    }

    try:
        settings, file_data = _load_settings(ctx)
        config = PullConfig.load(flags, file_data)
        stats = asyncio.run(MigrationEngine(settings).pull(config))
    except Exception as e:
        _fail(ctx, 'Pull', e)

    _display_process_summary('Pull Summary', stats)
    if stats.has_failures:
        sys.exit(1)


@cli.command()
@click.option('--file', '-f', 'file', help='Exchange CSV file (GHMLFS_FILE)')
@click.option(
    '--hostname', help='Target Enterprise Server URL (GHMLFS_TARGET_HOSTNAME)'
)
@click.option(
    '--organization', '-o', help='Target organization (GHMLFS_TARGET_ORGANIZATION)'
)
@click.option('--token', help='Target access token (GHMLFS_TARGET_TOKEN)')
@click.option('--work-dir', help='Directory holding the local clones (GHMLFS_WORK_DIR)')
@click.option('--workers', type=int, help='Concurrent git workers (GHMLFS_WORKERS)')
@click.option(
    '--branch-mode',
    is_flag=True,
    default=None,
    help='Transfer branch by branch instead of mirroring (GHMLFS_BRANCH_MODE)',
)
@click.pass_context
def sync(
    ctx: click.Context,
    file: Optional[str],
    hostname: Optional[str],
    organization: Optional[str],
    token: Optional[str],
    work_dir: Optional[str],
    workers: Optional[int],
    branch_mode: Optional[bool],
) -> None:
    """Push the pulled repositories and their LFS objects to the target."""
    console.print(
        Panel.fit(
            '[bold magenta]LFS Migration Tool[/bold magenta]\n'
            'Syncing repositories...',
            border_style='magenta',
        )
    )

    flags = {
        'file': file,
        'hostname': hostname,
        'organization': organization,
        'token': token,
        'work_dir': work_dir,
        'workers': workers,
        'branch_mode': branch_mode,
    }

    try:
        settings, file_data = _load_settings(ctx)
        config = SyncConfig.load(flags, file_data)
        stats = asyncio.run(MigrationEngine(settings).sync(config))
    except Exception as e:
        _fail(ctx, 'Sync', e)

    _display_process_summary('Sync Summary', stats)
    if stats.has_failures:
        sys.exit(1)


def _load_settings(ctx: click.Context):
    """Load the configuration file and global settings, then set up logging."""
    config_path = ctx.obj.get('config_path')
    file_data: Dict[str, Any] = load_config_file(config_path) if config_path else {}

    settings = Settings.load(ctx.obj.get('global_flags'), file_data)
    _setup_logging_with_settings(ctx, settings)
    return settings, file_data


def _setup_logging_with_settings(ctx: click.Context, settings: Settings) -> None:
    """Setup logging, letting the verbose flag override the level."""
    log_level = 'DEBUG' if ctx.obj.get('verbose') else settings.logging.level
    setup_logging(
        level=log_level,
        log_file=settings.logging.file,
        log_format=settings.logging.format,
    )


def _fail(ctx: click.Context, operation: str, error: Exception) -> None:
    if isinstance(error, ConfigError):
        console.print(f'[red]✗[/red] Configuration error: {error}')
    else:
        console.print(f'[red]✗[/red] {operation} failed: {error}')
        if ctx.obj.get('verbose'):
            console.print_exception()
    sys.exit(1)


def _display_export_summary(summary: ExportSummary) -> None:
    """Display export summary results."""
    table = Table(title='Export Summary')
    table.add_column('Setting', style='cyan')
    table.add_column('Value', style='green')

    table.add_row('Repositories', str(summary.total))
    table.add_row('Scanned', str(summary.processed))
    table.add_row('Failed', str(summary.failed))
    table.add_row('Using LFS', str(summary.found))
    table.add_row('Search Depth', str(summary.search_depth))
    table.add_row('Output File', summary.output_file)
    console.print(table)

    if summary.completed_at:
        duration = summary.completed_at - summary.started_at
        console.print(f'\n[blue]Export Duration:[/blue] {duration}')

    _display_failures(summary.failures)


def _display_process_summary(title: str, stats: ProcessStats) -> None:
    """Display worker pool results."""
    table = Table(title=title)
    table.add_column('Total', style='blue')
    table.add_column('Successful', style='green')
    table.add_column('Failed', style='red')
    table.add_row(str(stats.total), str(stats.processed), str(stats.failed))
    console.print(table)

    console.print(f'\n[blue]Duration:[/blue] {stats.elapsed}')
    _display_failures(stats.failures)


def _display_failures(failures: List[JobFailure]) -> None:
    if not failures:
        return

    console.print(f'\n[red]Errors ({len(failures)}):[/red]')
    for failure in failures[:MAX_LISTED_FAILURES]:
        console.print(f'  • {failure.name}: {failure.error}')
    if len(failures) > MAX_LISTED_FAILURES:
        console.print(f'  ... and {len(failures) - MAX_LISTED_FAILURES} more errors')


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[red]Migration interrupted by user[/red]')
        sys.exit(1)


if __name__ == '__main__':
    main()
