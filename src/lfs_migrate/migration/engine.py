"""Migration engine - main entry point for the export, pull and sync phases."""

from datetime import datetime
from typing import Callable, List, Optional
from urllib.parse import urlparse

from loguru import logger
from pydantic import BaseModel, Field

from ..api.client import GitHubClient
from ..api.retry import RetryPolicy
from ..config.config import ExportConfig, PullConfig, Settings, SyncConfig
from ..git.auth import DestinationAuthenticator, host_of
from ..git.command import CommandRunner, GitOperationError
from ..git.lfs import LFSHandler
from ..git.operations import GitOperationRunner
from ..models.repository import PullJob, RepositoryRecord, SyncJob, repository_url
from .errors import ScanError
from .exchange import write_records
from .executor import BoundedExecutor, JobFailure, ProcessStats
from .job_source import JobSource
from .lister import RepositoryLister
from .scanner import RepositoryContentScanner


class ExportSummary(BaseModel):
    """Summary of an export run."""

    total: int = 0
    processed: int = 0
    failed: int = 0
    found: int = 0
    search_depth: int = 1
    output_file: str = ''
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    failures: List[JobFailure] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0


class MigrationEngine:
    """Main migration engine that drives one phase per call."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: Optional[Callable[..., GitHubClient]] = None,
        runner_factory: Optional[Callable[..., CommandRunner]] = None,
    ):
        """Initialize migration engine.

        Args:
            settings: Global settings (proxy, retry, logging)
            client_factory: Builds the GitHub API client, replaceable in tests
            runner_factory: Builds the command runner, replaceable in tests
        """
        self.settings = settings or Settings()
        self.client_factory = client_factory or GitHubClient
        self.runner_factory = runner_factory or CommandRunner
        self.logger = logger.bind(component='MigrationEngine')

    def _retry_policy(self) -> RetryPolicy:
        return RetryPolicy.from_config(self.settings.retry)

    def export(self, config: ExportConfig) -> ExportSummary:
        """Find the repositories of an organization that use LFS.

        Per-repository scan failures are counted and the export continues;
        a listing failure aborts the run.

        Args:
            config: Export configuration

        Returns:
            Export summary

        Raises:
            ListError: If the organization's repositories cannot be listed
        """
        output_file = config.resolved_output_file
        summary = ExportSummary(
            search_depth=config.search_depth, output_file=output_file
        )
        retry_policy = self._retry_policy()

        client = self.client_factory(
            config.token, hostname=config.hostname, proxy=self.settings.proxy
        )
        try:
            self.logger.info(f'Listing repositories of {config.organization}')
            names = RepositoryLister(client, retry_policy).list_repositories(
                config.organization
            )
            summary.total = len(names)

            scanner = RepositoryContentScanner(client, retry_policy)
            records: List[RepositoryRecord] = []
            for name in names:
                self.logger.info(f'Scanning repository: {name}')
                try:
                    result = scanner.scan(
                        config.organization, name, max_depth=config.search_depth
                    )
                except ScanError as e:
                    self.logger.error(f'Error processing repository {name}: {e}')
                    summary.failed += 1
                    summary.failures.append(JobFailure(name=name, error=str(e)))
                    continue

                summary.processed += 1
                if result.found:
                    self.logger.info(f'LFS filter found in {name}: {result.path}')
                    records.append(
                        RepositoryRecord(
                            name=name,
                            lfs_marker_path=result.path,
                            clone_url=repository_url(
                                config.hostname, config.organization, name
                            ),
                        )
                    )
        finally:
            client.close()

        summary.found = write_records(output_file, records)
        summary.completed_at = datetime.now()
        self.logger.info(
            f'Export completed: {summary.found} of {summary.total} repositories '
            f'use LFS, written to {output_file}'
        )
        return summary

    async def pull(self, config: PullConfig) -> ProcessStats:
        """Clone or update every repository listed in the exchange file.

        Raises:
            InputFileError: If the exchange file cannot be read
            GitOperationError: If git-lfs is not installed
        """
        runner = self.runner_factory(secrets=[config.token])
        await self._check_lfs(runner)
        operations = GitOperationRunner(
            runner,
            mode=config.transfer_mode,
            token=config.token,
            work_dir=config.work_dir,
        )

        self.logger.info(
            f'Pulling repositories from {config.file} '
            f'({config.transfer_mode.value} mode, {config.workers} workers)'
        )
        with JobSource(config.file, _pull_job_factory(config)) as jobs:
            stats = await BoundedExecutor(config.workers).run(jobs, operations.pull)
            self._log_skipped(jobs)
        return stats

    async def sync(self, config: SyncConfig) -> ProcessStats:
        """Push every pulled repository to the target organization.

        Destination credentials are configured once, before any worker starts.

        Raises:
            InputFileError: If the exchange file cannot be read
            GitOperationError: If git-lfs is not installed
            GitCommandError: If the credential setup fails
        """
        runner = self.runner_factory(secrets=[config.token])
        await self._check_lfs(runner)

        # A bad input file must fail before credentials change
        with JobSource(config.file, _sync_job_factory(config)) as jobs:
            authenticator = DestinationAuthenticator(
                runner, config.token, config.hostname
            )
            await authenticator.setup()
            operations = GitOperationRunner(
                runner,
                mode=config.transfer_mode,
                work_dir=config.work_dir,
                target_hostname=config.hostname,
            )

            self.logger.info(
                f'Syncing repositories to {config.organization} '
                f'({config.transfer_mode.value} mode, {config.workers} workers)'
            )
            stats = await BoundedExecutor(config.workers).run(jobs, operations.sync)
            self._log_skipped(jobs)
        return stats

    async def _check_lfs(self, runner: CommandRunner) -> None:
        if not await LFSHandler(runner).is_available():
            raise GitOperationError('git-lfs is not installed or not on PATH')

    def _log_skipped(self, jobs: JobSource) -> None:
        if jobs.skipped:
            self.logger.warning(f'Skipped {jobs.skipped} invalid rows')
        if jobs.duplicates:
            self.logger.debug(f'Ignored {jobs.duplicates} duplicate rows')


def _pull_job_factory(config: PullConfig) -> Callable[[List[str]], PullJob]:
    source_host = host_of(config.hostname)

    def factory(row: List[str]) -> PullJob:
        job = PullJob(name=row[0], clone_url=row[2])
        if source_host:
            host = urlparse(job.clone_url).netloc
            if host and host.lower() != source_host.lower():
                raise ValueError(
                    f'clone URL host {host} does not match source host {source_host}'
                )
        return job

    return factory


def _sync_job_factory(config: SyncConfig) -> Callable[[List[str]], SyncJob]:
    def factory(row: List[str]) -> SyncJob:
        return SyncJob(
            name=row[0],
            work_dir=config.work_dir,
            target_organization=config.organization,
        )

    return factory
