"""Per-repository git operations for the pull and sync phases."""

from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.config import TransferMode
from ..models.repository import PullJob, SyncJob
from .clone import GitCloner
from .command import CommandRunner, GitCommandError, GitOperationError
from .lfs import LFSHandler
from .push import GitPusher, PushResult


class GitOperationRunner:
    """Runs the pull or sync operation of a single repository.

    Every error leaving this class carries redacted text only; commands that
    fail are reported as GitCommandError, anything else as GitOperationError.
    """

    def __init__(
        self,
        runner: CommandRunner,
        mode: TransferMode = TransferMode.MIRROR,
        token: str = '',
        work_dir: Optional[str] = None,
        target_hostname: Optional[str] = None,
    ):
        """Initialize git operations.

        Args:
            runner: Command runner, with every token registered as secret
            mode: Mirror or branch transfer mode
            token: Source token inserted into clone URLs
            work_dir: Directory holding the local clones
            target_hostname: Destination Enterprise Server URL
        """
        self.runner = runner
        self.mode = mode
        self.work_dir = work_dir
        self.lfs_handler = LFSHandler(runner)
        self.cloner = GitCloner(runner, self.lfs_handler, token)
        self.pusher = GitPusher(runner, self.lfs_handler, target_hostname)
        self.logger = logger.bind(component='GitOperationRunner')

    async def pull(self, job: PullJob) -> Path:
        """Clone or update one repository and fetch all of its LFS objects."""
        if not self.work_dir:
            raise GitOperationError('work directory is not configured')
        try:
            return await self.cloner.pull(job, self.work_dir, self.mode)
        except (GitCommandError, GitOperationError):
            raise
        except Exception as e:
            raise GitOperationError(
                self.runner.redact(f'pull {job.name} failed: {e}')
            ) from None

    async def sync(self, job: SyncJob) -> PushResult:
        """Push one local repository and its LFS objects to the destination."""
        try:
            return await self.pusher.push(job, self.mode)
        except (GitCommandError, GitOperationError):
            raise
        except Exception as e:
            raise GitOperationError(
                self.runner.redact(f'sync {job.name} failed: {e}')
            ) from None
