"""Git repository cloning operations."""

from pathlib import Path

from loguru import logger

from ..config.config import TransferMode
from ..models.repository import PullJob
from .auth import authenticate_url
from .command import CommandRunner, GitOperationError
from .lfs import SKIP_SMUDGE_ENV, LFSHandler

MIRROR_REFSPEC = '+refs/*:refs/*'


class GitCloner:
    """Clones or updates source repositories together with their LFS objects."""

    def __init__(self, runner: CommandRunner, lfs_handler: LFSHandler, token: str):
        """Initialize git cloner.

        Args:
            runner: Command runner, with the token registered as secret
            lfs_handler: LFS handler sharing the runner
            token: Source access token
        """
        self.runner = runner
        self.lfs_handler = lfs_handler
        self.token = token
        self.logger = logger.bind(component='GitCloner')

    async def pull(self, job: PullJob, work_dir: str, mode: TransferMode) -> Path:
        """Clone a repository, or update the existing clone, and fetch LFS objects.

        Args:
            job: Repository to pull
            work_dir: Directory holding one clone per repository
            mode: Mirror or branch transfer mode

        Returns:
            Path of the local clone
        """
        base = Path(work_dir)
        base.mkdir(parents=True, exist_ok=True)
        repo_path = base / job.name

        # Built here so the token never lives in the job itself
        auth_url = authenticate_url(job.clone_url, self.token)

        if repo_path.exists():
            self.logger.info(f"Repository exists '{job.name}', proceeding with update")
            await self._check_layout(repo_path, mode)
            await self.runner.git(
                'remote', 'set-url', 'origin', auth_url, cwd=str(repo_path)
            )
            if mode == TransferMode.MIRROR:
                await self.runner.git(
                    'fetch', '--prune', 'origin', MIRROR_REFSPEC, cwd=str(repo_path)
                )
            else:
                await self.runner.git(
                    'fetch', '--prune', '--tags', 'origin', cwd=str(repo_path)
                )
        else:
            self.logger.info(f"Cloning repository '{job.name}'...")
            args = ['clone']
            if mode == TransferMode.MIRROR:
                args.append('--mirror')
            await self.runner.git(
                *args, auth_url, str(repo_path), cwd=str(base), env=SKIP_SMUDGE_ENV
            )

        await self.lfs_handler.fetch_all(str(repo_path))

        self.logger.info(f'Synchronized: {job.name}')
        return repo_path

    async def _check_layout(self, repo_path: Path, mode: TransferMode) -> None:
        output = await self.runner.git(
            'rev-parse', '--is-bare-repository', cwd=str(repo_path)
        )
        is_bare = output == 'true'
        if is_bare != (mode == TransferMode.MIRROR):
            existing = 'mirror' if is_bare else 'branch'
            raise GitOperationError(
                f'{repo_path} was cloned in {existing} mode, '
                f'cannot update it in {mode.value} mode'
            )
