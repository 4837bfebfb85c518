"""Git repository pushing operations."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.config import TransferMode
from ..models.repository import SyncJob, repository_url
from .command import CommandRunner, GitCommandError, GitOperationError
from .lfs import LFSHandler

DESTINATION_REMOTE = 'destination'
ORIGIN_PREFIX = 'refs/remotes/origin/'
FALLBACK_BRANCH = 'main'
MIRROR_PUSH_REFSPECS = ('+refs/heads/*:refs/heads/*', '+refs/tags/*:refs/tags/*')


@dataclass
class PushResult:
    """Result of a git push operation."""

    repository: str
    branches_pushed: List[str] = field(default_factory=list)
    tags_pushed: bool = False


class GitPusher:
    """Pushes pulled repositories and their LFS objects to the destination."""

    def __init__(
        self,
        runner: CommandRunner,
        lfs_handler: LFSHandler,
        target_hostname: Optional[str] = None,
    ):
        """Initialize git pusher.

        Args:
            runner: Command runner holding the run's secrets
            lfs_handler: LFS handler sharing the runner
            target_hostname: Destination Enterprise Server URL, None for github.com
        """
        self.runner = runner
        self.lfs_handler = lfs_handler
        self.target_hostname = target_hostname
        self.logger = logger.bind(component='GitPusher')

    async def push(self, job: SyncJob, mode: TransferMode) -> PushResult:
        """Push one local repository to its destination.

        Args:
            job: Repository to push, with its local path and target organization
            mode: Mirror or branch transfer mode

        Returns:
            Push operation result

        Raises:
            GitOperationError: If the local repository is missing
            GitCommandError: If a git or git-lfs command fails
        """
        repo_path = str(job.repository_path)
        if not Path(repo_path).exists():
            raise GitOperationError(
                f'repository {repo_path} does not exist, run pull first'
            )

        await self.lfs_handler.install(repo_path)
        url = repository_url(self.target_hostname, job.target_organization, job.name)
        await self._set_remote(repo_path, url)

        self.logger.info(f'Pushing {job.name} to {url}')
        if mode == TransferMode.MIRROR:
            result = await self._push_mirror(job.name, repo_path)
        else:
            result = await self._push_branches(job.name, repo_path)

        self.logger.info(f'Push completed: {job.name}')
        return result

    async def _set_remote(self, repo_path: str, url: str) -> None:
        remotes = (await self.runner.git('remote', cwd=repo_path)).split()
        if DESTINATION_REMOTE in remotes:
            await self.runner.git(
                'remote', 'set-url', DESTINATION_REMOTE, url, cwd=repo_path
            )
        else:
            await self.runner.git(
                'remote', 'add', DESTINATION_REMOTE, url, cwd=repo_path
            )

    async def _push_mirror(self, name: str, repo_path: str) -> PushResult:
        await self.lfs_handler.push_all(repo_path, DESTINATION_REMOTE)
        await self.runner.git(
            'push', DESTINATION_REMOTE, *MIRROR_PUSH_REFSPECS, cwd=repo_path
        )
        return PushResult(repository=name, tags_pushed=True)

    async def _push_branches(self, name: str, repo_path: str) -> PushResult:
        default = await self.default_branch(repo_path)
        branches = await self.list_branches(repo_path)
        if default in branches:
            branches.remove(default)
            branches.insert(0, default)

        result = PushResult(repository=name)
        for branch in branches:
            self.logger.info(f'Processing branch: {branch}')
            upstream = f'origin/{branch}'
            await self.runner.git(
                'checkout', '-f', '-B', branch, upstream, cwd=repo_path
            )
            await self.runner.git('reset', '--hard', upstream, cwd=repo_path)
            await self.runner.git('clean', '-fdx', cwd=repo_path)
            await self.lfs_handler.push_branch(repo_path, DESTINATION_REMOTE, branch)
            await self.runner.git(
                'push',
                DESTINATION_REMOTE,
                f'refs/heads/{branch}:refs/heads/{branch}',
                cwd=repo_path,
            )
            result.branches_pushed.append(branch)

        await self.runner.git('push', DESTINATION_REMOTE, '--tags', cwd=repo_path)
        result.tags_pushed = True
        return result

    async def default_branch(self, repo_path: str) -> str:
        """Resolve the branch to push first.

        Asks the destination for its HEAD, then falls back to the source's
        HEAD, then to ``main``.
        """
        try:
            output = await self.runner.git(
                'ls-remote', '--symref', DESTINATION_REMOTE, 'HEAD', cwd=repo_path
            )
        except GitCommandError as e:
            self.logger.debug(f'Destination HEAD not available: {e}')
        else:
            for line in output.splitlines():
                if line.startswith('ref: refs/heads/') and line.endswith('HEAD'):
                    return line[len('ref: refs/heads/'):].split('\t')[0].strip()

        try:
            output = await self.runner.git(
                'symbolic-ref', 'refs/remotes/origin/HEAD', cwd=repo_path
            )
        except GitCommandError as e:
            self.logger.debug(f'Source HEAD not available: {e}')
        else:
            if output.startswith(ORIGIN_PREFIX):
                return output[len(ORIGIN_PREFIX):]

        return FALLBACK_BRANCH

    async def list_branches(self, repo_path: str) -> List[str]:
        """List the source branches fetched into ``refs/remotes/origin``."""
        output = await self.runner.git(
            'for-each-ref', '--format=%(refname)', 'refs/remotes/origin', cwd=repo_path
        )
        branches = []
        for line in output.splitlines():
            ref = line.strip()
            if not ref.startswith(ORIGIN_PREFIX):
                continue
            branch = ref[len(ORIGIN_PREFIX):]
            if branch and branch != 'HEAD':
                branches.append(branch)
        return branches
