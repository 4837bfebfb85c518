"""Git LFS (Large File Storage) operations."""

from loguru import logger

from .command import CommandRunner, GitCommandError

SKIP_SMUDGE_ENV = {'GIT_LFS_SKIP_SMUDGE': '1'}


class LFSHandler:
    """Handles Git LFS transfers for one run."""

    def __init__(self, runner: CommandRunner):
        """Initialize LFS handler.

        Args:
            runner: Command runner holding the run's secrets
        """
        self.runner = runner
        self.logger = logger.bind(component='LFSHandler')

    async def is_available(self) -> bool:
        """Check if git-lfs is installed."""
        try:
            await self.runner.git('lfs', 'version')
        except GitCommandError:
            return False
        return True

    async def install(self, repo_path: str) -> None:
        """Install the LFS hooks and filters into one repository."""
        await self.runner.git('lfs', 'install', '--local', cwd=repo_path)

    async def fetch_all(self, repo_path: str, remote: str = 'origin') -> None:
        """Fetch the LFS objects of every ref from a remote."""
        self.logger.info(f'Fetching LFS objects in {repo_path}')
        await self.runner.git('lfs', 'fetch', '--all', remote, cwd=repo_path)

    async def push_all(self, repo_path: str, remote: str) -> None:
        """Push the LFS objects of every local ref to a remote."""
        self.logger.info(f'Pushing all LFS objects from {repo_path} to {remote}')
        await self.runner.git('lfs', 'push', '--all', remote, cwd=repo_path)

    async def push_branch(self, repo_path: str, remote: str, branch: str) -> None:
        """Push every LFS object reachable from one branch to a remote."""
        self.logger.info(f'Pushing LFS objects of {branch} to {remote}')
        await self.runner.git('lfs', 'push', '--all', remote, branch, cwd=repo_path)
