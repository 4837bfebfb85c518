"""Credential handling for source clones and destination pushes."""

from typing import Optional
from urllib.parse import urlparse

from loguru import logger

from .command import CommandRunner, GitOperationError

CREDENTIAL_HELPER = '!gh auth git-credential'


def authenticate_url(url: str, token: str) -> str:
    """Insert a token at the scheme/authority boundary of a clone URL.

    ``https://host/org/repo.git`` becomes ``https://TOKEN@host/org/repo.git``.

    Raises:
        GitOperationError: If the URL has no scheme
    """
    parts = url.split('://', 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise GitOperationError('invalid clone URL format')
    scheme, rest = parts
    return f'{scheme}://{token}@{rest}'


def host_of(hostname: Optional[str]) -> Optional[str]:
    """Bare host name of an Enterprise Server URL, None for github.com."""
    if not hostname:
        return None
    return urlparse(hostname).netloc or hostname


class DestinationAuthenticator:
    """Configures destination credentials for every later git push.

    The setup changes process-wide state (the gh login and the global
    credential helper), so it runs once, before any worker starts.
    """

    def __init__(
        self, runner: CommandRunner, token: str, hostname: Optional[str] = None
    ):
        self.runner = runner
        self.token = token
        self.hostname = hostname
        self.logger = logger.bind(component='DestinationAuthenticator')

    async def setup(self) -> None:
        """Log in with gh and install it as git credential helper.

        Raises:
            GitCommandError: If gh or git fail
        """
        login = ['gh', 'auth', 'login', '--with-token']
        host = host_of(self.hostname)
        if host:
            login.extend(['--hostname', host])

        self.logger.info(f'Configuring authentication for {host or "github.com"}')
        await self.runner.run(login, input_text=self.token)
        await self.runner.git(
            'config', '--global', 'credential.helper', CREDENTIAL_HELPER
        )
