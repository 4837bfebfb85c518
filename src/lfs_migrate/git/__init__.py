"""Git operations module for repository transfer."""

from .auth import DestinationAuthenticator, authenticate_url
from .clone import GitCloner
from .command import CommandRunner, GitCommandError, GitOperationError, redact
from .lfs import LFSHandler
from .operations import GitOperationRunner
from .push import GitPusher, PushResult

__all__ = [
    'CommandRunner',
    'DestinationAuthenticator',
    'GitCloner',
    'GitCommandError',
    'GitOperationError',
    'GitOperationRunner',
    'GitPusher',
    'LFSHandler',
    'PushResult',
    'authenticate_url',
    'redact',
]
