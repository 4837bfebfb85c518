"""GitHub REST API access."""

from .client import APIResponse, GitHubClient
from .exceptions import (
    GitHubAPIError,
    GitHubAuthenticationError,
    GitHubNotFoundError,
    GitHubPermissionError,
    GitHubRateLimitError,
)
from .retry import RetryPolicy

__all__ = [
    'APIResponse',
    'GitHubClient',
    'GitHubAPIError',
    'GitHubAuthenticationError',
    'GitHubNotFoundError',
    'GitHubPermissionError',
    'GitHubRateLimitError',
    'RetryPolicy',
]
