"""Depth-bounded search of a repository tree for an LFS filter."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union

from loguru import logger

from ..api.client import GitHubClient
from ..api.exceptions import GitHubAPIError, GitHubNotFoundError
from ..api.retry import RetryPolicy
from ..models.repository import ScanResult
from .errors import ScanError

GITATTRIBUTES = '.gitattributes'
LFS_MARKER = 'filter=lfs'

Listing = Union[Dict[str, Any], List[Dict[str, Any]]]


@dataclass
class ScanState:
    """Traversal state of one repository scan."""

    visited: Set[str] = field(default_factory=set)
    found: bool = False
    found_path: str = ''

    def mark_found(self, path: str) -> None:
        self.found = True
        self.found_path = path


class RepositoryContentScanner:
    """Decides whether a repository uses LFS without cloning it.

    The walk is depth-first starting at depth 1 for the root directory. A
    directory's own ``.gitattributes`` is checked before any subdirectory, and
    the first match ends the whole traversal.
    """

    def __init__(self, client: GitHubClient, retry_policy: RetryPolicy):
        """Initialize scanner.

        Args:
            client: Authenticated GitHub API client
            retry_policy: Retry policy wrapped around every remote call
        """
        self.client = client
        self.retry_policy = retry_policy
        self.logger = logger.bind(component='RepositoryContentScanner')

    def scan(
        self, organization: str, repository: str, max_depth: int = 1, path: str = ''
    ) -> ScanResult:
        """Search a repository for a ``.gitattributes`` using the LFS filter.

        Args:
            organization: Repository owner
            repository: Repository name
            max_depth: Directory levels to search, 1 checks only the root
            path: Starting path, the repository root by default

        Returns:
            Scan result with the matching path, if any

        Raises:
            ScanError: If a remote call keeps failing or returns unusable data
        """
        if max_depth < 1:
            raise ValueError('max_depth must be at least 1')

        state = ScanState()
        try:
            self._search(organization, repository, path, 1, max_depth, state)
        except GitHubAPIError as e:
            raise ScanError(repository, f'error searching repository: {e}') from e
        except Exception as e:
            raise ScanError(
                repository, f'unexpected error searching repository: {e}'
            ) from e

        return ScanResult(found=state.found, path=state.found_path)

    def _search(
        self,
        organization: str,
        repository: str,
        path: str,
        depth: int,
        max_depth: int,
        state: ScanState,
    ) -> None:
        if depth > max_depth or path in state.visited:
            return
        state.visited.add(path)

        listing = self._list(organization, repository, path)
        if listing is None:
            return

        if isinstance(listing, dict):
            if listing.get('type') == 'file' and listing.get('name') == GITATTRIBUTES:
                file_path = listing.get('path', path)
                if self._has_lfs_marker(organization, repository, file_path):
                    state.mark_found(file_path)
            return

        for entry in listing:
            if entry.get('type') == 'file' and entry.get('name') == GITATTRIBUTES:
                if self._has_lfs_marker(organization, repository, entry['path']):
                    state.mark_found(entry['path'])
                    return

        for entry in listing:
            if entry.get('type') != 'dir':
                continue
            self._search(
                organization, repository, entry['path'], depth + 1, max_depth, state
            )
            if state.found:
                return

    def _list(self, organization: str, repository: str, path: str) -> Optional[Listing]:
        self.logger.debug(f'Listing {organization}/{repository}:/{path}')
        try:
            listing = self.retry_policy.call(
                self.client.get_contents, organization, repository, path
            )
        except GitHubNotFoundError:
            return None

        if isinstance(listing, dict):
            return listing
        if isinstance(listing, list) and all(isinstance(e, dict) for e in listing):
            return listing
        raise GitHubAPIError(
            f'unexpected contents listing for /{path}: {type(listing).__name__}'
        )

    def _has_lfs_marker(self, organization: str, repository: str, path: str) -> bool:
        try:
            content = self.retry_policy.call(
                self.client.download_contents, organization, repository, path
            )
        except GitHubNotFoundError:
            return False
        return LFS_MARKER in content
