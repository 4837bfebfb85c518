"""Paginated enumeration of an organization's repositories."""

from typing import List

from loguru import logger

from ..api.client import GitHubClient
from ..api.exceptions import GitHubAPIError
from ..api.retry import RetryPolicy
from .errors import ListError


class RepositoryLister:
    """Lists every repository name of an organization."""

    def __init__(
        self, client: GitHubClient, retry_policy: RetryPolicy, per_page: int = 100
    ):
        self.client = client
        self.retry_policy = retry_policy
        self.per_page = per_page
        self.logger = logger.bind(component='RepositoryLister')

    def list_repositories(self, organization: str) -> List[str]:
        """Get all repository names of an organization.

        Each page request is retried on its own, so a transient failure never
        re-reads pages that were already collected.

        Args:
            organization: Organization login

        Returns:
            Repository names in API order

        Raises:
            ListError: If a page cannot be fetched
        """
        if not organization:
            raise ListError(organization, 'organization name is required')

        endpoint = f'/orgs/{organization}/repos'
        names: List[str] = []
        page = 1

        while True:
            try:
                response = self.retry_policy.call(
                    self.client.get_page, endpoint, page=page, per_page=self.per_page
                )
            except GitHubAPIError as e:
                raise ListError(organization, str(e)) from e

            if not isinstance(response.data, list):
                raise ListError(
                    organization,
                    f'unexpected repositories data returned for page {page}',
                )

            names.extend(
                repo['name']
                for repo in response.data
                if isinstance(repo, dict) and repo.get('name')
            )

            if not response.next_page:
                break
            page = response.next_page

        self.logger.info(f'Retrieved {len(names)} repositories from {organization}')
        return names
