"""GitHub REST API client implementation."""

import time
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs, quote, urljoin, urlparse

import requests
from loguru import logger
from pydantic import BaseModel

from ..config.config import ProxyConfig
from .exceptions import (
    GitHubAPIError,
    GitHubAuthenticationError,
    GitHubNotFoundError,
    GitHubPermissionError,
    GitHubRateLimitError,
)

PUBLIC_API_URL = 'https://api.github.com'
RAW_MEDIA_TYPE = 'application/vnd.github.raw'
DEFAULT_RETRY_AFTER = 60


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    status_code: int
    data: Any
    headers: Dict[str, str]
    success: bool
    next_page: Optional[int] = None


def api_base_url(hostname: Optional[str]) -> str:
    """Resolve the REST base URL for github.com or an Enterprise Server host."""
    if not hostname:
        return PUBLIC_API_URL
    hostname = hostname.rstrip('/')
    if hostname.endswith('/api/v3'):
        return hostname
    return hostname + '/api/v3'


class GitHubClient:
    """GitHub API client with token authentication."""

    def __init__(
        self,
        token: str,
        hostname: Optional[str] = None,
        proxy: Optional[ProxyConfig] = None,
        timeout: int = 30,
    ):
        """Initialize GitHub client.

        Args:
            token: Personal access token
            hostname: Enterprise Server URL, None for github.com
            proxy: Proxy settings for outgoing requests
            timeout: Request timeout in seconds
        """
        if not token:
            raise GitHubAuthenticationError('No authentication token provided')

        self.hostname = hostname
        self.timeout = timeout
        self.base_url = api_base_url(hostname)
        self.session = requests.Session()

        self.session.headers.update(
            {
                'Authorization': f'token {token}',
                'Accept': 'application/vnd.github+json',
                'User-Agent': 'lfs-migrate/0.1.0',
            }
        )

        if proxy is not None and proxy.enabled:
            self.session.proxies.update(proxy.as_requests_proxies())

        logger.info(f'Initialized GitHub client for {self.base_url}')

    def _build_url(self, endpoint: str) -> str:
        """Build full API URL from endpoint.

        Args:
            endpoint: API endpoint path

        Returns:
            Full API URL
        """
        return urljoin(self.base_url + '/', endpoint.lstrip('/'))

    @staticmethod
    def _next_page(response: requests.Response) -> Optional[int]:
        next_link = response.links.get('next') if response.links else None
        if not next_link:
            return None
        page = parse_qs(urlparse(next_link['url']).query).get('page')
        return int(page[0]) if page else None

    def _handle_response(
        self, response: requests.Response, raw: bool = False
    ) -> APIResponse:
        """Handle API response and convert to standard format.

        Args:
            response: Raw HTTP response
            raw: Return the body as text instead of decoding JSON

        Returns:
            Standardized API response

        Raises:
            GitHubAPIError: For various API errors
        """
        headers = dict(response.headers)

        # Primary and secondary rate limits
        if response.status_code == 429 or (
            response.status_code == 403
            and headers.get('X-RateLimit-Remaining') == '0'
        ):
            retry_after = self._retry_after(headers)
            raise GitHubRateLimitError(
                f'Rate limit exceeded. Retry after {retry_after} seconds',
                retry_after=retry_after,
                status_code=response.status_code,
            )

        if response.status_code == 401:
            raise GitHubAuthenticationError('Authentication failed', status_code=401)

        if response.status_code == 403:
            raise GitHubPermissionError('Permission denied', status_code=403)

        if response.status_code == 404:
            raise GitHubNotFoundError('Resource not found', status_code=404)

        if response.status_code >= 400:
            error_data = None
            try:
                error_data = response.json()
                message = error_data.get('message', f'HTTP {response.status_code}')
            except ValueError:
                message = f'HTTP {response.status_code}: {response.text}'

            raise GitHubAPIError(
                f'API request failed: {message}',
                status_code=response.status_code,
                response_data=error_data,
            )

        if raw:
            data: Any = response.text
        else:
            try:
                data = response.json() if response.content else None
            except ValueError:
                data = response.text

        return APIResponse(
            status_code=response.status_code,
            data=data,
            headers=headers,
            success=200 <= response.status_code < 300,
            next_page=self._next_page(response),
        )

    @staticmethod
    def _retry_after(headers: Dict[str, str]) -> int:
        try:
            if 'Retry-After' in headers:
                return int(headers['Retry-After'])
            reset = headers.get('X-RateLimit-Reset')
            if reset:
                return max(0, int(reset) - int(time.time()))
        except ValueError:
            logger.debug('Unparseable rate limit headers, using default wait')
        return DEFAULT_RETRY_AFTER

    def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        raw: bool = False,
        **kwargs,
    ) -> APIResponse:
        """Make GET request.

        Args:
            endpoint: API endpoint
            params: Query parameters
            raw: Ask for the raw file body instead of JSON
            **kwargs: Additional request arguments

        Returns:
            API response
        """
        url = self._build_url(endpoint)
        if raw:
            kwargs.setdefault('headers', {})['Accept'] = RAW_MEDIA_TYPE
        kwargs.setdefault('timeout', self.timeout)

        try:
            response = self.session.get(url, params=params, **kwargs)
            return self._handle_response(response, raw=raw)
        except requests.RequestException as e:
            logger.error(f'Network error during GET request: {e}')
            raise GitHubAPIError(f'Network error: {e}')

    def get_page(
        self, endpoint: str, page: int = 1, per_page: int = 100
    ) -> APIResponse:
        """Get a single page of a paginated endpoint."""
        return self.get(endpoint, params={'per_page': per_page, 'page': page})

    def get_contents(
        self, owner: str, repo: str, path: str = ''
    ) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Get file metadata or a directory listing.

        Args:
            owner: Repository owner (organization)
            repo: Repository name
            path: Path inside the repository, empty for the root

        Returns:
            A dict for a single file, a list of entries for a directory
        """
        endpoint = f'/repos/{owner}/{repo}/contents/{quote(path.strip("/"))}'
        return self.get(endpoint).data

    def download_contents(self, owner: str, repo: str, path: str) -> str:
        """Download the raw content of a file.

        Args:
            owner: Repository owner (organization)
            repo: Repository name
            path: File path inside the repository

        Returns:
            File content as text
        """
        endpoint = f'/repos/{owner}/{repo}/contents/{quote(path.strip("/"))}'
        return self.get(endpoint, raw=True).data or ''

    def close(self):
        """Close the client session."""
        self.session.close()
        logger.debug('GitHub client session closed')

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
