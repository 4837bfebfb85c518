"""Data models for repositories and jobs."""

from .repository import (
    PullJob,
    RepositoryRecord,
    ScanResult,
    SyncJob,
    repository_url,
)

__all__ = [
    'PullJob',
    'RepositoryRecord',
    'ScanResult',
    'SyncJob',
    'repository_url',
]
