"""Repository and job models."""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, validator


class RepositoryRecord(BaseModel):
    """A repository found to use LFS, one row of the exchange file."""

    name: str = Field(..., description='Repository name')
    lfs_marker_path: str = Field(
        ..., description='Path of the .gitattributes file with the LFS filter'
    )
    clone_url: str = Field(..., description='Clone URL without credentials')

    class Config:
        """Pydantic configuration."""

        frozen = True

    def to_row(self) -> List[str]:
        return [self.name, self.lfs_marker_path, self.clone_url]


class ScanResult(BaseModel):
    """Outcome of a repository content scan."""

    found: bool = Field(default=False, description='LFS filter marker found')
    path: str = Field(default='', description='Path of the matching file')


class PullJob(BaseModel):
    """Clone or update one repository from the source host."""

    name: str = Field(..., description='Repository name')
    clone_url: str = Field(..., description='Clone URL without credentials')

    @validator('name')
    def validate_name(cls, v):
        """Reject names that would escape the working directory."""
        if not v or v in ('.', '..') or '/' in v or '\\' in v:
            raise ValueError(f'Invalid repository name: {v!r}')
        return v


class SyncJob(BaseModel):
    """Push one locally pulled repository to the target organization."""

    name: str = Field(..., description='Repository name')
    work_dir: str = Field(..., description='Working directory holding the clone')
    target_organization: str = Field(..., description='Target organization')

    @validator('name')
    def validate_name(cls, v):
        """Reject names that would escape the working directory."""
        if not v or v in ('.', '..') or '/' in v or '\\' in v:
            raise ValueError(f'Invalid repository name: {v!r}')
        return v

    @property
    def repository_path(self) -> Path:
        return Path(self.work_dir) / self.name


def repository_url(hostname: Optional[str], organization: str, name: str) -> str:
    """Clone URL of a repository on github.com or an Enterprise Server host."""
    base = hostname.rstrip('/') if hostname else 'https://github.com'
    return f'{base}/{organization}/{name}.git'
