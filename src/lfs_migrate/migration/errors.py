"""Migration phase exceptions."""

from typing import Optional


class MigrationError(Exception):
    """Base exception for migration phase errors."""

    pass


class ScanError(MigrationError):
    """LFS usage of a repository could not be determined."""

    def __init__(self, repository: str, message: str):
        super().__init__(f'{repository}: {message}')
        self.repository = repository


class ListError(MigrationError):
    """Repositories of an organization could not be listed."""

    def __init__(self, organization: str, message: str):
        super().__init__(f'failed to list repositories for {organization}: {message}')
        self.organization = organization


class InputFileError(MigrationError):
    """The exchange file cannot be opened or has no header row."""

    def __init__(self, path: str, message: str, cause: Optional[Exception] = None):
        super().__init__(f'{path}: {message}')
        self.path = path
        self.cause = cause
