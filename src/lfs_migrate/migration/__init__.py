"""Migration phases: export, pull and sync."""

from .engine import ExportSummary, MigrationEngine
from .errors import InputFileError, ListError, MigrationError, ScanError
from .executor import BoundedExecutor, JobFailure, ProcessStats
from .job_source import JobSource
from .lister import RepositoryLister
from .scanner import RepositoryContentScanner, ScanState

__all__ = [
    'BoundedExecutor',
    'ExportSummary',
    'InputFileError',
    'JobFailure',
    'JobSource',
    'ListError',
    'MigrationEngine',
    'MigrationError',
    'ProcessStats',
    'RepositoryContentScanner',
    'RepositoryLister',
    'ScanError',
    'ScanState',
]
