"""Configuration management for LFS Migration Tool."""

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, Mapping, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, validator


class ConfigError(Exception):
    """Missing or invalid configuration; raised before any work starts."""


_DURATION_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$')
_DURATION_UNITS = {'ms': 0.001, 's': 1.0, 'm': 60.0, 'h': 3600.0}


def parse_duration(value: Any) -> float:
    """Parse a duration such as ``500ms``, ``1s``, ``2m`` or ``1.5`` into seconds."""
    if isinstance(value, (int, float)):
        return float(value)

    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ValueError(f'Invalid duration: {value!r}')

    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit or 's']


def _validate_hostname(v: Optional[str]) -> Optional[str]:
    if not v:
        return None
    if not v.startswith(('http://', 'https://')):
        raise ValueError('hostname must start with http:// or https://')
    return v.rstrip('/')


class TransferMode(str, Enum):
    """How repositories are transferred between hosts."""

    MIRROR = 'mirror'
    BRANCH = 'branch'


class ProxyConfig(BaseModel):
    """HTTP proxy settings for API calls."""

    http_proxy: Optional[str] = Field(default=None, description='HTTP proxy URL')
    https_proxy: Optional[str] = Field(default=None, description='HTTPS proxy URL')
    no_proxy: Optional[str] = Field(
        default=None, description='Comma separated hosts that bypass the proxy'
    )

    def as_requests_proxies(self) -> Dict[str, str]:
        """Build a proxies mapping understood by requests."""
        proxies = {}
        if self.http_proxy:
            proxies['http'] = self.http_proxy
        if self.https_proxy:
            proxies['https'] = self.https_proxy
        if self.no_proxy:
            proxies['no_proxy'] = self.no_proxy
        return proxies

    @property
    def enabled(self) -> bool:
        return bool(self.http_proxy or self.https_proxy)


class RetryConfig(BaseModel):
    """Retry settings for remote API calls."""

    max_attempts: int = Field(default=3, description='Maximum attempts per call')
    delay: float = Field(default=1.0, description='Base delay between retries (s)')

    @validator('max_attempts')
    def validate_max_attempts(cls, v):
        """Validate max attempts is positive."""
        if v <= 0:
            raise ValueError('Max retry attempts must be positive')
        return v

    @validator('delay', pre=True)
    def validate_delay(cls, v):
        """Accept plain seconds or a duration string."""
        seconds = parse_duration(v)
        if seconds < 0:
            raise ValueError('Retry delay cannot be negative')
        return seconds


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: Optional[str] = Field(default=None, description='Log format')

    @validator('level')
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class _LoadableConfig(BaseModel):
    """Base for configs resolved from flags, environment and a config file.

    Precedence is flags, then environment variables, then the file section.
    """

    ENV_KEYS: ClassVar[Dict[str, str]] = {}
    FILE_SECTION: ClassVar[str] = ''

    class Config:
        """Pydantic configuration."""

        extra = 'forbid'
        frozen = True

    @classmethod
    def load(
        cls,
        flags: Optional[Mapping[str, Any]] = None,
        file_data: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Resolve the configuration once, at startup.

        Raises:
            ConfigError: If a required value is missing or invalid
        """
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}

        if cls.FILE_SECTION:
            section = (file_data or {}).get(cls.FILE_SECTION)
        else:
            section = file_data
        for field_name, value in (section or {}).items():
            if value is not None:
                data[field_name] = value

        for field_name, env_key in cls.ENV_KEYS.items():
            value = environ.get(env_key)
            if value not in (None, ''):
                data[field_name] = value

        for field_name, value in (flags or {}).items():
            if value is not None:
                data[field_name] = value

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(_describe_validation_error(cls, e)) from e


def _describe_validation_error(cls, error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        field_name = str(item['loc'][0]) if item.get('loc') else '?'
        env_key = cls.ENV_KEYS.get(field_name)
        label = f'{field_name} ({env_key})' if env_key else field_name
        if item.get('type', '').endswith('missing'):
            problems.append(f'missing required parameter: {label}')
        else:
            problems.append(f'invalid {label}: {item.get("msg")}')
    return '; '.join(problems)


class Settings(_LoadableConfig):
    """Settings shared by every command."""

    ENV_KEYS: ClassVar[Dict[str, str]] = {
        'http_proxy': 'HTTP_PROXY',
        'https_proxy': 'HTTPS_PROXY',
        'no_proxy': 'NO_PROXY',
        'retry_max': 'RETRY_MAX',
        'retry_delay': 'RETRY_DELAY',
        'log_level': 'LOG_LEVEL',
        'log_file': 'LOG_FILE',
    }
    FILE_SECTION: ClassVar[str] = 'global'

    http_proxy: Optional[str] = None
    https_proxy: Optional[str] = None
    no_proxy: Optional[str] = None
    retry_max: int = 3
    retry_delay: float = 1.0
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    @validator('retry_max')
    def validate_retry_max(cls, v):
        """Validate retry max is positive."""
        if v <= 0:
            raise ValueError('must be positive')
        return v

    @validator('retry_delay', pre=True)
    def validate_retry_delay(cls, v):
        """Accept plain seconds or a duration string."""
        return parse_duration(v)

    @validator('log_level')
    def validate_log_level(cls, v):
        """Validate log level."""
        return LoggingConfig(level=v).level

    @property
    def proxy(self) -> ProxyConfig:
        return ProxyConfig(
            http_proxy=self.http_proxy,
            https_proxy=self.https_proxy,
            no_proxy=self.no_proxy,
        )

    @property
    def retry(self) -> RetryConfig:
        return RetryConfig(max_attempts=self.retry_max, delay=self.retry_delay)

    @property
    def logging(self) -> LoggingConfig:
        return LoggingConfig(level=self.log_level, file=self.log_file)


class ExportConfig(_LoadableConfig):
    """Configuration of the export command."""

    ENV_KEYS: ClassVar[Dict[str, str]] = {
        'hostname': 'GHMLFS_SOURCE_HOSTNAME',
        'organization': 'GHMLFS_SOURCE_ORGANIZATION',
        'token': 'GHMLFS_SOURCE_TOKEN',
        'search_depth': 'GHMLFS_SEARCH_DEPTH',
        'output_file': 'GHMLFS_OUTPUT_FILE',
    }
    FILE_SECTION: ClassVar[str] = 'export'

    hostname: Optional[str] = Field(default=None, description='Source host URL')
    organization: str = Field(..., description='Source organization')
    token: str = Field(..., description='Source access token')
    search_depth: int = Field(default=1, description='Directory levels to search')
    output_file: Optional[str] = Field(default=None, description='Output CSV path')

    @validator('hostname')
    def validate_hostname(cls, v):
        """Validate hostname URL format."""
        return _validate_hostname(v)

    @validator('search_depth')
    def validate_search_depth(cls, v):
        """Validate search depth is positive."""
        if v <= 0:
            raise ValueError('Search depth must be positive')
        return v

    @property
    def resolved_output_file(self) -> str:
        return self.output_file or f'{self.organization}_lfs.csv'


class _TransferConfig(_LoadableConfig):
    """Settings shared by pull and sync."""

    file: str = Field(..., description='Exchange CSV file')
    token: str = Field(..., description='Access token')
    work_dir: str = Field(..., description='Working directory for clones')
    hostname: Optional[str] = Field(default=None, description='Host URL')
    workers: int = Field(default=1, description='Concurrent git workers')
    branch_mode: bool = Field(default=False, description='Transfer branch by branch')

    @validator('hostname')
    def validate_hostname(cls, v):
        """Validate hostname URL format."""
        return _validate_hostname(v)

    @validator('workers')
    def validate_workers(cls, v):
        """Validate workers is positive."""
        if v <= 0:
            raise ValueError('Workers must be positive')
        return v

    @property
    def transfer_mode(self) -> TransferMode:
        return TransferMode.BRANCH if self.branch_mode else TransferMode.MIRROR


class PullConfig(_TransferConfig):
    """Configuration of the pull command."""

    ENV_KEYS: ClassVar[Dict[str, str]] = {
        'file': 'GHMLFS_FILE',
        'hostname': 'GHMLFS_SOURCE_HOSTNAME',
        'token': 'GHMLFS_SOURCE_TOKEN',
        'work_dir': 'GHMLFS_WORK_DIR',
        'workers': 'GHMLFS_WORKERS',
        'branch_mode': 'GHMLFS_BRANCH_MODE',
    }
    FILE_SECTION: ClassVar[str] = 'pull'


class SyncConfig(_TransferConfig):
    """Configuration of the sync command."""

    ENV_KEYS: ClassVar[Dict[str, str]] = {
        'file': 'GHMLFS_FILE',
        'hostname': 'GHMLFS_TARGET_HOSTNAME',
        'organization': 'GHMLFS_TARGET_ORGANIZATION',
        'token': 'GHMLFS_TARGET_TOKEN',
        'work_dir': 'GHMLFS_WORK_DIR',
        'workers': 'GHMLFS_WORKERS',
        'branch_mode': 'GHMLFS_BRANCH_MODE',
    }
    FILE_SECTION: ClassVar[str] = 'sync'

    organization: str = Field(..., description='Target organization')


def load_env_file(path: Optional[str] = None) -> None:
    """Load a ``.env`` file into the process environment if one exists.

    Without a path the file is searched from the current directory upwards.
    Variables already set in the environment are kept.
    """
    load_dotenv(dotenv_path=path or find_dotenv(usecwd=True))


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load a YAML configuration file."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f'Configuration file not found: {config_path}')

    with open(config_file, 'r', encoding='utf-8') as f:
        config_data = yaml.safe_load(f) or {}

    if not isinstance(config_data, dict):
        raise ConfigError(f'Configuration file must contain a mapping: {config_path}')

    return config_data


def create_template(output_path: str) -> None:
    """Create a configuration template file."""
    template_config = {
        'global': {
            'http_proxy': None,
            'https_proxy': None,
            'no_proxy': None,
            'retry_max': 3,
            'retry_delay': '1s',
            'log_level': 'INFO',
            'log_file': 'lfs-migrate.log',
        },
        'export': {
            'hostname': None,
            'organization': 'source-org',
            'token': 'your-source-token',
            'search_depth': 1,
        },
        'pull': {
            'file': 'source-org_lfs.csv',
            'hostname': None,
            'token': 'your-source-token',
            'work_dir': '/tmp/lfs-migrate',
            'workers': 1,
            'branch_mode': False,
        },
        'sync': {
            'file': 'source-org_lfs.csv',
            'hostname': None,
            'organization': 'target-org',
            'token': 'your-target-token',
            'work_dir': '/tmp/lfs-migrate',
            'workers': 1,
            'branch_mode': False,
        },
    }

    config_file = Path(output_path)
    config_file.parent.mkdir(parents=True, exist_ok=True)

    with open(config_file, 'w', encoding='utf-8') as f:
        yaml.dump(
            template_config, f, default_flow_style=False, indent=2, sort_keys=False
        )
