"""Tests for configuration management."""

import os

import pytest

from lfs_migrate.config.config import (
    ConfigError,
    ExportConfig,
    ProxyConfig,
    PullConfig,
    RetryConfig,
    Settings,
    SyncConfig,
    TransferMode,
    create_template,
    load_config_file,
    load_env_file,
    parse_duration,
)


class TestParseDuration:
    """Test duration parsing."""

    @pytest.mark.parametrize(
        'value,expected',
        [('500ms', 0.5), ('2s', 2.0), ('1m', 60.0), ('1h', 3600.0), ('1.5', 1.5), (3, 3.0)],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_duration('soon')


class TestModels:
    """Test small configuration models."""

    def test_retry_defaults(self):
        config = RetryConfig()

        assert config.max_attempts == 3
        assert config.delay == 1.0

    def test_retry_validation(self):
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)

    def test_proxy_mapping(self):
        proxy = ProxyConfig(https_proxy='http://proxy:3128')

        assert proxy.enabled is True
        assert proxy.as_requests_proxies() == {'https': 'http://proxy:3128'}
        assert ProxyConfig().enabled is False


class TestExportConfig:
    """Test export configuration loading."""

    def test_from_environment(self):
        config = ExportConfig.load(
            environ={
                'GHMLFS_SOURCE_ORGANIZATION': 'acme',
                'GHMLFS_SOURCE_TOKEN': 'tok',
                'GHMLFS_SEARCH_DEPTH': '3',
            }
        )

        assert config.organization == 'acme'
        assert config.search_depth == 3
        assert config.hostname is None
        assert config.resolved_output_file == 'acme_lfs.csv'

    def test_missing_required_parameter(self):
        with pytest.raises(ConfigError) as exc_info:
            ExportConfig.load(environ={'GHMLFS_SOURCE_ORGANIZATION': 'acme'})

        assert 'missing required parameter' in str(exc_info.value)
        assert 'GHMLFS_SOURCE_TOKEN' in str(exc_info.value)

    def test_invalid_depth(self):
        with pytest.raises(ConfigError, match='search_depth'):
            ExportConfig.load(
                flags={'organization': 'acme', 'token': 'tok', 'search_depth': 0},
                environ={},
            )

    def test_hostname_validation(self):
        config = ExportConfig.load(
            flags={
                'organization': 'acme',
                'token': 'tok',
                'hostname': 'https://ghe.example.com/',
            },
            environ={},
        )
        assert config.hostname == 'https://ghe.example.com'

        with pytest.raises(ConfigError):
            ExportConfig.load(
                flags={'organization': 'acme', 'token': 'tok', 'hostname': 'ghe.local'},
                environ={},
            )

    def test_config_is_immutable(self):
        config = ExportConfig.load(flags={'organization': 'acme', 'token': 'tok'}, environ={})

        with pytest.raises((TypeError, ValueError)):
            config.organization = 'other'


class TestPrecedence:
    """Test flags > environment > file precedence."""

    FILE_DATA = {
        'pull': {
            'file': 'from-file.csv',
            'token': 'file-token',
            'work_dir': '/file/work',
            'workers': 2,
        }
    }

    def test_file_values(self):
        config = PullConfig.load(file_data=self.FILE_DATA, environ={})

        assert config.file == 'from-file.csv'
        assert config.workers == 2
        assert config.transfer_mode == TransferMode.MIRROR

    def test_environment_overrides_file(self):
        config = PullConfig.load(
            file_data=self.FILE_DATA,
            environ={'GHMLFS_WORKERS': '6', 'GHMLFS_BRANCH_MODE': 'true'},
        )

        assert config.workers == 6
        assert config.transfer_mode == TransferMode.BRANCH
        assert config.token == 'file-token'

    def test_flags_override_environment(self):
        config = PullConfig.load(
            flags={'workers': 8, 'branch_mode': None},
            file_data=self.FILE_DATA,
            environ={'GHMLFS_WORKERS': '6'},
        )

        assert config.workers == 8
        assert config.branch_mode is False

    def test_invalid_workers(self):
        with pytest.raises(ConfigError, match='workers'):
            PullConfig.load(flags={'workers': 0}, file_data=self.FILE_DATA, environ={})

    def test_sync_requires_organization(self):
        with pytest.raises(ConfigError, match='GHMLFS_TARGET_ORGANIZATION'):
            SyncConfig.load(
                environ={
                    'GHMLFS_FILE': 'in.csv',
                    'GHMLFS_TARGET_TOKEN': 'tok',
                    'GHMLFS_WORK_DIR': '/work',
                }
            )

    def test_sync_reads_target_keys(self):
        config = SyncConfig.load(
            environ={
                'GHMLFS_FILE': 'in.csv',
                'GHMLFS_TARGET_TOKEN': 'target-tok',
                'GHMLFS_SOURCE_TOKEN': 'source-tok',
                'GHMLFS_TARGET_ORGANIZATION': 'target',
                'GHMLFS_TARGET_HOSTNAME': 'https://ghe.example.com',
                'GHMLFS_WORK_DIR': '/work',
            }
        )

        assert config.token == 'target-tok'
        assert config.hostname == 'https://ghe.example.com'


class TestSettings:
    """Test global settings."""

    def test_defaults(self):
        settings = Settings.load(environ={})

        assert settings.retry.max_attempts == 3
        assert settings.retry.delay == 1.0
        assert settings.logging.level == 'INFO'
        assert settings.proxy.enabled is False

    def test_environment(self):
        settings = Settings.load(
            environ={
                'RETRY_MAX': '5',
                'RETRY_DELAY': '250ms',
                'HTTPS_PROXY': 'http://proxy:3128',
                'LOG_LEVEL': 'debug',
            }
        )

        assert settings.retry.max_attempts == 5
        assert settings.retry.delay == 0.25
        assert settings.proxy.https_proxy == 'http://proxy:3128'
        assert settings.logging.level == 'DEBUG'

    def test_invalid_retry(self):
        with pytest.raises(ConfigError):
            Settings.load(flags={'retry_max': 0}, environ={})


class TestConfigFiles:
    """Test YAML and .env files."""

    def test_template_round_trip(self, tmp_path):
        path = tmp_path / 'config.yaml'
        create_template(str(path))

        data = load_config_file(str(path))
        config = PullConfig.load(file_data=data, environ={})
        settings = Settings.load(file_data=data, environ={})

        assert config.workers == 1
        assert config.hostname is None
        assert settings.retry.delay == 1.0
        assert set(data) == {'global', 'export', 'pull', 'sync'}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_file(str(tmp_path / 'missing.yaml'))

    def test_file_must_be_mapping(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text('- just\n- a list\n', encoding='utf-8')

        with pytest.raises(ConfigError):
            load_config_file(str(path))

    def test_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / '.env'
        env_file.write_text('GHMLFS_WORK_DIR=/from/dotenv\n', encoding='utf-8')
        monkeypatch.delenv('GHMLFS_WORK_DIR', raising=False)

        try:
            load_env_file(str(env_file))
            assert os.environ['GHMLFS_WORK_DIR'] == '/from/dotenv'
        finally:
            os.environ.pop('GHMLFS_WORK_DIR', None)
