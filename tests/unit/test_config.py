"""
Unit tests for configuration and invocation resolution (ncbackup/config.py).
"""

import logging
from datetime import datetime
from unittest.mock import patch

import pytest

from ncbackup.config import (
    Config,
    DevelopmentConfig,
    ProductionConfig,
    get_config,
    resolve_run,
    ConfigurationError
)
from ncbackup.backup.storage import write_metadata


NOW = datetime(2024, 1, 15, 2, 0, 0)


class TestConfig:
    """Test configuration classes."""

    def test_defaults(self):
        settings = Config()

        assert settings.OCC_COMMAND == ['nextcloud.occ']
        assert settings.EXPORT_COMMAND == ['nextcloud.export', '-abc']
        assert settings.EXPORT_STAGING_DIR == '/var/snap/nextcloud/common/backups'
        assert settings.SNAPSHOT_COMMAND is None
        assert settings.COMMAND_TIMEOUT is None

    def test_tool_env_includes_snap_bin(self):
        env = Config().tool_env()

        assert '/snap/bin' in env['PATH'].split(':')

    def test_get_config_by_name(self):
        assert isinstance(get_config('development'), DevelopmentConfig)
        assert get_config('development').LOG_LEVEL == logging.DEBUG
        assert isinstance(get_config('production'), ProductionConfig)

    def test_get_config_from_environment(self, monkeypatch):
        monkeypatch.setenv('NCBACKUP_ENV', 'development')
        assert isinstance(get_config(), DevelopmentConfig)

    def test_get_config_unknown_name_uses_default(self):
        assert isinstance(get_config('staging'), ProductionConfig)


class TestResolveRun:
    """Test resolve_run validation."""

    def test_valid_invocation(self, as_root, source_dir, destination_dir):
        run = resolve_run(f'{source_dir}/', f'{destination_dir}/', '7',
                          verbose=True, keep_backups=True, now=NOW)

        assert run.timestamp == NOW
        assert run.source_dir == f'{source_dir}/'
        assert run.destination_dir == f'{destination_dir}/'
        assert run.retention_days == 7
        assert run.verbose
        assert run.keep_backups

    def test_no_side_effects(self, as_root, source_dir, destination_dir):
        """Test that resolving does not create the destination."""
        resolve_run(f'{source_dir}/', f'{destination_dir}/', now=NOW)

        assert not destination_dir.exists()

    def test_requires_root_before_other_checks(self, source_dir):
        """Test that the privilege check comes first."""
        with patch('ncbackup.config.is_root', return_value=False):
            with pytest.raises(ConfigurationError, match="root or using sudo"):
                resolve_run('', '', 'abc')

    def test_source_must_exist(self, as_root, tmp_path, destination_dir):
        with pytest.raises(ConfigurationError, match="valid source directory"):
            resolve_run(f'{tmp_path}/missing/', f'{destination_dir}/')

    def test_source_needs_trailing_slash(self, as_root, source_dir, destination_dir):
        with pytest.raises(ConfigurationError, match="valid source directory"):
            resolve_run(str(source_dir), f'{destination_dir}/')

    def test_source_must_be_directory(self, as_root, source_dir, destination_dir):
        with pytest.raises(ConfigurationError, match="valid source directory"):
            resolve_run(f'{source_dir}/nextcloud.log/', f'{destination_dir}/')

    @pytest.mark.parametrize("destination", ['', '/mnt/backup'])
    def test_destination_validation(self, as_root, source_dir, destination):
        with pytest.raises(ConfigurationError, match="valid destination directory"):
            resolve_run(f'{source_dir}/', destination)

    @pytest.mark.parametrize("retention", ['abc', '', '1.5', '14d', '- 1'])
    def test_retention_must_be_integer(self, as_root, source_dir, destination_dir, retention):
        with pytest.raises(ConfigurationError, match="Value for -r is not a number"):
            resolve_run(f'{source_dir}/', f'{destination_dir}/', retention)

    @pytest.mark.parametrize("retention,expected", [('-1', -1), ('0', 0), ('+30', 30), ('14', 14)])
    def test_retention_values(self, as_root, source_dir, destination_dir, retention, expected):
        run = resolve_run(f'{source_dir}/', f'{destination_dir}/', retention, now=NOW)

        assert run.retention_days == expected

    def test_retention_below_sentinel_rejected(self, as_root, source_dir, destination_dir):
        with pytest.raises(ConfigurationError, match="-1 or a number of days"):
            resolve_run(f'{source_dir}/', f'{destination_dir}/', '-5')

    def test_timestamp_after_previous_run(self, as_root, source_dir, destination_dir):
        """Test that a run in the same second as the previous one gets the next second."""
        destination_dir.mkdir()
        write_metadata(destination_dir / 'backup_metadata', NOW)

        run = resolve_run(f'{source_dir}/', f'{destination_dir}/', now=NOW)

        assert run.run_id == '2024-01-15_02-00-01'
