"""
Shared pytest fixtures for ncbackup tests.

This module provides fixtures for:
- Source data directory and destination root
- Export staging directory and test configuration
- Fake external tools (maintenance mode toggle, export tool)
- Root privilege patching
"""

import subprocess
from datetime import datetime
from unittest.mock import patch

import pytest

from ncbackup.config import Config
from ncbackup.models import BackupRun, BackupLayout
from ncbackup.backup.storage import ensure_directories


class FakeTools:
    """
    Stand-in for subprocess.run that understands the external tools.

    The export tool writes a small export into the staging directory. Any tool
    whose key is in `fail` exits with status 1.
    Keys: 'maintenance_on', 'maintenance_off', 'export', or the executable name.
    """

    def __init__(self, staging_dir):
        self.staging_dir = staging_dir
        self.calls = []
        self.fail = set()

    def key_for(self, command):
        if 'maintenance:mode' in command:
            return 'maintenance_on' if '--on' in command else 'maintenance_off'
        if command[0] == 'nextcloud.export':
            return 'export'
        return command[0]

    def __call__(self, command, **kwargs):
        key = self.key_for(command)
        self.calls.append(key)

        if key == 'export':
            export_dir = self.staging_dir / '20240115-020000'
            (export_dir / 'apps').mkdir(parents=True, exist_ok=True)
            (export_dir / 'apps' / 'calendar.tar.gz').write_bytes(b'app archive')
            (export_dir / 'database.sql').write_text('CREATE TABLE oc_users (uid TEXT);\n')
            (export_dir / 'config.json').write_text('{"system": {}}')

        if key in self.fail:
            return subprocess.CompletedProcess(command, 1, stdout='', stderr=f'{key} failed')
        return subprocess.CompletedProcess(command, 0, stdout=f'{key} ok\n', stderr='')

    def count(self, key):
        return self.calls.count(key)


@pytest.fixture
def source_dir(tmp_path):
    """
    Create a small nextcloud data directory.

    Creates:
    - admin/files/notes.txt
    - admin/files/photo.jpg
    - nextcloud.log
    """
    source = tmp_path / 'nextcloud_data'
    files_dir = source / 'admin' / 'files'
    files_dir.mkdir(parents=True)
    (files_dir / 'notes.txt').write_text('Meeting notes')
    (files_dir / 'photo.jpg').write_bytes(b'\xff\xd8' + b'\0' * 1024)
    (source / 'nextcloud.log').write_text('{"level": 1}\n')
    return source


@pytest.fixture
def destination_dir(tmp_path):
    """Destination root (not created)."""
    return tmp_path / 'backup'


@pytest.fixture
def layout(destination_dir):
    """Destination layout with root and logs/ created, as the CLI does before a run."""
    layout = BackupLayout.for_destination(destination_dir)
    ensure_directories([layout.root, layout.logs_dir])
    return layout


@pytest.fixture
def staging_dir(tmp_path):
    staging = tmp_path / 'staging'
    staging.mkdir()
    return staging


@pytest.fixture
def settings(staging_dir):
    """Configuration pointing the export staging path into tmp_path."""
    settings = Config()
    settings.OCC_COMMAND = ['nextcloud.occ']
    settings.EXPORT_COMMAND = ['nextcloud.export', '-abc']
    settings.EXPORT_STAGING_DIR = str(staging_dir)
    settings.EXPORT_WORKING_DIR = str(staging_dir.parent)
    settings.SNAPSHOT_COMMAND = None
    settings.COMMAND_TIMEOUT = None
    return settings


@pytest.fixture
def fake_tools(staging_dir):
    """Patch subprocess.run with FakeTools."""
    tools = FakeTools(staging_dir)
    with patch('ncbackup.utils.system.subprocess.run', side_effect=tools):
        yield tools


@pytest.fixture
def as_root():
    """Pretend the tests run as root."""
    with patch('ncbackup.config.is_root', return_value=True):
        yield


@pytest.fixture
def make_run(source_dir, destination_dir):
    """Factory for BackupRun instances targeting the test directories."""
    def _make_run(timestamp=datetime(2024, 1, 15, 2, 0, 0), **kwargs):
        values = {
            'timestamp': timestamp,
            'source_dir': f'{source_dir}/',
            'destination_dir': f'{destination_dir}/',
        }
        values.update(kwargs)
        return BackupRun(**values)

    return _make_run
