"""Tests for the local working directories and file deletion."""

import asyncio
import os
import tempfile
from unittest.mock import patch

import pytest
from hypothesis import given, settings, strategies as st

from video_worker.errors import DirectoryCreationError, FileDeletionError
from video_worker.local_files import LocalFiles, delete_file, ensure_directory_exists

# File names valid on any POSIX filesystem
file_name_strategy = st.text(
    min_size=1,
    max_size=40,
    alphabet=st.characters(whitelist_categories=('L', 'N'), whitelist_characters='-_.')
).filter(lambda name: name not in ('.', '..'))


class TestEnsureDirectoryExists:
    def test_creates_nested_directories(self, tmp_path):
        target = tmp_path / 'a' / 'b' / 'c'

        ensure_directory_exists(str(target))

        assert target.is_dir()

    def test_existing_directory_is_left_alone(self, tmp_path, caplog):
        marker = tmp_path / 'keep.txt'
        marker.write_text('x')

        with caplog.at_level('INFO', logger='video-worker'):
            ensure_directory_exists(str(tmp_path))

        assert marker.read_text() == 'x'
        assert 'Directory created' not in caplog.text

    def test_logs_only_on_creation(self, tmp_path, caplog):
        target = tmp_path / 'new'

        with caplog.at_level('INFO', logger='video-worker'):
            ensure_directory_exists(str(target))

        assert f'Directory created at {target}' in caplog.text

    def test_file_in_the_way_raises(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory')

        with pytest.raises(DirectoryCreationError) as exc_info:
            ensure_directory_exists(str(blocker / 'child'))

        assert exc_info.value.path == str(blocker / 'child')


class TestSetupDirectories:
    def test_is_idempotent(self, worker_config, tmp_path):
        files = LocalFiles(worker_config)

        files.setup_directories()
        files.setup_directories()

        assert sorted(os.listdir(tmp_path)) == ['processed-videos', 'raw-videos']

    def test_paths_are_inside_working_directories(self, local_files, worker_config):
        assert local_files.raw_path('a.mp4') == os.path.join(worker_config.raw_dir, 'a.mp4')
        assert local_files.processed_path('a.mp4') == os.path.join(worker_config.processed_dir, 'a.mp4')


class TestDeleteFile:
    @pytest.mark.asyncio
    async def test_deletes_existing_file(self, tmp_path):
        target = tmp_path / 'video.mp4'
        target.write_bytes(b'data')
        other = tmp_path / 'other.mp4'
        other.write_bytes(b'data')

        removed = await delete_file(str(target))

        assert removed is True
        assert not target.exists()
        assert other.exists()

    @pytest.mark.asyncio
    async def test_missing_file_is_skipped(self, tmp_path, caplog):
        with caplog.at_level('INFO', logger='video-worker'):
            removed = await delete_file(str(tmp_path / 'missing.mp4'))

        assert removed is False
        assert 'skipping the delete' in caplog.text

    @pytest.mark.asyncio
    async def test_removal_failure_raises(self, tmp_path):
        target = tmp_path / 'locked.mp4'
        target.write_bytes(b'data')

        with patch('video_worker.local_files.os.unlink', side_effect=PermissionError('denied')):
            with pytest.raises(FileDeletionError) as exc_info:
                await delete_file(str(target))

        assert exc_info.value.path == str(target)
        assert target.exists()

    @pytest.mark.asyncio
    async def test_raw_and_processed_wrappers(self, local_files):
        with open(local_files.raw_path('v.mp4'), 'wb') as f:
            f.write(b'raw')
        with open(local_files.processed_path('v.mp4'), 'wb') as f:
            f.write(b'processed')

        assert await local_files.delete_raw_video('v.mp4') is True
        assert os.path.exists(local_files.processed_path('v.mp4'))
        assert await local_files.delete_processed_video('v.mp4') is True
        assert await local_files.delete_processed_video('v.mp4') is False


class TestDeleteProperties:
    @given(name=file_name_strategy)
    @settings(max_examples=50, deadline=None)
    def test_deleting_missing_file_never_mutates(self, name):
        with tempfile.TemporaryDirectory() as directory:
            neighbour = os.path.join(directory, 'neighbour')
            with open(neighbour, 'w') as f:
                f.write('x')
            target = os.path.join(directory, f'{name}.missing')

            removed = asyncio.run(delete_file(target))

            assert removed is False
            assert os.listdir(directory) == ['neighbour']

    @given(name=file_name_strategy)
    @settings(max_examples=50, deadline=None)
    def test_deleting_existing_file_removes_only_it(self, name):
        with tempfile.TemporaryDirectory() as directory:
            target = os.path.join(directory, name)
            with open(target, 'w') as f:
                f.write('x')
            neighbour = os.path.join(directory, f'{name}.keep')
            with open(neighbour, 'w') as f:
                f.write('x')

            assert asyncio.run(delete_file(target)) is True
            assert not os.path.exists(target)
            assert os.path.exists(neighbour)
