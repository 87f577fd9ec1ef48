import os
import stat
import sys
from typing import Dict, Optional

import pytest
from google.api_core import exceptions as gcs_exceptions

from video_worker.config import WorkerConfig
from video_worker.local_files import LocalFiles
from video_worker.storage_client import CloudStorageClient


class FakeBlob:
    def __init__(self, bucket: 'FakeBucket', name: str):
        self.bucket = bucket
        self.name = name

    @property
    def public_url(self) -> str:
        return f'https://storage.googleapis.com/{self.bucket.name}/{self.name}'

    def download_to_filename(self, filename: str) -> None:
        # the real client opens the destination before the first byte arrives
        with open(filename, 'wb') as f:
            if self.name not in self.bucket.objects:
                raise gcs_exceptions.NotFound(f'No such object: {self.bucket.name}/{self.name}')
            f.write(self.bucket.objects[self.name])

    def upload_from_filename(self, filename: str, content_type: Optional[str] = None) -> None:
        if self.bucket.fail_uploads:
            raise gcs_exceptions.ServiceUnavailable('upload failed')
        with open(filename, 'rb') as f:
            self.bucket.objects[self.name] = f.read()
        self.bucket.content_types[self.name] = content_type
        self.bucket.public.discard(self.name)

    def make_public(self) -> None:
        if self.bucket.fail_make_public:
            raise gcs_exceptions.Forbidden('public access prevention is enforced')
        if self.name not in self.bucket.objects:
            raise gcs_exceptions.NotFound(f'No such object: {self.bucket.name}/{self.name}')
        self.bucket.public.add(self.name)


class FakeBucket:
    def __init__(self, name: str):
        self.name = name
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, Optional[str]] = {}
        self.public = set()
        self.fail_uploads = False
        self.fail_make_public = False

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)


class FakeStorageClient:
    """In-memory stand-in for google.cloud.storage.Client"""

    def __init__(self):
        self.buckets: Dict[str, FakeBucket] = {}

    def bucket(self, name: str) -> FakeBucket:
        if name not in self.buckets:
            self.buckets[name] = FakeBucket(name)
        return self.buckets[name]


def write_script(path, body: str) -> str:
    path.write_text(f'#!{sys.executable}\n{body}')
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


# Copies the input to the output, mimicking a successful FFmpeg run
FAKE_FFMPEG_OK = '''
import shutil
import sys

args = sys.argv[1:]
src = args[args.index('-i') + 1]
dst = args[args.index('-vf') + 2]
shutil.copyfile(src, dst)
'''

FAKE_FFMPEG_FAIL = '''
import sys

sys.stderr.write('ffmpeg version n6.0\\n')
sys.stderr.write('raw.mp4: Invalid data found when processing input\\n')
sys.exit(1)
'''


@pytest.fixture
def worker_config(tmp_path) -> WorkerConfig:
    return WorkerConfig(
        raw_bucket='test-raw-videos',
        processed_bucket='test-processed-videos',
        raw_dir=str(tmp_path / 'raw-videos'),
        processed_dir=str(tmp_path / 'processed-videos'),
        target_height=1080,
        ffmpeg_binary='ffmpeg',
        processed_prefix='processed-',
        project_id='test-project',
    )


@pytest.fixture
def local_files(worker_config) -> LocalFiles:
    files = LocalFiles(worker_config)
    files.setup_directories()
    return files


@pytest.fixture
def fake_gcs() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def storage_client(worker_config, fake_gcs, local_files) -> CloudStorageClient:
    return CloudStorageClient(worker_config, client=fake_gcs, files=local_files)


@pytest.fixture
def fake_ffmpeg_ok(tmp_path) -> str:
    return write_script(tmp_path / 'ffmpeg-ok', FAKE_FFMPEG_OK)


@pytest.fixture
def fake_ffmpeg_fail(tmp_path) -> str:
    return write_script(tmp_path / 'ffmpeg-fail', FAKE_FFMPEG_FAIL)


def list_files(directory: str):
    return sorted(os.listdir(directory))
