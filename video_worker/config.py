import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# Google Cloud Platform
GCP_PROJECT_ID = os.getenv('GCP_PROJECT_ID')
PUBSUB_SUBSCRIPTION_ID = os.getenv('PUBSUB_SUBSCRIPTION_ID', 'video-uploads-subscription')
GCS_BUCKET_VIDEOS_RAW = os.getenv('GCS_BUCKET_VIDEOS_RAW', 'raw-videos')
GCS_BUCKET_VIDEOS_PROCESSED = os.getenv('GCS_BUCKET_VIDEOS_PROCESSED', 'processed-videos')

# Local working directories
LOCAL_RAW_VIDEO_DIR = os.getenv('LOCAL_RAW_VIDEO_DIR', './raw-videos')
LOCAL_PROCESSED_VIDEO_DIR = os.getenv('LOCAL_PROCESSED_VIDEO_DIR', './processed-videos')

# Processing
TARGET_HEIGHT = int(os.getenv('TARGET_HEIGHT', '1080'))
FFMPEG_BINARY = os.getenv('FFMPEG_BINARY', 'ffmpeg')
PROCESSED_VIDEO_PREFIX = os.getenv('PROCESSED_VIDEO_PREFIX', 'processed-')

# Server
PORT = int(os.getenv('PORT', '3000'))
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


@dataclass(frozen=True)
class WorkerConfig:
    """Buckets, working directories and transcode settings for one worker"""

    raw_bucket: str = GCS_BUCKET_VIDEOS_RAW
    processed_bucket: str = GCS_BUCKET_VIDEOS_PROCESSED
    raw_dir: str = LOCAL_RAW_VIDEO_DIR
    processed_dir: str = LOCAL_PROCESSED_VIDEO_DIR
    target_height: int = TARGET_HEIGHT
    ffmpeg_binary: str = FFMPEG_BINARY
    processed_prefix: str = PROCESSED_VIDEO_PREFIX
    project_id: Optional[str] = GCP_PROJECT_ID

    @classmethod
    def from_env(cls) -> 'WorkerConfig':
        """Build a config from the current environment, ignoring import-time values"""
        return cls(
            raw_bucket=os.getenv('GCS_BUCKET_VIDEOS_RAW', 'raw-videos'),
            processed_bucket=os.getenv('GCS_BUCKET_VIDEOS_PROCESSED', 'processed-videos'),
            raw_dir=os.getenv('LOCAL_RAW_VIDEO_DIR', './raw-videos'),
            processed_dir=os.getenv('LOCAL_PROCESSED_VIDEO_DIR', './processed-videos'),
            target_height=int(os.getenv('TARGET_HEIGHT', '1080')),
            ffmpeg_binary=os.getenv('FFMPEG_BINARY', 'ffmpeg'),
            processed_prefix=os.getenv('PROCESSED_VIDEO_PREFIX', 'processed-'),
            project_id=os.getenv('GCP_PROJECT_ID'),
        )
