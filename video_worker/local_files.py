"""
Local working directories for raw and processed videos

Files are always saved under these two directories, so they have to exist
before any download, transcode or delete touches them.
"""

import asyncio
import os

from video_worker.config import WorkerConfig
from video_worker.errors import DirectoryCreationError, FileDeletionError
from video_worker.logger import logger


def ensure_directory_exists(dir_path: str) -> None:
    """Create dir_path and any missing parents; no-op when it already exists"""
    if os.path.isdir(dir_path):
        return

    try:
        os.makedirs(dir_path, exist_ok=True)
    except OSError as e:
        logger.error(f'Failed to create directory at {dir_path}: {e}')
        raise DirectoryCreationError(dir_path, str(e)) from e

    logger.info(f'Directory created at {dir_path}')


async def delete_file(file_path: str) -> bool:
    """
    Delete a local file if it exists
    
    Returns:
        True if the file was removed, False if there was nothing to delete
    """
    if not os.path.exists(file_path):
        logger.info(f'File not found at {file_path}, skipping the delete')
        return False

    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, os.unlink, file_path)
    except FileNotFoundError:
        # removed by someone else between the check and the unlink
        logger.info(f'File not found at {file_path}, skipping the delete')
        return False
    except OSError as e:
        logger.error(f'Failed to delete file at {file_path}: {e}')
        raise FileDeletionError(file_path, str(e)) from e

    logger.info(f'File deleted at {file_path}')
    return True


class LocalFiles:
    """Raw and processed working directories of one worker"""

    def __init__(self, config: WorkerConfig):
        self.raw_dir = config.raw_dir
        self.processed_dir = config.processed_dir

    def raw_path(self, file_name: str) -> str:
        return os.path.join(self.raw_dir, file_name)

    def processed_path(self, file_name: str) -> str:
        return os.path.join(self.processed_dir, file_name)

    def setup_directories(self) -> None:
        """Make sure both working directories exist; safe to call repeatedly"""
        ensure_directory_exists(self.raw_dir)
        ensure_directory_exists(self.processed_dir)

    async def delete_raw_video(self, file_name: str) -> bool:
        return await delete_file(self.raw_path(file_name))

    async def delete_processed_video(self, file_name: str) -> bool:
        return await delete_file(self.processed_path(file_name))
