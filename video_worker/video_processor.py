import asyncio
import threading
from dataclasses import dataclass
from typing import Optional, Set

from video_worker.config import WorkerConfig
from video_worker.errors import InvalidVideoNameError, VideoAlreadyProcessingError
from video_worker.ffmpeg_pipeline import FFmpegPipeline
from video_worker.local_files import LocalFiles
from video_worker.logger import logger
from video_worker.storage_client import CloudStorageClient


def validate_video_name(name: str) -> str:
    """A video name is used both as a local file name and an object key"""
    if not isinstance(name, str) or not name.strip():
        raise InvalidVideoNameError('Video name must be a non-empty string')
    if '/' in name or '\\' in name or '\x00' in name:
        raise InvalidVideoNameError(f'Video name must not contain path separators: {name!r}')
    if name in ('.', '..'):
        raise InvalidVideoNameError(f'Invalid video name: {name!r}')
    return name


@dataclass(frozen=True)
class ProcessingResult:
    raw_name: str
    processed_name: str
    public_url: str


class VideoProcessor:
    """Download, rescale and publish a single raw video"""
    
    def __init__(
        self,
        config: WorkerConfig,
        storage: Optional[CloudStorageClient] = None,
        ffmpeg: Optional[FFmpegPipeline] = None,
        files: Optional[LocalFiles] = None
    ):
        self.config = config
        self.files = files or LocalFiles(config)
        self.storage = storage or CloudStorageClient(config, files=self.files)
        self.ffmpeg = ffmpeg or FFmpegPipeline(config, files=self.files)
        
        # Names in flight in this process; requests may arrive on different threads
        self._in_progress: Set[str] = set()
        self._lock = threading.Lock()
    
    def setup_directories(self) -> None:
        self.files.setup_directories()
    
    def processed_name_for(self, raw_name: str) -> str:
        return f'{self.config.processed_prefix}{raw_name}'
    
    def is_processing(self, name: str) -> bool:
        with self._lock:
            return name in self._in_progress
    
    def _claim(self, name: str) -> None:
        with self._lock:
            if name in self._in_progress:
                raise VideoAlreadyProcessingError(name)
            self._in_progress.add(name)
    
    def _release(self, name: str) -> None:
        with self._lock:
            self._in_progress.discard(name)
    
    async def process_video(self, raw_name: str) -> ProcessingResult:
        """
        Main video processing pipeline
        
        Args:
            raw_name: Object name in the raw bucket
            
        Returns:
            Names and public URL of the processed video
        """
        validate_video_name(raw_name)
        processed_name = self.processed_name_for(raw_name)
        
        self._claim(raw_name)
        succeeded = False
        try:
            logger.info(f'Starting processing for {raw_name}')
            
            # Step 1: Download video from GCS
            await self.storage.download_raw_video(raw_name)
            
            # Step 2: Rescale with FFmpeg
            await self.ffmpeg.convert_video(raw_name, processed_name)
            
            # Step 3: Upload processed video to GCS
            public_url = await self.storage.upload_processed_video(processed_name)
            
            succeeded = True
            logger.info(f'Video {raw_name} processed successfully: {public_url}')
            return ProcessingResult(raw_name, processed_name, public_url)
        
        except Exception as e:
            logger.error(f'Processing {raw_name} failed: {e}')
            raise
        
        finally:
            # Cleanup local copies whatever the outcome
            try:
                await self._cleanup(raw_name, processed_name, raise_errors=succeeded)
            finally:
                self._release(raw_name)
    
    async def _cleanup(self, raw_name: str, processed_name: str, raise_errors: bool) -> None:
        """
        Delete both local copies; a failed delete only surfaces when nothing
        else went wrong, so the pipeline error is never masked
        """
        results = await asyncio.gather(
            self.files.delete_raw_video(raw_name),
            self.files.delete_processed_video(processed_name),
            return_exceptions=True
        )
        errors = [result for result in results if isinstance(result, Exception)]
        for error in errors:
            logger.error(f'Cleanup after {raw_name} failed: {error}')
        
        if errors and raise_errors:
            raise errors[0]
