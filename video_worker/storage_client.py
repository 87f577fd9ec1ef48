import asyncio
import mimetypes
import os
from typing import Optional, Tuple

from google.cloud import storage

from video_worker.config import WorkerConfig
from video_worker.errors import StorageTransferError, VisibilityChangeError
from video_worker.local_files import LocalFiles
from video_worker.logger import logger


class CloudStorageClient:
    """Google Cloud Storage client wrapper for the raw and processed video buckets"""
    
    def __init__(self, config: WorkerConfig, client: Optional[storage.Client] = None, files: LocalFiles = None):
        self.project_id = config.project_id
        self.raw_bucket = config.raw_bucket
        self.processed_bucket = config.processed_bucket
        self.files = files or LocalFiles(config)
        self._client = client
    
    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client(project=self.project_id)
        return self._client
    
    def download_file(self, gcs_path: str, local_path: str) -> str:
        """
        Download file from GCS to local path, overwriting any existing file
        
        Args:
            gcs_path: GCS path (gs://bucket/path or just bucket/path)
            local_path: Local file path
            
        Returns:
            Local file path
        """
        bucket_name, blob_path = self.parse_gcs_path(gcs_path)
        blob = self.client.bucket(bucket_name).blob(blob_path)
        
        logger.info(f'Downloading {gcs_path} to {local_path}')
        try:
            blob.download_to_filename(local_path)
        except Exception as e:
            logger.error(f'Failed to download file from GCS: {e}')
            # never leave a truncated or empty file behind
            if os.path.isfile(local_path):
                try:
                    os.remove(local_path)
                except OSError as remove_error:
                    logger.error(f'Could not remove partial download at {local_path}: {remove_error}')
            raise StorageTransferError(
                f'Failed to download gs://{bucket_name}/{blob_path}: {e}',
                bucket_name,
                blob_path
            ) from e
        
        logger.info(f'gs://{bucket_name}/{blob_path} downloaded to {local_path}')
        return local_path
    
    def upload_file(self, local_path: str, gcs_path: str, content_type: Optional[str] = None) -> str:
        """
        Upload file to GCS, overwriting any existing object
        
        Args:
            local_path: Local file path
            gcs_path: GCS destination path (gs://bucket/path or bucket/path)
            content_type: MIME type
            
        Returns:
            Full GCS path (gs://bucket/path)
        """
        bucket_name, blob_path = self.parse_gcs_path(gcs_path)
        
        if not os.path.isfile(local_path):
            logger.error(f'Cannot upload {local_path}: file not found')
            raise StorageTransferError(
                f'Local file {local_path} does not exist',
                bucket_name,
                blob_path
            )
        
        blob = self.client.bucket(bucket_name).blob(blob_path)
        
        logger.info(f'Uploading {local_path} to {gcs_path}')
        try:
            if content_type:
                blob.upload_from_filename(local_path, content_type=content_type)
            else:
                blob.upload_from_filename(local_path)
        except Exception as e:
            logger.error(f'Failed to upload file to GCS: {e}')
            raise StorageTransferError(
                f'Failed to upload {local_path} to gs://{bucket_name}/{blob_path}: {e}',
                bucket_name,
                blob_path
            ) from e
        
        full_path = f'gs://{bucket_name}/{blob_path}'
        logger.info(f'{local_path} uploaded to {full_path}')
        return full_path
    
    def make_public(self, gcs_path: str) -> str:
        """Grant public read access to an object and return its public URL"""
        bucket_name, blob_path = self.parse_gcs_path(gcs_path)
        blob = self.client.bucket(bucket_name).blob(blob_path)
        
        try:
            blob.make_public()
        except Exception as e:
            logger.error(f'Failed to make gs://{bucket_name}/{blob_path} public: {e}')
            raise VisibilityChangeError(
                f'Uploaded gs://{bucket_name}/{blob_path} but could not make it public: {e}',
                bucket_name,
                blob_path
            ) from e
        
        logger.info(f'gs://{bucket_name}/{blob_path} is now public')
        return blob.public_url
    
    async def download_raw_video(self, file_name: str) -> str:
        """Download file_name from the raw bucket into the raw directory"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            self.download_file,
            f'gs://{self.raw_bucket}/{file_name}',
            self.files.raw_path(file_name)
        )
    
    async def upload_processed_video(self, file_name: str) -> str:
        """
        Upload file_name from the processed directory into the processed bucket
        and make it publicly readable
        
        Returns:
            Public URL of the uploaded video
        """
        local_path = self.files.processed_path(file_name)
        gcs_path = f'gs://{self.processed_bucket}/{file_name}'
        content_type, _ = mimetypes.guess_type(file_name)
        
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.upload_file, local_path, gcs_path, content_type)
        # objects in the processed bucket are not public by default
        return await loop.run_in_executor(None, self.make_public, gcs_path)
    
    @staticmethod
    def parse_gcs_path(gcs_path: str) -> Tuple[str, str]:
        """
        Parse GCS path into bucket and blob path
        
        Args:
            gcs_path: gs://bucket/path or bucket/path
            
        Returns:
            (bucket_name, blob_path)
        """
        if gcs_path.startswith('gs://'):
            gcs_path = gcs_path[5:]
        
        parts = gcs_path.split('/', 1)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f'Invalid GCS path: {gcs_path}')
        
        return parts[0], parts[1]
