from typing import Optional


class VideoWorkerError(Exception):
    """Base class for every error raised by the worker"""


class DirectoryCreationError(VideoWorkerError):
    def __init__(self, path: str, reason: str):
        super().__init__(f'Could not create directory {path}: {reason}')
        self.path = path


class TranscodeError(VideoWorkerError):
    """FFmpeg exited with an error or could not be started"""

    def __init__(
        self,
        message: str,
        input_path: str,
        output_path: str,
        returncode: Optional[int] = None,
        stderr: str = ''
    ):
        super().__init__(message or 'FFmpeg failed without an error message')
        self.input_path = input_path
        self.output_path = output_path
        self.returncode = returncode
        self.stderr = stderr


class StorageError(VideoWorkerError):
    def __init__(self, message: str, bucket: str, object_name: str):
        super().__init__(message)
        self.bucket = bucket
        self.object_name = object_name


class StorageTransferError(StorageError):
    """A download from or upload to Cloud Storage failed"""


class VisibilityChangeError(StorageError):
    """The object was uploaded but could not be made public"""


class FileDeletionError(VideoWorkerError):
    def __init__(self, path: str, reason: str):
        super().__init__(f'Failed to delete file at {path}: {reason}')
        self.path = path


class InvalidVideoNameError(VideoWorkerError, ValueError):
    pass


class VideoAlreadyProcessingError(VideoWorkerError):
    def __init__(self, name: str):
        super().__init__(f'Video {name} is already being processed')
        self.name = name
