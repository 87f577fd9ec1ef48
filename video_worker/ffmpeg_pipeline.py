import asyncio
from typing import Dict, List

import ffmpeg

from video_worker.config import WorkerConfig
from video_worker.errors import TranscodeError
from video_worker.local_files import LocalFiles
from video_worker.logger import logger

# Lines of FFmpeg stderr kept in a TranscodeError message
STDERR_TAIL_LINES = 5


def _stderr_tail(stderr: str) -> str:
    lines = [line for line in stderr.splitlines() if line.strip()]
    return '\n'.join(lines[-STDERR_TAIL_LINES:])


def _parse_frame_rate(rate: str) -> float:
    # e.g. "30000/1001" or "30"
    if '/' in rate:
        num, den = map(int, rate.split('/'))
        return num / den if den else 0.0
    return float(rate)


class FFmpegPipeline:
    """FFmpeg utilities for video processing"""
    
    def __init__(self, config: WorkerConfig, files: LocalFiles = None):
        self.target_height = config.target_height
        self.ffmpeg_binary = config.ffmpeg_binary
        self.files = files or LocalFiles(config)
    
    def build_command(self, input_path: str, output_path: str) -> List[str]:
        """FFmpeg command line rescaling input_path to the target height"""
        # -2 keeps the aspect ratio and rounds the width to an even number for libx264
        return (
            ffmpeg
            .input(input_path)
            .output(output_path, vf=f'scale=-2:{self.target_height}')
            # only errors on stderr, progress stats would pile up in memory
            .global_args('-hide_banner', '-nostats', '-loglevel', 'error')
            .overwrite_output()
            .compile(cmd=self.ffmpeg_binary)
        )
    
    async def convert_video(self, raw_video_name: str, processed_video_name: str) -> str:
        """
        Rescale a raw video into the processed directory
        
        Args:
            raw_video_name: File name inside the raw directory
            processed_video_name: File name to write inside the processed directory
            
        Returns:
            Path of the processed video, fully written
        """
        input_path = self.files.raw_path(raw_video_name)
        output_path = self.files.processed_path(processed_video_name)
        args = self.build_command(input_path, output_path)
        
        logger.info(f'Converting {input_path} to {output_path} at {self.target_height}p')
        
        process = None
        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    *args,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.PIPE
                )
            except OSError as e:
                logger.error(f'Could not start FFmpeg ({self.ffmpeg_binary}): {e}')
                raise TranscodeError(str(e), input_path, output_path) from e
            
            _, stderr_bytes = await process.communicate()
        finally:
            # cancelled or failed mid-run: never leave the process behind
            if process is not None and process.returncode is None:
                process.kill()
                await process.wait()
        
        if process.returncode != 0:
            stderr = stderr_bytes.decode(errors='replace')
            message = _stderr_tail(stderr) or f'FFmpeg exited with code {process.returncode}'
            logger.error(f'An error occurred while converting {input_path}: {message}')
            raise TranscodeError(
                message,
                input_path,
                output_path,
                returncode=process.returncode,
                stderr=stderr
            )
        
        logger.info(f'Video processing finished successfully: {output_path}')
        return output_path
    
    @staticmethod
    def probe_video(video_path: str) -> Dict:
        """Extract video metadata using ffprobe"""
        try:
            probe = ffmpeg.probe(video_path)
        except ffmpeg.Error as e:
            logger.error(f'Failed to get video info: {e.stderr.decode(errors="replace")}')
            raise
        
        video_stream = next((stream for stream in probe['streams'] if stream['codec_type'] == 'video'), None)
        if not video_stream:
            raise ValueError(f'No video stream found in {video_path}')
        
        return {
            'duration': float(probe['format'].get('duration', 0.0)),
            'width': int(video_stream['width']),
            'height': int(video_stream['height']),
            'fps': _parse_frame_rate(video_stream.get('r_frame_rate', '0/1')),
            'codec': video_stream['codec_name'],
        }
    
    async def get_video_info(self, video_path: str) -> Dict:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.probe_video, video_path)
