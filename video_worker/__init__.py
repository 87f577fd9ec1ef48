"""
Video Worker
Moves videos between Cloud Storage and local disk and rescales them with FFmpeg
"""

__version__ = '0.1.0'
