import logging
import colorlog

from video_worker import config

def setup_logger(name: str = 'video-worker', level: str = config.LOG_LEVEL) -> logging.Logger:
    """Set up colored logger for the worker"""
    
    logger = logging.getLogger(name)
    numeric_level = logging.getLevelName(str(level).upper())
    if not isinstance(numeric_level, int):
        # unknown names such as 'VERBOSE' must not break the import
        numeric_level = logging.INFO
    logger.setLevel(numeric_level)
    
    # Avoid duplicate handlers
    if logger.handlers:
        return logger
    
    handler = colorlog.StreamHandler()
    handler.setFormatter(colorlog.ColoredFormatter(
        '%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'bold_red',
        }
    ))
    
    logger.addHandler(handler)
    return logger

logger = setup_logger()
