"""Logging setup shared by the API and CLI entry points"""
import logging
import os
from typing import Optional

from .config import LOG_FILE_PATH, LOG_LEVEL


def setup_logger(name: str = "control_importer",
                 log_level: str = LOG_LEVEL,
                 log_file_path: Optional[str] = LOG_FILE_PATH) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if not logger.handlers:
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        if log_file_path:
            log_dir = os.path.dirname(log_file_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(log_file_path)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
