"""
Log rotation for signer processes.
"""

import logging
import os
from logging.handlers import TimedRotatingFileHandler

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_log_rotation(log_dir: str = ".run", filename: str = "signer.log") -> TimedRotatingFileHandler:
    """Attach a daily rotating file handler (7 backups) to the root logger."""
    os.makedirs(log_dir, exist_ok=True)
    path = os.path.join(log_dir, filename)

    root_logger = logging.getLogger()
    for existing in root_logger.handlers:
        if isinstance(existing, TimedRotatingFileHandler) and existing.baseFilename == os.path.abspath(path):
            return existing

    handler = TimedRotatingFileHandler(
        filename=path,
        when="midnight",
        interval=1,
        backupCount=7,
        encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    logger.info("Log rotation configured at %s (daily, keep 7 days)", path)
    return handler
