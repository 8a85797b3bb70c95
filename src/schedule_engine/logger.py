import logging
import sys

from schedule_engine import config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Package logger; the host application decides what the root logger does
logger = logging.getLogger("schedule_engine")
logger.setLevel(config.LOG_LEVEL)

if not logger.handlers:
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(stream_handler)

    if config.LOG_FILE:
        file_handler = logging.FileHandler(config.LOG_FILE, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
