"""Logging setup shared by every codeui module."""

import logging
import os
import sys

LOG_LEVEL = os.getenv("CODEUI_LOG_LEVEL", "DEBUG").upper()

# HTTP clients log every request at INFO/DEBUG; streaming makes that noisy
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)

for _name in QUIET_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)


def get_logger(name: str | None = None):
    level = getattr(logging, LOG_LEVEL, logging.DEBUG)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if name is None:
        return root_logger
    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
