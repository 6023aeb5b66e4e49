import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
HANDLER_NAME = "endpoint_poker"


def configure_logging(level: str = "INFO") -> None:
    numeric_level = logging.getLevelName(level.upper())
    if isinstance(numeric_level, str):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        handlers=[handler],
        force=True,
    )
    # httpx logs every request at INFO, the poke lines already cover that
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)
