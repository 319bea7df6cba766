import logging
import sys

from . import config

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_configured = False


def setup_logging(level: str = None) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    global _configured

    level_name = (level or config.LOG_LEVEL).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    _configured = True

    logging.getLogger(__name__).info(f"Logging initialized at {level_name}")
