import logging

from config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging():
    """Configure the root logger once for the whole app"""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(settings.LOG_LEVEL)
        return
    logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)
    # pymongo is chatty at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
