import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from devpulse.settings import settings

class ZonedFormatter(logging.Formatter):
    def __init__(self, *args, tz: str = "UTC", **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = ZoneInfo(tz)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.strftime("%Y-%m-%d %H:%M:%S %Z")

def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger  # avoid double handlers

    logger.setLevel(settings.log_level.upper())

    handler = logging.StreamHandler()
    formatter = ZonedFormatter(
        fmt="[%(asctime)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S %Z",
        tz=settings.log_timezone,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger
