import logging
import os
from datetime import UTC, datetime
from logging.handlers import TimedRotatingFileHandler

import pytz

"""
Multi-logger setup
logs to console and optionally to /tmp/log/catalogfeed
"""

TIMEZONE = pytz.timezone(os.getenv("LOG_TIMEZONE", "America/New_York"))
LOG_DIR = "/tmp/log/catalogfeed"

Logger_Cache: dict[str, logging.Logger] = {}
Default_Level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
if not isinstance(Default_Level, int):
    Default_Level = logging.INFO


def set_level(level):
    """Change the level used for loggers created after this call, and for cached ones."""
    global Default_Level
    Default_Level = level
    for logger in Logger_Cache.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


class LocalTimeFormatter(logging.Formatter):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.local_tz = TIMEZONE

    def format(self, record):
        utc_dt = datetime.fromtimestamp(record.created, UTC)
        local_time = utc_dt.astimezone(self.local_tz)

        record.local_time = local_time.strftime("%I:%M:%S %p")
        record.short_name = record.name[0:24]
        if record.levelno == logging.WARNING:
            self._style._fmt = "%(local_time)-10s %(short_name)-24s:%(levelname)-8s =====> %(message)s"
        elif record.levelno >= logging.ERROR:
            self._style._fmt = "\n%(local_time)-10s %(short_name)-24s =====> ERROR \n%(message)s\n---END ERROR ---\n"
        else:
            self._style._fmt = "%(local_time)-10s %(short_name)-24s:%(levelname)-8s %(message)s"

        return super().format(record)


class FileFormatter(logging.Formatter):
    def format(self, record):
        utc_dt = datetime.fromtimestamp(record.created, UTC)
        record.utc_time = utc_dt.strftime("%Y-%m-%d %H:%M:%S")
        if record.levelno >= logging.WARNING:
            self._style._fmt = "\n===== %(levelname)s Source: %(name)s =====\n%(utc_time)s:%(message)s\n"
        else:
            self._style._fmt = "%(utc_time)s:%(name)15s:%(levelname)s %(message)s"
        return super().format(record)


def _file_handler(filename: str, level) -> logging.Handler:
    os.makedirs(LOG_DIR, exist_ok=True)
    fullpath = os.path.join(LOG_DIR, os.path.basename(filename))
    try:
        handler: logging.Handler = TimedRotatingFileHandler(
            fullpath, when="midnight", backupCount=30
        )
    except FileNotFoundError:
        handler = logging.FileHandler(fullpath)
    handler.setLevel(level)
    handler.setFormatter(FileFormatter())
    return handler


def get_logger(name: str, level=None, filename=None) -> logging.Logger:
    """Return a cached logger with a local-time console handler."""
    if name in Logger_Cache:
        return Logger_Cache[name]

    if level is None:
        level = Default_Level
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(LocalTimeFormatter())
    logger.addHandler(console)

    if filename:
        logger.addHandler(_file_handler(filename, level))

    # pytest's caplog hooks the root logger
    logger.propagate = os.getenv("ENVIRONMENT", "").lower() == "test"

    Logger_Cache[name] = logger
    return logger


if __name__ == "__main__":
    a = get_logger("test")
    a.info("this is a test")
    a.error("this is an error test")
