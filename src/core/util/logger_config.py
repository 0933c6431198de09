import logging
import sys
from datetime import datetime, tzinfo
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class ISO8601Formatter(logging.Formatter):
    """
    Timestamps in ISO8601 with millisecond precision.

    When `tz` is given, records are stamped in that zone instead of the host zone.
    """

    def __init__(self, fmt: str = LOG_FORMAT, tz: tzinfo | None = None):
        super().__init__(fmt=fmt)
        self._tz = tz

    def formatTime(self, record, datefmt=None):
        dt: datetime = datetime.fromtimestamp(record.created, tz=self._tz)
        if self._tz is None:
            dt = dt.astimezone()
        return dt.isoformat(timespec="milliseconds")


def resolve_log_level(log_level: int | str) -> int:
    if isinstance(log_level, int):
        return log_level
    return LOG_LEVEL_MAP.get(log_level.upper(), logging.INFO)


def _build_file_handler(log_dir: str, log_base_filename: str, when: str, backup_count: int) -> logging.Handler:
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    return TimedRotatingFileHandler(
        filename=str(Path(log_dir) / f"{log_base_filename}.log"),
        when=when,
        interval=1,
        backupCount=backup_count,
        encoding="utf-8",
        utc=False,
    )


def setup_logging(
    log_level: int | str = logging.INFO,
    log_to_file: bool = False,
    log_dir: str = "logs",
    log_base_filename: str = "plc_reset",
    when: str = "midnight",
    backup_count: int = 7,
    tz: tzinfo | None = None,
) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(resolve_log_level(log_level))

    # handlers are installed once per process; later calls only adjust the level
    if any(isinstance(h.formatter, ISO8601Formatter) for h in root_logger.handlers):
        return

    formatter = ISO8601Formatter(tz=tz)
    handler_list: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        handler_list.append(_build_file_handler(log_dir, log_base_filename, when, backup_count))

    for handler in handler_list:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
