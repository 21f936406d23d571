import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(session)s] %(message)s"


class SessionNameFilter(logging.Filter):
    """Stamps every record with the AR session it belongs to."""

    def __init__(self, session_name: str):
        super().__init__()
        self.session_name = session_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.session = self.session_name
        return True


def _session_handler(handler: logging.Handler, session_name: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(SessionNameFilter(session_name))
    return handler


def setup_logger(
    session_name: str,
    level: int = logging.INFO,
    log_path: Optional[str] = None,
) -> logging.Logger:
    """Logger for one alignment session; repeated calls reuse its handlers."""
    logger = logging.getLogger(f"zone_alignment.{session_name}")
    logger.setLevel(level)

    if not logger.handlers:
        logger.addHandler(_session_handler(logging.StreamHandler(), session_name))
        if log_path:
            add_file_handler(logger, session_name, log_path)

    return logger


def add_file_handler(logger: logging.Logger, session_name: str, log_path: str) -> None:
    logger.addHandler(_session_handler(logging.FileHandler(log_path), session_name))
