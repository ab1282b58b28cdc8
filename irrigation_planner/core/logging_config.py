import json
import logging
import os
from logging.handlers import RotatingFileHandler

from irrigation_planner.core.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_configured = False


class JsonFormatter(logging.Formatter):
    """Outputs log records as single-line JSON objects."""

    def format(self, record):
        log_entry = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "filename": record.filename,
            "lineno": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def _file_handler(log_dir: str, formatter: logging.Formatter):
    try:
        os.makedirs(log_dir, exist_ok=True)
        handler = RotatingFileHandler(
            os.path.join(log_dir, 'zone_planner.log'),
            maxBytes=5*1024*1024,  # 5MB
            backupCount=5
        )
    except OSError:
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: str = None, log_format: str = None, log_dir: str = None) -> logging.Logger:
    """Configure root logging once per process and return the app logger."""
    global _configured
    logger = logging.getLogger('irrigation_planner')
    if _configured:
        return logger

    if (log_format or Config.LOG_FORMAT).lower() == 'json':
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level or Config.LOG_LEVEL)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)

    file_handler = _file_handler(log_dir or Config.LOG_DIR, formatter)
    if file_handler:
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('openai').setLevel(logging.WARNING)

    _configured = True
    logger.info("Zone planner logging initialized")
    return logger
