# tabclean/utils/logging_config.py
import functools
import logging
import sys
import time
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional, Union

LOGGER_NAMESPACE = "tabclean"
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'

# Libraries that log every request at INFO
NOISY_LOGGERS = ("urllib3", "requests", "httpx", "httpcore", "multipart", "uvicorn.access")


def setup_logging(
    log_level: str = "INFO",
    log_dir: str = "logs",
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_format: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the root logger for a CLI run or an API process

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for cleaning_<timestamp>.log files
        log_to_file: Whether to log to a rotating file
        log_to_console: Whether to log to stdout
        log_format: Custom log format string
        max_bytes: Size at which the log file rolls over
        backup_count: Rolled over files to keep

    Returns:
        The ``tabclean`` logger
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    formatter = logging.Formatter(log_format or DEFAULT_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    file_path = None
    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_path = log_path / f"cleaning_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

        file_handler = RotatingFileHandler(file_path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8')
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    configure_third_party_logging()

    service_logger = logging.getLogger(LOGGER_NAMESPACE)
    service_logger.info(f"Logging initialized. Level: {log_level}")
    if file_path is not None:
        service_logger.info(f"Log file: {file_path}")

    return service_logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``tabclean`` namespace"""
    if name == LOGGER_NAMESPACE or name.startswith(f"{LOGGER_NAMESPACE}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def log_execution_time(func):
    """Decorator to log how long a call took; failures are logged and re-raised"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Failed {func.__name__} after {time.perf_counter() - start:.3f}s: {e}")
            raise
        logger.debug(f"{func.__name__} took {time.perf_counter() - start:.3f}s")
        return result

    return wrapper


class PipelineLogger:
    """Context manager around one cleansing stage.

    Logs start, completion or failure with the elapsed time and keeps the
    metrics recorded inside the block in ``metrics``. Exceptions are never
    suppressed.
    """

    def __init__(self, step_name: str, logger: Optional[logging.Logger] = None):
        self.step_name = step_name
        self.logger = logger or get_logger("pipeline")
        self.metrics: Dict[str, Union[int, float, str]] = {}
        self.elapsed: Optional[float] = None
        self._start: Optional[float] = None

    def __enter__(self):
        self._start = time.perf_counter()
        self.logger.info(f"=== Starting {self.step_name} ===")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self._start

        if exc_type is None:
            self.logger.info(f"=== Completed {self.step_name} in {self.elapsed:.3f} seconds ===")
        else:
            self.logger.error(f"=== Failed {self.step_name} after {self.elapsed:.3f} seconds: {exc_val} ===")
        return False

    def log_progress(self, message: str):
        self.logger.info(f"[{self.step_name}] {message}")

    def log_metric(self, name: str, value: Union[int, float, str]):
        self.metrics[name] = value
        self.logger.info(f"[{self.step_name}] Metric - {name}: {value}")


def configure_third_party_logging(level: int = logging.WARNING):
    """Quieten request-level logging from HTTP and server libraries"""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)
