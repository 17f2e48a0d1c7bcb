"""
Logging configuration for learnflow

Features:
- Daily rotation of the main log (new file at midnight)
- Size-capped error log (10MB, 5 backups)
- Per-level files:
  - logs/learnflow.log: everything INFO and above
  - logs/learnflow_error.log: ERROR and above
  - logs/learnflow_debug.log: DEBUG and above (development only)
- Console and file output at the same time

Usage:
    from learnflow.utils.logger import setup_logging, get_logger

    # once, at process start
    setup_logging(environment="development")

    logger = get_logger(__name__)
    logger.info("Hello World")
"""
import logging
import logging.handlers
from pathlib import Path


LOG_LEVELS = {
    "development": logging.DEBUG,
    "test": logging.WARNING,
    "production": logging.INFO,
}

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "urllib3",
    "openai",
    "openai._base_client",
    "langsmith",
    "langchain",
)


def setup_logging(
    environment: str = "development",
    log_dir: str = "logs",
    app_name: str = "learnflow"
) -> None:
    """
    Initialise the root logger.

    Args:
        environment: "development" | "production" | "test"
        log_dir: directory for log files
        app_name: prefix used for log file names
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    log_level = LOG_LEVELS.get(environment, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # avoid duplicated handlers when called twice
    root_logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    simple_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    app_file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=log_path / f"{app_name}.log",
        when="midnight",
        interval=1,
        backupCount=30,
        encoding="utf-8"
    )
    app_file_handler.setLevel(logging.INFO)
    app_file_handler.setFormatter(detailed_formatter)
    app_file_handler.suffix = "%Y-%m-%d"
    root_logger.addHandler(app_file_handler)

    error_file_handler = logging.handlers.RotatingFileHandler(
        filename=log_path / f"{app_name}_error.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8"
    )
    error_file_handler.setLevel(logging.ERROR)
    error_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_file_handler)

    if environment == "development":
        debug_file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path / f"{app_name}_debug.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8"
        )
        debug_file_handler.setLevel(logging.DEBUG)
        debug_file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(debug_file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: environment={environment}, level={logging.getLevelName(log_level)}")
    logger.info(f"Log directory: {log_path.absolute()}")


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger instance (usually called with __name__).
    """
    return logging.getLogger(name)
