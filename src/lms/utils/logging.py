import logging
import logging.handlers
from lms.config import log_file_path, db_log_file_path
from lms.settings import settings


def setup_logging(
    log_file_path: str,
    log_level: str = "INFO",
    logger_name: str | None = None,
):
    """
    Set up rotating file logging for the application.

    Args:
        log_file_path: Path to the log file
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Name of the logger to configure; the root logger when None
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    target_logger = logging.getLogger(logger_name)
    target_logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Only add file handler if not already present (avoid duplicates on reload)
    has_file_handler = any(
        isinstance(h, logging.handlers.RotatingFileHandler)
        and h.baseFilename == log_file_path
        for h in target_logger.handlers
    )

    if not has_file_handler:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        target_logger.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    return target_logger


# uvicorn handles console output; these only write to files
logger = setup_logging(log_file_path, log_level=settings.log_level)

db_logger = setup_logging(
    db_log_file_path, log_level=settings.log_level, logger_name="lms.db"
)
